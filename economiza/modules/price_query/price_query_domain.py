"""
Regras de negócio e validações do módulo Price Query

Validações conforme o Manual de Orientação do Desenvolvedor da API SEFAZ-AL.
Os validadores nunca lançam exceção: toda inconsistência vira uma mensagem.
"""
import copy
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from economiza.errors import ValidationError
from economiza.utils.formatters import _coerce_price, _format_currency, _format_date, _parse_timestamp

from .price_query_types import (
    CNPJ_LENGTH,
    DAYS_RANGE,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SYNC_DAYS,
    FUEL_TYPE_RANGE,
    FUEL_TYPES,
    GPC_SEGMENTS,
    GTIN_LENGTH_RANGE,
    IBGE_CODE_LENGTH,
    LATITUDE_RANGE,
    LONGITUDE_RANGE,
    MUNICIPALITIES,
    RADIUS_RANGE,
    VALIDATION_MESSAGES,
    EstablishmentByCnpj,
    EstablishmentByGeolocation,
    EstablishmentByMunicipality,
    FuelProduct,
    FuelQuery,
    PriceRecord,
    ProductByDescription,
    ProductByGtin,
    ProductQuery,
)

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r'\D')


# ---------------------------------------------------------------------------
# Normalização
# ---------------------------------------------------------------------------

def strip_non_digits(value: Any) -> str:
    """
    Mantém apenas os caracteres 0-9

    Args:
        value: Valor informado (string, número ou None)

    Returns:
        str: Somente os dígitos
    """
    if value is None or isinstance(value, bool):
        return ''
    return _NON_DIGITS.sub('', str(value))


def format_cnpj_display(value: Any) -> str:
    """
    Formata CNPJ no padrão XX.XXX.XXX/XXXX-XX

    Args:
        value: CNPJ com ou sem formatação

    Returns:
        str: CNPJ formatado, ou o valor original se não tiver 14 dígitos
    """
    if value is None:
        return ''

    digits = strip_non_digits(value)
    if len(digits) != CNPJ_LENGTH:
        return value if isinstance(value, str) else str(value)

    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def fuel_type_name(code: Any) -> str:
    """Nome do tipo de combustível; códigos desconhecidos viram 'Combustível {code}'."""
    number = _to_integer(code)
    if number in FUEL_TYPES:
        return FUEL_TYPES[number]
    return f"Combustível {code}"


def segment_name(code: Any) -> str:
    """Nome do segmento GPC; códigos desconhecidos viram 'Segmento {code}'."""
    return GPC_SEGMENTS.get(strip_non_digits(code), f"Segmento {code}")


def municipality_name(code: Any) -> str:
    """Nome do município pelo código IBGE; códigos desconhecidos viram 'Município {code}'."""
    return MUNICIPALITIES.get(strip_non_digits(code), f"Município {code}")


def establishment_display_name(establishment: Any) -> str:
    """Prefere o nome fantasia à razão social."""
    if isinstance(establishment, PriceRecord):
        return establishment.trade_name or establishment.legal_name or ''
    if not isinstance(establishment, dict):
        return ''
    return (
        establishment.get('nome_fantasia')
        or establishment.get('nomeFantasia')
        or establishment.get('razao_social')
        or establishment.get('razaoSocial')
        or ''
    )


def extract_cnpj_from_criteria(search_criteria: Any) -> str:
    """Extrai o CNPJ de um critério salvo, aceitando formatos legados."""
    return strip_non_digits(
        _get(search_criteria, 'estabelecimento', 'individual', 'cnpj')
        or _get(search_criteria, 'estabelecimento', 'cnpj')
        or _get(search_criteria, 'cnpj')
    )


# ---------------------------------------------------------------------------
# Auxiliares
# ---------------------------------------------------------------------------

def _get(data: Any, *path: str) -> Any:
    """Navega em dicionários aninhados sem lançar exceção."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _is_present(value: Any) -> bool:
    """Campo ausente: None ou string vazia. Zero conta como informado."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _to_number(value: Any) -> Optional[float]:
    """Converte para número; bool, NaN e texto não numérico retornam None."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _to_integer(value: Any) -> Optional[int]:
    """Converte para inteiro somente se o valor for numérico e inteiro."""
    number = _to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _in_range(number: Optional[float], bounds: Tuple[float, float]) -> bool:
    low, high = bounds
    return number is not None and low <= number <= high


def _establishment_errors(params: Any) -> List[str]:
    """Regras de estabelecimento, geolocalização e dias (comuns a produto e combustível)."""
    errors: List[str] = []

    cnpj = _get(params, 'estabelecimento', 'individual', 'cnpj')
    ibge_code = _get(params, 'estabelecimento', 'municipio', 'codigoIBGE')
    latitude = _get(params, 'estabelecimento', 'geolocalizacao', 'latitude')
    longitude = _get(params, 'estabelecimento', 'geolocalizacao', 'longitude')
    radius = _get(params, 'estabelecimento', 'geolocalizacao', 'raio')

    has_individual = _is_present(cnpj)
    has_municipality = _is_present(ibge_code)
    has_geo = _is_present(latitude) and _is_present(longitude) and _is_present(radius)

    # Deve haver exatamente UM tipo de estabelecimento
    establishment_count = [has_individual, has_municipality, has_geo].count(True)
    if establishment_count != 1:
        errors.append(VALIDATION_MESSAGES['establishment_count'])

    if has_individual and len(strip_non_digits(cnpj)) != CNPJ_LENGTH:
        errors.append(VALIDATION_MESSAGES['cnpj_length'])

    if has_municipality and len(strip_non_digits(ibge_code)) != IBGE_CODE_LENGTH:
        errors.append(VALIDATION_MESSAGES['ibge_length'])

    if has_geo:
        if not _in_range(_to_number(latitude), LATITUDE_RANGE):
            errors.append(VALIDATION_MESSAGES['latitude_range'])

        if not _in_range(_to_number(longitude), LONGITUDE_RANGE):
            errors.append(VALIDATION_MESSAGES['longitude_range'])

        if not _in_range(_to_integer(radius), RADIUS_RANGE):
            errors.append(VALIDATION_MESSAGES['radius_range'])

    days = _get(params, 'dias')
    if not _in_range(_to_integer(days), DAYS_RANGE):
        errors.append(VALIDATION_MESSAGES['days_range'])

    errors.extend(_paging_errors(params))
    return errors


def _paging_errors(params: Any) -> List[str]:
    errors = []
    for field_name, label in (('pagina', 'Página'), ('registrosPorPagina', 'Registros por página')):
        value = _get(params, field_name)
        if not _is_present(value):
            continue
        number = _to_integer(value)
        if number is None or number < 1:
            errors.append(f"{label} deve ser um número inteiro positivo")
    return errors


# ---------------------------------------------------------------------------
# Validação
# ---------------------------------------------------------------------------

def validate_product_query(params: Any) -> List[str]:
    """
    Valida parâmetros de busca de produtos

    Args:
        params: Critérios de busca (dict possivelmente incompleto)

    Returns:
        list: Mensagens de erro na ordem das regras; vazia se válido
    """
    errors: List[str] = []

    gtin = _get(params, 'produto', 'gtin')
    description = _get(params, 'produto', 'descricao')
    has_gtin = _is_present(gtin)
    has_description = _is_present(description)

    # Produto - deve ter apenas UM dos campos obrigatórios
    if not has_gtin and not has_description:
        errors.append(VALIDATION_MESSAGES['product_missing'])

    if has_gtin and has_description:
        errors.append(VALIDATION_MESSAGES['product_both'])

    # NCM e GPC só podem ser usados com descrição
    ncm = _get(params, 'produto', 'ncm')
    gpc = _get(params, 'produto', 'gpc')
    if (_is_present(ncm) or _is_present(gpc)) and not has_description:
        errors.append(VALIDATION_MESSAGES['ncm_gpc_without_description'])

    if has_gtin:
        gtin_length = len(strip_non_digits(gtin))
        low, high = GTIN_LENGTH_RANGE
        if gtin_length < low or gtin_length > high:
            errors.append(VALIDATION_MESSAGES['gtin_length'])

    errors.extend(_establishment_errors(params))
    return errors


def validate_fuel_query(params: Any) -> List[str]:
    """
    Valida parâmetros de busca de combustíveis

    Args:
        params: Critérios de busca (dict possivelmente incompleto)

    Returns:
        list: Mensagens de erro; vazia se válido
    """
    errors: List[str] = []

    fuel_type = _to_integer(_get(params, 'produto', 'tipoCombustivel'))
    if not _in_range(fuel_type, FUEL_TYPE_RANGE):
        errors.append(VALIDATION_MESSAGES['fuel_type_range'])

    errors.extend(_establishment_errors(params))
    return errors


# ---------------------------------------------------------------------------
# Montagem da requisição
# ---------------------------------------------------------------------------

def _as_int(value: Any) -> Any:
    number = _to_integer(value)
    return number if number is not None else value


def _as_float(value: Any) -> Any:
    number = _to_number(value)
    return number if number is not None else value


def normalize_query(params: Any) -> Dict[str, Any]:
    """
    Converte critérios informados pelo usuário para o formato aceito pela API

    GTIN e CNPJ viram strings só com dígitos, código IBGE vira inteiro e os
    campos numéricos são convertidos. Valores que não podem ser convertidos
    são mantidos para que a validação os reporte.

    Args:
        params: Critérios de busca

    Returns:
        dict: Payload normalizado (cópia; a entrada não é alterada)
    """
    payload = copy.deepcopy(params) if isinstance(params, dict) else {}

    produto = payload.get('produto')
    if isinstance(produto, dict):
        if _is_present(produto.get('gtin')):
            produto['gtin'] = strip_non_digits(produto['gtin'])
        if _is_present(produto.get('tipoCombustivel')):
            produto['tipoCombustivel'] = _as_int(produto['tipoCombustivel'])
        for key in ('descricao', 'ncm', 'gpc'):
            if isinstance(produto.get(key), str):
                produto[key] = produto[key].strip()

    individual = _get(payload, 'estabelecimento', 'individual')
    if isinstance(individual, dict) and _is_present(individual.get('cnpj')):
        individual['cnpj'] = strip_non_digits(individual['cnpj'])

    municipio = _get(payload, 'estabelecimento', 'municipio')
    if isinstance(municipio, dict) and _is_present(municipio.get('codigoIBGE')):
        digits = strip_non_digits(municipio['codigoIBGE'])
        if digits:
            municipio['codigoIBGE'] = int(digits)

    geo = _get(payload, 'estabelecimento', 'geolocalizacao')
    if isinstance(geo, dict):
        for key in ('latitude', 'longitude'):
            if _is_present(geo.get(key)):
                geo[key] = _as_float(geo[key])
        if _is_present(geo.get('raio')):
            geo['raio'] = _as_int(geo['raio'])

    if _is_present(payload.get('dias')):
        payload['dias'] = _as_int(payload['dias'])

    payload['pagina'] = _as_int(payload['pagina']) if _is_present(payload.get('pagina')) else DEFAULT_PAGE
    if _is_present(payload.get('registrosPorPagina')):
        payload['registrosPorPagina'] = _as_int(payload['registrosPorPagina'])
    else:
        payload['registrosPorPagina'] = DEFAULT_PAGE_SIZE

    return payload


def _parse_establishment(payload: Dict[str, Any]):
    cnpj = _get(payload, 'estabelecimento', 'individual', 'cnpj')
    if _is_present(cnpj):
        return EstablishmentByCnpj(cnpj=cnpj)

    ibge_code = _get(payload, 'estabelecimento', 'municipio', 'codigoIBGE')
    if _is_present(ibge_code):
        return EstablishmentByMunicipality(codigo_ibge=ibge_code)

    geo = _get(payload, 'estabelecimento', 'geolocalizacao')
    return EstablishmentByGeolocation(
        latitude=geo['latitude'],
        longitude=geo['longitude'],
        raio=geo['raio']
    )


def parse_product_query(params: Any) -> ProductQuery:
    """
    Converte critérios soltos em uma ProductQuery tipada

    Raises:
        ValidationError: com todas as mensagens, se os critérios forem inválidos
    """
    errors = validate_product_query(params)
    if errors:
        raise ValidationError(errors)

    payload = normalize_query(params)
    produto = payload['produto']
    if _is_present(produto.get('gtin')):
        product = ProductByGtin(gtin=produto['gtin'])
    else:
        product = ProductByDescription(
            descricao=produto['descricao'],
            ncm=produto.get('ncm') or None,
            gpc=produto.get('gpc') or None
        )

    return ProductQuery(
        produto=product,
        estabelecimento=_parse_establishment(payload),
        dias=payload['dias'],
        pagina=payload['pagina'],
        registros_por_pagina=payload['registrosPorPagina']
    )


def parse_fuel_query(params: Any) -> FuelQuery:
    """
    Converte critérios soltos em uma FuelQuery tipada

    Raises:
        ValidationError: com todas as mensagens, se os critérios forem inválidos
    """
    errors = validate_fuel_query(params)
    if errors:
        raise ValidationError(errors)

    payload = normalize_query(params)
    return FuelQuery(
        produto=FuelProduct(tipo_combustivel=payload['produto']['tipoCombustivel']),
        estabelecimento=_parse_establishment(payload),
        dias=payload['dias'],
        pagina=payload['pagina'],
        registros_por_pagina=payload['registrosPorPagina']
    )


def build_fallback_payloads(search_criteria: Any) -> List[Tuple[str, Dict[str, Any], Optional[str]]]:
    """
    Monta as tentativas de busca de um item monitorado, da mais específica para a mais ampla

    1. GTIN + CNPJ
    2. GTIN no estabelecimento amplo (município/geolocalização), filtrando pelo CNPJ
    3. Descrição no estabelecimento salvo, filtrando pelo CNPJ

    Tentativas que não passam na validação local são descartadas.

    Args:
        search_criteria: Critério salvo do item monitorado

    Returns:
        list: Tuplas (estratégia, payload normalizado, CNPJ para filtrar o resultado)
    """
    gtin = _get(search_criteria, 'produto', 'gtin')
    description = _get(search_criteria, 'produto', 'descricao')
    cnpj = extract_cnpj_from_criteria(search_criteria)
    days = _get(search_criteria, 'dias')
    if not _is_present(days):
        days = DEFAULT_SYNC_DAYS

    saved_establishment = _get(search_criteria, 'estabelecimento')
    saved_establishment = dict(saved_establishment) if isinstance(saved_establishment, dict) else {}
    broad_establishment = {
        key: value for key, value in saved_establishment.items()
        if key in ('municipio', 'geolocalizacao')
    }
    if cnpj and 'individual' not in saved_establishment:
        saved_establishment = {'individual': {'cnpj': cnpj}}

    candidates = []
    if _is_present(gtin) and cnpj:
        candidates.append(('gtin_cnpj', {'gtin': gtin}, {'individual': {'cnpj': cnpj}}, None))
    if _is_present(gtin):
        candidates.append(('gtin', {'gtin': gtin}, broad_establishment, cnpj or None))
    if _is_present(description):
        candidates.append(('descricao', {'descricao': description}, saved_establishment, cnpj or None))

    attempts = []
    seen = []
    for strategy, product, establishment, cnpj_filter in candidates:
        payload = normalize_query({
            'produto': product,
            'estabelecimento': establishment,
            'dias': days,
            'pagina': DEFAULT_PAGE,
            'registrosPorPagina': DEFAULT_PAGE_SIZE
        })
        if validate_product_query(payload):
            continue
        if payload in seen:
            continue
        seen.append(payload)
        attempts.append((strategy, payload, cnpj_filter))

    return attempts


# ---------------------------------------------------------------------------
# Resposta da API
# ---------------------------------------------------------------------------

def parse_price_records(response: Any, fetched_at: Optional[datetime] = None) -> List[PriceRecord]:
    """
    Converte o 'conteudo' da resposta da API em PriceRecord

    Registros sem preço de venda ou sem CNPJ são descartados.

    Args:
        response: Resposta da API (dict com 'conteudo' ou a própria lista)
        fetched_at: Momento da coleta (padrão: agora, UTC)

    Returns:
        list: Registros de preço
    """
    fetched_at = fetched_at or datetime.now(timezone.utc)

    if isinstance(response, dict):
        entries = response.get('conteudo') or []
    elif isinstance(response, list):
        entries = response
    else:
        entries = []

    records = []
    for entry in entries:
        sale = _get(entry, 'produto', 'venda') or {}
        sale_price = _coerce_price(_get(sale, 'valorVenda'))
        cnpj = strip_non_digits(_get(entry, 'estabelecimento', 'cnpj'))

        if sale_price is None or not cnpj:
            logger.warning("Registro de preço ignorado (formato inesperado): %s", entry)
            continue

        address = _get(entry, 'estabelecimento', 'endereco')
        records.append(PriceRecord(
            sale_price=sale_price,
            declared_price=_coerce_price(_get(sale, 'valorDeclarado')),
            cnpj=cnpj,
            trade_name=_get(entry, 'estabelecimento', 'nomeFantasia') or '',
            legal_name=_get(entry, 'estabelecimento', 'razaoSocial') or '',
            description=_get(entry, 'produto', 'descricao') or '',
            gtin=strip_non_digits(_get(entry, 'produto', 'gtin')),
            unit=_get(entry, 'produto', 'unidadeMedida') or '',
            sale_date=_parse_timestamp(_get(sale, 'dataVenda')),
            fetched_at=fetched_at,
            address=address if isinstance(address, dict) else {}
        ))

    return records


def filter_records_by_cnpj(records: List[PriceRecord], cnpj: Optional[str]) -> List[PriceRecord]:
    """Mantém apenas registros do CNPJ informado (sem filtro se CNPJ vazio)."""
    target = strip_non_digits(cnpj)
    if not target:
        return list(records)
    return [record for record in records if record.cnpj == target]


def describe_price_record(record: PriceRecord) -> str:
    """Resumo de um registro de preço para alertas e listagens."""
    name = establishment_display_name(record) or 'Estabelecimento'
    return (
        f"{name} ({format_cnpj_display(record.cnpj)}): "
        f"{_format_currency(record.sale_price)} em {_format_date(record.sale_date)}"
    )
