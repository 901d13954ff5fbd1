"""
Funções específicas do módulo Price Query (consultas à API de preços)
"""
import logging
from typing import Any, List

import httpx
import requests

from economiza.errors import TransportError, ValidationError

from .price_query_domain import (
    build_fallback_payloads,
    filter_records_by_cnpj,
    normalize_query,
    parse_price_records,
    validate_fuel_query,
    validate_product_query,
)
from .price_query_types import PriceRecord

logger = logging.getLogger(__name__)

# Falhas do armazenamento (tabelas via requests, RPC via httpx)
STORAGE_ERRORS = (requests.RequestException, httpx.HTTPError)


def _execute(endpoint: str, params: Any, errors: List[str], executor) -> List[PriceRecord]:
    if errors:
        logger.info("Consulta de %s rejeitada localmente: %s", endpoint, errors)
        raise ValidationError(errors)

    payload = normalize_query(params)
    response = executor.execute(endpoint, payload)
    records = parse_price_records(response)
    logger.info("Consulta de %s concluída: %d registros", endpoint, len(records))
    return records


def search_products(params: Any, executor) -> List[PriceRecord]:
    """
    Busca preços de produtos na API

    Args:
        params: Critérios de busca informados pelo usuário
        executor: Serviço com execute(endpoint, payload) (ex.: SefazService)

    Returns:
        list: Registros de preço

    Raises:
        ValidationError: critérios inválidos (nenhuma chamada é feita)
        TransportError: falha de comunicação com a API
    """
    return _execute('produto', params, validate_product_query(params), executor)


def search_fuels(params: Any, executor) -> List[PriceRecord]:
    """
    Busca preços de combustíveis na API

    Raises:
        ValidationError: critérios inválidos (nenhuma chamada é feita)
        TransportError: falha de comunicação com a API
    """
    return _execute('combustivel', params, validate_fuel_query(params), executor)


def search_product_with_fallback(search_criteria: Any, executor, item_id: Any = None) -> List[PriceRecord]:
    """
    Busca um item monitorado tentando critérios progressivamente mais amplos

    Args:
        search_criteria: Critério salvo do item
        executor: Serviço com execute(endpoint, payload)
        item_id: Identificador do item (apenas para log)

    Returns:
        list: Registros da primeira estratégia com resultado; vazia se nenhuma encontrou

    Raises:
        TransportError: a última falha, se todas as tentativas falharam na comunicação
    """
    attempts = build_fallback_payloads(search_criteria)
    if not attempts:
        logger.warning("Item %s sem critério de busca válido", item_id)
        return []

    transport_errors = []
    for strategy, payload, cnpj_filter in attempts:
        logger.info("Item %s → tentativa '%s'", item_id, strategy)
        try:
            response = executor.execute('produto', payload)
        except TransportError as exc:
            logger.warning("Item %s → tentativa '%s' falhou: %s", item_id, strategy, exc)
            transport_errors.append(exc)
            continue

        records = filter_records_by_cnpj(parse_price_records(response), cnpj_filter)
        if records:
            logger.info("Item %s → %d registros com '%s'", item_id, len(records), strategy)
            return records

    # Falha de comunicação em todas as tentativas não é "sem resultado"
    if len(transport_errors) == len(attempts):
        raise transport_errors[-1]

    logger.info("Item %s → nenhuma estratégia retornou resultados", item_id)
    return []


def sync_tracked_items(items: List[dict], executor, store) -> dict:
    """
    Atualiza os preços dos itens monitorados e grava o histórico

    Args:
        items: Itens monitorados (linhas de tracked_items)
        executor: Serviço com execute(endpoint, payload)
        store: Serviço de armazenamento (upsert_establishment / insert_price_history)

    Returns:
        dict: Resumo da execução
    """
    summary = {
        'items_processed': 0,
        'successful_updates': 0,
        'failed_updates': 0,
        'errors': []
    }

    for item in items:
        item_id = item.get('id')
        criteria = item.get('search_criteria') or {}
        summary['items_processed'] += 1

        try:
            if item.get('item_type') == 'combustivel':
                records = search_fuels(criteria, executor)
            else:
                records = search_product_with_fallback(criteria, executor, item_id)
        except (ValidationError, TransportError) as exc:
            logger.warning("Item %s não atualizado: %s", item_id, exc)
            summary['failed_updates'] += 1
            summary['errors'].append(f"Item {item_id}: {exc}")
            continue

        if not records:
            logger.info("Nenhum resultado para o item %s", item_id)
            continue

        saved = 0
        for record in records:
            try:
                store.upsert_establishment(record)
            except STORAGE_ERRORS as exc:
                # Sem estabelecimento não há como gravar o preço deste registro
                logger.error("Erro ao salvar estabelecimento %s (item %s): %s", record.cnpj, item_id, exc)
                summary['errors'].append(f"Item {item_id}: estabelecimento {record.cnpj}: {exc}")
                continue

            try:
                store.insert_price_history(item_id, record)
            except STORAGE_ERRORS as exc:
                logger.error("Erro ao salvar preço do item %s: %s", item_id, exc)
                summary['errors'].append(f"Item {item_id}: histórico de preço: {exc}")
                continue
            saved += 1

        if saved:
            logger.info("Item %s atualizado com %d preços", item_id, saved)
            summary['successful_updates'] += 1
        else:
            summary['failed_updates'] += 1

    logger.info(
        "Sincronização concluída: %d itens, %d atualizados, %d falhas",
        summary['items_processed'],
        summary['successful_updates'],
        summary['failed_updates'],
    )
    return summary
