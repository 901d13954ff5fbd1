"""
Tipos e constantes específicos do módulo Price Query (API de preços SEFAZ-AL)
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

# Limites numéricos da API (Manual de Orientação do Desenvolvedor v1.0)
DAYS_RANGE = (1, 10)
RADIUS_RANGE = (1, 15)  # km
LATITUDE_RANGE = (-90, 90)
LONGITUDE_RANGE = (-180, 180)
GTIN_LENGTH_RANGE = (8, 14)
CNPJ_LENGTH = 14
IBGE_CODE_LENGTH = 7
FUEL_TYPE_RANGE = (1, 6)

# Paginação padrão enviada para a API
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 100

# Dias usados pela sincronização quando o critério salvo não informa
DEFAULT_SYNC_DAYS = 1

# Endpoints da API
ENDPOINTS = {
    'produto': 'produto/pesquisa',
    'combustivel': 'combustivel/pesquisa'
}

# Mensagens de validação
VALIDATION_MESSAGES = {
    'product_missing': 'Informe GTIN ou Descrição do produto',
    'product_both': 'Informe apenas GTIN ou Descrição, não ambos',
    'ncm_gpc_without_description': 'NCM e GPC só podem ser usados com Descrição',
    'gtin_length': 'GTIN deve ter entre 8 e 14 dígitos',
    'establishment_count': 'Informe apenas um tipo de estabelecimento: CNPJ, Município ou Geolocalização',
    'cnpj_length': 'CNPJ deve ter exatamente 14 dígitos',
    'ibge_length': 'Código IBGE deve ter exatamente 7 dígitos',
    'latitude_range': 'Latitude deve ser um número entre -90 e 90',
    'longitude_range': 'Longitude deve ser um número entre -180 e 180',
    'radius_range': 'Raio deve ser um número entre 1 e 15 km',
    'days_range': 'Dias deve estar entre 1 e 10',
    'fuel_type_range': 'Tipo de combustível deve estar entre 1 e 6'
}

# Tipos de combustível conforme documentação
FUEL_TYPES = {
    1: 'Gasolina Comum',
    2: 'Gasolina Aditivada',
    3: 'Álcool',
    4: 'Diesel Comum',
    5: 'Diesel Aditivado (S10)',
    6: 'GNV'
}

# Segmentos GPC
GPC_SEGMENTS = {
    '50000000': 'Alimentos / Bebidas / Tabaco',
    '53000000': 'Higiene/Cuidados Pessoais/ Beleza',
    '47000000': 'Produtos de Higiene/Limpeza',
    '51000000': 'Setor da Saúde',
    '87000000': 'Combustíveis/Gases'
}

# Municípios de Alagoas (código IBGE)
MUNICIPALITIES = {
    '2700300': 'ARAPIRACA',
    '2701407': 'CAMPO ALEGRE',
    '2702405': 'DELMIRO GOUVEIA',
    '2704302': 'MACEIO',
    '2704708': 'MARECHAL DEODORO',
    '2706703': 'PENEDO',
    '2707701': 'RIO LARGO',
    '2709301': 'UNIAO DOS PALMARES'
}


@dataclass
class ProductByGtin:
    gtin: str

    def to_payload(self) -> Dict[str, Any]:
        return {'gtin': self.gtin}


@dataclass
class ProductByDescription:
    descricao: str
    ncm: Optional[str] = None
    gpc: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'descricao': self.descricao}
        if self.ncm:
            payload['ncm'] = self.ncm
        if self.gpc:
            payload['gpc'] = self.gpc
        return payload


@dataclass
class FuelProduct:
    tipo_combustivel: int

    def to_payload(self) -> Dict[str, Any]:
        return {'tipoCombustivel': self.tipo_combustivel}


@dataclass
class EstablishmentByCnpj:
    cnpj: str

    def to_payload(self) -> Dict[str, Any]:
        return {'individual': {'cnpj': self.cnpj}}


@dataclass
class EstablishmentByMunicipality:
    codigo_ibge: int

    def to_payload(self) -> Dict[str, Any]:
        return {'municipio': {'codigoIBGE': self.codigo_ibge}}


@dataclass
class EstablishmentByGeolocation:
    latitude: float
    longitude: float
    raio: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            'geolocalizacao': {
                'latitude': self.latitude,
                'longitude': self.longitude,
                'raio': self.raio
            }
        }


ProductSelector = Union[ProductByGtin, ProductByDescription]
EstablishmentSelector = Union[EstablishmentByCnpj, EstablishmentByMunicipality, EstablishmentByGeolocation]


@dataclass
class ProductQuery:
    """Consulta de produto já validada e normalizada."""
    produto: ProductSelector
    estabelecimento: EstablishmentSelector
    dias: int
    pagina: int = DEFAULT_PAGE
    registros_por_pagina: int = DEFAULT_PAGE_SIZE

    endpoint = 'produto'

    def to_payload(self) -> Dict[str, Any]:
        return {
            'produto': self.produto.to_payload(),
            'estabelecimento': self.estabelecimento.to_payload(),
            'dias': self.dias,
            'pagina': self.pagina,
            'registrosPorPagina': self.registros_por_pagina
        }


@dataclass
class FuelQuery:
    """Consulta de combustível já validada e normalizada."""
    produto: FuelProduct
    estabelecimento: EstablishmentSelector
    dias: int
    pagina: int = DEFAULT_PAGE
    registros_por_pagina: int = DEFAULT_PAGE_SIZE

    endpoint = 'combustivel'

    def to_payload(self) -> Dict[str, Any]:
        return {
            'produto': self.produto.to_payload(),
            'estabelecimento': self.estabelecimento.to_payload(),
            'dias': self.dias,
            'pagina': self.pagina,
            'registrosPorPagina': self.registros_por_pagina
        }


@dataclass
class PriceRecord:
    """Registro de venda retornado pela API de preços."""
    sale_price: float
    cnpj: str
    sale_date: Optional[datetime]
    fetched_at: datetime
    declared_price: Optional[float] = None
    trade_name: str = ''
    legal_name: str = ''
    description: str = ''
    gtin: str = ''
    unit: str = ''
    address: Dict[str, Any] = field(default_factory=dict)
