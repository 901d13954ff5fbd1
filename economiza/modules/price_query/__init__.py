"""
Módulo Price Query - Validação e montagem de consultas à API de preços SEFAZ
"""

from .price_query_functions import search_products, search_fuels, search_product_with_fallback, sync_tracked_items
from .price_query_domain import (
    strip_non_digits,
    format_cnpj_display,
    fuel_type_name,
    segment_name,
    municipality_name,
    establishment_display_name,
    validate_product_query,
    validate_fuel_query,
    normalize_query,
    parse_product_query,
    parse_fuel_query,
    build_fallback_payloads,
    parse_price_records,
    filter_records_by_cnpj,
    describe_price_record
)
from .price_query_types import ENDPOINTS, FUEL_TYPES, GPC_SEGMENTS, MUNICIPALITIES, VALIDATION_MESSAGES, PriceRecord

__all__ = [
    'search_products',
    'search_fuels',
    'search_product_with_fallback',
    'sync_tracked_items',
    'strip_non_digits',
    'format_cnpj_display',
    'fuel_type_name',
    'segment_name',
    'municipality_name',
    'establishment_display_name',
    'validate_product_query',
    'validate_fuel_query',
    'normalize_query',
    'parse_product_query',
    'parse_fuel_query',
    'build_fallback_payloads',
    'parse_price_records',
    'filter_records_by_cnpj',
    'describe_price_record',
    'ENDPOINTS',
    'FUEL_TYPES',
    'GPC_SEGMENTS',
    'MUNICIPALITIES',
    'VALIDATION_MESSAGES',
    'PriceRecord'
]
