#!/usr/bin/env python3
"""
Testes de normalização, montagem de payload e leitura das respostas da API
"""
import sys
import os
from datetime import datetime, timezone

# Adicionar o diretório raiz ao path
sys.path.insert(0, os.path.dirname(__file__))

import pytest

from economiza.errors import ValidationError
from economiza.modules.price_query import (
    build_fallback_payloads,
    describe_price_record,
    establishment_display_name,
    filter_records_by_cnpj,
    format_cnpj_display,
    fuel_type_name,
    municipality_name,
    normalize_query,
    parse_fuel_query,
    parse_price_records,
    parse_product_query,
    segment_name,
    strip_non_digits,
)
from economiza.modules.price_query.price_query_types import (
    EstablishmentByCnpj,
    EstablishmentByGeolocation,
    ProductByDescription,
    ProductByGtin,
)
from economiza.utils import formatters

CNPJ = '59008895000234'

API_RESPONSE = {
    'totalRegistros': 2,
    'totalPaginas': 1,
    'pagina': 1,
    'conteudo': [
        {
            'produto': {
                'descricao': 'LEITE UHT INTEGRAL 1L',
                'gtin': '7891000325858',
                'unidadeMedida': 'UN',
                'venda': {
                    'dataVenda': '2024-05-10T13:45:00.000Z',
                    'valorDeclarado': 5.49,
                    'valorVenda': 5.29
                }
            },
            'estabelecimento': {
                'cnpj': CNPJ,
                'razaoSocial': 'MERCADO EXEMPLO LTDA',
                'nomeFantasia': 'MERCADO EXEMPLO',
                'endereco': {'nomeLogradouro': 'RUA A', 'municipio': 'MACEIO'}
            }
        },
        {
            'produto': {'descricao': 'SEM PRECO', 'venda': {}},
            'estabelecimento': {'cnpj': '11111111000111'}
        }
    ]
}


def test_strip_non_digits():
    assert strip_non_digits('12.345.678/9012-34') == '12345678901234'
    assert strip_non_digits('12345678901234') == '12345678901234'
    assert strip_non_digits(2704302) == '2704302'
    assert strip_non_digits(None) == ''
    assert strip_non_digits('abc') == ''


def test_format_cnpj_display():
    assert format_cnpj_display('12345678901234') == '12.345.678/9012-34'
    assert format_cnpj_display('12.345.678/9012-34') == '12.345.678/9012-34'


@pytest.mark.parametrize('value', ['123', 'abc', '123456789012345', ''])
def test_format_cnpj_display_passthrough(value):
    assert format_cnpj_display(value) == value


def test_format_cnpj_display_none():
    assert format_cnpj_display(None) == ''


@pytest.mark.parametrize('code,name', [
    (1, 'Gasolina Comum'),
    (2, 'Gasolina Aditivada'),
    (3, 'Álcool'),
    (4, 'Diesel Comum'),
    (5, 'Diesel Aditivado (S10)'),
    (6, 'GNV'),
    ('6', 'GNV'),
])
def test_fuel_type_name(code, name):
    assert fuel_type_name(code) == name


def test_fuel_type_name_fallback():
    assert fuel_type_name(99) == 'Combustível 99'
    assert '0' in fuel_type_name(0)
    assert fuel_type_name(None).startswith('Combustível')


def test_segment_and_municipality_names():
    assert segment_name('50000000') == 'Alimentos / Bebidas / Tabaco'
    assert segment_name('12345') == 'Segmento 12345'
    assert municipality_name('2704302') == 'MACEIO'
    assert municipality_name(2700300) == 'ARAPIRACA'
    assert municipality_name('9999999') == 'Município 9999999'


def test_normalize_query_product():
    params = {
        'produto': {'gtin': '789-1000-325858'},
        'estabelecimento': {'individual': {'cnpj': '59.008.895/0002-34'}},
        'dias': '2'
    }
    payload = normalize_query(params)

    assert payload == {
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'individual': {'cnpj': CNPJ}},
        'dias': 2,
        'pagina': 1,
        'registrosPorPagina': 100
    }
    # Entrada não é alterada
    assert params['produto']['gtin'] == '789-1000-325858'


def test_normalize_query_municipality_and_geolocation():
    payload = normalize_query({
        'produto': {'tipoCombustivel': '3'},
        'estabelecimento': {'municipio': {'codigoIBGE': '27.043-02'}},
        'dias': 1,
        'pagina': '2'
    })
    assert payload['produto']['tipoCombustivel'] == 3
    assert payload['estabelecimento']['municipio']['codigoIBGE'] == 2704302
    assert payload['pagina'] == 2

    payload = normalize_query({
        'produto': {'descricao': ' ARROZ '},
        'estabelecimento': {'geolocalizacao': {'latitude': '-9.66', 'longitude': '-35.73', 'raio': '5'}},
        'dias': 1
    })
    assert payload['produto']['descricao'] == 'ARROZ'
    assert payload['estabelecimento']['geolocalizacao'] == {'latitude': -9.66, 'longitude': -35.73, 'raio': 5}


def test_normalize_query_keeps_unconvertible_values():
    payload = normalize_query({'dias': 'muitos'})
    assert payload['dias'] == 'muitos'
    assert normalize_query(None) == {'pagina': 1, 'registrosPorPagina': 100}


def test_parse_product_query_by_gtin():
    query = parse_product_query({
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'individual': {'cnpj': '59.008.895/0002-34'}},
        'dias': 1
    })
    assert query.produto == ProductByGtin(gtin='7891000325858')
    assert query.estabelecimento == EstablishmentByCnpj(cnpj=CNPJ)
    assert query.endpoint == 'produto'
    assert query.to_payload() == {
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'individual': {'cnpj': CNPJ}},
        'dias': 1,
        'pagina': 1,
        'registrosPorPagina': 100
    }


def test_parse_product_query_by_description():
    query = parse_product_query({
        'produto': {'descricao': 'LEITE', 'gpc': '50000000'},
        'estabelecimento': {'municipio': {'codigoIBGE': '2704302'}},
        'dias': 3
    })
    assert query.produto == ProductByDescription(descricao='LEITE', gpc='50000000')
    assert query.to_payload()['produto'] == {'descricao': 'LEITE', 'gpc': '50000000'}
    assert query.to_payload()['estabelecimento'] == {'municipio': {'codigoIBGE': 2704302}}


def test_parse_query_raises_with_every_error():
    with pytest.raises(ValidationError) as exc_info:
        parse_product_query({'produto': {}, 'dias': 20})
    assert len(exc_info.value.errors) == 3


def test_parse_fuel_query_with_geolocation():
    query = parse_fuel_query({
        'produto': {'tipoCombustivel': '6'},
        'estabelecimento': {'geolocalizacao': {'latitude': -9.6, 'longitude': -35.7, 'raio': 15}},
        'dias': 10
    })
    assert query.produto.tipo_combustivel == 6
    assert query.estabelecimento == EstablishmentByGeolocation(latitude=-9.6, longitude=-35.7, raio=15)
    assert query.to_payload()['produto'] == {'tipoCombustivel': 6}
    assert query.endpoint == 'combustivel'


def test_fallback_gtin_and_cnpj():
    attempts = build_fallback_payloads({
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'individual': {'cnpj': CNPJ}},
        'dias': 2
    })
    assert [strategy for strategy, _, _ in attempts] == ['gtin_cnpj']
    _, payload, cnpj_filter = attempts[0]
    assert payload['dias'] == 2
    assert payload['estabelecimento'] == {'individual': {'cnpj': CNPJ}}
    assert cnpj_filter is None


def test_fallback_description_defaults_to_one_day():
    attempts = build_fallback_payloads({
        'produto': {'descricao': 'ARROZ'},
        'estabelecimento': {'individual': {'cnpj': CNPJ}}
    })
    assert len(attempts) == 1
    strategy, payload, cnpj_filter = attempts[0]
    assert strategy == 'descricao'
    assert payload['dias'] == 1
    assert cnpj_filter == CNPJ


def test_fallback_gtin_in_municipality():
    attempts = build_fallback_payloads({
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'municipio': {'codigoIBGE': '2704302'}},
        'dias': 1
    })
    assert [strategy for strategy, _, _ in attempts] == ['gtin']
    assert attempts[0][1]['estabelecimento'] == {'municipio': {'codigoIBGE': 2704302}}
    assert attempts[0][2] is None


def test_fallback_legacy_criteria_uses_every_strategy():
    attempts = build_fallback_payloads({
        'produto': {'gtin': '7891000325858', 'descricao': 'LEITE'},
        'estabelecimento': {'cnpj': '59.008.895/0002-34', 'municipio': {'codigoIBGE': '2704302'}},
        'dias': 1
    })
    assert [strategy for strategy, _, _ in attempts] == ['gtin_cnpj', 'gtin', 'descricao']
    assert attempts[1][2] == CNPJ
    assert attempts[2][1]['estabelecimento'] == {'individual': {'cnpj': CNPJ}}


def test_fallback_without_criteria():
    assert build_fallback_payloads({}) == []
    assert build_fallback_payloads(None) == []


def test_parse_price_records():
    fetched_at = datetime(2024, 5, 10, 14, 0, tzinfo=timezone.utc)
    records = parse_price_records(API_RESPONSE, fetched_at=fetched_at)

    assert len(records) == 1
    record = records[0]
    assert record.sale_price == 5.29
    assert record.declared_price == 5.49
    assert record.cnpj == CNPJ
    assert record.trade_name == 'MERCADO EXEMPLO'
    assert record.legal_name == 'MERCADO EXEMPLO LTDA'
    assert record.gtin == '7891000325858'
    assert record.unit == 'UN'
    assert record.sale_date == datetime(2024, 5, 10, 13, 45, tzinfo=timezone.utc)
    assert record.fetched_at == fetched_at
    assert record.address['municipio'] == 'MACEIO'


@pytest.mark.parametrize('response', [None, {}, {'conteudo': None}, 'erro', [{'produto': None}]])
def test_parse_price_records_malformed(response):
    assert parse_price_records(response) == []


def test_filter_records_by_cnpj():
    records = parse_price_records(API_RESPONSE)
    assert filter_records_by_cnpj(records, '59.008.895/0002-34') == records
    assert filter_records_by_cnpj(records, '11111111000111') == []
    assert filter_records_by_cnpj(records, None) == records


def test_establishment_display_name():
    assert establishment_display_name({'nome_fantasia': 'LOJA', 'razao_social': 'LOJA LTDA'}) == 'LOJA'
    assert establishment_display_name({'nome_fantasia': None, 'razao_social': 'LOJA LTDA'}) == 'LOJA LTDA'
    assert establishment_display_name(None) == ''


def test_describe_price_record(monkeypatch):
    monkeypatch.setattr(formatters, 'LOCAL_TIMEZONE', None)
    record = parse_price_records(API_RESPONSE)[0]
    assert describe_price_record(record) == 'MERCADO EXEMPLO (59.008.895/0002-34): R$ 5,29 em 10/05/2024 às 13:45'


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
