#!/usr/bin/env python3
"""
Testes das buscas na API e da sincronização de itens monitorados
"""
import sys
import os

# Adicionar o diretório raiz ao path
sys.path.insert(0, os.path.dirname(__file__))

import pytest
import requests

from economiza.errors import TransportError, ValidationError
from economiza.modules.price_query import (
    search_fuels,
    search_product_with_fallback,
    search_products,
    sync_tracked_items,
)

CNPJ = '59008895000234'
OTHER_CNPJ = '11222333000144'


def api_entry(cnpj, price=5.29, gtin='7891000325858'):
    return {
        'produto': {
            'descricao': 'LEITE UHT INTEGRAL 1L',
            'gtin': gtin,
            'venda': {'dataVenda': '2024-05-10T13:45:00Z', 'valorVenda': price}
        },
        'estabelecimento': {'cnpj': cnpj, 'nomeFantasia': 'MERCADO'}
    }


class FakeExecutor:
    """Executor que devolve respostas pré-definidas e registra as chamadas"""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def execute(self, endpoint, payload):
        self.calls.append((endpoint, payload))
        response = self.responses.pop(0) if self.responses else {'conteudo': []}
        if isinstance(response, Exception):
            raise response
        return response


class FakeStore:
    def __init__(self):
        self.establishments = []
        self.history = []

    def upsert_establishment(self, record):
        self.establishments.append(record.cnpj)

    def insert_price_history(self, item_id, record):
        self.history.append((item_id, record.sale_price))


def test_search_products_sends_normalized_payload():
    executor = FakeExecutor([{'conteudo': [api_entry(CNPJ)]}])
    records = search_products({
        'produto': {'gtin': '789-1000-325858'},
        'estabelecimento': {'individual': {'cnpj': '59.008.895/0002-34'}},
        'dias': '1'
    }, executor)

    assert len(records) == 1
    endpoint, payload = executor.calls[0]
    assert endpoint == 'produto'
    assert payload['produto'] == {'gtin': '7891000325858'}
    assert payload['estabelecimento'] == {'individual': {'cnpj': CNPJ}}
    assert payload['dias'] == 1


def test_invalid_query_never_reaches_the_api():
    executor = FakeExecutor()
    with pytest.raises(ValidationError) as exc_info:
        search_products({'produto': {'gtin': '123'}, 'dias': 30}, executor)

    assert executor.calls == []
    assert 'GTIN deve ter entre 8 e 14 dígitos' in exc_info.value.errors


def test_search_fuels():
    executor = FakeExecutor([{'conteudo': [api_entry(CNPJ, price=6.19, gtin='')]}])
    records = search_fuels({
        'produto': {'tipoCombustivel': 1},
        'estabelecimento': {'municipio': {'codigoIBGE': 2704302}},
        'dias': 1
    }, executor)

    assert records[0].sale_price == 6.19
    assert executor.calls[0][0] == 'combustivel'

    with pytest.raises(ValidationError):
        search_fuels({'produto': {'tipoCombustivel': 9}}, executor)
    assert len(executor.calls) == 1


def test_transport_error_propagates_from_search():
    executor = FakeExecutor([TransportError('produto/pesquisa', 'timeout')])
    with pytest.raises(TransportError):
        search_products({
            'produto': {'descricao': 'ARROZ'},
            'estabelecimento': {'individual': {'cnpj': CNPJ}},
            'dias': 1
        }, executor)


LEGACY_CRITERIA = {
    'produto': {'gtin': '7891000325858', 'descricao': 'LEITE'},
    'estabelecimento': {'cnpj': CNPJ, 'municipio': {'codigoIBGE': '2704302'}},
    'dias': 1
}


def test_fallback_stops_at_first_strategy_with_results():
    executor = FakeExecutor([{'conteudo': [api_entry(CNPJ)]}])
    records = search_product_with_fallback(LEGACY_CRITERIA, executor, item_id=1)

    assert len(records) == 1
    assert len(executor.calls) == 1


def test_fallback_filters_broad_results_by_cnpj():
    executor = FakeExecutor([
        {'conteudo': []},
        {'conteudo': [api_entry(OTHER_CNPJ, price=4.99), api_entry(CNPJ, price=5.49)]},
    ])
    records = search_product_with_fallback(LEGACY_CRITERIA, executor, item_id=1)

    assert [record.cnpj for record in records] == [CNPJ]
    assert records[0].sale_price == 5.49
    assert executor.calls[1][1]['estabelecimento'] == {'municipio': {'codigoIBGE': 2704302}}


def test_fallback_continues_after_transport_error():
    executor = FakeExecutor([
        TransportError('produto/pesquisa', 'HTTP 500', status_code=500),
        {'conteudo': [api_entry(OTHER_CNPJ)]},
        {'conteudo': [api_entry(CNPJ, price=5.10)]},
    ])
    records = search_product_with_fallback(LEGACY_CRITERIA, executor, item_id=1)

    assert len(executor.calls) == 3
    assert executor.calls[2][1]['produto'] == {'descricao': 'LEITE'}
    assert records[0].sale_price == 5.10


def test_fallback_without_results():
    executor = FakeExecutor()
    assert search_product_with_fallback(LEGACY_CRITERIA, executor) == []
    assert len(executor.calls) == 3


def test_fallback_without_valid_criteria_makes_no_call():
    executor = FakeExecutor()
    assert search_product_with_fallback({'produto': {'gtin': '123'}}, executor) == []
    assert executor.calls == []


def test_sync_tracked_items():
    executor = FakeExecutor([
        {'conteudo': [api_entry(CNPJ)]},
        {'conteudo': [api_entry(CNPJ, price=6.29, gtin='')]},
    ])
    store = FakeStore()
    items = [
        {
            'id': 10,
            'item_type': 'produto',
            'search_criteria': {
                'produto': {'gtin': '7891000325858'},
                'estabelecimento': {'individual': {'cnpj': CNPJ}},
                'dias': 1
            }
        },
        {
            'id': 11,
            'item_type': 'combustivel',
            'search_criteria': {
                'produto': {'tipoCombustivel': 1},
                'estabelecimento': {'individual': {'cnpj': CNPJ}},
                'dias': 1
            }
        },
        {
            'id': 12,
            'item_type': 'combustivel',
            'search_criteria': {'produto': {'tipoCombustivel': 0}}
        },
    ]

    summary = sync_tracked_items(items, executor, store)

    assert summary['items_processed'] == 3
    assert summary['successful_updates'] == 2
    assert summary['failed_updates'] == 1
    assert summary['errors'][0].startswith('Item 12:')
    assert store.establishments == [CNPJ, CNPJ]
    assert store.history == [(10, 5.29), (11, 6.29)]


def test_sync_tracked_items_empty():
    summary = sync_tracked_items([], FakeExecutor(), FakeStore())
    assert summary == {'items_processed': 0, 'successful_updates': 0, 'failed_updates': 0, 'errors': []}


def test_fallback_raises_when_every_attempt_fails_on_transport():
    executor = FakeExecutor([
        TransportError('produto/pesquisa', 'HTTP 500', status_code=500),
        TransportError('produto/pesquisa', 'HTTP 502', status_code=502),
        TransportError('produto/pesquisa', 'HTTP 503', status_code=503),
    ])
    with pytest.raises(TransportError) as exc_info:
        search_product_with_fallback(LEGACY_CRITERIA, executor, item_id=1)

    assert exc_info.value.status_code == 503
    assert len(executor.calls) == 3


class FailingStore(FakeStore):
    """Falha na primeira gravação de estabelecimento ou de preço"""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on
        self.failed = False

    def upsert_establishment(self, record):
        if self.fail_on == 'establishment' and not self.failed:
            self.failed = True
            raise requests.HTTPError('500')
        super().upsert_establishment(record)

    def insert_price_history(self, item_id, record):
        if self.fail_on == 'price' and not self.failed:
            self.failed = True
            raise requests.HTTPError('500')
        super().insert_price_history(item_id, record)


GTIN_ITEM_CRITERIA = {
    'produto': {'gtin': '7891000325858'},
    'estabelecimento': {'individual': {'cnpj': CNPJ}},
    'dias': 1
}


@pytest.mark.parametrize('fail_on', ['establishment', 'price'])
def test_storage_error_does_not_stop_sync(fail_on):
    executor = FakeExecutor([
        {'conteudo': [api_entry(CNPJ)]},
        {'conteudo': [api_entry(CNPJ, price=5.49)]},
    ])
    store = FailingStore(fail_on)
    items = [
        {'id': 1, 'item_type': 'produto', 'search_criteria': GTIN_ITEM_CRITERIA},
        {'id': 2, 'item_type': 'produto', 'search_criteria': GTIN_ITEM_CRITERIA},
    ]

    summary = sync_tracked_items(items, executor, store)

    assert summary['items_processed'] == 2
    assert summary['successful_updates'] == 1
    assert summary['failed_updates'] == 1
    assert summary['errors'][0].startswith('Item 1:')
    assert store.history == [(2, 5.49)]


def test_establishment_error_skips_only_that_record():
    executor = FakeExecutor([{'conteudo': [api_entry(OTHER_CNPJ, price=4.99), api_entry(CNPJ, price=5.29)]}])
    store = FailingStore('establishment')
    items = [{'id': 3, 'item_type': 'produto', 'search_criteria': {
        'produto': {'gtin': '7891000325858'},
        'estabelecimento': {'municipio': {'codigoIBGE': '2704302'}},
        'dias': 1
    }}]

    summary = sync_tracked_items(items, executor, store)

    assert summary['successful_updates'] == 1
    assert summary['failed_updates'] == 0
    assert store.history == [(3, 5.29)]
    assert len(summary['errors']) == 1


def test_sync_counts_upstream_outage_as_failure():
    outage = TransportError('produto/pesquisa', 'timeout')
    executor = FakeExecutor([outage, outage, outage])
    items = [{'id': 4, 'item_type': 'produto', 'search_criteria': LEGACY_CRITERIA}]

    summary = sync_tracked_items(items, executor, FakeStore())

    assert summary['failed_updates'] == 1
    assert summary['successful_updates'] == 0
    assert summary['errors'] == ['Item 4: produto/pesquisa: timeout']


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
