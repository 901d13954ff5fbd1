"""Supabase service helper via REST endpoints."""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import requests

from economiza.modules.price_query.price_query_domain import establishment_display_name
from economiza.modules.price_query.price_query_types import PriceRecord

logger = logging.getLogger(__name__)


class SupabaseService:
    """Wrapper to interact with Supabase REST endpoints."""

    def __init__(self) -> None:
        self._url = os.getenv("SUPABASE_URL")
        self._key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self._logs_table = os.getenv("SUPABASE_SYNC_LOGS_TABLE", "sync_execution_log")
        self._items_table = os.getenv("SUPABASE_TRACKED_ITEMS_TABLE", "tracked_items")

        if not self._url or not self._key:
            raise ValueError("SUPABASE_URL ou SUPABASE_SERVICE_ROLE_KEY não configurados")

        self._rest_base = self._url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }

    def _call_rpc(self, function_name: str, payload: Dict[str, Any]) -> Any:
        """Executa função RPC no Supabase."""
        url = f"{self._rest_base}/rpc/{function_name}"
        logger.debug("Supabase → RPC %s: %s", function_name, payload)
        try:
            response = httpx.post(url, headers=self._headers, json=payload, timeout=10)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Supabase → erro na RPC %s: %s", function_name, exc.response.text)
            raise
        return response.json()

    def _select(self, table: str, params: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> requests.Response:
        url = f"{self._rest_base}/{table}"
        response = requests.get(url, headers={**self._headers, **(headers or {})}, params=params, timeout=10)
        if not response.ok:
            logger.error("Supabase → erro ao buscar %s: %s", table, response.text)
            response.raise_for_status()
        return response

    def get_user_cron_jobs(self, user_id: str) -> List[Dict[str, Any]]:
        """Cron jobs de sincronização do usuário."""
        logger.debug("Supabase → buscando cron jobs de %s", user_id)
        return self._call_rpc("get_user_cron_jobs", {"p_user_id": user_id}) or []

    def get_user_sync_logs(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Logs de sincronização do usuário, do mais recente para o mais antigo."""
        logger.debug("Supabase → buscando logs de sincronização de %s", user_id)
        return self._call_rpc("get_user_sync_logs", {"p_user_id": user_id, "limit_count": limit}) or []

    def get_recent_sync_logs(self, since: datetime) -> List[Dict[str, Any]]:
        """Logs de todas as execuções a partir de 'since'."""
        params = {
            "select": "status,executed_at,duration_ms,error_message,execution_type",
            "executed_at": f"gte.{since.isoformat()}",
            "order": "executed_at.desc",
        }
        return self._select(self._logs_table, params).json()

    def get_last_successful_sync(self) -> Optional[Dict[str, Any]]:
        """Execução bem-sucedida mais recente, sem limite de data."""
        params = {
            "select": "status,executed_at,duration_ms",
            "status": "eq.SUCCESS",
            "order": "executed_at.desc",
            "limit": "1",
        }
        data = self._select(self._logs_table, params).json()
        if not data:
            return None
        return data[0]

    def count_active_items(self) -> int:
        """Quantidade de itens monitorados ativos."""
        params = {"select": "id", "is_active": "eq.true", "limit": "1"}
        response = self._select(self._items_table, params, headers={"Prefer": "count=exact"})
        # Content-Range: 0-0/42
        content_range = response.headers.get("Content-Range", "")
        total = content_range.rsplit("/", 1)[-1]
        if total.isdigit():
            return int(total)
        return len(response.json())

    def get_active_tracked_items(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Itens monitorados ativos (de um usuário ou de todos)."""
        params = {"select": "*", "is_active": "eq.true"}
        if user_id:
            params["user_id"] = f"eq.{user_id}"
        items = self._select(self._items_table, params).json()
        logger.info("Supabase → %d itens ativos (user=%s)", len(items), user_id or "all")
        return items

    def upsert_establishment(self, record: PriceRecord) -> None:
        """Insere ou atualiza o estabelecimento de um registro de preço."""
        headers = {**self._headers, "Prefer": "resolution=merge-duplicates"}
        payload = {
            "cnpj": record.cnpj,
            "razao_social": record.legal_name,
            "nome_fantasia": record.trade_name or None,
            "address_json": record.address,
        }
        url = f"{self._rest_base}/establishments"
        response = requests.post(url, headers=headers, params={"on_conflict": "cnpj"}, json=payload, timeout=10)
        if not response.ok:
            logger.error("Supabase → erro ao salvar estabelecimento: %s", response.text)
            response.raise_for_status()

    def insert_price_history(self, tracked_item_id: Any, record: PriceRecord) -> None:
        """Grava um registro de preço no histórico do item."""
        payload = {
            "tracked_item_id": tracked_item_id,
            "establishment_cnpj": record.cnpj,
            "establishment_name": establishment_display_name(record),
            "establishment_address": record.address,
            "sale_price": record.sale_price,
            "declared_price": record.declared_price,
            "sale_date": record.sale_date.isoformat() if record.sale_date else None,
            "fetch_date": record.fetched_at.isoformat(),
            "api_response_metadata": {
                "sale_date": record.sale_date.isoformat() if record.sale_date else None,
                "gtin": record.gtin,
                "description": record.description,
            },
        }
        url = f"{self._rest_base}/price_history"
        logger.debug("Supabase → salvando preço do item %s: %s", tracked_item_id, payload)
        response = requests.post(url, headers=self._headers, json=payload, timeout=10)
        if not response.ok:
            logger.error("Supabase → erro ao salvar preço: %s", response.text)
            response.raise_for_status()


__all__ = ["SupabaseService"]
