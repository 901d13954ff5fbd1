"""Cliente da API de preços da SEFAZ-AL (Economiza Alagoas)."""

import json
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from economiza.config.settings import SEFAZ_DEFAULT_BASE_URL, load_settings
from economiza.errors import TransportError
from economiza.modules.price_query.price_query_types import ENDPOINTS

logger = logging.getLogger(__name__)


class SefazService:
    """Executa consultas já validadas na API de preços."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        app_token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        cache_ttl: Optional[float] = None,
        status_tracker=None,
    ) -> None:
        settings = load_settings()["sefaz"]
        self._base_url = (base_url or settings["base_url"] or SEFAZ_DEFAULT_BASE_URL).rstrip("/") + "/"
        self._token = app_token or settings["app_token"]
        self._timeout = timeout if timeout is not None else settings["timeout"]
        self._max_retries = max(1, max_retries if max_retries is not None else settings["max_retries"])
        self._cache_ttl = cache_ttl if cache_ttl is not None else settings["cache_ttl"]
        self._status_tracker = status_tracker
        self._cache: Dict[Tuple[str, str], Tuple[float, Any]] = {}
        self._cache_lock = threading.Lock()
        # Espera entre tentativas (substituível em testes)
        self._sleep = time.sleep

        if not self._token or len(self._token) < 10:
            raise ValueError("SEFAZ_APP_TOKEN não configurado ou inválido")

    def health_check(self) -> Dict[str, Any]:
        return {"status": "ok", "baseUrl": self._base_url, "hasToken": bool(self._token)}

    def _cache_key(self, endpoint: str, payload: Dict[str, Any]) -> Tuple[str, str]:
        return endpoint, json.dumps(payload, sort_keys=True, ensure_ascii=False)

    def _cached(self, key: Tuple[str, str]) -> Optional[Any]:
        with self._cache_lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, data = entry
            if time.monotonic() - stored_at >= self._cache_ttl:
                del self._cache[key]
                return None
            return data

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def _record(self, started: float, success: bool) -> None:
        if self._status_tracker is not None:
            self._status_tracker.add_response((time.monotonic() - started) * 1000, success)

    def _post(self, endpoint: str, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        try:
            response = requests.post(url, headers=headers, json=payload, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise TransportError(endpoint, f"timeout após {self._timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise TransportError(endpoint, str(exc)) from exc

        logger.info(
            "SEFAZ → status=%s body=%s",
            response.status_code,
            response.text[:200],
        )
        if not response.ok:
            raise TransportError(endpoint, f"HTTP {response.status_code}: {response.text[:200]}", response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            # Corpo não é JSON (ex.: página de login quando o token expira)
            raise TransportError(endpoint, f"resposta inválida: {exc}", response.status_code) from exc

    def execute(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        """
        Envia a consulta para a API, com cache e novas tentativas

        Args:
            endpoint: 'produto' ou 'combustivel'
            payload: Critérios já validados e normalizados

        Returns:
            Resposta JSON da API (com 'conteudo')

        Raises:
            TransportError: se todas as tentativas falharem
        """
        if endpoint not in ENDPOINTS:
            raise ValueError(f"Endpoint desconhecido: {endpoint}")

        key = self._cache_key(endpoint, payload)
        cached = self._cached(key)
        if cached is not None:
            logger.info("SEFAZ → usando resposta em cache para %s", endpoint)
            return cached

        url = self._base_url + ENDPOINTS[endpoint]
        headers = {
            "Content-Type": "application/json",
            "AppToken": self._token,
        }

        retrying = Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=1, max=5),
            retry=retry_if_exception_type(TransportError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            data = retrying(self._attempt, endpoint, url, headers, payload)
        except TransportError as exc:
            logger.error("SEFAZ → todas as tentativas falharam para %s: %s", endpoint, exc)
            raise

        with self._cache_lock:
            self._cache[key] = (time.monotonic(), data)
        return data

    def _attempt(self, endpoint: str, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Any:
        """Uma tentativa de POST, registrada no acompanhamento de status."""
        logger.info("SEFAZ → %s (até %s tentativas)", endpoint, self._max_retries)
        logger.debug("SEFAZ → payload: %s", payload)
        started = time.monotonic()
        try:
            data = self._post(endpoint, url, headers, payload)
        except TransportError:
            self._record(started, False)
            raise
        self._record(started, True)
        return data

    @staticmethod
    def _log_retry(retry_state) -> None:
        logger.warning(
            "SEFAZ → tentativa %s falhou: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception(),
        )


__all__ = ["SefazService"]
