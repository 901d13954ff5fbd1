"""
Funções específicas do módulo Sync Health
"""
import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .sync_health_domain import (
    build_system_health_snapshot,
    estimate_next_run,
    evaluate_sefaz_status,
    evaluate_sync_status,
)
from .sync_health_types import HEALTH_THRESHOLDS, SYSTEM_HEALTH, ResponseSample, SefazStatusMetrics

logger = logging.getLogger(__name__)

SYNC_LOGS_LIMIT = 10


def get_user_sync_status(user_id: str, store) -> Dict[str, Any]:
    """
    Carrega cron jobs e logs do usuário e calcula o status da sincronização

    Args:
        user_id: ID do usuário
        store: Serviço de armazenamento (ex.: SupabaseService)

    Returns:
        dict: status, próxima execução, cron jobs e logs usados no cálculo
    """
    cron_jobs = store.get_user_cron_jobs(user_id)
    sync_logs = store.get_user_sync_logs(user_id, limit=SYNC_LOGS_LIMIT)

    status = evaluate_sync_status(cron_jobs, sync_logs)
    logger.info("Status da sincronização de %s: %s", user_id, status)

    return {
        'status': status,
        'next_run': estimate_next_run(cron_jobs),
        'cron_jobs': cron_jobs,
        'sync_logs': sync_logs
    }


def get_system_health(store, now: Optional[datetime] = None, expected_interval: Optional[timedelta] = None):
    """
    Calcula a saúde global da sincronização a partir dos logs das últimas 24h

    Args:
        store: Serviço de armazenamento
        now: Momento de referência (padrão: agora, UTC)
        expected_interval: Intervalo esperado entre execuções bem-sucedidas

    Returns:
        SystemHealthSnapshot
    """
    now = now or datetime.now(timezone.utc)
    since = now - HEALTH_THRESHOLDS['error_window']

    logs = store.get_recent_sync_logs(since)
    active_items = store.count_active_items()
    # A última execução bem-sucedida pode ser anterior à janela de 24h
    last_success = store.get_last_successful_sync()
    if last_success:
        logs = list(logs) + [last_success]

    snapshot = build_system_health_snapshot(logs, active_items, now, expected_interval)
    if snapshot.system_status != SYSTEM_HEALTH['healthy']:
        logger.warning(
            "Saúde do sistema: %s (erros 24h=%s, última execução ok=%s)",
            snapshot.system_status,
            snapshot.recent_errors_24h,
            snapshot.last_success,
        )
    return snapshot


class SefazStatusTracker:
    """Histórico recente de tempos de resposta da API SEFAZ."""

    def __init__(self, max_history: int = 50):
        self._history = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def add_response(self, response_time_ms: float, success: bool) -> None:
        sample = ResponseSample(
            response_time_ms=response_time_ms,
            success=success,
            timestamp=datetime.now(timezone.utc)
        )
        with self._lock:
            self._history.append(sample)

    def get_metrics(self) -> SefazStatusMetrics:
        with self._lock:
            history = list(self._history)
        return evaluate_sefaz_status(history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


# Instância compartilhada pela aplicação
sefaz_status_tracker = SefazStatusTracker()
