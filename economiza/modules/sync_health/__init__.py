"""
Módulo Sync Health - Status da sincronização e saúde do sistema
"""

from .sync_health_functions import get_user_sync_status, get_system_health, SefazStatusTracker, sefaz_status_tracker
from .sync_health_domain import (
    evaluate_sync_status,
    evaluate_system_health,
    evaluate_sefaz_status,
    build_system_health_snapshot,
    count_recent_errors,
    last_success_at,
    last_execution_at,
    schedule_interval_minutes,
    estimate_next_run
)
from .sync_health_types import (
    SYNC_STATUS,
    SYSTEM_HEALTH,
    SEFAZ_API_STATUS,
    LOG_STATUS,
    HEALTH_THRESHOLDS,
    CronJob,
    SyncLog,
    SystemHealthSnapshot,
    ResponseSample,
    SefazStatusMetrics
)

__all__ = [
    'get_user_sync_status',
    'get_system_health',
    'SefazStatusTracker',
    'sefaz_status_tracker',
    'evaluate_sync_status',
    'evaluate_system_health',
    'evaluate_sefaz_status',
    'build_system_health_snapshot',
    'count_recent_errors',
    'last_success_at',
    'last_execution_at',
    'schedule_interval_minutes',
    'estimate_next_run',
    'SYNC_STATUS',
    'SYSTEM_HEALTH',
    'SEFAZ_API_STATUS',
    'LOG_STATUS',
    'HEALTH_THRESHOLDS',
    'CronJob',
    'SyncLog',
    'SystemHealthSnapshot',
    'ResponseSample',
    'SefazStatusMetrics'
]
