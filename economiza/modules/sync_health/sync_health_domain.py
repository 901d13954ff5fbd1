"""
Regras de negócio do módulo Sync Health

Todas as funções são puras e totais: registros incompletos ou legados
degradam a classificação (unknown / WARNING) em vez de lançar exceção.
"""
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Union

from economiza.utils.formatters import _parse_timestamp

from .sync_health_types import (
    DEFAULT_SCHEDULE_INTERVAL,
    ERROR_LOG_STATUSES,
    HEALTH_THRESHOLDS,
    LOG_STATUS,
    NEXT_RUN_SOON,
    SCHEDULE_INTERVALS,
    SEFAZ_API_STATUS,
    SEFAZ_STATUS_CONFIG,
    SYNC_STATUS,
    SYSTEM_HEALTH,
    SefazStatusMetrics,
    SystemHealthSnapshot,
)

# Aceita nomes gravados pelo banco (snake_case) e pela API (camelCase)
_FIELD_ALIASES = {
    'executed_at': ('executed_at', 'executedAt'),
    'last_run': ('last_run', 'lastRun'),
    'duration_ms': ('duration_ms', 'durationMs'),
    'response_time_ms': ('response_time_ms', 'responseTime', 'responseTimeMs'),
    'timestamp': ('timestamp',),
    'status': ('status',),
    'active': ('active',),
    'schedule': ('schedule',),
    'success': ('success',),
}


def _field(record: Any, name: str) -> Any:
    """Lê um campo de dict ou dataclass sem lançar exceção."""
    for alias in _FIELD_ALIASES.get(name, (name,)):
        if isinstance(record, dict):
            if alias in record:
                return record[alias]
        elif hasattr(record, alias):
            return getattr(record, alias)
    return None


def _as_list(records: Any) -> List[Any]:
    if records is None:
        return []
    if isinstance(records, dict):
        return [records]
    if isinstance(records, (str, bytes)):
        return []
    try:
        return list(records)
    except TypeError:
        return []


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', 't', '1', 'yes')
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _as_count(value: Any) -> Optional[int]:
    """Contagem inteira; bool, frações, NaN, infinito e texto não numérico retornam None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number) or not number.is_integer():
        return None
    return int(number)


def _status_key(value: Any) -> str:
    """'Success', 'SUCCESS' e 'success' são equivalentes; 'ExecutionError' == 'EXECUTION_ERROR'."""
    if not isinstance(value, str):
        return ''
    return re.sub(r'[^A-Z]', '', value.upper())


_SUCCESS_KEY = _status_key(LOG_STATUS['success'])
_ERROR_KEYS = tuple(_status_key(status) for status in ERROR_LOG_STATUSES)


def _now(now: Any = None) -> datetime:
    return _parse_timestamp(now) or datetime.now(timezone.utc)


def evaluate_sync_status(cron_jobs: Any, execution_logs: Any) -> str:
    """
    Deriva o status da sincronização do usuário

    Regras (a primeira que casar vence):
    1. Sem cron job                        → disabled
    2. Cron job inativo                    → paused
    3. Cron ativo e sem logs               → pending
    4. Último log com SUCCESS              → active
    5. Último log com ERROR/EXECUTION_ERROR → error
    6. Qualquer outro status               → unknown

    Args:
        cron_jobs: Cron jobs do usuário (0 ou 1 esperado)
        execution_logs: Logs de execução, do mais recente para o mais antigo

    Returns:
        str: Um dos valores de SYNC_STATUS
    """
    jobs = _as_list(cron_jobs)
    if not jobs:
        return SYNC_STATUS['disabled']

    job = jobs[0]
    if not isinstance(job, dict) and not hasattr(job, 'active'):
        return SYNC_STATUS['unknown']
    if not _as_bool(_field(job, 'active')):
        return SYNC_STATUS['paused']

    logs = _as_list(execution_logs)
    if not logs:
        return SYNC_STATUS['pending']

    status = _status_key(_field(logs[0], 'status'))
    if status == _SUCCESS_KEY:
        return SYNC_STATUS['active']
    if status in _ERROR_KEYS:
        return SYNC_STATUS['error']
    return SYNC_STATUS['unknown']


def schedule_interval_minutes(schedule: Any) -> int:
    """Intervalo em minutos do agendamento cron (30 se desconhecido)."""
    if not isinstance(schedule, str):
        return DEFAULT_SCHEDULE_INTERVAL
    return SCHEDULE_INTERVALS.get(' '.join(schedule.split()), DEFAULT_SCHEDULE_INTERVAL)


def estimate_next_run(cron_jobs: Any) -> Union[None, str, datetime]:
    """
    Estima a próxima execução do cron do usuário

    Returns:
        None se desabilitado/pausado, 'Em breve' se nunca executou,
        caso contrário o horário previsto (UTC)
    """
    jobs = _as_list(cron_jobs)
    if not jobs or not _as_bool(_field(jobs[0], 'active')):
        return None

    last_run = _parse_timestamp(_field(jobs[0], 'last_run'))
    if last_run is None:
        return NEXT_RUN_SOON

    interval = schedule_interval_minutes(_field(jobs[0], 'schedule'))
    return last_run + timedelta(minutes=interval)


def count_recent_errors(execution_logs: Any, now: Any = None, window: Optional[timedelta] = None) -> int:
    """Conta logs de erro com executed_at dentro da janela (padrão 24h) até 'now'."""
    now = _now(now)
    window = window or HEALTH_THRESHOLDS['error_window']
    start = now - window

    count = 0
    for log in _as_list(execution_logs):
        if _status_key(_field(log, 'status')) not in _ERROR_KEYS:
            continue
        executed_at = _parse_timestamp(_field(log, 'executed_at'))
        if executed_at is not None and start <= executed_at <= now:
            count += 1
    return count


def _latest_timestamp(execution_logs: Any, only_success: bool) -> Optional[datetime]:
    latest = None
    for log in _as_list(execution_logs):
        if only_success and _status_key(_field(log, 'status')) != _SUCCESS_KEY:
            continue
        executed_at = _parse_timestamp(_field(log, 'executed_at'))
        if executed_at is not None and (latest is None or executed_at > latest):
            latest = executed_at
    return latest


def last_success_at(execution_logs: Any) -> Optional[datetime]:
    """Horário da execução bem-sucedida mais recente."""
    return _latest_timestamp(execution_logs, only_success=True)


def last_execution_at(execution_logs: Any) -> Optional[datetime]:
    """Horário da execução mais recente, com qualquer status."""
    return _latest_timestamp(execution_logs, only_success=False)


def evaluate_system_health(
    recent_errors_24h: Any,
    last_success: Any,
    now: Any = None,
    expected_interval: Optional[timedelta] = None,
) -> str:
    """
    Classifica a saúde global da sincronização

    - mais de 5 erros nas últimas 24h → CRITICAL
    - última execução bem-sucedida ausente ou mais antiga que o intervalo esperado → WARNING
    - caso contrário → HEALTHY

    Contagem de erros inválida degrada para WARNING.
    """
    errors = _as_count(recent_errors_24h)
    if errors is None:
        return SYSTEM_HEALTH['warning']

    if errors > HEALTH_THRESHOLDS['max_errors_24h']:
        return SYSTEM_HEALTH['critical']

    last_success = _parse_timestamp(last_success)
    if last_success is None:
        return SYSTEM_HEALTH['warning']

    if not isinstance(expected_interval, timedelta):
        expected_interval = HEALTH_THRESHOLDS['default_expected_interval']
    if _now(now) - last_success > expected_interval:
        return SYSTEM_HEALTH['warning']

    return SYSTEM_HEALTH['healthy']


def build_system_health_snapshot(
    execution_logs: Any,
    active_items: Any = 0,
    now: Any = None,
    expected_interval: Optional[timedelta] = None,
) -> SystemHealthSnapshot:
    """Monta o resumo de saúde do sistema a partir dos logs de execução."""
    now = _now(now)
    recent_errors = count_recent_errors(execution_logs, now)
    last_success = last_success_at(execution_logs)

    active_count = _as_count(active_items) or 0

    return SystemHealthSnapshot(
        system_status=evaluate_system_health(recent_errors, last_success, now, expected_interval),
        recent_errors_24h=recent_errors,
        active_items=active_count,
        last_success=last_success,
        last_execution=last_execution_at(execution_logs),
        checked_at=now
    )


def evaluate_sefaz_status(response_history: Iterable[Any]) -> SefazStatusMetrics:
    """
    Classifica a API SEFAZ pelas últimas respostas (ordem cronológica)

    Args:
        response_history: Amostras com response_time_ms e success

    Returns:
        SefazStatusMetrics: status, médias e problemas detectados
    """
    samples = []
    for entry in _as_list(response_history):
        response_time = _field(entry, 'response_time_ms')
        if isinstance(response_time, bool) or not isinstance(response_time, (int, float)):
            continue
        samples.append((float(response_time), _as_bool(_field(entry, 'success')), _field(entry, 'timestamp')))

    if not samples:
        return SefazStatusMetrics(status=SEFAZ_API_STATUS['unknown'])

    config = SEFAZ_STATUS_CONFIG
    recent = samples[-config['window']:]
    average = sum(sample[0] for sample in recent) / len(recent)
    success_rate = sum(1 for sample in recent if sample[1]) / len(recent) * 100

    issues = []
    status = SEFAZ_API_STATUS['operational']
    if success_rate < config['down_success_rate']:
        status = SEFAZ_API_STATUS['down']
        issues.append('Taxa de sucesso muito baixa')
    elif success_rate < config['unstable_success_rate']:
        status = SEFAZ_API_STATUS['unstable']
        issues.append('Múltiplas falhas detectadas')
    elif average > config['down_response_ms']:
        status = SEFAZ_API_STATUS['down']
        issues.append('Tempo de resposta extremamente alto')
    elif average > config['very_slow_response_ms']:
        status = SEFAZ_API_STATUS['slow']
        issues.append('Tempo de resposta muito lento')
    elif average > config['slow_response_ms']:
        status = SEFAZ_API_STATUS['slow']
        issues.append('Tempo de resposta lento')

    last_time, _, last_timestamp = samples[-1]
    return SefazStatusMetrics(
        status=status,
        last_response_time_ms=last_time,
        average_response_time_ms=average,
        success_rate=success_rate,
        last_checked=_parse_timestamp(last_timestamp),
        issues=issues
    )
