"""
Tipos e constantes específicos do módulo Sync Health
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

# Status da sincronização do usuário
SYNC_STATUS = {
    'active': 'active',
    'paused': 'paused',
    'disabled': 'disabled',
    'error': 'error',
    'pending': 'pending',
    'unknown': 'unknown'
}

# Saúde do sistema de sincronização (visão global)
SYSTEM_HEALTH = {
    'healthy': 'HEALTHY',
    'warning': 'WARNING',
    'critical': 'CRITICAL'
}

# Status da API SEFAZ medido pelas respostas recentes
SEFAZ_API_STATUS = {
    'operational': 'operational',
    'slow': 'slow',
    'unstable': 'unstable',
    'down': 'down',
    'unknown': 'unknown'
}

# Valores de status gravados nos logs de execução
LOG_STATUS = {
    'success': 'SUCCESS',
    'error': 'ERROR',
    'execution_error': 'EXECUTION_ERROR'
}

ERROR_LOG_STATUSES = (LOG_STATUS['error'], LOG_STATUS['execution_error'])

# Limites da saúde do sistema
HEALTH_THRESHOLDS = {
    'max_errors_24h': 5,  # acima disso: CRITICAL
    'error_window': timedelta(hours=24),
    'default_expected_interval': timedelta(minutes=30)
}

# Intervalo (minutos) de cada agendamento cron conhecido
SCHEDULE_INTERVALS = {
    '*/5 * * * *': 5,
    '*/30 * * * *': 30,
    '0 * * * *': 60,
    '0 */6 * * *': 360,
    '0 */12 * * *': 720,
    '0 0 * * *': 1440
}
DEFAULT_SCHEDULE_INTERVAL = 30

NEXT_RUN_SOON = 'Em breve'

# Análise de respostas da API SEFAZ
SEFAZ_STATUS_CONFIG = {
    'window': 10,              # últimas requisições consideradas
    'down_success_rate': 50,   # %
    'unstable_success_rate': 80,
    'down_response_ms': 60000,
    'very_slow_response_ms': 30000,
    'slow_response_ms': 10000
}


@dataclass
class CronJob:
    """Agendamento de sincronização do usuário"""
    active: bool
    schedule: str = ''
    last_run: Optional[datetime] = None
    jobname: str = ''


@dataclass
class SyncLog:
    """Registro de uma execução de sincronização"""
    status: str
    executed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    execution_type: str = ''


@dataclass
class SystemHealthSnapshot:
    """Resumo da saúde do sistema de sincronização"""
    system_status: str
    recent_errors_24h: int
    active_items: int
    last_success: Optional[datetime]
    last_execution: Optional[datetime]
    checked_at: datetime


@dataclass
class ResponseSample:
    """Tempo de resposta de uma chamada à API SEFAZ"""
    response_time_ms: float
    success: bool
    timestamp: Optional[datetime] = None


@dataclass
class SefazStatusMetrics:
    status: str
    last_response_time_ms: Optional[float] = None
    average_response_time_ms: Optional[float] = None
    success_rate: Optional[float] = None
    last_checked: Optional[datetime] = None
    issues: List[str] = field(default_factory=list)
