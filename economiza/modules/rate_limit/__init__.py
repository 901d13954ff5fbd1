"""
Módulo Rate Limit - Intervalo mínimo entre consultas por usuário
"""

from .rate_limit_domain import CooldownGate, DEFAULT_COOLDOWN_SECONDS

__all__ = [
    'CooldownGate',
    'DEFAULT_COOLDOWN_SECONDS'
]
