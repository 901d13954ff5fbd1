"""
Intervalo mínimo entre consultas de um mesmo usuário à API de preços
"""
import math
import threading
import time
from typing import Callable, Dict

from economiza.errors import CooldownError

DEFAULT_COOLDOWN_SECONDS = 30


class CooldownGate:
    """Bloqueia execuções do mesmo usuário dentro do intervalo de espera."""

    def __init__(self, cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_execution: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _time_left(self, user_id: str) -> float:
        last = self._last_execution.get(user_id)
        if last is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (self._clock() - last))

    def can_execute(self, user_id: str) -> bool:
        with self._lock:
            return self._time_left(user_id) <= 0

    def time_left(self, user_id: str) -> int:
        """Segundos restantes (arredondado para cima)."""
        with self._lock:
            return math.ceil(self._time_left(user_id))

    def register(self, user_id: str) -> None:
        with self._lock:
            self._last_execution[user_id] = self._clock()

    def acquire(self, user_id: str) -> None:
        """
        Registra a execução do usuário se o intervalo já passou

        Raises:
            CooldownError: com os segundos restantes
        """
        with self._lock:
            remaining = self._time_left(user_id)
            if remaining > 0:
                raise CooldownError(math.ceil(remaining))
            self._last_execution[user_id] = self._clock()

    def reset(self, user_id: str) -> None:
        with self._lock:
            self._last_execution.pop(user_id, None)
