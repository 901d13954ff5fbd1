"""Exceções do Economiza."""

from typing import List, Optional


class EconomizaError(Exception):
    """Erro base da aplicação."""


class ValidationError(EconomizaError):
    """Parâmetros de consulta rejeitados localmente, antes de qualquer chamada à API."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Parâmetros inválidos")


class TransportError(EconomizaError):
    """Falha ao alcançar ou interpretar a resposta da API de preços."""

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"{endpoint}: {message}")


class CooldownError(EconomizaError):
    """Chamada bloqueada pelo intervalo mínimo entre consultas do usuário."""

    def __init__(self, seconds_left: int):
        self.seconds_left = seconds_left
        super().__init__(f"Você poderá executar novamente em {seconds_left} segundos")


__all__ = ["EconomizaError", "ValidationError", "TransportError", "CooldownError"]
