"""Utilitários para formatação de dados."""

from datetime import datetime, timezone
from typing import Any, Optional

LOCAL_TIMEZONE = None  # Será definido no módulo principal


def _coerce_price(value: Any) -> Optional[float]:
    """Converte valor para float, tratando strings monetárias."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            cleaned = value.replace("R$", "").strip()
            if "," in cleaned:
                cleaned = cleaned.replace(".", "").replace(",", ".")
            return float(cleaned)
        except ValueError:
            return None
    return None


def _format_currency(value: float) -> str:
    """Formata valor monetário em reais."""
    formatted = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {formatted}"


def _format_date(dt: Optional[datetime]) -> str:
    """Formata data para exibição."""
    if not dt:
        return "-"
    if LOCAL_TIMEZONE:
        return dt.astimezone(LOCAL_TIMEZONE).strftime("%d/%m/%Y às %H:%M")
    return dt.strftime("%d/%m/%Y às %H:%M")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Converte timestamp ISO 8601 (ou datetime) para datetime em UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_relative_time(value: Any, now: Optional[datetime] = None) -> str:
    """Descreve há quanto tempo um evento aconteceu."""
    moment = _parse_timestamp(value)
    if moment is None:
        return "Nunca"

    now = _parse_timestamp(now) or datetime.now(timezone.utc)
    diff_minutes = int((now - moment).total_seconds() // 60)
    diff_hours = diff_minutes // 60
    diff_days = diff_hours // 24

    if diff_minutes < 1:
        return "Agora"
    if diff_minutes < 60:
        return f"{diff_minutes} min atrás"
    if diff_hours < 24:
        return f"{diff_hours}h atrás"
    return f"{diff_days} dias atrás"


__all__ = [
    "_coerce_price",
    "_format_currency",
    "_format_date",
    "_parse_timestamp",
    "_format_relative_time",
]
