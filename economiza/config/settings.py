# Economiza - Configurações
# Valores lidos do ambiente (.env carregado em economiza/main.py)

import os
from datetime import timedelta

SEFAZ_DEFAULT_BASE_URL = "http://api.sefaz.al.gov.br/sfz-economiza-alagoas-api/api/public/"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def load_settings() -> dict:
    """Lê as configurações do ambiente no momento da chamada."""
    return {
        "sefaz": {
            "base_url": os.getenv("SEFAZ_API_BASE_URL", SEFAZ_DEFAULT_BASE_URL),
            "app_token": os.getenv("SEFAZ_APP_TOKEN"),
            "timeout": _env_int("SEFAZ_TIMEOUT", 15),          # segundos por requisição
            "max_retries": _env_int("SEFAZ_MAX_RETRIES", 3),
            "cache_ttl": _env_int("SEFAZ_CACHE_TTL", 300),     # 5 minutos
        },
        "supabase": {
            "url": os.getenv("SUPABASE_URL"),
            "service_role_key": os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        },
        "sync": {
            "cooldown_seconds": _env_int("SYNC_COOLDOWN_SECONDS", 30),
            "expected_interval": timedelta(minutes=_env_int("EXPECTED_SYNC_INTERVAL_MINUTES", 30)),
        },
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "local_timezone": os.getenv("LOCAL_TIMEZONE", "America/Maceio"),
    }
