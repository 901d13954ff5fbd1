"""Aplicação principal FastAPI do monitor de preços Economiza."""

import logging
from dataclasses import asdict
from typing import Any, Dict
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException

from economiza.config.settings import load_settings
from economiza.errors import CooldownError, TransportError, ValidationError
from economiza.modules.price_query import (
    search_fuels,
    search_products,
    sync_tracked_items,
    validate_fuel_query,
    validate_product_query,
)
from economiza.modules.rate_limit import CooldownGate
from economiza.modules.sync_health import get_system_health, get_user_sync_status, sefaz_status_tracker
from economiza.services.sefaz_service import SefazService
from economiza.services.supabase_service import SupabaseService
from economiza.utils import formatters

# Carregar variáveis de ambiente
load_dotenv()
settings = load_settings()

# Configurar logging
logging.basicConfig(level=settings["log_level"])
logger = logging.getLogger(__name__)

# Configurar timezone
try:
    formatters.LOCAL_TIMEZONE = ZoneInfo(settings["local_timezone"])
except Exception:
    logger.warning("LOCAL_TIMEZONE inválido (%s); usando UTC", settings["local_timezone"])
    formatters.LOCAL_TIMEZONE = None

# Inicializar serviços (opcionais)
sefaz_service = None
try:
    sefaz_service = SefazService(status_tracker=sefaz_status_tracker)
    logger.info("SEFAZ service iniciado")
except ValueError:
    logger.warning("SEFAZ_APP_TOKEN não configurado; consultas à API desabilitadas")

supabase_service = None
try:
    supabase_service = SupabaseService()
    logger.info("Supabase service iniciado")
except ValueError:
    logger.warning("Supabase não configurado; status de sincronização indisponível")

cooldown_gate = CooldownGate(settings["sync"]["cooldown_seconds"])

app = FastAPI(
    title="Economiza - Monitor de Preços SEFAZ",
    description="Validação de consultas à API de preços da SEFAZ-AL e status da sincronização",
    version="1.0.0"
)


def _require(service, name: str):
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} não configurado")
    return service


def _run_search(search, validate, params: Dict[str, Any], user_id: str):
    executor = _require(sefaz_service, "SEFAZ")
    # Erros locais não consomem o intervalo do usuário
    errors = validate(params)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})

    try:
        cooldown_gate.acquire(user_id)
        records = search(params, executor)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"errors": exc.errors})
    except CooldownError as exc:
        raise HTTPException(status_code=429, detail={"message": str(exc), "seconds_left": exc.seconds_left})
    except TransportError as exc:
        raise HTTPException(status_code=502, detail={"message": str(exc), "status_code": exc.status_code})
    return {"total": len(records), "records": [asdict(record) for record in records]}


@app.get("/health")
async def health_check():
    """Verificação de saúde da aplicação."""
    return {
        "status": "healthy",
        "services": {
            "sefaz": sefaz_service is not None,
            "supabase": supabase_service is not None
        }
    }


@app.post("/validate/produto")
def validate_product(params: Any = Body(None)):
    errors = validate_product_query(params)
    return {"valid": not errors, "errors": errors}


@app.post("/validate/combustivel")
def validate_fuel(params: Any = Body(None)):
    errors = validate_fuel_query(params)
    return {"valid": not errors, "errors": errors}


@app.post("/pesquisa/produto")
def product_search(params: Any = Body(None), user_id: str = "anonymous"):
    return _run_search(search_products, validate_product_query, params, user_id)


@app.post("/pesquisa/combustivel")
def fuel_search(params: Any = Body(None), user_id: str = "anonymous"):
    return _run_search(search_fuels, validate_fuel_query, params, user_id)


@app.post("/sync/{user_id}")
def force_user_sync(user_id: str):
    """Atualiza imediatamente os itens monitorados do usuário."""
    executor = _require(sefaz_service, "SEFAZ")
    store = _require(supabase_service, "Supabase")
    try:
        cooldown_gate.acquire(user_id)
    except CooldownError as exc:
        raise HTTPException(status_code=429, detail={"message": str(exc), "seconds_left": exc.seconds_left})

    items = store.get_active_tracked_items(user_id)
    return sync_tracked_items(items, executor, store)


@app.get("/sync/status/{user_id}")
def sync_status(user_id: str):
    store = _require(supabase_service, "Supabase")
    result = get_user_sync_status(user_id, store)
    return {"status": result["status"], "next_run": result["next_run"]}


@app.get("/system/health")
def system_health():
    store = _require(supabase_service, "Supabase")
    snapshot = get_system_health(store, expected_interval=settings["sync"]["expected_interval"])
    return asdict(snapshot)


@app.get("/sefaz/status")
def sefaz_status():
    return asdict(sefaz_status_tracker.get_metrics())


if __name__ == "__main__":
    import os

    import uvicorn
    port = int(os.getenv('PORT', 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
