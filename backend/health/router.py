from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from backend.config import Settings, get_settings
from backend.health import service as health_service
from backend.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root():
    return {"ok": True}


@router.get("/config")
def health_config(request: Request, settings: Settings = Depends(get_settings)):
    return {"integrations": health_service.integrations_info(settings), "rate_limit": rate_limit_health_info(request)}


@router.get("/supabase")
def health_supabase(settings: Settings = Depends(get_settings)):
    info = health_service.health_supabase_info(settings)
    return JSONResponse(info, status_code=200 if info.get("connect_ok") else 503)
