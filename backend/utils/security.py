from fastapi import Request, HTTPException, Depends
from typing import Dict, Any
from backend.config import Settings, get_settings
from backend.auth import service as auth_service


def get_current_user(request: Request, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    # Bearer uniquement: l'API est appelée par le dashboard admin (token Supabase)
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else ""
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = auth_service.get_user_from_token(token, settings)
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    return user


def require_staff(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") not in ("admin", "staff"):
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return user
