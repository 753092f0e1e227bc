from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from backend.config import Settings, get_settings
from backend.utils.security import require_admin
from backend.admin import service as admin_service
from backend.newsletter import service as newsletter_service

# module backend.admin.views
router = APIRouter(prefix="/admin", tags=["Admin"])


class NewsletterSyncRequest(BaseModel):
    action: str = "test"


@router.get("/api/stats")
def admin_stats(settings: Settings = Depends(get_settings), user: dict = Depends(require_admin)):
    return admin_service.get_stats(settings)


@router.get("/api/export/csv")
def export_csv(
    table: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_admin),
):
    """
    Export CSV d'une table (orders, products, newsletter_subscribers).
    Téléchargement via Content-Disposition; 400 table hors liste, 404 table vide.
    """
    export = admin_service.export_csv(table, settings)
    return Response(
        content=export["content"],
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export['filename']}"},
    )


@router.get("/api/export")
def export_json(
    table: Optional[str] = None,
    format: str = Query(default="json", pattern="^(json|download)$"),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_admin),
):
    """Sauvegarde JSON (une table ou toutes); format=download ajoute Content-Disposition."""
    data = admin_service.export_json(table, settings)
    headers = {}
    if format == "download":
        headers["Content-Disposition"] = f"attachment; filename={admin_service.backup_filename()}"
    return JSONResponse(data, headers=headers)


@router.post("/api/newsletter/sync")
def newsletter_sync(
    body: NewsletterSyncRequest,
    settings: Settings = Depends(get_settings),
    user: dict = Depends(require_admin),
):
    return newsletter_service.sync_subscribers(body.action, settings)
