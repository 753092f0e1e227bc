# module backend.admin.service

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import csv
import io
import json
import logging

from backend.admin import repository as admin_repository
from backend.config import Settings
from backend.utils.errors import ClientInputError, NotFoundError

logger = logging.getLogger(__name__)

CSV_TABLES = ("orders", "products", "newsletter_subscribers")
JSON_TABLES = ("orders", "products", "newsletter_subscribers", "site_content", "admins")
STATS_TABLES = ("orders", "newsletter_subscribers", "products")


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """CSV entièrement quoté; colonnes de la première ligne, objets JSON-sérialisés."""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_value(row.get(h)) for h in headers])
    return buf.getvalue()


def export_csv(table: Optional[str], settings: Settings) -> Dict[str, str]:
    """Retourne {filename, content}; 400 hors allowlist, 404 si la table est vide."""
    if table not in CSV_TABLES:
        raise ClientInputError("Invalid table")
    rows = admin_repository.fetch_table(table, settings)
    if not rows:
        raise NotFoundError("No data found")
    logger.info("admin.export_csv table=%s rows=%s", table, len(rows))
    return {"filename": f"{table}-{_today()}.csv", "content": rows_to_csv(rows)}


def export_json(table: Optional[str], settings: Settings) -> Dict[str, Any]:
    """Dump JSON d'une table de l'allowlist (ou de toutes) avec un bloc _meta."""
    if table and table not in JSON_TABLES:
        raise ClientInputError("Invalid table name")
    tables = [table] if table else list(JSON_TABLES)
    data: Dict[str, Any] = {t: admin_repository.fetch_table(t, settings) for t in tables}
    data["_meta"] = {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "tables": tables,
        "total_records": sum(len(data[t]) for t in tables),
    }
    return data


def backup_filename() -> str:
    return f"moenviron-backup-{_today()}.json"


def get_stats(settings: Settings) -> Dict[str, int]:
    return {f"{t}_count": admin_repository.count_table_rows(t, settings) for t in STATS_TABLES}
