"""
Client MailerLite (API "connect") minimal: groupes et abonnés.
"""
from typing import Any, Dict, List, Optional
import logging

import httpx

from backend.utils.errors import AppError

logger = logging.getLogger(__name__)

MAILERLITE_API_URL = "https://connect.mailerlite.com/api"


class MailerLiteError(AppError):
    status_code = 502
    default_public_message = "MailerLite request failed"


class MailerLiteClient:
    def __init__(self, api_key: str, *, http: Optional[httpx.Client] = None, timeout: float = 10.0):
        self._http = http or httpx.Client(base_url=MAILERLITE_API_URL, timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self._http.request(method, endpoint, headers=self._headers, json=json)
        except httpx.HTTPError as e:
            raise MailerLiteError(f"mailerlite {method} {endpoint}: {e}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise MailerLiteError(f"mailerlite {method} {endpoint}: {message or resp.status_code}")
        return data if isinstance(data, dict) else {}

    def list_groups(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/groups?limit=100").get("data") or []

    def create_group(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/groups", {"name": name}).get("data") or {}

    def find_or_create_group(self, name: str) -> Dict[str, Any]:
        for group in self.list_groups():
            if group.get("name") == name:
                return group
        group = self.create_group(name)
        if not group.get("id"):
            raise MailerLiteError(f"mailerlite: group {name!r} could not be created", public_message="Failed to get/create group")
        logger.info("newsletter.mailerlite created group id=%s", group.get("id"))
        return group

    def upsert_subscriber(self, email: str, *, name: str = "", last_name: str = "", group_id: str) -> Dict[str, Any]:
        body = {
            "email": email,
            "fields": {"name": name, "last_name": last_name},
            "groups": [group_id],
            "status": "active",
        }
        return self._request("POST", "/subscribers", body).get("data") or {}
