from __future__ import annotations

import json
import logging
from typing import Any, Dict

from django.http import RawPostDataException
from django.utils.deprecation import MiddlewareMixin

from .models import ApiAccessLog

logger = logging.getLogger("audit")

SKIPPED_PREFIXES = ("/api/auth/session", "/api/notifications")
REDACTED_KEYS = {"password", "token", "yjs_state", "content"}
MAX_PAYLOAD_KEYS = 20


class ApiAuditMiddleware(MiddlewareMixin):
    """Write one ``ApiAccessLog`` row per ``/api/`` request."""

    def process_request(self, request):
        # Cache JSON bodies before the view consumes the stream
        if request.path.startswith("/api/") and "json" in (request.content_type or ""):
            try:
                request.body
            except RawPostDataException:
                pass

    def process_response(self, request, response):
        if not request.path.startswith("/api/") or request.path.startswith(SKIPPED_PREFIXES):
            return response
        try:
            user = getattr(request, "user", None)
            authenticated = bool(user is not None and user.is_authenticated)
            resolver_match = getattr(request, "resolver_match", None)

            ApiAccessLog.objects.create(
                user=user if authenticated else None,
                method=request.method.upper(),
                path=request.path[:255],
                action=(resolver_match.view_name if resolver_match and resolver_match.view_name else "")[:128],
                status_code=getattr(response, "status_code", 0),
                org_id=self._resolve_org_id(request, user) if authenticated else None,
                payload=self._payload_summary(request),
                response=self._response_summary(response),
                ip_address=self._client_ip(request),
                user_agent=request.META.get("HTTP_USER_AGENT", "")[:255],
                request_id=request.headers.get("X-Request-ID", "")[:64],
            )
        except Exception:
            logger.exception("Failed to write API audit log for %s %s", request.method, request.path)
        return response

    def _resolve_org_id(self, request, user):
        # Imported lazily: accounts depends on apps that load after audit
        from accounts.services import get_active_org_id

        return get_active_org_id(request, user=user)

    def _payload_summary(self, request) -> Dict[str, Any] | None:
        if request.method not in {"POST", "PUT", "PATCH"}:
            return None
        try:
            body = request.body
        except RawPostDataException:
            body = getattr(request, "_body", b"")
        if not body or "json" not in (request.content_type or ""):
            return None
        try:
            data = json.loads(body.decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(data, dict):
            return {"type": type(data).__name__}
        summary = {}
        for key in list(data)[:MAX_PAYLOAD_KEYS]:
            value = data[key]
            if key in REDACTED_KEYS:
                summary[key] = "[redacted]"
            elif isinstance(value, (str, int, float, bool)) or value is None:
                summary[key] = value if not isinstance(value, str) else value[:200]
            else:
                summary[key] = f"<{type(value).__name__}>"
        return summary

    def _response_summary(self, response) -> Dict[str, Any] | None:
        payload = getattr(response, "data", None)
        if not isinstance(payload, dict):
            return None
        summary = {key: payload[key] for key in ("code", "message") if key in payload}
        return summary or None

    def _client_ip(self, request) -> str | None:
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.META.get("REMOTE_ADDR")
