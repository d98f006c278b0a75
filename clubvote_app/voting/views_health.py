from __future__ import annotations

import logging

from django.db import connection
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET

from voting.models import Election

logger = logging.getLogger(__name__)


@require_GET
def healthz(_request: HttpRequest) -> JsonResponse:
    return JsonResponse({"status": "ok"})


@require_GET
def readyz(_request: HttpRequest) -> JsonResponse:
    # The ledger store is the only dependency the engine cannot work without.
    try:
        connection.ensure_connection()
        open_elections = Election.objects.voting().count()
    except Exception as exc:
        logger.exception("Readiness check failed")
        return JsonResponse({"status": "not ready", "error": type(exc).__name__}, status=503)

    return JsonResponse({"status": "ready", "database": "ok", "open_elections": open_elections})
