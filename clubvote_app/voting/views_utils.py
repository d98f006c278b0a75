from __future__ import annotations

import json

from django.http import HttpRequest, JsonResponse

from voting.exceptions import (
    ConsistencyError,
    DuplicateVoteError,
    ElectionError,
    ElectionNotOpenError,
    InvalidStateError,
    NotFoundError,
)

_STATUS_BY_ERROR: tuple[tuple[type[ElectionError], int], ...] = (
    (NotFoundError, 404),
    (DuplicateVoteError, 409),
    (ElectionNotOpenError, 409),
    (InvalidStateError, 400),
    (ConsistencyError, 500),
)

_INTERNAL_ERROR_MESSAGE = "The request could not be completed. Please retry."


def get_actor(request: HttpRequest) -> str:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return ""
    return str(user.get_username() or "").strip()


def is_staff(request: HttpRequest) -> bool:
    user = getattr(request, "user", None)
    return bool(user is not None and user.is_authenticated and user.is_staff)


def get_client_ip(request: HttpRequest) -> str:
    forwarded = str(request.META.get("HTTP_X_FORWARDED_FOR") or "").split(",")[0].strip()
    return forwarded or str(request.META.get("REMOTE_ADDR") or "").strip() or "unknown"


def parse_json_body(request: HttpRequest) -> dict[str, object]:
    if not request.body:
        return {}
    data = json.loads(request.body.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


def parse_int(value: object, *, field: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be an integer") from exc


def ok_response(payload: dict[str, object] | None = None, *, status: int = 200) -> JsonResponse:
    return JsonResponse({"ok": True, **(payload or {})}, status=status)


def bad_request(message: str) -> JsonResponse:
    return JsonResponse({"ok": False, "kind": "ValidationError", "error": message}, status=400)


def forbidden(message: str = "Authentication required.") -> JsonResponse:
    return JsonResponse({"ok": False, "kind": "PermissionDenied", "error": message}, status=403)


def error_response(exc: ElectionError) -> JsonResponse:
    status = 400
    for error_type, error_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = error_status
            break

    message = str(exc)
    if status >= 500:
        # Already logged where it was raised; keep internals out of the response.
        message = _INTERNAL_ERROR_MESSAGE

    return JsonResponse({"ok": False, "kind": exc.kind, "error": message}, status=status)
