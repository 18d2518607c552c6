# app/core/exceptions.py
from __future__ import annotations

"""
Reelkeeper — Application Exceptions
===================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets the ingestion pipeline raise typed errors which already know their HTTP
status, and integrates with the problem+json shape rendered by
`app.core.exception_handlers`.

Key ideas
---------
- One base `AppException` that carries `code`, `request_id`, `details`, `extra`.
- Pipeline exceptions inherit from it and set the status the route answers with.
- `to_problem()` renders a canonical body; `extra` keys surface to clients
  (e.g. `existing_id` on a duplicate ingest).

Taxonomy
--------
    InvalidIdentifier        400  malformed URL / missing input
    UnsupportedOperation     400  re-sync attempted on a movie
    NotFound                 404  unknown internal id
    Conflict                 409  external id already ingested (carries id)
    ExtractionFailed         500  primary document has no usable title
    UpstreamError            500  transport/parse failure of any external call
      EpisodeGuideUnavailable     episode guide missing/unparseable
    UpstreamUnavailable      503  integration not configured
      ServiceNotConfigured        catalog credentials missing
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "InvalidIdentifier",
    "UnsupportedOperation",
    "NotFound",
    "Conflict",
    "ExtractionFailed",
    "UpstreamError",
    "EpisodeGuideUnavailable",
    "UpstreamUnavailable",
    "ServiceNotConfigured",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : int
        Optional internal/typed error code. Defaults to `status_code`.
    request_id : str | None
        Optional request correlation id.
    details : dict | list | str | None
        Machine-readable details.
    extra : dict | None
        Additional non-sensitive metadata surfaced to clients.
    """

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        status_code = status_code or self.default_status
        message = message or self.default_message
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code: int = int(code or status_code)
        self.message: str = message
        self.request_id: Optional[str] = request_id
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.status_code}): {self.message}"

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, fallback_request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict matching our problem-like JSON shape."""
        body: Dict[str, Any] = {
            "error": True,
            "message": self.message,
            "code": self.code,
            "request_id": self.request_id or fallback_request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "password", "secret", "api_key"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


# ──────────────────────────────────────────────────────────────
# 🧾 Input / lookup errors
# ──────────────────────────────────────────────────────────────
class InvalidIdentifier(AppException):
    """Raised when neither a usable primary-source URL nor a catalog id was given."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid media identifier"


class UnsupportedOperation(AppException):
    """Raised when an operation does not apply to the item's kind."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not supported for this media item"


class NotFound(AppException):
    """Raised for unknown internal ids (media, season, episode)."""

    default_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppException):
    """Raised when an external id is already in the library.

    The existing internal id is exposed as `existing_id` so the caller can
    open the item instead of treating this as a failure.
    """

    default_status = status.HTTP_409_CONFLICT

    def __init__(self, existing_id: int, *, external_id: Optional[str] = None) -> None:
        super().__init__(
            "Media with this external id already exists",
            extra={"existing_id": existing_id},
            details={"external_id": external_id} if external_id else None,
        )
        self.existing_id = existing_id
        self.external_id = external_id


# ──────────────────────────────────────────────────────────────
# 🌐 Upstream / extraction errors
# ──────────────────────────────────────────────────────────────
class ExtractionFailed(AppException):
    """Raised when the primary document yields no title by any fallback."""

    default_message = "Failed to extract metadata from the primary source"


class UpstreamError(AppException):
    """Raised on transport or parse failures of an external call."""

    default_message = "Upstream service error"


class EpisodeGuideUnavailable(UpstreamError):
    """Raised when no episode data could be obtained for a series."""

    default_message = "Episode guide unavailable"


class UpstreamUnavailable(AppException):
    """Raised when a third-party integration is not configured."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Upstream integration is not configured"


class ServiceNotConfigured(UpstreamUnavailable):
    """Raised when the catalog API has no credentials."""

    default_message = "Catalog service is not configured"
