"""Error envelope shared by SceneForge HTTP routes.

Every non-2xx response raised by our routers carries:
{
  "error": {
    "code": "timeline.unknown_command",
    "message": "...",
    "http_status": 400,
    "resource_kind": "playback",
    "details": {}
  }
}
FastAPI nests it under "detail" on the wire.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, NoReturn, Optional

from fastapi import HTTPException
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str
    http_status: int
    resource_kind: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


def build_error_envelope(
    code: str,
    message: str,
    status_code: int = 400,
    resource_kind: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ErrorEnvelope:
    """Build the envelope without raising (handy for logging or tests)."""
    return ErrorEnvelope(error=ErrorDetail(
        code=code,
        message=message,
        http_status=status_code,
        resource_kind=resource_kind,
        details=details or {},
    ))


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
    resource_kind: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> NoReturn:
    """Raise an HTTPException whose detail is the error envelope.

    Args:
        code: Dotted machine-readable code, "<area>.<reason>"
        message: Human-readable message
        status_code: HTTP status (default 400)
        resource_kind: timeline, playback, ...
        details: Extra context for the caller
    """
    envelope = build_error_envelope(code, message, status_code, resource_kind, details)
    raise HTTPException(status_code=status_code, detail=envelope.model_dump())


def unknown_command_error(command: str, allowed: Iterable[str], resource_kind: str = "playback") -> NoReturn:
    error_response(
        code="timeline.unknown_command",
        message=f"Unknown {resource_kind} command: {command}",
        status_code=400,
        resource_kind=resource_kind,
        details={"command": command, "allowed": sorted(allowed)},
    )


def missing_field_error(field: str, reason: str, resource_kind: Optional[str] = None) -> NoReturn:
    error_response(
        code="validation.missing_field",
        message=reason,
        status_code=400,
        resource_kind=resource_kind,
        details={"field": field},
    )
