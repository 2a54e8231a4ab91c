from __future__ import annotations

import dataclasses
import json
from typing import Any

from pydantic import BaseModel

from fitband._internal.timeutil import iso_now


def _serialize(obj: Any) -> Any:
    """Convert *obj* to a JSON-friendly structure.

    * Pydantic models are dumped with their wire (camelCase) aliases and
      without ``None`` fields, so samples look exactly as they do on the
      channel.
    * Dataclasses (e.g. device state) become plain dicts.
    * Lists and dicts are recursed.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, exclude_none=True, mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, list | tuple):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _serialize(value) for key, value in obj.items()}
    return obj


def format_json_response(*, data: Any, command: str) -> str:
    """Return a JSON envelope for a successful response.

    The envelope has the shape::

        {"ok": true, "command": "<command>", "data": ..., "timestamp": "<ISO-8601 UTC>"}
    """
    envelope: dict[str, Any] = {
        "ok": True,
        "command": command,
        "data": _serialize(data),
        "timestamp": iso_now(),
    }
    return json.dumps(envelope, indent=2, default=str)


def format_json_error(
    *,
    code: str,
    message: str,
    command: str,
    **extra: Any,
) -> str:
    """Return a JSON envelope for an error response."""
    error_body: dict[str, Any] = {"code": code, "message": message, **extra}
    envelope: dict[str, Any] = {
        "ok": False,
        "command": command,
        "error": error_body,
        "timestamp": iso_now(),
    }
    return json.dumps(envelope, indent=2, default=str)


def format_json_line(*, event: str, data: Any) -> str:
    """Return one compact JSON line for streaming output (``simulate`` / ``watch``)."""
    return json.dumps({"event": event, "data": _serialize(data)}, default=str)
