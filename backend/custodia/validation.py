from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """400-level input problem or custody invariant violation."""


class AssignmentConflictError(ValidationError):
    """An asset cannot join a selection; `outcome` says which field clashed."""

    def __init__(self, message: str, *, outcome: Any):
        super().__init__(message)
        self.outcome = outcome


class IncompleteDirectorError(ValidationError):
    def __init__(self, message: str, *, missing_fields: list[str]):
        super().__init__(message)
        self.missing_fields = missing_fields


class NotFoundError(LookupError):
    """404-level lookup miss (folio, director, asset, ledger row)."""


class StoreError(RuntimeError):
    """
    503-level backend failure.

    `step` names the operation that failed so the caller can retry it by hand.
    """

    def __init__(self, message: str, *, step: str | None = None):
        super().__init__(message)
        self.step = step


class CustodyStoreError(StoreError):
    """Store failure inside a custody write; `asset` is "<origin>:<id>" when known."""

    def __init__(self, message: str, *, step: str | None = None, asset: str | None = None):
        super().__init__(message, step=step)
        self.asset = asset


class PartialCommitError(RuntimeError):
    """
    Raised when a best-effort multi-asset operation applied only some steps.

    The successful part stays in the session; `document` describes it and
    `failed` lists {"origin", "asset_id", "error"} for the rest.
    """

    def __init__(self, message: str, *, document: Any, failed: list[dict]):
        super().__init__(message)
        self.document = document
        self.failed = failed


def require_payload(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def optional_text(payload: dict, key: str, default: str = "") -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def optional_string_list(payload: dict, key: str) -> list[str] | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{key} must be a list of strings")
    return [v.strip() for v in value]


def require_int(value: Any, key: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{key} must be an integer")
