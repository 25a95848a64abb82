"""In-memory representation of a workflow version's status graph."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

CATEGORIES = ("TODO", "IN_PROGRESS", "DONE")
DEFAULT_CATEGORY = "TODO"

# Column widths of the persisted graph.
KEY_MAX_LENGTH = 120
NAME_MAX_LENGTH = 255
COLOR_MAX_LENGTH = 32
STATUS_REF_MAX_LENGTH = 64
UI_TRIGGER_MAX_LENGTH = 32

_WHITESPACE = re.compile(r"\s+")


def normalize_key(value: Any) -> str:
    """Lowercase, trim and hyphenate whitespace so keys compare reliably."""

    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return _WHITESPACE.sub("-", value.strip().lower())


def key_of(status: StatusDraft) -> str:
    """Return the identity key of a status, falling back to its name."""

    return normalize_key(status.key or status.name)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = _as_text(value).strip()
    return text or None


def _as_rules(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict) and value:
        return value
    return None


def _as_order(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _as_category(value: Any) -> str:
    candidate = _as_text(value).strip().upper().replace("-", "_").replace(" ", "_")
    return candidate or DEFAULT_CATEGORY


@dataclass(frozen=True)
class StatusDraft:
    """A candidate node before (or after) normalisation."""

    key: str
    name: str
    category: str = DEFAULT_CATEGORY
    color: str | None = None
    is_initial: bool = False
    is_final: bool = False
    order: int | None = None
    visibility_rules: dict[str, Any] | None = None
    field_lock_rules: dict[str, Any] | None = None
    status_ref_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StatusDraft:
        return cls(
            key=_as_text(payload.get("key")),
            name=_as_text(payload.get("name")).strip(),
            category=_as_category(payload.get("category")),
            color=_as_optional_text(payload.get("color")),
            is_initial=bool(payload.get("isInitial")),
            is_final=bool(payload.get("isFinal")),
            order=_as_order(payload.get("order")),
            visibility_rules=_as_rules(payload.get("visibilityRules")),
            field_lock_rules=_as_rules(payload.get("fieldLockRules")),
            status_ref_id=_as_optional_text(payload.get("statusRefId")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "category": self.category,
            "color": self.color,
            "isInitial": self.is_initial,
            "isFinal": self.is_final,
            "order": self.order,
            "visibilityRules": self.visibility_rules,
            "fieldLockRules": self.field_lock_rules,
            "statusRefId": self.status_ref_id,
        }


@dataclass(frozen=True)
class TransitionDraft:
    """A candidate edge, addressed by status keys rather than row ids."""

    name: str
    from_key: str
    to_key: str
    key: str | None = None
    order: int | None = None
    ui_trigger: str | None = None
    conditions: dict[str, Any] | None = None
    validators: dict[str, Any] | None = None
    post_functions: dict[str, Any] | None = None
    hints: dict[str, bool] = field(default_factory=dict)

    @property
    def pair(self) -> tuple[str, str]:
        return normalize_key(self.from_key), normalize_key(self.to_key)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TransitionDraft:
        return cls(
            name=_as_text(payload.get("name")).strip(),
            from_key=_as_text(payload.get("fromKey")),
            to_key=_as_text(payload.get("toKey")),
            key=_as_optional_text(payload.get("key")),
            order=_as_order(payload.get("order")),
            ui_trigger=_as_optional_text(payload.get("uiTrigger")),
            conditions=_as_rules(payload.get("conditions")),
            validators=_as_rules(payload.get("validators")),
            post_functions=_as_rules(payload.get("postFunctions")),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "fromKey": self.from_key,
            "toKey": self.to_key,
            "uiTrigger": self.ui_trigger,
            "order": self.order,
            "conditions": self.conditions,
            "validators": self.validators,
            "postFunctions": self.post_functions,
        }
        payload.update(self.hints)
        return payload
