"""
Feature Models

The feature record as stored in feature_list.json. Field names on disk are
camelCase because the dashboard front end reads the same file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FeatureStatus(str, Enum):
    """Feature lifecycle status."""

    BACKLOG = "backlog"
    IN_PROGRESS = "in_progress"
    WAITING_APPROVAL = "waiting_approval"
    VERIFIED = "verified"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


# Statuses the selector never picks: terminal, or waiting on a human
NOT_SELECTABLE = frozenset({FeatureStatus.VERIFIED.value, FeatureStatus.WAITING_APPROVAL.value})

# Allow-list and on-disk key order. Anything else in a record is dropped on rewrite.
PERSISTED_FIELDS = (
    "id",
    "category",
    "description",
    "steps",
    "status",
    "skipTests",
    "images",
    "imagePaths",
    "startedAt",
    "summary",
    "model",
    "thinkingLevel",
)

# wire name -> attribute name, where they differ
_ATTRIBUTES = {
    "skipTests": "skip_tests",
    "imagePaths": "image_paths",
    "startedAt": "started_at",
    "thinkingLevel": "thinking_level",
}

_MISSING = object()


def _attr(wire_name: str) -> str:
    return _ATTRIBUTES.get(wire_name, wire_name)


@dataclass
class Feature:
    """One queued unit of work."""

    id: str
    category: Any = None
    description: Any = None
    steps: Any = None
    status: str | None = None
    skip_tests: bool | None = None
    summary: str | None = None
    model: str | None = None
    thinking_level: str | None = None
    images: Any = None
    image_paths: Any = None
    started_at: Any = None

    # Wire names present on the record; absent keys stay absent when rewritten
    present: set[str] = field(default_factory=set, repr=False, compare=False)

    @property
    def has_passed(self) -> bool:
        """
        Whether the stored status counts as a successful attempt.

        A feature exempt from automated tests passes once it reaches the
        human approval gate; everything else must be fully verified.
        """
        if self.status == FeatureStatus.VERIFIED.value:
            return True
        return bool(self.skip_tests) and self.status == FeatureStatus.WAITING_APPROVAL.value

    @property
    def is_selectable(self) -> bool:
        return self.status not in NOT_SELECTABLE

    @property
    def title(self) -> str:
        """Description as display text."""
        return str(self.description) if self.description is not None else self.id

    def set_field(self, wire_name: str, value: Any) -> None:
        """Set a persisted field by wire name and mark it present."""
        if wire_name not in PERSISTED_FIELDS:
            raise KeyError(wire_name)
        setattr(self, _attr(wire_name), value)
        self.present.add(wire_name)

    def to_dict(self) -> dict[str, Any]:
        """Allow-listed projection written back to the store."""
        data: dict[str, Any] = {"id": self.id}
        for wire_name in PERSISTED_FIELDS[1:]:
            if wire_name in self.present:
                data[wire_name] = getattr(self, _attr(wire_name))
        return data

    @classmethod
    def new(
        cls,
        feature_id: str,
        description: str,
        category: str = "",
        steps: list[str] | None = None,
        skip_tests: bool = False,
    ) -> Feature:
        """A fresh backlog feature with every core field present."""
        feature = cls(id=feature_id)
        feature.set_field("category", category)
        feature.set_field("description", description)
        feature.set_field("steps", list(steps or []))
        feature.set_field("status", FeatureStatus.BACKLOG.value)
        if skip_tests:
            feature.set_field("skipTests", True)
        return feature

    @classmethod
    def from_dict(cls, data: dict[str, Any], fallback_id: str) -> Feature:
        """
        Build a Feature from a stored record.

        Args:
            data: Raw record from feature_list.json; a non-string id is kept as text
            fallback_id: Used when the record has no (or an empty) id
        """
        raw_id = data.get("id")
        feature = cls(id=str(raw_id) if raw_id else fallback_id)
        for wire_name in PERSISTED_FIELDS[1:]:
            value = data.get(wire_name, _MISSING)
            if value is not _MISSING:
                feature.set_field(wire_name, value)
        return feature
