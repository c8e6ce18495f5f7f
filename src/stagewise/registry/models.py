"""Persisted registry models.

Pydantic v2 models so that stores can round-trip them through
``model_dump(mode="json")`` / ``model_validate()`` without hand-written
(de)serializers.  Both models are frozen: a recorded unit is an immutable
identity.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stagewise.ledger.client import Receipt


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Unit(BaseModel):
    """A created unit: name → identity, plus how it was created."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique, human-assigned unit name")
    identity: str = Field(description="Opaque address returned by the ledger")
    kind: str = Field(description="Template/class the unit was created from")
    creation_args: list[Any] = Field(default_factory=list)
    fingerprint: str = Field(description="Hash of kind + canonical creation args")
    receipt: Receipt | None = None
    stage: str | None = Field(default=None, description="Stage that created the unit")
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def address(self) -> str:
        return self.identity

    def summary(self) -> dict[str, Any]:
        """Flat view for tables and logs."""
        return {
            "name": self.name,
            "kind": self.kind,
            "identity": self.identity,
            "stage": self.stage or "",
            "created_at": self.created_at.isoformat(),
        }


class CallRecord(BaseModel):
    """Journal entry for a configuration call guarded with ``once=True``."""

    model_config = ConfigDict(frozen=True)

    key: str
    stage: str
    unit: str
    operation: str
    args: list[Any] = Field(default_factory=list)
    receipt: Receipt | None = None
    recorded_at: datetime = Field(default_factory=_utcnow)
