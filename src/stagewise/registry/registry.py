"""Unit Registry — durable name → unit mapping behind idempotent re-runs.

ARCHITECTURE
────────────
::

    UnitRegistry(store)
      ├── create(name, kind, args, identity)  → Unit   (no-op if same fingerprint)
      ├── check(name, kind, args)             → Unit | None  (pre-flight, no write)
      ├── get(name)                           → Unit   (UnitNotFoundError)
      ├── has(name)                           → bool
      ├── lock(name)                          → per-name mutual exclusion
      └── has_call / record_call              → once-guarded call journal

Idempotent-by-name: creating a name that already exists with the same
kind/args fingerprint returns the existing unit untouched.  A different
fingerprint raises ``UnitAlreadyExistsError``; the registry never silently
substitutes a re-created unit.

``create`` persists through the store before returning, so a crash right
after it leaves the registry consistent for a retry.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from stagewise.core.errors import RegistryError, UnitAlreadyExistsError, UnitNotFoundError
from stagewise.core.hashing import canonicalize, compute_fingerprint
from stagewise.core.logging import get_logger
from stagewise.ledger.client import Receipt
from stagewise.registry.models import CallRecord, Unit
from stagewise.registry.store import MemoryUnitStore, UnitStore

logger = get_logger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


def validate_unit_name(name: str) -> str:
    """Unit names double as file names in the JSON store."""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise RegistryError(f"Invalid unit name: {name!r}")
    return name


class UnitRegistry:
    """Authoritative record of which units exist and their identities."""

    def __init__(self, store: UnitStore | None = None) -> None:
        self._store = store if store is not None else MemoryUnitStore()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def store(self) -> UnitStore:
        return self._store

    # =========================================================================
    # Locking
    # =========================================================================

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Hold the per-name lock (re-entrant) for a check → create sequence."""
        with self._locks_guard:
            name_lock = self._locks.setdefault(name, threading.RLock())
        with name_lock:
            yield

    # =========================================================================
    # Units
    # =========================================================================

    def check(self, name: str, kind: str, args: Sequence[Any]) -> Unit | None:
        """Return the existing unit for a matching request, None if absent.

        Raises:
            UnitAlreadyExistsError: name exists with a different fingerprint
        """
        validate_unit_name(name)
        existing = self._store.get(name)
        if existing is None:
            return None
        requested = compute_fingerprint(kind, args)
        if existing.fingerprint != requested:
            raise UnitAlreadyExistsError(name, existing.fingerprint, requested)
        return existing

    def create(
        self,
        name: str,
        kind: str,
        args: Sequence[Any],
        identity: str,
        *,
        receipt: Receipt | None = None,
        stage: str | None = None,
    ) -> Unit:
        """Record a created unit, or return the existing one for an identical request."""
        with self.lock(name):
            existing = self.check(name, kind, args)
            if existing is not None:
                logger.debug("registry.create_noop", unit=name, identity=existing.identity)
                return existing

            unit = Unit(
                name=name,
                identity=identity,
                kind=kind,
                creation_args=canonicalize(list(args)),
                fingerprint=compute_fingerprint(kind, args),
                receipt=receipt,
                stage=stage,
            )
            self._store.put(unit)

        logger.info("registry.recorded", unit=name, kind=kind, identity=identity)
        return unit

    def get(self, name: str) -> Unit:
        if not isinstance(name, str) or not _NAME_RE.match(name):
            raise UnitNotFoundError(name)
        unit = self._store.get(name)
        if unit is None:
            raise UnitNotFoundError(name)
        return unit

    def has(self, name: str) -> bool:
        try:
            self.get(name)
        except RegistryError:
            return False
        return True

    def units(self) -> list[Unit]:
        """All units, oldest first."""
        return sorted(self._store.all(), key=lambda u: (u.created_at, u.name))

    def names(self) -> list[str]:
        return [u.name for u in self.units()]

    def snapshot(self) -> dict[str, str]:
        """name → identity for every unit (handy for comparing end states)."""
        return {u.name: u.identity for u in self.units()}

    def clear(self) -> None:
        """Wipe every unit and call record.  Local networks and tests only."""
        self._store.clear()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        return len(self._store.all())

    # =========================================================================
    # Call journal
    # =========================================================================

    def has_call(self, key: str) -> bool:
        return self._store.get_call(key) is not None

    def record_call(self, record: CallRecord) -> CallRecord:
        self._store.put_call(record)
        logger.debug("registry.call_recorded", key=record.key, unit=record.unit, operation=record.operation)
        return record

    def calls(self) -> list[CallRecord]:
        return sorted(self._store.calls(), key=lambda c: c.recorded_at)


__all__ = ["UnitRegistry", "validate_unit_name"]
