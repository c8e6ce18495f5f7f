"""
Registry stores — where units and call records actually live.

``UnitRegistry`` owns the semantics (idempotent-by-name creation, drift
detection, per-name locking); a store only persists and returns records.

Stores:
    MemoryUnitStore   process-local dicts, for tests
    JsonUnitStore     one JSON document per unit, hardhat-deploy layout::

        <root>/
          localhost/
            Treasury.json
            PoolUSDC.json
            .calls.json        journal of once-guarded calls

Every JSON write goes to a temporary file in the same directory and is
moved into place with ``os.replace`` after ``fsync``, and the directory is
fsynced after the rename, so a crash leaves either the old document or the
new one, never a torn file.  ``put`` returns only after the write is durable.

Tags:
    registry, persistence, json, atomic-write, stagewise
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from stagewise.core.errors import RegistryError
from stagewise.core.logging import get_logger
from stagewise.core.network import Network
from stagewise.registry.models import CallRecord, Unit

logger = get_logger(__name__)

CALLS_FILE = ".calls.json"


class UnitStore(Protocol):
    """Persistence backend for ``UnitRegistry``."""

    def get(self, name: str) -> Unit | None: ...

    def put(self, unit: Unit) -> None: ...

    def all(self) -> list[Unit]: ...

    def get_call(self, key: str) -> CallRecord | None: ...

    def put_call(self, record: CallRecord) -> None: ...

    def calls(self) -> list[CallRecord]: ...

    def clear(self) -> None: ...


class MemoryUnitStore:
    """In-memory store (not durable)."""

    def __init__(self) -> None:
        self._units: dict[str, Unit] = {}
        self._calls: dict[str, CallRecord] = {}

    def get(self, name: str) -> Unit | None:
        return self._units.get(name)

    def put(self, unit: Unit) -> None:
        self._units[unit.name] = unit

    def all(self) -> list[Unit]:
        return list(self._units.values())

    def get_call(self, key: str) -> CallRecord | None:
        return self._calls.get(key)

    def put_call(self, record: CallRecord) -> None:
        self._calls[record.key] = record

    def calls(self) -> list[CallRecord]:
        return list(self._calls.values())

    def clear(self) -> None:
        self._units.clear()
        self._calls.clear()


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` atomically (temp file + fsync + replace + directory fsync)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    _fsync_directory(path.parent)


def _fsync_directory(directory: Path) -> None:
    """Flush the directory entry so the rename itself survives a crash."""
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise RegistryError(f"Corrupt registry document {path}: {e}", cause=e) from e


class JsonUnitStore:
    """Durable store: one JSON file per unit under ``<root>/<network>/``."""

    def __init__(self, root: str | Path, network: Network | str) -> None:
        self.network = Network.parse(network)
        self.directory = Path(root) / self.network.value
        self._lock = threading.Lock()

    def _unit_path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    @property
    def _calls_path(self) -> Path:
        return self.directory / CALLS_FILE

    def get(self, name: str) -> Unit | None:
        path = self._unit_path(name)
        if not path.is_file():
            return None
        return Unit.model_validate(_read_json(path))

    def put(self, unit: Unit) -> None:
        text = json.dumps(unit.model_dump(mode="json"), indent=2)
        with self._lock:
            _atomic_write(self._unit_path(unit.name), text + "\n")
        logger.debug("registry.persisted", unit=unit.name, path=str(self._unit_path(unit.name)))

    def all(self) -> list[Unit]:
        if not self.directory.is_dir():
            return []
        units = [
            Unit.model_validate(_read_json(path))
            for path in sorted(self.directory.glob("*.json"))
            if not path.name.startswith(".")
        ]
        return units

    def _load_calls(self) -> dict[str, CallRecord]:
        if not self._calls_path.is_file():
            return {}
        data = _read_json(self._calls_path)
        return {key: CallRecord.model_validate(value) for key, value in data.items()}

    def get_call(self, key: str) -> CallRecord | None:
        return self._load_calls().get(key)

    def put_call(self, record: CallRecord) -> None:
        with self._lock:
            calls = self._load_calls()
            calls[record.key] = record
            payload = {key: value.model_dump(mode="json") for key, value in calls.items()}
            _atomic_write(self._calls_path, json.dumps(payload, indent=2) + "\n")

    def calls(self) -> list[CallRecord]:
        return list(self._load_calls().values())

    def clear(self) -> None:
        with self._lock:
            if not self.directory.is_dir():
                return
            for path in self.directory.glob("*.json"):
                path.unlink()
            self._calls_path.unlink(missing_ok=True)
        logger.warning("registry.cleared", path=str(self.directory))


__all__ = ["UnitStore", "MemoryUnitStore", "JsonUnitStore", "CALLS_FILE"]
