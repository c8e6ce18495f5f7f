"""
Typed constant table injected into stages.

External addresses, fee rates and schedule inputs are not literals inside
stage bodies.  They live in a ``ConstantTable`` handed to the stage set at
construction time, so the same stages run against any environment by
swapping the table.

Tables load from a mapping or from TOML.  The ``[constants]`` section holds
defaults; ``[networks.<name>]`` sections overlay them for one network::

    [constants]
    usdc = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
    mint_fee_percent = "0.3"

    [networks.mumbai]
    usdc = "0x0000000000000000000000000000000000000001"

Accessors validate shape: ``address()`` requires a ``0x``-prefixed 20-byte
hex string, ``integer()`` an int (bools rejected), ``string()`` a str.
"""

from __future__ import annotations

import re
import tomllib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from stagewise.core.errors import ConfigError, InvalidConstantError, MissingConstantError
from stagewise.core.network import Network

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

_MISSING = object()


def is_address(value: Any) -> bool:
    """Check whether ``value`` looks like a 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


class ConstantTable(Mapping[str, Any]):
    """Immutable name → value table with typed accessors."""

    def __init__(self, values: Mapping[str, Any] | None = None, *, source: str = "<mapping>"):
        self._values: dict[str, Any] = dict(values or {})
        self.source = source

    # ── Factories ────────────────────────────────────────────────

    @classmethod
    def from_toml(cls, path: str | Path, network: Network | str | None = None) -> ConstantTable:
        """Load a table from a TOML file, overlaying ``[networks.<network>]``."""
        path = Path(path)
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ConfigError(f"Constants file not found: {path}") from None
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}", cause=e) from e

        values = dict(data.get("constants", {}))
        if network is not None:
            key = Network.parse(network).value
            values.update(data.get("networks", {}).get(key, {}))
        return cls(values, source=str(path))

    def with_overrides(self, **overrides: Any) -> ConstantTable:
        """Return a new table with ``overrides`` applied on top."""
        return ConstantTable({**self._values, **overrides}, source=self.source)

    # ── Mapping protocol ─────────────────────────────────────────

    def __getitem__(self, key: str) -> Any:
        try:
            return self._values[key]
        except KeyError:
            raise MissingConstantError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ConstantTable({len(self._values)} constants, source={self.source!r})"

    # ── Typed accessors ──────────────────────────────────────────

    def get(self, key: str, default: Any = _MISSING) -> Any:
        if key in self._values:
            return self._values[key]
        if default is _MISSING:
            raise MissingConstantError(key)
        return default

    def address(self, key: str) -> str:
        value = self[key]
        if not is_address(value):
            raise InvalidConstantError(key, value, f"Constant {key} is not an address: {value!r}")
        return value

    def addresses(self, key: str) -> list[str]:
        """A list of addresses (e.g. a swap route)."""
        value = self[key]
        if not isinstance(value, list | tuple) or not all(is_address(v) for v in value):
            raise InvalidConstantError(key, value, f"Constant {key} is not a list of addresses")
        return list(value)

    def integer(self, key: str) -> int:
        value = self[key]
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConstantError(key, value, f"Constant {key} is not an integer: {value!r}")
        return value

    def string(self, key: str) -> str:
        value = self[key]
        if not isinstance(value, str):
            raise InvalidConstantError(key, value, f"Constant {key} is not a string: {value!r}")
        return value


__all__ = ["ConstantTable", "is_address"]
