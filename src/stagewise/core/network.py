"""Target networks and the filters stages use to gate on them.

Stages never compare network-name strings.  Each stage carries a
``NetworkFilter`` built from the typed ``Network`` enum::

    local_only            hardhat, localhost
    live_only             networks flagged live (mumbai, matic_staging, matic)
    any_network           every network
    only(Network.MUMBAI)  explicit allow-list
    except_(Network.MATIC)

Filters compose with ``|`` and ``&`` and always have a readable ``label``
for plans and logs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from stagewise.core.errors import UnknownNetworkError


class Network(str, Enum):
    """Known target networks."""

    HARDHAT = "hardhat"  # In-process dev chain
    LOCALHOST = "localhost"  # Local node on :8545
    MUMBAI = "mumbai"  # Public testnet
    MATIC_STAGING = "matic_staging"
    MATIC = "matic"

    @property
    def live(self) -> bool:
        """Whether this network holds real state (deploys cost real value)."""
        return self in _LIVE_NETWORKS

    @property
    def local(self) -> bool:
        return self in (Network.HARDHAT, Network.LOCALHOST)

    @classmethod
    def parse(cls, value: str | Network) -> Network:
        """Parse a network name (case-insensitive, ``-`` accepted for ``_``)."""
        if isinstance(value, Network):
            return value
        normalized = value.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise UnknownNetworkError(value, known=[n.value for n in cls]) from None


_LIVE_NETWORKS = frozenset({Network.MUMBAI, Network.MATIC_STAGING, Network.MATIC})


@dataclass(frozen=True)
class NetworkFilter:
    """A named predicate over ``Network``."""

    label: str
    predicate: Callable[[Network], bool]

    def __call__(self, network: Network) -> bool:
        return bool(self.predicate(network))

    def __or__(self, other: NetworkFilter) -> NetworkFilter:
        return NetworkFilter(
            label=f"({self.label} | {other.label})",
            predicate=lambda n: self(n) or other(n),
        )

    def __and__(self, other: NetworkFilter) -> NetworkFilter:
        return NetworkFilter(
            label=f"({self.label} & {other.label})",
            predicate=lambda n: self(n) and other(n),
        )

    def __repr__(self) -> str:
        return f"NetworkFilter({self.label})"


any_network = NetworkFilter("any", lambda n: True)
local_only = NetworkFilter("local", lambda n: n.local)
live_only = NetworkFilter("live", lambda n: n.live)


def only(*networks: Network | str) -> NetworkFilter:
    """Filter accepting exactly the given networks."""
    allowed = frozenset(Network.parse(n) for n in networks)
    label = ",".join(sorted(n.value for n in allowed))
    return NetworkFilter(f"only[{label}]", lambda n: n in allowed)


def except_(*networks: Network | str) -> NetworkFilter:
    """Filter accepting every network except the given ones."""
    excluded = frozenset(Network.parse(n) for n in networks)
    label = ",".join(sorted(n.value for n in excluded))
    return NetworkFilter(f"except[{label}]", lambda n: n not in excluded)


__all__ = [
    "Network",
    "NetworkFilter",
    "any_network",
    "local_only",
    "live_only",
    "only",
    "except_",
]
