"""
stagewise.core — shared primitives: errors, logging, settings, networks,
constant tables and fingerprint hashing.
"""

from stagewise.core.constants import ConstantTable, is_address
from stagewise.core.errors import (
    ConfigError,
    DeployError,
    ErrorCategory,
    ErrorContext,
    InvalidConstantError,
    MissingConstantError,
    RegistryError,
    RemoteFailure,
    ResolverError,
    StageError,
    UnitAlreadyExistsError,
    UnitNotFoundError,
    UnknownNetworkError,
)
from stagewise.core.hashing import compute_fingerprint, compute_hash
from stagewise.core.network import (
    Network,
    NetworkFilter,
    any_network,
    except_,
    live_only,
    local_only,
    only,
)

__all__ = [
    "ConstantTable",
    "is_address",
    "ConfigError",
    "DeployError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConstantError",
    "MissingConstantError",
    "RegistryError",
    "RemoteFailure",
    "ResolverError",
    "StageError",
    "UnitAlreadyExistsError",
    "UnitNotFoundError",
    "UnknownNetworkError",
    "compute_fingerprint",
    "compute_hash",
    "Network",
    "NetworkFilter",
    "any_network",
    "except_",
    "live_only",
    "local_only",
    "only",
]
