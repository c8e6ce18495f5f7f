"""
Structured error types for stagewise.

Every failure the deployment engine can surface is a ``DeployError``.  Errors
carry a category for routing, a retry flag (always ``False`` here: nothing
in a deployment run is retried automatically), a structured context naming
the stage, step and unit involved, and an optional chained cause.

Manifesto:
    A deployment that half-succeeds must say exactly where it stopped.
    Generic exceptions lose that; typed errors with context keep it:

    - **Typed hierarchy:** one class per failure mode the operator acts on
    - **Rich context:** stage name, step index, unit, operation
    - **Error chaining:** ledger/client exceptions are preserved as ``cause``
    - **No silent retries:** every error halts the current stage

Architecture:
    ::

        DeployError  (category, retryable, context, cause)
          ├── RegistryError          REGISTRY
          │     ├── UnitNotFoundError        dependency lookup on unknown name
          │     └── UnitAlreadyExistsError   name reused with different kind/args
          ├── RemoteFailure          REMOTE   ledger rejected create/call
          ├── ResolverError          RESOLVER invalid numeric input
          ├── ConfigError            CONFIG
          │     ├── MissingConstantError
          │     ├── InvalidConstantError
          │     └── UnknownNetworkError
          └── StageError             ORCHESTRATION  procedure raised unexpectedly

Examples:
    >>> err = UnitNotFoundError("Treasury")
    >>> err.with_context(stage="oracles", step=3)
    UnitNotFoundError("Unit not found in registry: 'Treasury'", category=REGISTRY)
    >>> err.context.stage
    'oracles'

Tags:
    error-handling, exception-hierarchy, deployment, stagewise
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    REGISTRY = "REGISTRY"  # Unit lookup / drift
    REMOTE = "REMOTE"  # Ledger client reported failure
    RESOLVER = "RESOLVER"  # Parameter arithmetic
    CONFIG = "CONFIG"  # Constants, networks, settings
    ORCHESTRATION = "ORCHESTRATION"  # Stage / run control
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a deployment error.

    Attributes:
        stage: Name of the stage that was running
        step: 1-based index of the create/call step within the stage
        unit: Unit name the step targeted
        operation: Operation name for configuration calls ("create" for creates)
        network: Target network identifier
        run_id: Deployment run identifier
        metadata: Additional key-value pairs
    """

    stage: str | None = None
    step: int | None = None
    unit: str | None = None
    operation: str | None = None
    network: str | None = None
    run_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["stage", "step", "unit", "operation", "network", "run_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DeployError(Exception):
    """
    Base exception for all stagewise errors.

    Subclasses set ``default_category`` to classify themselves.  Context is
    usually added where the failure is observed (the stage context knows the
    step index, the orchestrator knows the run id) via :meth:`with_context`.
    Fields already set are not overwritten, so the innermost observer wins.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DeployError:
        """
        Add context to this error (fluent API).

        Usage:
            raise RemoteFailure("call reverted").with_context(
                stage="main", step=4, unit="Treasury"
            )
        """
        for key, value in kwargs.items():
            if value is None:
                continue
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistryError(DeployError):
    """Unit registry error."""

    default_category = ErrorCategory.REGISTRY


class UnitNotFoundError(RegistryError):
    """
    Dependency lookup on a unit name that has not been created.

    Always an ordering or programming error in the stage sequence: a stage
    asked for a unit that no earlier stage created.
    """

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Unit not found in registry: {name!r}")
        self.context.unit = name


class UnitAlreadyExistsError(RegistryError):
    """
    A unit name is already registered with a different kind/args fingerprint.

    Indicates configuration drift between the stage definitions and what was
    deployed earlier.  Re-creating under the same name is never substituted.
    """

    def __init__(
        self,
        name: str,
        existing_fingerprint: str,
        requested_fingerprint: str,
        message: str | None = None,
    ):
        self.name = name
        self.existing_fingerprint = existing_fingerprint
        self.requested_fingerprint = requested_fingerprint
        super().__init__(
            message
            or (
                f"Unit {name!r} already exists with different kind/args "
                f"(registered {existing_fingerprint[:12]}, requested {requested_fingerprint[:12]})"
            )
        )
        self.context.unit = name


# =============================================================================
# REMOTE / RESOLVER ERRORS
# =============================================================================


class RemoteFailure(DeployError):
    """The ledger client reported failure for a create or call request."""

    default_category = ErrorCategory.REMOTE


class ResolverError(DeployError, ValueError):
    """Invalid numeric input to the parameter resolver."""

    default_category = ErrorCategory.RESOLVER


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(DeployError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class MissingConstantError(ConfigError):
    """A constant required by a stage is not defined in the constant table."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required constant: {key}")


class InvalidConstantError(ConfigError):
    """A constant is defined but has the wrong type or shape."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid value for constant {key}: {value!r}")


class UnknownNetworkError(ConfigError):
    """Network identifier is not one of the known networks."""

    def __init__(self, name: str, known: list[str] | None = None):
        self.name = name
        suffix = f" (known: {', '.join(known)})" if known else ""
        super().__init__(f"Unknown network: {name!r}{suffix}")


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class StageError(DeployError):
    """A stage procedure raised something that is not a DeployError."""

    default_category = ErrorCategory.ORCHESTRATION


def as_deploy_error(error: BaseException, message: str | None = None) -> DeployError:
    """Return ``error`` unchanged if it is a DeployError, else wrap it in StageError."""
    if isinstance(error, DeployError):
        return error
    return StageError(message or f"{type(error).__name__}: {error}", cause=error)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DeployError",
    "RegistryError",
    "UnitNotFoundError",
    "UnitAlreadyExistsError",
    "RemoteFailure",
    "ResolverError",
    "ConfigError",
    "MissingConstantError",
    "InvalidConstantError",
    "UnknownNetworkError",
    "StageError",
    "as_deploy_error",
]
