"""
stagewise.registry — durable unit registry.

Example::

    from stagewise.registry import JsonUnitStore, UnitRegistry

    registry = UnitRegistry(JsonUnitStore("deployments", "localhost"))
    treasury = registry.get("Treasury")
"""

from stagewise.registry.models import CallRecord, Unit
from stagewise.registry.registry import UnitRegistry, validate_unit_name
from stagewise.registry.store import JsonUnitStore, MemoryUnitStore, UnitStore

__all__ = [
    "CallRecord",
    "Unit",
    "UnitRegistry",
    "validate_unit_name",
    "JsonUnitStore",
    "MemoryUnitStore",
    "UnitStore",
]
