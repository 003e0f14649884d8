"""Adapters: bindings to the host tools a provisioning run drives.

Public re-exports for convenient access.
"""

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.adapters.mock import MockAdapter
from workstation.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
