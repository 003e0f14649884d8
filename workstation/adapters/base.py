"""
Adapter contract between the provisioning sequencer and the host.

Each host tool the run drives (apt-get, code, update-grub, plain files)
sits behind one adapter. The executor hands an adapter an
``ExecutionContext`` and gets a ``Receipt`` back; it never calls the
tools itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from workstation.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """The action being dispatched plus run-wide settings."""

    action: Action
    dry_run: bool = False
    timeout: int | None = None

    def param(self, key: str, default: Any = None) -> Any:
        """Read one of the action's params."""
        return self.action.params.get(key, default)


class Adapter(ABC):
    """One host tool, seen through validate/execute.

    ``execute`` reports problems in the returned receipt. A subclass
    that lets an exception escape is a bug; the registry turns it into
    a failed receipt anyway.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Routing key matched against ``Action.adapter``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backing tool is installed on this host."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params; returns ``(ok, message)``."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the action."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
