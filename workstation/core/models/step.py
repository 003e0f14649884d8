"""
ProvisionStep: an ordered group of actions.

The sequencer runs steps in order. A step either succeeds as a whole,
or its first failing action ends the run, unless the step (or the
individual action) is marked best-effort.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from workstation.core.models.action import Action


class ProvisionStep(BaseModel):
    """One stage of the provisioning sequence."""

    name: str
    description: str = ""
    best_effort: bool = False
    actions: list[Action] = Field(default_factory=list)

    def add(self, action: Action) -> Action:
        """Append an action, stamping it with this step's name."""
        action.step = self.name
        if self.best_effort:
            action.best_effort = True
        self.actions.append(action)
        return action

    @property
    def action_count(self) -> int:
        return len(self.actions)
