"""
Stand-in adapter for ``provision --mock`` and the test suite.

Records every context it is handed and answers with a scripted receipt
when one was set for the action id, else a plain success.
"""

from __future__ import annotations

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.core.models.action import Receipt


class MockAdapter(Adapter):
    def __init__(self, adapter_name: str = "mock", available: bool = True):
        self._name = adapter_name
        self._available = available
        self._scripted: dict[str, Receipt] = {}
        self.calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def executed_ids(self) -> list[str]:
        return [context.action.id for context in self.calls]

    def calls_for_step(self, step: str) -> list[ExecutionContext]:
        return [context for context in self.calls if context.action.step == step]

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._scripted[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        self.set_response(action_id, Receipt.failure(self._name, action_id, error=error))

    def set_skip(self, action_id: str, reason: str = "Mock skip") -> None:
        self.set_response(action_id, Receipt.skip(self._name, action_id, reason=reason))

    def reset(self) -> None:
        self.calls.clear()
        self._scripted.clear()

    def is_available(self) -> bool:
        return self._available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self.calls.append(context)
        action_id = context.action.id
        scripted = self._scripted.get(action_id)
        if scripted is not None:
            return scripted
        return Receipt.success(self._name, action_id, output="[mock] executed", metadata={"mock": True})
