"""
Adapter registry: routes provisioning actions to host adapters.

Every action the executor runs passes through ``execute_action``, which
handles the three cases a run can be in: real, dry run, and mock.
"""

from __future__ import annotations

import logging
import time

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Maps ``Action.adapter`` names to adapter instances.

    Real run: the named adapter validates, then executes.
    Dry run: the named adapter validates; nothing executes.
    Mock mode: a single stand-in receives every action, or, when none
    is set, each action gets a synthetic success.
    """

    def __init__(self, mock_mode: bool = False, timeout: int | None = None):
        self._by_name: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._stand_in: Adapter | None = None
        self._timeout = timeout

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Switch mock mode, optionally with a stand-in adapter."""
        self._mock_mode = enabled
        self._stand_in = mock_adapter

    def register(self, *adapters: Adapter) -> None:
        for adapter in adapters:
            if adapter.name in self._by_name:
                logger.warning("Replacing adapter %r", adapter.name)
            self._by_name[adapter.name] = adapter
            logger.debug("Adapter %r ready", adapter.name)

    def get(self, name: str) -> Adapter | None:
        return self._by_name.get(name)

    def list_adapters(self) -> list[str]:
        return sorted(self._by_name)

    def availability(self) -> dict[str, bool]:
        """Which registered adapters have their host tool installed."""
        found: dict[str, bool] = {}
        for name in self.list_adapters():
            try:
                found[name] = bool(self.get(name).is_available())
            except Exception as e:
                logger.debug("Availability probe for %s raised: %s", name, e)
                found[name] = False
        return found

    def execute_action(self, action: Action, dry_run: bool = False) -> Receipt:
        """Run one action and return its receipt. Never raises."""
        if action.skip_reason:
            logger.info(action.skip_reason)
            return Receipt.skip(action.adapter, action.id, reason=action.skip_reason)

        started = time.monotonic()
        adapter = self._route(action)

        if adapter is None and self._mock_mode:
            return Receipt.success(
                action.adapter,
                action.id,
                output=f"[mock] {action.adapter}:{action.id} executed",
                metadata={"mock": True, "dry_run": dry_run},
            )
        if adapter is None:
            return Receipt.failure(
                action.adapter, action.id, error=f"No adapter registered for '{action.adapter}'"
            )

        context = ExecutionContext(action=action, dry_run=dry_run, timeout=self._timeout)

        problem = self._check(adapter, context)
        if problem:
            return Receipt.failure(action.adapter, action.id, error=problem)

        if dry_run:
            return Receipt.skip(
                action.adapter,
                action.id,
                reason=f"[dry-run] Would execute {action.adapter}:{action.name or action.id}",
                metadata={"dry_run": True},
            )

        receipt = self._run(adapter, context)
        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt

    def _route(self, action: Action) -> Adapter | None:
        if self._mock_mode:
            return self._stand_in
        return self.get(action.adapter)

    @staticmethod
    def _check(adapter: Adapter, context: ExecutionContext) -> str | None:
        try:
            ok, message = adapter.validate(context)
        except Exception as e:
            return f"Validation error: {e}"
        return None if ok else f"Validation failed: {message}"

    @staticmethod
    def _run(adapter: Adapter, context: ExecutionContext) -> Receipt:
        action = context.action
        try:
            return adapter.execute(context)
        except Exception as e:
            logger.error("%s adapter raised on %s: %s", action.adapter, action.id, e)
            return Receipt.failure(action.adapter, action.id, error=f"Unexpected error: {e}")
