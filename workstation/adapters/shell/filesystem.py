"""
File-writing adapter.

The compiler wrappers are written through this adapter so each file the
run creates has a receipt and is left alone in a dry run.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """Write a file, replacing any existing one, then chmod it.

    Action params:
        path (str): Absolute destination.
        content (str): Full file body.
        mode (int): Permission bits, default 0o644.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        path = context.param("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not os.path.isabs(path):
            return False, f"Path must be absolute: {path}"
        if not isinstance(context.param("content"), str):
            return False, "Missing required param: 'content'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        target = Path(context.param("path"))
        content: str = context.param("content")
        mode: int = context.param("mode", 0o644)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            target.chmod(mode)
        except OSError as e:
            return Receipt.failure(
                self.name,
                context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"path": str(target)},
            )

        logger.debug("Wrote %s (%o)", target, mode)
        return Receipt.success(
            self.name,
            context.action.id,
            output=f"Created {target}",
            metadata={"path": str(target), "bytes": len(content.encode()), "mode": oct(mode)},
        )
