"""
``current.json`` reader and writer.

Saving goes through a temp file in the same directory followed by a
rename, so readers see either the old document or the new one.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from workstation.core.models.state import ProvisionState

logger = logging.getLogger(__name__)

STATE_FILENAME = "current.json"


def default_state_path(state_dir: Path) -> Path:
    return state_dir / STATE_FILENAME


def load_state(path: Path) -> ProvisionState:
    """Read the state file; a missing or damaged one yields an empty state."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No state file at %s; starting fresh", path)
        return ProvisionState()
    except OSError as e:
        logger.warning("Cannot read %s: %s; starting fresh", path, e)
        return ProvisionState()

    try:
        return ProvisionState.model_validate_json(raw)
    except ValueError as e:
        logger.warning("Ignoring damaged state file %s: %s", path, e)
        return ProvisionState()


def save_state(state: ProvisionState, path: Path) -> None:
    """Stamp ``updated_at`` and replace ``path`` atomically. OSError propagates."""
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=".current-", suffix=".tmp", delete=False
    )
    staged = Path(tmp.name)
    try:
        with tmp:
            tmp.write(state.model_dump_json(indent=2) + "\n")
        staged.replace(path)
    except OSError:
        staged.unlink(missing_ok=True)
        raise
    logger.debug("Saved %s", path)
