"""
Generated file model: used by the wrapper generator.
"""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A file rendered by the provisioner and written onto the host.

    Attributes:
        path:    Absolute destination path.
        content: Full file content.
        mode:    Permission bits applied after writing.
        reason:  Why this file was generated.
    """

    path: str
    content: str
    mode: int = 0o755
    reason: str = ""
