"""
HostFacts: the environment snapshot taken before provisioning.

Captures everything the precondition checker and the step builders need
to know about the machine: privilege level, the invoking user behind
sudo, and the OS release descriptor.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HostFacts(BaseModel):
    """Read-only snapshot of the host at the start of a run."""

    euid: int
    sudo_user: str | None = None

    os_release_path: str = "/etc/os-release"
    os_release_found: bool = False
    os_release: dict[str, str] = Field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        return self.euid == 0

    @property
    def os_name(self) -> str:
        """``NAME`` field from os-release (empty when unknown)."""
        return self.os_release.get("NAME", "")

    @property
    def version_id(self) -> str:
        """``VERSION_ID`` field from os-release (empty when unknown)."""
        return self.os_release.get("VERSION_ID", "")
