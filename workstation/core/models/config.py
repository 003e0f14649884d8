"""
Workstation configuration: what the provisioning sequence installs.

Loaded from ``workstation.yml`` when one exists. Every field has a default,
and the defaults reproduce the contest workstation setup exactly, so an
empty or missing file yields the standard build.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TargetOS(_Section):
    """The single OS release the sequence is allowed to run on."""

    name: str = "Ubuntu"
    version_prefix: str = "22.04"

    @property
    def label(self) -> str:
        return f"{self.name} {self.version_prefix}"


class AptRepository(_Section):
    """A third-party APT repository and the packages it provides.

    ``key_method``:
        apt-key:  armored key piped into ``apt-key add -``
        keyring:  key dearmored into ``/etc/apt/trusted.gpg.d/<name>.gpg``

    ``source_method``:
        add-apt-repository: ``apt-add-repository -y "<source>"``
        list-file:          ``<source>`` written to ``sources.list.d/<name>.list``
    """

    name: str
    key_url: str
    key_method: Literal["apt-key", "keyring"] = "keyring"
    source: str
    source_method: Literal["add-apt-repository", "list-file"] = "list-file"
    packages: list[str] = Field(default_factory=list)


def _default_repositories() -> list[AptRepository]:
    return [
        AptRepository(
            name="sublime-text",
            key_url="https://download.sublimetext.com/sublimehq-pub.gpg",
            key_method="apt-key",
            source="deb https://download.sublimetext.com/ apt/stable/",
            source_method="add-apt-repository",
            packages=["sublime-text"],
        ),
        AptRepository(
            name="vscode",
            key_url="https://packages.microsoft.com/keys/microsoft.asc",
            key_method="keyring",
            source="deb [arch=amd64] https://packages.microsoft.com/repos/code stable main",
            source_method="list-file",
            packages=["code"],
        ),
    ]


class PackageSettings(_Section):
    compilers: list[str] = Field(default_factory=lambda: ["gcc-11", "g++-11"])
    compiler_probe: str = "gcc-11"       # reported with --version after install
    repositories: list[AptRepository] = Field(default_factory=_default_repositories)
    browser: list[str] = Field(default_factory=lambda: ["firefox"])
    trusted_keys_dir: str = "/etc/apt/trusted.gpg.d"
    sources_dir: str = "/etc/apt/sources.list.d"


class ExtensionSettings(_Section):
    """Editor extension installed for the invoking (non-root) user."""

    editor_command: str = "code"
    extension_id: str = "ms-vscode.cpptools"
    force: bool = True


class CompilerProfile(_Section):
    """A pinned compiler invocation: binary, frozen flags, trailing libs."""

    compiler: str
    flags: list[str]
    libraries: list[str] = Field(default_factory=list)


class WrapperSettings(_Section):
    bin_dir: str = "/usr/local/bin"
    # Default -o target; a bare file name, no path or shell syntax
    output_name: str = Field(default="outputFile", pattern=r"^[A-Za-z0-9._+-]+$")
    c: CompilerProfile = Field(
        default_factory=lambda: CompilerProfile(
            compiler="/usr/bin/gcc-11",
            flags=["-DEVAL", "-std=c11", "-O2", "-pipe", "-static", "-s"],
            libraries=["-lm"],
        )
    )
    cxx: CompilerProfile = Field(
        default_factory=lambda: CompilerProfile(
            compiler="/usr/bin/g++-11",
            flags=["-DEVAL", "-std=c++17", "-O2", "-pipe", "-static", "-s"],
        )
    )
    c_extensions: list[str] = Field(default_factory=lambda: ["c"])
    cxx_extensions: list[str] = Field(default_factory=lambda: ["cpp", "cc", "cxx"])


def _default_grub_keys() -> dict[str, str]:
    return {
        "GRUB_DISABLE_OS_PROBER": "false",
        "GRUB_TIMEOUT": "15",
        "GRUB_DEFAULT": "saved",
        "GRUB_SAVEDEFAULT": "true",
    }


class GrubSettings(_Section):
    packages: list[str] = Field(default_factory=lambda: ["grub-efi-amd64", "os-prober"])
    defaults_file: str = "/etc/default/grub"
    menu_file: str = "/boot/grub/grub.cfg"
    keys: dict[str, str] = Field(default_factory=_default_grub_keys)
    default_entry_prefix: str = "Windows Boot Manager"
    fallback_label: str = "Ubuntu"     # only used in the "not found" message


class PathSettings(_Section):
    os_release: str = "/etc/os-release"
    state_dir: str = "/var/lib/workstation"


class WorkstationConfig(_Section):
    """Root configuration: loaded from workstation.yml."""

    version: int = 1

    target: TargetOS = Field(default_factory=TargetOS)
    packages: PackageSettings = Field(default_factory=PackageSettings)
    extension: ExtensionSettings = Field(default_factory=ExtensionSettings)
    wrappers: WrapperSettings = Field(default_factory=WrapperSettings)
    grub: GrubSettings = Field(default_factory=GrubSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    command_timeout: int | None = None  # seconds; None = wait forever
