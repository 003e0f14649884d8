"""
Step builders: turn the configuration into the ordered provisioning plan.

Each builder returns one ProvisionStep whose actions are plain data; the
executor dispatches them. Action IDs are ``<step>:<what>`` and stable
across runs, so tests and the state file can refer to them.

Order:
    packages → extension → wrappers → bootloader
"""

from __future__ import annotations

from workstation.core.models.action import Action
from workstation.core.models.config import WorkstationConfig
from workstation.core.models.host import HostFacts
from workstation.core.models.step import ProvisionStep
from workstation.core.services.wrappers import generate_wrappers

STEP_PACKAGES = "packages"
STEP_EXTENSION = "extension"
STEP_WRAPPERS = "wrappers"
STEP_BOOTLOADER = "bootloader"

STEP_ORDER = (STEP_PACKAGES, STEP_EXTENSION, STEP_WRAPPERS, STEP_BOOTLOADER)


def build_package_step(config: WorkstationConfig) -> ProvisionStep:
    """Index refresh, toolchain, third-party repositories, applications, browser."""
    pkgs = config.packages
    step = ProvisionStep(
        name=STEP_PACKAGES,
        description="Install the compiler toolchain, editors and browser",
    )

    step.add(Action(
        id="packages:update-index",
        name="Update package list",
        adapter="apt",
        params={"operation": "update"},
    ))
    step.add(Action(
        id="packages:install-compilers",
        name=f"Install {' and '.join(pkgs.compilers)}",
        adapter="apt",
        params={"operation": "install", "packages": list(pkgs.compilers)},
    ))
    if pkgs.compiler_probe:
        step.add(Action(
            id="packages:probe-compiler",
            name=f"Report installed {pkgs.compiler_probe} version",
            adapter="shell",
            params={"argv": [pkgs.compiler_probe, "--version"], "first_line": True},
        ))

    for repo in pkgs.repositories:
        step.add(Action(
            id=f"packages:key-{repo.name}",
            name=f"Register {repo.name} signing key",
            adapter="apt",
            params={
                "operation": "add-key",
                "name": repo.name,
                "url": repo.key_url,
                "method": repo.key_method,
                "keys_dir": pkgs.trusted_keys_dir,
            },
        ))
        step.add(Action(
            id=f"packages:repo-{repo.name}",
            name=f"Add {repo.name} APT repository",
            adapter="apt",
            params={
                "operation": "add-repository",
                "name": repo.name,
                "source": repo.source,
                "method": repo.source_method,
                "sources_dir": pkgs.sources_dir,
            },
        ))

    applications = [p for repo in pkgs.repositories for p in repo.packages]
    if pkgs.repositories:
        step.add(Action(
            id="packages:refresh-index",
            name="Refresh package list with third-party repositories",
            adapter="apt",
            params={"operation": "update"},
        ))
    if applications:
        step.add(Action(
            id="packages:install-applications",
            name=f"Install {', '.join(applications)}",
            adapter="apt",
            params={"operation": "install", "packages": applications},
        ))
    if pkgs.browser:
        step.add(Action(
            id="packages:install-browser",
            name=f"Install {', '.join(pkgs.browser)}",
            adapter="apt",
            params={"operation": "install", "packages": list(pkgs.browser)},
        ))

    return step


def build_extension_step(config: WorkstationConfig, facts: HostFacts) -> ProvisionStep:
    """Editor extension for the user behind sudo, or a soft skip."""
    ext = config.extension
    step = ProvisionStep(
        name=STEP_EXTENSION,
        description=f"Install the {ext.extension_id} editor extension",
        best_effort=True,
    )

    argv = [ext.editor_command, "--install-extension", ext.extension_id]
    if ext.force:
        argv.append("--force")

    action = Action(
        id="extension:install",
        name=f"Install {ext.extension_id} for {facts.sudo_user or 'the invoking user'}",
        adapter="shell",
        params={"argv": argv, "run_as": facts.sudo_user},
    )
    if not facts.sudo_user:
        action.skip_reason = "SUDO_USER not defined; skipping VS Code extension installation."

    step.add(action)
    return step


def build_wrapper_step(config: WorkstationConfig, bin_dir: str | None = None) -> ProvisionStep:
    """Write the three compiler wrappers, executable, overwriting."""
    step = ProvisionStep(
        name=STEP_WRAPPERS,
        description=f"Create compiler wrappers in {bin_dir or config.wrappers.bin_dir}",
    )
    for generated in generate_wrappers(config.wrappers, bin_dir=bin_dir):
        tool = generated.path.rsplit("/", 1)[-1]
        step.add(Action(
            id=f"wrappers:{tool}",
            name=f"Create {generated.path}",
            adapter="filesystem",
            params={
                "path": generated.path,
                "content": generated.content,
                "mode": generated.mode,
                "reason": generated.reason,
            },
        ))
    return step


def build_bootloader_step(config: WorkstationConfig) -> ProvisionStep:
    """UEFI GRUB, OS detection, defaults, menu regeneration, default entry."""
    grub = config.grub
    step = ProvisionStep(
        name=STEP_BOOTLOADER,
        description="Install and configure GRUB for UEFI",
    )

    if grub.packages:
        step.add(Action(
            id="bootloader:install-packages",
            name=f"Install {' and '.join(grub.packages)}",
            adapter="apt",
            params={"operation": "install", "packages": list(grub.packages)},
        ))
    step.add(Action(
        id="bootloader:os-prober",
        name="Detect other operating systems",
        adapter="grub",
        params={"operation": "probe"},
    ))
    step.add(Action(
        id="bootloader:set-keys",
        name=f"Configure {grub.defaults_file}",
        adapter="grub",
        params={"operation": "set-keys", "path": grub.defaults_file, "keys": dict(grub.keys)},
    ))
    step.add(Action(
        id="bootloader:update-grub",
        name="Regenerate the boot menu",
        adapter="grub",
        params={"operation": "update"},
    ))
    step.add(Action(
        id="bootloader:default-entry",
        name=f"Make {grub.default_entry_prefix} the default boot entry",
        adapter="grub",
        best_effort=True,
        params={
            "operation": "set-default-entry",
            "menu_file": grub.menu_file,
            "prefix": grub.default_entry_prefix,
            "fallback_label": grub.fallback_label,
        },
    ))
    return step


def build_steps(
    config: WorkstationConfig,
    facts: HostFacts,
    only: list[str] | None = None,
    bin_dir: str | None = None,
) -> list[ProvisionStep]:
    """Build the full ordered plan.

    Args:
        config: Workstation configuration.
        facts: Host snapshot (supplies the invoking user).
        only: Restrict to these step names, keeping the canonical order.
        bin_dir: Override the wrapper directory.
    """
    steps = [
        build_package_step(config),
        build_extension_step(config, facts),
        build_wrapper_step(config, bin_dir=bin_dir),
        build_bootloader_step(config),
    ]
    if only:
        unknown = set(only) - set(STEP_ORDER)
        if unknown:
            raise ValueError(f"Unknown step(s): {', '.join(sorted(unknown))}")
        steps = [s for s in steps if s.name in only]
    return steps
