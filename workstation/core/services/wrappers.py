"""
Compiler wrapper generator: render ``gcc``, ``g++`` and ``build``.

The wrappers live in a directory that precedes ``/usr/bin`` on PATH and
pin every compilation to one flag set (static, stripped, fixed standard
and optimisation level) so that every entry point produces the same kind
of binary.

    gcc <source> [...]        C compile, extra arguments ignored
    g++ <source> [...]        C++ compile, extra arguments ignored
    build <source> [output]   dispatch on the source file extension
"""

from __future__ import annotations

import shlex
from pathlib import Path

from workstation.core.models.config import CompilerProfile, WrapperSettings
from workstation.core.models.template import GeneratedFile

WRAPPER_NAMES = ("gcc", "g++", "build")


# ── Templates ───────────────────────────────────────────────────
# Tokens in {braces} are replaced by _render(); bash's own ${...}
# expansions never contain a bare {token}.

_SINGLE_SOURCE_WRAPPER = """\
#!/bin/bash
# Generated by workstation-provisioner. Overwritten on every run.
echo "DEBUG: Overriding {tool} command with default {language} flags."
if [ "$#" -lt 1 ]; then
  echo "DEBUG: No source file provided." >&2
  exit 1
fi
src="$1"
echo "DEBUG: Compiling $src using {tool} default flags."
exec {command} -o {output} "$src"{libraries}
"""

_BUILD_DISPATCHER = """\
#!/bin/bash
# Generated by workstation-provisioner. Overwritten on every run.
echo "DEBUG: Starting build process..."
if [ "$#" -eq 0 ]; then
  echo "DEBUG: No input file provided. Usage: build <source_file> [output_file]" >&2
  exit 1
fi
src="$1"
out="${2:-}"
[ -n "$out" ] || out={output}
ext="${src##*.}"
case "$ext" in
  {c_patterns})
    echo "DEBUG: Detected C source file."
    {c_command} -o "$out" "$src"{c_libraries} || exit $?
    ;;
  {cxx_patterns})
    echo "DEBUG: Detected C++ source file."
    {cxx_command} -o "$out" "$src"{cxx_libraries} || exit $?
    ;;
  *)
    echo "DEBUG: Unsupported file extension: $ext" >&2
    exit 1
    ;;
esac
echo "DEBUG: Build complete."
"""


def _render(template: str, values: dict[str, str]) -> str:
    result = template
    for key, value in values.items():
        result = result.replace(f"{{{key}}}", value)
    return result


def compiler_command(profile: CompilerProfile) -> str:
    """The pinned compiler and its frozen flags, shell-quoted."""
    return shlex.join([profile.compiler, *profile.flags])


def _libraries(profile: CompilerProfile) -> str:
    if not profile.libraries:
        return ""
    return " " + shlex.join(profile.libraries)


def _patterns(extensions: list[str]) -> str:
    return "|".join(shlex.quote(ext) for ext in extensions)


def render_c_wrapper(settings: WrapperSettings) -> str:
    """Script text for the ``gcc`` wrapper."""
    return _render(_SINGLE_SOURCE_WRAPPER, {
        "tool": "gcc",
        "language": "C",
        "command": compiler_command(settings.c),
        "output": shlex.quote(settings.output_name),
        "libraries": _libraries(settings.c),
    })


def render_cxx_wrapper(settings: WrapperSettings) -> str:
    """Script text for the ``g++`` wrapper."""
    return _render(_SINGLE_SOURCE_WRAPPER, {
        "tool": "g++",
        "language": "C++",
        "command": compiler_command(settings.cxx),
        "output": shlex.quote(settings.output_name),
        "libraries": _libraries(settings.cxx),
    })


def render_build_dispatcher(settings: WrapperSettings) -> str:
    """Script text for the ``build`` dispatcher."""
    return _render(_BUILD_DISPATCHER, {
        "output": shlex.quote(settings.output_name),
        "c_patterns": _patterns(settings.c_extensions),
        "c_command": compiler_command(settings.c),
        "c_libraries": _libraries(settings.c),
        "cxx_patterns": _patterns(settings.cxx_extensions),
        "cxx_command": compiler_command(settings.cxx),
        "cxx_libraries": _libraries(settings.cxx),
    })


def generate_wrappers(settings: WrapperSettings, bin_dir: str | None = None) -> list[GeneratedFile]:
    """Render all three wrappers for ``bin_dir`` (default: settings.bin_dir)."""
    target = Path(bin_dir or settings.bin_dir)
    return [
        GeneratedFile(
            path=str(target / "gcc"),
            content=render_c_wrapper(settings),
            reason="Pin C compilations to the contest flag set",
        ),
        GeneratedFile(
            path=str(target / "g++"),
            content=render_cxx_wrapper(settings),
            reason="Pin C++ compilations to the contest flag set",
        ),
        GeneratedFile(
            path=str(target / "build"),
            content=render_build_dispatcher(settings),
            reason="Compile a source file with the compiler matching its extension",
        ),
    ]
