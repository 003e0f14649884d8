"""
Tests for the compiler wrappers: rendered text and real bash execution.

Generated scripts are run with bash against tracer compilers that record
the exact argv they receive.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from workstation.core.models.config import CompilerProfile, WrapperSettings
from workstation.core.services.wrappers import (
    WRAPPER_NAMES,
    compiler_command,
    generate_wrappers,
    render_build_dispatcher,
    render_c_wrapper,
    render_cxx_wrapper,
)

C_FLAGS = ["-DEVAL", "-std=c11", "-O2", "-pipe", "-static", "-s"]
CXX_FLAGS = ["-DEVAL", "-std=c++17", "-O2", "-pipe", "-static", "-s"]

needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")


def _traced_settings(tracer_compiler, c_status: int = 0) -> tuple[WrapperSettings, Path, Path]:
    gcc, gcc_log = tracer_compiler("gcc-11", status=c_status)
    gxx, gxx_log = tracer_compiler("g++-11")
    settings = WrapperSettings()
    settings.c.compiler = str(gcc)
    settings.cxx.compiler = str(gxx)
    return settings, gcc_log, gxx_log


def _install(settings: WrapperSettings, bin_dir: Path) -> None:
    bin_dir.mkdir(parents=True, exist_ok=True)
    for generated in generate_wrappers(settings, bin_dir=str(bin_dir)):
        path = Path(generated.path)
        path.write_text(generated.content)
        path.chmod(generated.mode)


def _run(script: Path, *args: str, cwd: Path) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["bash", str(script), *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )


# ── Rendering ────────────────────────────────────────────────────────


class TestRendering:
    def test_gcc_exec_line(self):
        script = render_c_wrapper(WrapperSettings())
        assert script.startswith("#!/bin/bash\n")
        assert (
            'exec /usr/bin/gcc-11 -DEVAL -std=c11 -O2 -pipe -static -s -o outputFile "$src" -lm'
            in script
        )

    def test_gxx_exec_line(self):
        script = render_cxx_wrapper(WrapperSettings())
        assert (
            'exec /usr/bin/g++-11 -DEVAL -std=c++17 -O2 -pipe -static -s -o outputFile "$src"\n'
            in script
        )
        assert "-lm" not in script

    def test_dispatcher_patterns(self):
        script = render_build_dispatcher(WrapperSettings())
        assert "  c)\n" in script
        assert "  cpp|cc|cxx)\n" in script
        assert 'out="${2:-}"\n[ -n "$out" ] || out=outputFile\n' in script

    def test_no_unrendered_tokens(self):
        settings = WrapperSettings()
        for text in (
            render_c_wrapper(settings),
            render_cxx_wrapper(settings),
            render_build_dispatcher(settings),
        ):
            for token in ("{tool}", "{command}", "{output}", "{libraries}", "{c_command}"):
                assert token not in text

    def test_compiler_command_quotes(self):
        profile = CompilerProfile(compiler="/opt/my gcc/gcc", flags=["-O2"])
        assert compiler_command(profile) == "'/opt/my gcc/gcc' -O2"

    def test_generate_paths_and_modes(self, tmp_path: Path):
        files = generate_wrappers(WrapperSettings(), bin_dir=str(tmp_path))
        assert [Path(f.path).name for f in files] == list(WRAPPER_NAMES)
        assert all(f.mode == 0o755 for f in files)
        assert all(Path(f.path).parent == tmp_path for f in files)

    def test_default_bin_dir(self):
        files = generate_wrappers(WrapperSettings())
        assert files[0].path == "/usr/local/bin/gcc"


# ── Execution ────────────────────────────────────────────────────────


@needs_bash
class TestSingleSourceWrappers:
    def test_gcc_flags(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, _ = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "gcc", "a.c", cwd=tmp_path)
        assert result.returncode == 0
        assert gcc_log.read_text().splitlines() == [*C_FLAGS, "-o", "outputFile", "a.c", "-lm"]
        assert (tmp_path / "outputFile").exists()
        assert "DEBUG: Overriding gcc command with default C flags." in result.stdout

    def test_gcc_ignores_extra_arguments(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, _ = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        _run(tmp_path / "bin" / "gcc", "a.c", "-O0", "-o", "mine", cwd=tmp_path)
        args = gcc_log.read_text().splitlines()
        assert "-O0" not in args
        assert "mine" not in args

    def test_gxx_flags(self, tmp_path: Path, tracer_compiler):
        settings, _, gxx_log = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "g++", "main.cpp", cwd=tmp_path)
        assert result.returncode == 0
        assert gxx_log.read_text().splitlines() == [*CXX_FLAGS, "-o", "outputFile", "main.cpp"]

    def test_no_source(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, _ = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "gcc", cwd=tmp_path)
        assert result.returncode == 1
        assert "No source file provided" in result.stderr
        assert not gcc_log.exists()

    def test_compiler_status_propagates(self, tmp_path: Path, tracer_compiler):
        settings, _, _ = _traced_settings(tracer_compiler, c_status=1)
        _install(settings, tmp_path / "bin")

        assert _run(tmp_path / "bin" / "gcc", "bad.c", cwd=tmp_path).returncode == 1


@needs_bash
class TestBuildDispatcher:
    def test_c_source(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, gxx_log = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "build", "sol.c", cwd=tmp_path)
        assert result.returncode == 0
        assert gcc_log.read_text().splitlines() == [*C_FLAGS, "-o", "outputFile", "sol.c", "-lm"]
        assert not gxx_log.exists()
        assert "DEBUG: Detected C source file." in result.stdout
        assert "DEBUG: Build complete." in result.stdout

    @pytest.mark.parametrize("source", ["sol.cpp", "sol.cc", "sol.cxx"])
    def test_cxx_sources(self, tmp_path: Path, tracer_compiler, source: str):
        settings, gcc_log, gxx_log = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "build", source, cwd=tmp_path)
        assert result.returncode == 0
        assert gxx_log.read_text().splitlines() == [*CXX_FLAGS, "-o", "outputFile", source]
        assert not gcc_log.exists()

    def test_explicit_output(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, _ = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        _run(tmp_path / "bin" / "build", "sol.c", "a.out", cwd=tmp_path)
        assert gcc_log.read_text().splitlines() == [*C_FLAGS, "-o", "a.out", "sol.c", "-lm"]
        assert (tmp_path / "a.out").exists()

    def test_unsupported_extension(self, tmp_path: Path, tracer_compiler):
        settings, gcc_log, gxx_log = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "build", "notes.txt", cwd=tmp_path)
        assert result.returncode == 1
        assert "Unsupported file extension: txt" in result.stderr
        assert not gcc_log.exists()
        assert not gxx_log.exists()

    def test_no_arguments(self, tmp_path: Path, tracer_compiler):
        settings, _, _ = _traced_settings(tracer_compiler)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "build", cwd=tmp_path)
        assert result.returncode == 1
        assert "Usage: build <source_file> [output_file]" in result.stderr

    def test_compiler_failure_propagates(self, tmp_path: Path, tracer_compiler):
        settings, _, _ = _traced_settings(tracer_compiler, c_status=3)
        _install(settings, tmp_path / "bin")

        result = _run(tmp_path / "bin" / "build", "bad.c", cwd=tmp_path)
        assert result.returncode == 3
        assert "Build complete" not in result.stdout
