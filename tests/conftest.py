"""Shared pytest fixtures for Mermaid Service tests."""

from __future__ import annotations

import os
import shutil
import stat
import tempfile
from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mermaid_service.api.main import create_app
from mermaid_service.core.config import ServiceConfig, load_config

# ---------------------------------------------------------------------------
# Renderer stub scripts.
#
# Every stub is invoked exactly like mermaid-cli: ``<stub> -i <input> <output>``,
# so inside the script ``$2`` is the input file and ``$3`` the output file.
# ---------------------------------------------------------------------------

STUB_SVG = '<svg xmlns="http://www.w3.org/2000/svg"><text>one<br>two</text></svg>'

SUCCESS_BODY = f"printf '%s' '{STUB_SVG}' > \"$3\""
ECHO_INPUT_BODY = 'cat "$2" > "$3"'
FAILURE_BODY = 'echo "Error: Parse error on line 2" >&2\nexit 1'
NOISY_BODY = "echo \"deprecation warning\"\nprintf '%s' '<svg/>' > \"$3\""
NO_OUTPUT_BODY = "exit 0"

@dataclass
class RendererStub:
    """An executable stand-in for mermaid-cli that logs its invocations."""

    command: str
    calls_file: Path

    def invocations(self) -> list[tuple[str, str]]:
        """Return ``(input_path, output_path)`` for every call so far."""
        if not self.calls_file.exists():
            return []
        lines = self.calls_file.read_text().splitlines()
        return [tuple(line.split("\t")) for line in lines if line]

    @property
    def calls(self) -> int:
        return len(self.invocations())


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch) -> None:
    """Keep MERMAID_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.upper().startswith("MERMAID_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def scratch_dir(temp_dir: Path) -> Path:
    """Scratch directory handed to the renderer."""
    path = temp_dir / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def make_renderer_stub(temp_dir: Path) -> Callable[..., RendererStub]:
    """Factory that writes an executable renderer stub.

    Args:
        body: Shell commands run after the invocation is recorded.
        name: File name of the stub inside the temp directory.

    Returns:
        Callable producing a :class:`RendererStub`.
    """

    def _make(body: str, name: str = "mmdc-stub") -> RendererStub:
        script = temp_dir / name
        calls_file = temp_dir / f"{name}.calls"
        script.write_text(
            "#!/bin/sh\n"
            f"printf '%s\\t%s\\n' \"$2\" \"$3\" >> '{calls_file}'\n"
            f"{body}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return RendererStub(command=str(script), calls_file=calls_file)

    return _make


@pytest.fixture
def make_config(scratch_dir: Path) -> Callable[..., ServiceConfig]:
    """Factory for isolated configurations that never read ``.env``."""

    def _make(**overrides) -> ServiceConfig:
        overrides.setdefault("scratch_dir", scratch_dir)
        return load_config(_env_file=None, **overrides)

    return _make


@pytest.fixture
def make_client(make_config) -> Callable[..., TestClient]:
    """Factory building a TestClient around a fresh application.

    Args:
        stub: Renderer stub whose script becomes ``renderer_command``.
        **overrides: Extra configuration fields (e.g. ``cache_size``).
    """

    def _make(stub: RendererStub, **overrides) -> TestClient:
        config = make_config(renderer_command=stub.command, **overrides)
        return TestClient(create_app(config))

    return _make


@pytest.fixture
def stub_svg() -> str:
    """SVG written by :func:`success_stub`, before ``<br>`` substitution."""
    return STUB_SVG


@pytest.fixture
def success_stub(make_renderer_stub) -> RendererStub:
    """Renderer that prints nothing and writes :data:`STUB_SVG`."""
    return make_renderer_stub(SUCCESS_BODY)


@pytest.fixture
def echo_stub(make_renderer_stub) -> RendererStub:
    """Renderer that copies its input file to the output file."""
    return make_renderer_stub(ECHO_INPUT_BODY)


@pytest.fixture
def failing_stub(make_renderer_stub) -> RendererStub:
    """Renderer that reports a parse error on stderr and exits 1."""
    return make_renderer_stub(FAILURE_BODY)


@pytest.fixture
def noisy_stub(make_renderer_stub) -> RendererStub:
    """Renderer that writes output and exits 0 but also prints to stdout."""
    return make_renderer_stub(NOISY_BODY)


@pytest.fixture
def no_output_stub(make_renderer_stub) -> RendererStub:
    """Renderer that exits 0 silently without writing the output file."""
    return make_renderer_stub(NO_OUTPUT_BODY)
