"""Render pipeline that shells out to mermaid-cli.

:class:`DiagramRenderer` turns decoded Mermaid source into SVG bytes by
running an external renderer (``mmdc`` by default) against a pair of
scratch files:

1. The source is written verbatim to a unique ``mm_*`` file in the scratch
   directory.
2. The renderer is invoked as ``<command> -i <input> <input>.svg`` with
   stderr merged into stdout.
3. A non-zero exit, or *any* text on the combined output stream, is a
   failure.  mermaid-cli is silent when it succeeds, so anything it prints
   is treated as a reported problem even when the exit status is 0.
4. The SVG is read back and passed through :func:`fix_line_breaks`.

Both scratch files are removed before :meth:`DiagramRenderer.render`
returns, whatever the outcome.  Removal failures are logged and never
replace the primary result.

Usage
-----
::

    from mermaid_service.core.renderer import DiagramRenderer

    renderer = DiagramRenderer(command="mmdc")
    svg = renderer.render(b"graph TD\\nA-->B\\n")
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from mermaid_service.core.exceptions import RenderError

if TYPE_CHECKING:
    from mermaid_service.core.config import ServiceConfig

logger = logging.getLogger(__name__)

INPUT_PREFIX = "mm_"
OUTPUT_SUFFIX = ".svg"


def fix_line_breaks(svg: bytes) -> bytes:
    """Rewrite every ``<br>`` as ``<br/>``.

    SVG is XML, so a bare ``<br>`` emitted inside HTML labels makes the
    document unparseable for strict consumers.  The replacement is purely
    textual and applies everywhere, including inside label text.
    """
    return svg.replace(b"<br>", b"<br/>")


def _remove_scratch_file(path: Path, *, missing_ok: bool = False) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        if not missing_ok:
            logger.warning("Unable to remove temp file %s: already gone", path)
    except OSError as e:
        logger.warning("Unable to remove temp file %s: %s", path, e)


class DiagramRenderer:
    """Run the external renderer for one diagram at a time.

    Instances hold no per-call state, so one renderer is shared by every
    request thread.

    Args:
        command: Renderer executable, resolved on ``PATH``.
        scratch_dir: Directory for the transient input and output files.
            ``None`` means the system temp directory.
        timeout: Seconds to wait for the renderer.  ``None`` waits forever;
            a hung renderer then stalls only the request that started it.
    """

    def __init__(
        self,
        command: str = "mmdc",
        scratch_dir: Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self.command = command
        self.scratch_dir = scratch_dir
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: ServiceConfig) -> DiagramRenderer:
        return cls(
            command=config.renderer_command,
            scratch_dir=config.scratch_dir,
            timeout=config.render_timeout,
        )

    def render(self, source: bytes) -> bytes:
        """Render Mermaid ``source`` to SVG.

        Args:
            source: Decoded diagram source, written to disk unchanged.

        Returns:
            The SVG bytes with ``<br>`` tags self-closed.

        Raises:
            RenderError: With ``stage`` set to ``"write-input"``, ``"exec"``,
                ``"timeout"``, ``"renderer-output"`` or ``"read-output"``.
        """
        try:
            handle = tempfile.NamedTemporaryFile(
                prefix=INPUT_PREFIX, dir=self.scratch_dir, delete=False
            )
        except OSError as e:
            logger.error("Error creating temp file: %s", e)
            raise RenderError("write-input", str(e)) from e

        input_path = Path(handle.name)
        output_path = input_path.with_name(input_path.name + OUTPUT_SUFFIX)

        try:
            try:
                with handle:
                    handle.write(source)
            except OSError as e:
                logger.error("Error writing file %s: %s", input_path, e)
                raise RenderError("write-input", str(e)) from e

            self._run(input_path, output_path)

            try:
                output = output_path.read_bytes()
            except OSError as e:
                logger.error("Unable to read back graph data: %s", e)
                raise RenderError("read-output", str(e)) from e
        finally:
            _remove_scratch_file(input_path)
            # The renderer may have failed before creating the output file.
            _remove_scratch_file(output_path, missing_ok=True)

        return fix_line_breaks(output)

    def _run(self, input_path: Path, output_path: Path) -> None:
        cmd = [self.command, "-i", str(input_path), str(output_path)]
        logger.debug("Running %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.error("Renderer %s timed out after %ss", self.command, self.timeout)
            raise RenderError(
                "timeout", f"{self.command} did not finish within {self.timeout}s"
            ) from e
        except OSError as e:
            logger.error("Unable to execute %s: %s", self.command, e)
            raise RenderError("exec", f"unable to execute {self.command}: {e}") from e

        text = result.stdout.decode("utf-8", errors="replace")

        if result.returncode != 0:
            logger.error(
                "Unable to execute mermaid: exit status %d\n\n%s", result.returncode, text
            )
            raise RenderError("exec", text.strip() or f"exit status {result.returncode}")

        if text:
            logger.error("Mermaid output:\n\n%s", text)
            raise RenderError("renderer-output", text.strip() or text)
