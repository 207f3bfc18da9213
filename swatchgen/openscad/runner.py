"""
OpenSCAD Runner

Renders one swatch per call by handing a customizer parameter file to the
OpenSCAD command line.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from time import perf_counter
from typing import List, Optional

from ..parameters import MODEL_PATH
from ..types import GENERATOR_SET, CustomizerSettings, FilamentRecord, OutputFormat
from ..utils import log, profiling
from ..utils.fs import PathError, create_output_dir

MACOS_OPENSCAD_PATH = "/Applications/OpenSCAD.app/Contents/MacOS/OpenSCAD"
WINDOWS_OPENSCAD_PATH = r"C:\Program Files\OpenSCAD\openscad.exe"


def default_openscad_path() -> str:
    """Platform default for the OpenSCAD executable; OPENSCAD_PATH wins if set."""
    env = os.getenv("OPENSCAD_PATH", "").strip()
    if env:
        return env
    if sys.platform == "darwin":
        return MACOS_OPENSCAD_PATH
    if sys.platform == "win32":
        return WINDOWS_OPENSCAD_PATH
    return "openscad"


class RenderError(RuntimeError):
    """Rendering a single filament failed."""

    def __init__(
        self,
        identity: str,
        reason: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.identity = identity
        self.reason = reason
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Rendering `{identity}` failed: {reason}"
        tail = _tail(stderr)
        if tail:
            msg += f"\n{tail}"
        super().__init__(msg)


def _tail(text: str, lines: int = 5) -> str:
    return "\n".join(text.strip().splitlines()[-lines:]) if text else ""


class OpenScadRunner:
    """Runs OpenSCAD for one filament at a time.

    Instances hold only immutable configuration, so one runner can be shared by
    every worker thread.
    """

    def __init__(
        self,
        binary: str | Path,
        output_format: OutputFormat = OutputFormat.STL,
        model_path: Path = MODEL_PATH,
        timeout: Optional[float] = None,
    ):
        self.binary = str(binary)
        self.output_format = output_format
        self.model_path = Path(model_path)
        self.timeout = timeout

    def build_command(self, output_file: Path, parameter_file: Path, model_file: Path) -> List[str]:
        return [
            self.binary,
            "--export-format",
            self.output_format.export_format,
            "-o",
            str(output_file),
            "-p",
            str(parameter_file),
            "-P",
            GENERATOR_SET,
            str(model_file),
        ]

    def render(self, record: FilamentRecord, destination: Path, document: CustomizerSettings) -> Path:
        """
        Render ``record`` to ``destination``.

        Args:
            record: Filament being rendered (used for error reporting)
            destination: Final path of the model file
            document: Customizer settings holding the "Generator" parameter set

        Returns:
            The destination path, which only exists once the render succeeded.

        Raises:
            RenderError: spawn failure, non-zero exit, timeout, missing output
                or a filesystem error while preparing the render.
        """
        identity = record.identity
        destination = Path(destination)
        start = perf_counter()
        try:
            with tempfile.TemporaryDirectory(prefix="swatchgen-") as tmp:
                work_dir = Path(tmp)
                model_file = work_dir / self.model_path.name
                parameter_file = work_dir / "customizer.json"
                output_file = work_dir / f"swatch.{self.output_format.extension}"

                shutil.copyfile(self.model_path, model_file)
                parameter_file.write_text(document.to_json(), encoding="utf-8")
                create_output_dir(destination.parent)

                cmd = self.build_command(output_file, parameter_file, model_file)
                log.debug(f"{identity}: {' '.join(cmd)}")
                try:
                    result = subprocess.run(
                        cmd,
                        capture_output=True,
                        text=True,
                        timeout=self.timeout,
                        cwd=str(work_dir),
                    )
                except subprocess.TimeoutExpired as exc:
                    raise RenderError(identity, f"OpenSCAD timed out after {self.timeout}s") from exc
                except OSError as exc:
                    raise RenderError(identity, f"could not run `{self.binary}`: {exc}") from exc

                if result.returncode != 0:
                    raise RenderError(
                        identity,
                        f"OpenSCAD exited with status {result.returncode}",
                        returncode=result.returncode,
                        stderr=result.stderr or "",
                    )
                if not output_file.exists():
                    raise RenderError(
                        identity,
                        "OpenSCAD exited successfully but wrote no output file",
                        returncode=result.returncode,
                        stderr=result.stderr or "",
                    )
                shutil.move(str(output_file), str(destination))
        except RenderError:
            raise
        except (OSError, PathError) as exc:
            raise RenderError(identity, str(exc)) from exc
        finally:
            profiling.log("openscad", "render", (perf_counter() - start) * 1000, context=identity)

        log.debug(f"Wrote {destination}")
        return destination
