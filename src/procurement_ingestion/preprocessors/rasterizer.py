# ============================================================================
# src/procurement_ingestion/preprocessors/rasterizer.py
# ============================================================================
"""
PDF Rasterizer

Converts the first page of a PDF into a PNG using poppler's pdftoppm:

    pdftoppm -png -f 1 -l 1 -scale-to <resolution> <input> <prefix>

pdftoppm writes "<prefix>-1.png", zero-padded to the width of the page
count ("<prefix>-01.png" for a 10-99 page PDF). The presence of that file
is the only success signal: pdftoppm's exit status is logged, not trusted.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
import asyncio
import logging

from ..utils.exceptions import ConversionError, ConversionTimeoutError

logger = logging.getLogger(__name__)


def expected_output(output_prefix: Path) -> Path:
    """File pdftoppm produces for page 1 of a single-page run."""
    output_prefix = Path(output_prefix)
    return output_prefix.with_name(f"{output_prefix.name}-1.png")


def find_output(output_prefix: Path) -> Optional[Path]:
    """Page-1 PNG under output_prefix, padded or not. None if absent."""
    output_prefix = Path(output_prefix)
    unpadded = expected_output(output_prefix)
    if unpadded.exists():
        return unpadded
    for candidate in sorted(output_prefix.parent.glob(f"{output_prefix.name}-*.png")):
        page = candidate.stem[len(output_prefix.name) + 1:]
        if page.isdigit() and int(page) == 1:
            return candidate
    return None


class Rasterizer(ABC):
    """External PDF -> PNG converter."""

    @abstractmethod
    async def rasterize(self, input_path: Path, output_prefix: Path, resolution: int) -> Path:
        """
        Rasterize page 1 of input_path.

        Returns:
            Path of the produced PNG ("<output_prefix>-1.png", or zero-padded)

        Raises:
            ConversionError: no output file was produced
            ConversionTimeoutError: converter exceeded its timeout
        """
        pass


class PdftoppmRasterizer(Rasterizer):
    """
    pdftoppm subprocess rasterizer.

    Config options:
        rasterizer_command: Executable (default: pdftoppm)
        rasterizer_timeout: Seconds before the process is killed (default: 60)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.command = self.config.get('rasterizer_command', 'pdftoppm')
        self.timeout = float(self.config.get('rasterizer_timeout', 60))

    def build_command(self, input_path: Path, output_prefix: Path, resolution: int) -> List[str]:
        return [
            self.command,
            '-png',
            '-f', '1',
            '-l', '1',
            '-scale-to', str(int(resolution)),
            str(input_path),
            str(output_prefix),
        ]

    async def rasterize(self, input_path: Path, output_prefix: Path, resolution: int) -> Path:
        output_prefix = Path(output_prefix)
        output_prefix.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(input_path, output_prefix, resolution)

        logger.debug(f"Running rasterizer: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise ConversionError(
                f"PDF rasterizer '{self.command}' not found. Install poppler-utils."
            )

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass  # exited between the timeout and the kill
            await process.wait()
            raise ConversionTimeoutError(
                f"PDF conversion timed out after {self.timeout}s: {Path(input_path).name}"
            )

        if process.returncode != 0:
            logger.warning(
                f"{self.command} exited with status {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()[:200]}"
            )

        output_path = find_output(output_prefix)
        if output_path is None:
            raise ConversionError(
                f"PDF conversion failed: no output image produced for {Path(input_path).name}"
            )

        return output_path
