"""
Document-to-markup conversion.
Runs the external conversion tool (pdf2htmlEX by default) on a source
document and reads back the markup it produced.
"""

from pathlib import Path
from typing import List, Optional, Union
import asyncio
import subprocess

from config.constants import CONVERTER_COMMAND, CONVERTER_TIMEOUT_SECONDS
from config.logging_config import get_logger
from core.errors import ExtractionError

logger = get_logger(__name__)


class DocumentConverter:
    """
    Wraps the structural conversion tool.

    The tool is invoked as ``<command> --dest-dir <dir> <source>`` and must
    write ``<dir>/<source stem>.html``. Any failure is an ExtractionError.

    Usage:
        converter = DocumentConverter()
        markup = await converter.convert(pdf_path, work_dir)
    """

    def __init__(
        self,
        command: str = CONVERTER_COMMAND,
        timeout: float = CONVERTER_TIMEOUT_SECONDS,
        extra_args: Optional[List[str]] = None,
    ):
        self.command = command
        self.timeout = timeout
        self.extra_args = list(extra_args or [])

    def build_command(self, source: Path, dest_dir: Path) -> List[str]:
        return [self.command, *self.extra_args, "--dest-dir", str(dest_dir), str(source)]

    async def convert(self, source: Union[str, Path], dest_dir: Union[str, Path]) -> str:
        """
        Convert a document and return its markup.

        Args:
            source: Path of the document to convert
            dest_dir: Directory the tool writes into (created if missing)

        Returns:
            Markup text

        Raises:
            ExtractionError: On a missing tool, timeout, non-zero exit or unreadable output
        """
        source = Path(source)
        dest_dir = Path(dest_dir)

        if not source.is_file():
            raise ExtractionError(f"source not found: {source}", path=str(source))
        dest_dir.mkdir(parents=True, exist_ok=True)

        cmd = self.build_command(source, dest_dir)
        logger.debug(f"Converting {source.name}: {' '.join(cmd)}")

        # Run in thread pool to not block
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            )
        except FileNotFoundError:
            raise ExtractionError(f"conversion tool not found: {self.command}", path=str(source))
        except subprocess.TimeoutExpired:
            raise ExtractionError(
                f"conversion timed out after {self.timeout}s", path=str(source)
            )

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise ExtractionError(
                f"conversion failed (exit {result.returncode}): {stderr[:200]}",
                path=str(source),
            )

        output = dest_dir / f"{source.stem}.html"
        try:
            markup = output.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(f"cannot read converted markup {output}: {e}", path=str(source))

        if not markup.strip():
            raise ExtractionError(f"converted markup is empty: {output}", path=str(source))

        logger.info(f"Converted {source.name} ({len(markup):,} chars of markup)")
        return markup
