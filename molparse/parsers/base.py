"""Parser interface, error taxonomy and input helpers.

Error kinds:
    StructureIOError     - the stream cannot be read (or is empty); fatal.
    RecordParseError     - one record failed validation; the parser logs it
                           and continues with the next record.
    FrozenStructureError - a finished Structure was mutated.

Data-quality issues (unresolved links, reconciliation mismatches) and
resource-ceiling degradation are reported through logging only.
"""

from __future__ import annotations

import gzip
import re
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Iterable, Optional

from molparse.config import ParserSettings, load_settings
from molparse.core.logging_utils import get_logger
from molparse.model.base import FrozenStructureError
from molparse.model.components import DEFAULT_LOOKUP, ComponentLookup
from molparse.model.hierarchy import Structure

logger = get_logger(__name__)

__all__ = [
    "FrozenStructureError",
    "RecordParseError",
    "StructureIOError",
    "StructureParser",
    "entry_id_from_path",
    "open_text",
]


class StructureIOError(OSError):
    """The input stream is unreadable or empty."""


class RecordParseError(ValueError):
    """A single record could not be parsed; the record is skipped."""

    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


def open_text(path: Path) -> IO[str]:
    """Open a plain or gzip-compressed text file."""
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8", errors="ignore")
    return open(path, "r", encoding="utf-8", errors="ignore")


class StructureParser(ABC):
    """Parse a file into a frozen Structure.

    Single Responsibility: one parser per format. A parser object only holds
    settings and the component lookup; all per-document state lives in a
    fresh context created by every ``parse_lines`` call.
    """

    format_name = ""

    def __init__(
        self,
        settings: Optional[ParserSettings] = None,
        lookup: Optional[ComponentLookup] = None,
    ):
        self.settings = settings or load_settings()
        self.lookup = lookup or DEFAULT_LOOKUP

    def parse(self, path: str | Path) -> Structure:
        """Parse a file and return a Structure."""
        path = Path(path)
        try:
            with open_text(path) as handle:
                return self.parse_lines(handle, source_path=path)
        except StructureIOError:
            raise
        except (OSError, EOFError, zlib.error) as e:
            # truncated or corrupt gzip streams fail with EOFError or zlib.error
            raise StructureIOError(f"Cannot read {self.format_name} file {path}: {e}") from e

    @abstractmethod
    def parse_lines(self, lines: Iterable[str], source_path: Optional[Path] = None) -> Structure:
        """Parse text lines (any iterable, e.g. an open file).

        ``source_path`` is only used to infer the entry id when the file
        does not declare one.
        """
        ...

    def parse_string(self, text: str) -> Structure:
        return self.parse_lines(text.splitlines())

    @staticmethod
    @abstractmethod
    def extensions() -> list[str]:
        """File extensions this parser handles (e.g. ['.cif', '.cif.gz'])."""
        ...


def entry_id_from_path(path: Optional[Path]) -> str:
    """Infer a PDB id from names like ``pdb1abc.ent.gz`` or ``1abc.cif``."""
    if path is None:
        return ""
    m = re.search(r"(?:pdb)?([0-9][a-z0-9]{3})(?:\.|$)", Path(path).name, re.I)
    return m.group(1).upper() if m else ""
