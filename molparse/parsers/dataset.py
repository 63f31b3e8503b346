"""Format registry and StructureDataset, a lazily parsed set of structure files.

Files are matched to a parser by extension; new formats are added with
``register_parser``. The CLI ``summary`` command runs on a dataset.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Callable, Iterator, Optional, overload

from molparse.config import ParserSettings
from molparse.core.logging_utils import get_logger
from molparse.model.hierarchy import Structure
from molparse.parsers.base import StructureIOError, StructureParser

logger = get_logger(__name__)

# ======================================================================
# Parser registry
# ======================================================================

_REGISTRY: dict[str, type[StructureParser]] = {}


def register_parser(parser_cls: type[StructureParser]) -> None:
    """Register a parser class for its declared extensions."""
    for ext in parser_cls.extensions():
        _REGISTRY[ext.lower()] = parser_cls


def _ensure_registry() -> None:
    if _REGISTRY:
        return
    from molparse.parsers.mmcif import CIFParser
    from molparse.parsers.pdb_format import PDBFormatParser
    register_parser(CIFParser)
    register_parser(PDBFormatParser)


def auto_parser(path: str | Path, settings: Optional[ParserSettings] = None) -> StructureParser:
    """Return the appropriate parser for a file path based on extension."""
    _ensure_registry()
    name = str(path).lower()
    for ext in sorted(_REGISTRY, key=len, reverse=True):
        if name.endswith(ext):
            return _REGISTRY[ext](settings=settings)
    available = sorted(set(_REGISTRY.keys()))
    raise ValueError(f"No parser for '{path}'. Supported: {available}")


# ======================================================================
# StructureDataset
# ======================================================================

class StructureDataset:
    """Structure files parsed on first access and cached.

    Indexing and iteration raise on a file that cannot be parsed.
    ``load_all`` instead records the failure in ``failures`` and goes on,
    which is what batch runs over a mirror of the archive want::

        ds = StructureDataset.from_directory("/data/mmCIF", pattern="*.cif.gz")
        structures = ds.load_all(progress=True)
        print(ds.summary()["failed"], "files could not be parsed")
    """

    def __init__(
        self,
        paths: list[Path],
        parser: Optional[StructureParser] = None,
        settings: Optional[ParserSettings] = None,
    ):
        self._paths = paths
        self._parser = parser
        self._settings = settings
        self._cache: dict[int, Structure] = {}
        self._failures: dict[int, str] = {}

    @classmethod
    def from_paths(
        cls,
        paths: list[str | Path],
        parser: Optional[StructureParser] = None,
        settings: Optional[ParserSettings] = None,
    ) -> "StructureDataset":
        return cls([Path(p) for p in paths], parser=parser, settings=settings)

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        pattern: str = "*.cif.gz",
        parser: Optional[StructureParser] = None,
        settings: Optional[ParserSettings] = None,
    ) -> "StructureDataset":
        """All files under ``directory`` matching ``pattern``, recursively, sorted."""
        d = Path(directory)
        paths = sorted(d.rglob(pattern))
        logger.info("StructureDataset: found %d files matching '%s' in %s", len(paths), pattern, d)
        return cls(paths, parser=parser, settings=settings)

    def __len__(self) -> int:
        return len(self._paths)

    @overload
    def __getitem__(self, idx: int) -> Structure: ...
    @overload
    def __getitem__(self, idx: slice) -> list[Structure]: ...

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return [self._load(i) for i in range(*idx.indices(len(self)))]
        if idx < 0:
            idx = len(self) + idx
        return self._load(idx)

    def __iter__(self) -> Iterator[Structure]:
        for i in range(len(self)):
            yield self._load(i)

    def _load(self, idx: int) -> Structure:
        if idx in self._cache:
            return self._cache[idx]
        path = self._paths[idx]
        try:
            parser = self._parser or auto_parser(path, self._settings)
            structure = parser.parse(path)
        except (StructureIOError, ValueError) as e:
            self._failures[idx] = str(e)
            logger.error("Failed to parse %s: %s", path, e)
            raise
        self._failures.pop(idx, None)
        self._cache[idx] = structure
        return structure

    def load_all(self, progress: bool = False) -> list[Structure]:
        """Parse every file, skipping the ones that fail.

        Files that already failed are not retried.
        """
        indices = range(len(self))
        if progress:
            from tqdm import tqdm
            indices = tqdm(indices, desc="Parsing", unit="file")
        structures = []
        for i in indices:
            if i in self._failures:
                continue
            try:
                structures.append(self._load(i))
            except (StructureIOError, ValueError):
                continue
        return structures

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    @property
    def failures(self) -> dict[Path, str]:
        """Path -> error message for files that could not be parsed."""
        return {self._paths[i]: message for i, message in sorted(self._failures.items())}

    @property
    def pdb_ids(self) -> list[str]:
        return [s.entry_id for s in self]

    def filter(self, predicate: Callable[[Structure], bool]) -> "StructureDataset":
        """A new dataset of the parsed structures matching ``predicate``.

        Parses every file; failed files are left out.
        """
        self.load_all()
        indices = [i for i in sorted(self._cache) if predicate(self._cache[i])]
        ds = StructureDataset([self._paths[i] for i in indices], parser=self._parser, settings=self._settings)
        ds._cache = {new: self._cache[old] for new, old in enumerate(indices)}
        return ds

    def summary(self) -> dict:
        """Counts over all files: methods, resolutions, sizes and the ceilings hit."""
        structures = self.load_all()
        resolutions = [s.resolution for s in structures if s.resolution is not None]
        methods = Counter(s.method or "unknown" for s in structures)
        return {
            "files": len(self),
            "total": len(structures),
            "failed": len(self._failures),
            "resolution_mean": sum(resolutions) / len(resolutions) if resolutions else None,
            "resolution_min": min(resolutions) if resolutions else None,
            "resolution_max": max(resolutions) if resolutions else None,
            "methods": dict(methods),
            "total_atoms": sum(s.num_atoms for s in structures),
            "total_chains": sum(s.num_chains for s in structures),
            "total_compounds": sum(len(s.compounds) for s in structures),
            "nmr_count": sum(1 for s in structures if s.is_nmr),
            "ca_only_count": sum(1 for s in structures if s.ca_only),
            "overflow_count": sum(1 for s in structures if s.atom_overflow),
        }

    def __repr__(self) -> str:
        return f"<StructureDataset n={len(self)} parsed={len(self._cache)} failed={len(self._failures)}>"
