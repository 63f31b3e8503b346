"""Low-level mmCIF reader: first data block -> categories of row dicts.

Handles quoted values, ``;`` multi-line text fields, ``loop_`` tables and
single ``_category.item value`` pairs. Category and item names are
lower-cased; the CIF null markers ``?`` and ``.`` become ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from molparse.core.logging_utils import get_logger

logger = get_logger(__name__)

_TOKEN = re.compile(
    r"'(.*?)'(?=\s|$)"      # single-quoted
    r'|"(.*?)"(?=\s|$)'     # double-quoted
    r"|(\S+)"               # bare
)

_VALUE, _TAG, _LOOP, _DATA = "value", "tag", "loop", "data"


@dataclass
class CifCategory:
    """One category of a data block, as a list of rows."""

    name: str
    rows: list[dict[str, Optional[str]]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Optional[str]]]:
        return iter(self.rows)

    @property
    def first(self) -> dict[str, Optional[str]]:
        return self.rows[0] if self.rows else {}


def _unwrap_value(s: str) -> Optional[str]:
    if s in (".", "?"):
        return None
    return s


def _split_tag(tag: str) -> tuple[str, str]:
    category, _, item = tag[1:].partition(".")
    return category.lower(), item.lower()


def iter_tokens(lines: Iterable[str]) -> Iterator[tuple[str, Optional[str]]]:
    """Yield ``(kind, text)`` tokens; kind is value, tag, loop or data."""
    it = iter(lines)
    for raw in it:
        line = raw.rstrip("\r\n")
        if line.startswith(";"):
            parts = [line[1:]]
            for raw in it:
                line = raw.rstrip("\r\n")
                if line.startswith(";"):
                    break
                parts.append(line)
            else:
                logger.warning("Unterminated ';' text field at end of file")
            yield _VALUE, "\n".join(parts).strip()
            continue
        for m in _TOKEN.finditer(line):
            single, double, bare = m.groups()
            if bare is None:
                yield _VALUE, single if single is not None else double
            elif bare.startswith("#"):
                break
            elif bare.startswith("_"):
                yield _TAG, bare
            elif bare.lower() == "loop_":
                yield _LOOP, None
            elif bare.lower().startswith("data_"):
                yield _DATA, bare[5:]
            else:
                yield _VALUE, _unwrap_value(bare)


class CifReader:
    """Group the tokens of the first data block into categories.

    Usage::

        with open_text(path) as handle:
            for category in CifReader(handle):
                print(category.name, len(category))
    """

    def __init__(self, lines: Iterable[str]):
        self._lines = lines
        self.block_name: Optional[str] = None
        self._reset_single()
        self._loop_tags: Optional[list[str]] = None
        self._loop_values: list[Optional[str]] = []

    def __iter__(self) -> Iterator[CifCategory]:
        return self.categories()

    def _reset_single(self) -> None:
        self._single_name: Optional[str] = None
        self._single_row: dict[str, Optional[str]] = {}
        self._awaiting: Optional[str] = None

    def categories(self) -> Iterator[CifCategory]:
        for kind, text in iter_tokens(self._lines):
            if kind == _DATA:
                if self.block_name is not None:
                    logger.debug("Ignoring data block %r after %r", text, self.block_name)
                    break
                self.block_name = text
            elif kind == _LOOP:
                yield from self._flush()
                self._loop_tags = []
            elif kind == _TAG:
                if self._loop_tags is not None and not self._loop_values:
                    self._loop_tags.append(text)
                    continue
                category, item = _split_tag(text)
                if self._loop_tags is not None or (
                    self._single_name is not None and category != self._single_name
                ):
                    yield from self._flush()
                self._single_name = category
                self._awaiting = item
            elif self._loop_tags is not None:
                self._loop_values.append(text)
            elif self._awaiting is not None:
                self._single_row[self._awaiting] = text
                self._awaiting = None
            else:
                logger.debug("Stray CIF value %r ignored", text)
        yield from self._flush()

    def _flush(self) -> Iterator[CifCategory]:
        if self._loop_tags is not None:
            tags, values = self._loop_tags, self._loop_values
            self._loop_tags, self._loop_values = None, []
            if tags:
                name = _split_tag(tags[0])[0]
                items = [_split_tag(t)[1] for t in tags]
                width = len(items)
                if len(values) % width:
                    logger.warning(
                        "Loop %s: %d values do not fill rows of %d columns; last row dropped",
                        name, len(values), width,
                    )
                rows = [
                    dict(zip(items, values[i:i + width]))
                    for i in range(0, len(values) - width + 1, width)
                ]
                yield CifCategory(name, rows)
        if self._single_name is not None:
            yield CifCategory(self._single_name, [self._single_row])
            self._reset_single()


def read_categories(lines: Iterable[str]) -> dict[str, CifCategory]:
    """Read the first data block into a name -> category mapping."""
    result: dict[str, CifCategory] = {}
    for category in CifReader(lines):
        if category.name in result:
            result[category.name].rows.extend(category.rows)
        else:
            result[category.name] = category
    return result
