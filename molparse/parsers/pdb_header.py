"""Multi-line PDB header sections: COMPND, SOURCE and JRNL.

These sections are buffered by the PDB assembler and interpreted once the
whole file has been read, because their fields continue over several lines.

COMPND and SOURCE use the same "tagged continuation" layout::

    COMPND    MOL_ID: 1;
    COMPND   2 MOLECULE: HEMOGLOBIN ALPHA
    COMPND   3 CHAIN;
    COMPND   4 CHAIN: A, C;

A tag ("MOL_ID:", "CHAIN:", ...) stays active until the next tag appears;
text accumulates until then and is committed as one value.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from molparse.core.logging_utils import get_logger
from molparse.model.header import Author, Compound, JournalArticle

logger = get_logger(__name__)

COMPND_FIELDS = frozenset({
    "MOL_ID:", "MOLECULE:", "CHAIN:", "SYNONYM:", "EC:", "FRAGMENT:",
    "ENGINEERED:", "MUTATION:", "BIOLOGICAL_UNIT:", "OTHER_DETAILS:",
})

# Tags found in old files that carry nothing we keep.
COMPND_IGNORED = frozenset({
    "HETEROGEN:", "ENGINEEREED:", "FRAGMENT,", "MUTANT:", "SYNTHETIC:",
})

SOURCE_FIELDS = frozenset({
    "MOL_ID:", "SYNTHETIC:", "FRAGMENT:", "ORGANISM_SCIENTIFIC:",
    "ORGANISM_COMMON:", "ORGANISM_TAXID:", "STRAIN:", "VARIANT:",
    "CELL_LINE:", "ATCC:", "ORGAN:", "TISSUE:", "CELL:", "ORGANELLE:",
    "SECRETION:", "GENE:", "CELLULAR_LOCATION:", "EXPRESSION_SYSTEM:",
    "EXPRESSION_SYSTEM_COMMON:", "EXPRESSION_SYSTEM_TAXID:",
    "EXPRESSION_SYSTEM_STRAIN:", "EXPRESSION_SYSTEM_VARIANT:",
    "EXPRESSION_SYSTEM_CELL_LINE:", "EXPRESSION_SYSTEM_ATCC_NUMBER:",
    "EXPRESSION_SYSTEM_ORGAN:", "EXPRESSION_SYSTEM_TISSUE:",
    "EXPRESSION_SYSTEM_CELL:", "EXPRESSION_SYSTEM_ORGANELLE:",
    "EXPRESSION_SYSTEM_CELLULAR_LOCATION:", "EXPRESSION_SYSTEM_VECTOR_TYPE:",
    "EXPRESSION_SYSTEM_VECTOR:", "EXPRESSION_SYSTEM_PLASMID:",
    "EXPRESSION_SYSTEM_GENE:", "OTHER_DETAILS:",
})

_IGNORED = "__ignored__"


# ======================================================================
# Tagged continuation fields
# ======================================================================

def iter_tagged_fields(
    lines: Iterable[str],
    known: frozenset[str],
    ignored: frozenset[str] = frozenset(),
    untagged_field: Optional[str] = None,
) -> Iterator[tuple[str, str]]:
    """Yield ``(tag, value)`` pairs from COMPND/SOURCE-style lines.

    ``untagged_field`` is used for a first line (empty continuation number)
    that carries no tag, as in pre-remediation files where COMPND held only
    the molecule name.
    """
    field: Optional[str] = None
    parts: list[str] = []

    for line in lines:
        continuation = line[7:10].strip()
        text = line[10:72].strip()
        tokens = text.split()
        tag = tokens[0] if tokens else ""

        if tag in known or tag in ignored:
            new_field = tag if tag in known else _IGNORED
            text = text[len(tag):].strip()
        elif not continuation and untagged_field is not None:
            new_field = untagged_field
        else:
            new_field = field

        if new_field != field:
            if field is not None and field != _IGNORED and parts:
                yield field, _clean(" ".join(parts))
            field, parts = new_field, []
        if text:
            parts.append(text)

    if field is not None and field != _IGNORED and parts:
        yield field, _clean(" ".join(parts))


def _clean(value: str) -> str:
    return value.replace(";", "").strip()


def _split_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


# ======================================================================
# COMPND / SOURCE
# ======================================================================

def build_compounds(compnd_lines: list[str], source_lines: list[str]) -> list[Compound]:
    """Build Compounds from buffered COMPND lines and attach SOURCE fields."""
    compounds: list[Compound] = []
    current: Optional[Compound] = None
    mol_counter = 0

    for tag, value in iter_tagged_fields(
        compnd_lines, COMPND_FIELDS, COMPND_IGNORED, untagged_field="MOLECULE:"
    ):
        if tag == "MOL_ID:":
            try:
                mol_id = int(value)
            except ValueError:
                logger.warning("COMPND: invalid MOL_ID %r", value)
                continue
            if current is None or mol_id != mol_counter:
                mol_counter = mol_id
                current = Compound(mol_id=str(mol_id))
                compounds.append(current)
            continue
        if current is None:
            # Old files without MOL_ID describe a single molecule.
            mol_counter = 1
            current = Compound(mol_id="1")
            compounds.append(current)
        _set_compound_field(current, tag, value)

    if source_lines:
        _apply_source(compounds, source_lines)
    return compounds


def _set_compound_field(compound: Compound, tag: str, value: str) -> None:
    if tag == "MOLECULE:":
        compound.name = value
    elif tag == "CHAIN:":
        compound.chain_ids = [" " if c == "NULL" else c for c in _split_list(value)]
    elif tag == "SYNONYM:":
        compound.synonyms = _split_list(value)
    elif tag == "EC:":
        compound.ec_numbers = _split_list(value)
    elif tag == "FRAGMENT:":
        compound.fragment = value
    elif tag == "ENGINEERED:":
        compound.engineered = value
    elif tag == "MUTATION:":
        compound.mutation = value
    elif tag == "BIOLOGICAL_UNIT:":
        compound.biological_unit = value
    elif tag == "OTHER_DETAILS:":
        compound.details = value


def _apply_source(compounds: list[Compound], source_lines: list[str]) -> None:
    current: Optional[Compound] = compounds[0] if len(compounds) == 1 else None
    for tag, value in iter_tagged_fields(source_lines, SOURCE_FIELDS):
        if tag == "MOL_ID:":
            try:
                index = int(value) - 1
            except ValueError:
                logger.warning("SOURCE: invalid MOL_ID %r", value)
                current = None
                continue
            if 0 <= index < len(compounds):
                current = compounds[index]
            else:
                logger.warning("SOURCE: MOL_ID %s has no COMPND entry", value)
                current = None
            continue
        if current is None:
            continue
        current.source[tag.rstrip(":").lower()] = value


# ======================================================================
# JRNL
# ======================================================================

def build_journal(lines: list[str]) -> Optional[JournalArticle]:
    """Assemble the primary citation from buffered JRNL lines."""
    if not lines:
        return None
    auth = edit = refn = pmid = doi = ""
    titl: list[str] = []
    ref: list[str] = []
    publ: list[str] = []

    for line in lines:
        line = line.rstrip("\n")
        if len(line) < 19:
            logger.warning("Cannot process JRNL line: %r", line)
            continue
        sub = line[12:16]
        text = line[19:].strip()
        if sub == "AUTH":
            auth += text
        elif sub == "TITL":
            titl.append(text)
        elif sub == "EDIT":
            edit += text
        elif sub == "REF ":
            ref.append(text)
        elif sub == "PUBL":
            publ.append(text)
        elif sub == "REFN":
            refn += line[35:].strip()
        elif sub == "PMID":
            pmid += text
        elif sub == "DOI ":
            doi += text

    ref_text = " ".join(ref)
    journal_name, volume, start_page, year = parse_journal_ref(ref_text)
    return JournalArticle(
        authors=tuple(build_authors(auth)),
        editors=tuple(build_authors(edit)),
        title=" ".join(titl).strip(),
        ref=ref_text,
        journal_name=journal_name,
        volume=volume,
        start_page=start_page,
        publication_year=year,
        publisher=" ".join(publ).strip(),
        refn=refn,
        pmid=pmid,
        doi=doi,
    )


def parse_journal_ref(ref: str) -> tuple[str, Optional[str], Optional[str], Optional[int]]:
    """Split a JRNL REF text into (journal, volume, start page, year).

    The text is fixed-width::

        NAT.STRUCT.MOL.BIOL.          V.  16   238 2009
    """
    if not ref.strip() or ref.strip() == "TO BE PUBLISHED":
        return "TO BE PUBLISHED", None, None, None
    padded = ref.rstrip()
    if len(padded) != 47:
        logger.warning("JRNL REF text has %d columns, expected 47: %r", len(padded), ref)
        return "TO BE PUBLISHED", None, None, None
    year_text = padded[-4:].strip()
    start_page = padded[-10:-5].strip() or None
    volume = padded[-15:-11].strip() or None
    journal = padded[:-17].strip() or "TO BE PUBLISHED"
    year: Optional[int] = None
    if year_text:
        try:
            year = int(year_text)
        except ValueError:
            logger.warning("JRNL REF: invalid year %r", year_text)
    return journal, volume, start_page, year


def build_authors(text: str) -> list[Author]:
    """Split ``"M.HAMMEL,G.SFYROERA,J.D.LAMBRIS"`` into Authors.

    A text without commas is a consortium name and becomes one surname.
    """
    if not text:
        return []
    names = [n for n in text.split(",") if n]
    if len(names) == 1:
        return [Author(surname=names[0])]
    authors = []
    for name in names:
        pieces = name.split(".")
        if len(pieces) == 1:
            authors.append(Author(surname=name))
            continue
        initials = "".join(p + "." for p in pieces[:-1])
        authors.append(Author(surname=pieces[-1], initials=initials))
    return authors
