"""Chemical component lookup: residue codes, group kinds, elements, header dates.

The parsers treat this module as a lookup table. Nothing here knows about
file formats beyond the record type ("ATOM", "HETATM") that takes part in the
group-kind decision.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional

from molparse.core.logging_utils import get_logger

logger = get_logger(__name__)

# Returned for residue codes that are neither amino acids nor nucleotides.
UNKNOWN_GROUP_LABEL = "x"

THREE_TO_ONE = {
    "ALA": "A", "ARG": "R", "ASN": "N", "ASP": "D", "CYS": "C",
    "GLN": "Q", "GLU": "E", "GLY": "G", "HIS": "H", "ILE": "I",
    "LEU": "L", "LYS": "K", "MET": "M", "PHE": "F", "PRO": "P",
    "SER": "S", "THR": "T", "TRP": "W", "TYR": "Y", "VAL": "V",
    "SEC": "U", "PYL": "O",
    "ASX": "B", "GLX": "Z", "XLE": "J", "UNK": "X",
}

# Modified amino acids that are usually written as HETATM but belong to the
# polymer. Mapped to the one-letter code of the parent residue.
MODIFIED_TO_ONE = {
    "MSE": "M", "CSE": "C", "PTR": "Y", "SEP": "S", "TPO": "T",
    "HYP": "P", "5HP": "E", "PCA": "E", "LYZ": "K", "GLA": "E",
    "CSO": "C", "CSD": "C", "CME": "C", "KCX": "K", "MLY": "K",
    "M3L": "K", "ALY": "K", "SAC": "S", "NLE": "L", "ABA": "A",
    "AIB": "A", "DAL": "A", "DLE": "L", "DVA": "V", "DPR": "P",
    "TYS": "Y", "OCS": "C", "CGU": "E", "FME": "M", "MLE": "L",
    "SCH": "C", "TRQ": "W", "HIC": "H", "CAS": "C", "TYQ": "Y",
}

NUCLEOTIDES = frozenset({
    "A", "C", "G", "U", "I", "T", "N",
    "DA", "DC", "DG", "DT", "DU", "DI", "DN",
    "ADE", "CYT", "GUA", "URI", "THY",
    "PSU", "5MC", "OMC", "OMG", "1MA", "2MG", "M2G", "7MG", "5MU",
    "H2U", "4SU", "YG", "+U", "+A", "+C", "+G",
})

WATER_CODES = frozenset({"HOH", "WAT", "DOD", "H2O"})

ELEMENTS = frozenset({
    "H", "D", "HE", "LI", "BE", "B", "C", "N", "O", "F", "NE",
    "NA", "MG", "AL", "SI", "P", "S", "CL", "AR", "K", "CA",
    "SC", "TI", "V", "CR", "MN", "FE", "CO", "NI", "CU", "ZN",
    "GA", "GE", "AS", "SE", "BR", "KR", "RB", "SR", "Y", "ZR",
    "NB", "MO", "TC", "RU", "RH", "PD", "AG", "CD", "IN", "SN",
    "SB", "TE", "I", "XE", "CS", "BA", "LA", "CE", "PR", "ND",
    "PM", "SM", "EU", "GD", "TB", "DY", "HO", "ER", "TM", "YB",
    "LU", "HF", "TA", "W", "RE", "OS", "IR", "PT", "AU", "HG",
    "TL", "PB", "BI", "PO", "AT", "RN", "FR", "RA", "AC", "TH",
    "PA", "U", "NP", "PU", "AM", "CM", "BK", "CF", "ES", "FM",
    "MD", "NO", "LR",
})

# Unknown element, used when a symbol cannot be validated.
UNKNOWN_ELEMENT = "R"


class GroupKind(str, Enum):
    """Kind of a residue group."""

    AMINO_ACID = "amino_acid"
    NUCLEOTIDE = "nucleotide"
    HETEROGEN = "heterogen"

    @property
    def is_polymer(self) -> bool:
        return self is not GroupKind.HETEROGEN


class ComponentLookup:
    """Three-letter component code -> one-letter code table.

    ``one_letter`` has three outcomes that drive :meth:`resolve_kind`:

    * a one-letter code for amino acids (standard and modified),
    * ``None`` for recognised nucleotides,
    * :data:`UNKNOWN_GROUP_LABEL` for anything else (ligands, water, ...).
    """

    def __init__(
        self,
        amino_acids: Optional[Mapping[str, str]] = None,
        nucleotides: Optional[frozenset[str]] = None,
    ):
        if amino_acids is None:
            amino_acids = {**THREE_TO_ONE, **MODIFIED_TO_ONE}
        self._amino_acids = {k.upper(): v for k, v in amino_acids.items()}
        self._nucleotides = nucleotides if nucleotides is not None else NUCLEOTIDES

    def one_letter(self, code3: str) -> Optional[str]:
        code = code3.strip().upper()
        if code in self._amino_acids:
            return self._amino_acids[code]
        if code in self._nucleotides:
            return None
        return UNKNOWN_GROUP_LABEL

    def is_nucleotide(self, code3: str) -> bool:
        return code3.strip().upper() in self._nucleotides

    def resolve_kind(self, code3: str, record_type: str) -> tuple[GroupKind, Optional[str]]:
        """Decide the group kind for a residue code seen on ``record_type``.

        Returns the kind and the one-letter code to store on the group
        (``None`` for heterogens and nucleotides).
        """
        code1 = self.one_letter(code3)
        if code1 is None:
            if record_type == "ATOM":
                return GroupKind.NUCLEOTIDE, None
            return GroupKind.HETEROGEN, None
        if code1 == UNKNOWN_GROUP_LABEL:
            return GroupKind.HETEROGEN, None
        return GroupKind.AMINO_ACID, code1


DEFAULT_LOOKUP = ComponentLookup()


def nucleotide_letter(code3: str) -> str:
    """One-letter code of a nucleotide (``DA`` -> ``A``, ``PSU`` -> ``U``)."""
    code = code3.strip().upper()
    if len(code) == 1:
        return code
    if len(code) == 2 and code[0] in ("D", "+"):
        return code[1]
    return {"ADE": "A", "CYT": "C", "GUA": "G", "URI": "U", "THY": "T", "PSU": "U"}.get(code, "N")


# ======================================================================
# Elements
# ======================================================================

def normalize_element(symbol: Optional[str]) -> str:
    """Validate an element symbol and return it in canonical case.

    Returns :data:`UNKNOWN_ELEMENT` for anything that is not an element.
    """
    if not symbol:
        return UNKNOWN_ELEMENT
    s = re.sub(r"[^A-Za-z]", "", symbol).upper()
    if s not in ELEMENTS:
        return UNKNOWN_ELEMENT
    return s[0] + s[1:].lower()


def element_from_atom_name(full_name: str) -> str:
    """Guess the element from a 4-character PDB atom name field.

    Names that fill all four columns (hydrogens such as ``HG21``) start with
    the element; otherwise the first two columns hold the right-justified
    symbol.
    """
    stripped = full_name.strip()
    if len(stripped) == 4:
        guess = full_name.lstrip()[:1]
    elif len(stripped) > 1:
        guess = full_name[:2].strip()
    else:
        guess = stripped
    return normalize_element(guess)


# ======================================================================
# Header dates
# ======================================================================

def parse_pdb_date(text: str) -> Optional[date]:
    """Parse a PDB header date such as ``07-MAR-84``."""
    text = text.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text.title(), "%d-%b-%y").date()
    except ValueError:
        logger.warning("Could not parse PDB date %r", text)
        return None


def parse_cif_date(text: Optional[str]) -> Optional[date]:
    """Parse an mmCIF date such as ``1984-03-07``."""
    if not text:
        return None
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError:
        logger.warning("Could not parse mmCIF date %r", text)
        return None
