"""Header-level records attached to a Structure.

These are the side records that do not live inside the model/chain/group
hierarchy: entry metadata, compounds (biological entities), database
cross-references, disulfide bonds, CONECT connections, secondary-structure
ranges and the primary citation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import TYPE_CHECKING, Optional

from molparse.model.base import Freezable

if TYPE_CHECKING:
    from molparse.model.hierarchy import Chain


@dataclass
class StructureMetadata(Freezable):
    """Entry-level metadata extracted from a structure file."""

    entry_id: str = ""
    format: str = ""  # "pdb" or "mmcif"
    classification: str = ""
    method: Optional[str] = None
    resolution: Optional[float] = None
    deposit_date: Optional[date] = None
    modification_date: Optional[date] = None
    title: Optional[str] = None
    keywords: Optional[str] = None
    authors: Optional[str] = None
    space_group: Optional[str] = None
    cell_a: Optional[float] = None
    cell_b: Optional[float] = None
    cell_c: Optional[float] = None
    cell_alpha: Optional[float] = None
    cell_beta: Optional[float] = None
    cell_gamma: Optional[float] = None
    raw: dict = field(default_factory=dict)

    def _freeze(self) -> None:
        object.__setattr__(self, "raw", MappingProxyType(dict(self.raw)))


@dataclass(eq=False)
class Compound(Freezable):
    """A biological entity (COMPND/SOURCE block or mmCIF ``_entity``).

    ``chain_ids`` are the public chain names declared for the compound;
    ``chains`` holds the assembled chains they resolved to.
    """

    mol_id: str = ""
    name: str = ""
    entity_type: str = "polymer"  # "polymer", "non-polymer", "water", "branched"
    chain_ids: Optional[list[str]] = None
    synonyms: list[str] = field(default_factory=list)
    ec_numbers: list[str] = field(default_factory=list)
    fragment: Optional[str] = None
    engineered: Optional[str] = None
    mutation: Optional[str] = None
    biological_unit: Optional[str] = None
    details: Optional[str] = None
    source: dict[str, str] = field(default_factory=dict)
    chains: list["Chain"] = field(default_factory=list, repr=False)

    @property
    def is_polymer(self) -> bool:
        return self.entity_type == "polymer"

    @property
    def is_nonpolymer(self) -> bool:
        return self.entity_type == "non-polymer"

    @property
    def is_water(self) -> bool:
        return self.entity_type == "water"

    @property
    def organism(self) -> Optional[str]:
        return self.source.get("organism_scientific")

    def add_chain(self, chain: "Chain") -> None:
        self._check_mutable()
        if all(c is not chain for c in self.chains):
            self.chains.append(chain)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Compound):
            return NotImplemented
        return (
            self.mol_id == other.mol_id
            and self.name == other.name
            and self.entity_type == other.entity_type
            and list(self.chain_ids or []) == list(other.chain_ids or [])
            and [c.name for c in self.chains] == [c.name for c in other.chains]
        )

    def _freeze(self) -> None:
        if self.chain_ids is not None:
            object.__setattr__(self, "chain_ids", tuple(self.chain_ids))
        object.__setattr__(self, "synonyms", tuple(self.synonyms))
        object.__setattr__(self, "ec_numbers", tuple(self.ec_numbers))
        object.__setattr__(self, "chains", tuple(self.chains))
        object.__setattr__(self, "source", MappingProxyType(dict(self.source)))


@dataclass(frozen=True)
class DBRef:
    """Cross-reference of a chain segment to a sequence database."""

    id_code: str
    chain_id: str
    seq_begin: Optional[int]
    insert_begin: str
    seq_end: Optional[int]
    insert_end: str
    database: str
    db_accession: str
    db_id_code: str
    db_seq_begin: Optional[int]
    db_insert_begin: str
    db_seq_end: Optional[int]
    db_insert_end: str


@dataclass(frozen=True)
class SSBond:
    """Disulfide bond between two residues."""

    chain_id1: str
    resnum1: str
    ins_code1: str
    chain_id2: str
    resnum2: str
    ins_code2: str


@dataclass(frozen=True)
class Connection:
    """One CONECT record: an atom serial and its bonded partner serials."""

    atom_serial: int
    bonds: tuple[int, ...] = ()
    hydrogen_bonds: tuple[int, ...] = ()
    salt_bridges: tuple[int, ...] = ()


@dataclass(frozen=True)
class SecondaryStructureElement:
    """Author-assigned secondary-structure range (HELIX, STRAND or TURN)."""

    kind: str
    init_chain_id: str
    init_res_name: str
    init_seq_num: int
    init_ins_code: str
    end_chain_id: str
    end_res_name: str
    end_seq_num: int
    end_ins_code: str


@dataclass(frozen=True)
class Author:
    surname: str
    initials: str = ""

    def __str__(self) -> str:
        return f"{self.initials}{self.surname}"


@dataclass(frozen=True)
class JournalArticle:
    """Primary citation from JRNL records."""

    authors: tuple[Author, ...] = ()
    editors: tuple[Author, ...] = ()
    title: str = ""
    ref: str = ""
    journal_name: str = "TO BE PUBLISHED"
    volume: Optional[str] = None
    start_page: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: str = ""
    refn: str = ""
    pmid: str = ""
    doi: str = ""

    @property
    def is_published(self) -> bool:
        return self.journal_name != "TO BE PUBLISHED"
