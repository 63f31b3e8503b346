"""Macromolecular structure hierarchy.

Hierarchy:
    Structure (top-level)
    ├── metadata: StructureMetadata
    ├── compounds / dbrefs / ssbonds / connections
    └── models: list[Model]          (model 0 is canonical)
        └── chains: list[Chain]
            ├── groups: list[Group]          (observed, ATOM/HETATM)
            │   └── atoms: list[Atom]
            └── seqres_groups: list[Group]   (declared, SEQRES)

The containers are filled by the parsers and frozen once parsing is
finished. After ``Structure.freeze()`` all collections are tuples, every
setter raises ``FrozenStructureError`` and each Group/Atom carries an index
address used for upward navigation (atom -> group -> chain).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Optional

import numpy as np

from molparse.core.logging_utils import get_logger
from molparse.model.base import Freezable, FrozenStructureError
from molparse.model.components import GroupKind, nucleotide_letter
from molparse.model.header import (
    Compound,
    Connection,
    DBRef,
    JournalArticle,
    SecondaryStructureElement,
    SSBond,
    StructureMetadata,
)

logger = get_logger(__name__)

__all__ = [
    "Address",
    "Atom",
    "Chain",
    "FrozenStructureError",
    "Group",
    "Model",
    "Structure",
]


class Address(NamedTuple):
    """Position of a group (``atom`` is None) or an atom inside a Structure."""

    model: int
    chain: int
    group: int
    atom: Optional[int] = None


# ======================================================================
# Atom and Group
# ======================================================================

@dataclass
class Atom(Freezable):
    """Single atom with coordinates and identity."""

    serial: int
    name: str
    element: str
    x: float
    y: float
    z: float
    occupancy: float = 1.0
    temp_factor: float = 0.0
    alt_loc: str = ""
    address: Optional[Address] = field(default=None, compare=False, repr=False)

    @property
    def coords(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def is_alpha_carbon(self) -> bool:
        # calcium ions are also named CA
        return self.name == "CA" and self.element != "Ca"


@dataclass
class Group(Freezable):
    """One residue: amino acid, nucleotide or heterogen (ligand, water, ion).

    Groups built from ATOM/HETATM records carry atoms; groups built from
    SEQRES records (the declared sequence) never do, and only receive a
    residue number when the sequence reconciler matches them to an observed
    group.
    """

    name: str
    kind: GroupKind
    residue_number: Optional[int] = None
    insertion_code: str = ""
    one_letter: Optional[str] = None
    record_type: str = "ATOM"
    seq_id: Optional[int] = None
    sec_struc: Optional[str] = None
    atoms: list[Atom] = field(default_factory=list)
    address: Optional[Address] = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> tuple[Optional[int], str]:
        return (self.residue_number, self.insertion_code)

    @property
    def pdb_code(self) -> str:
        """Public residue identifier, e.g. ``"52"`` or ``"52A"``."""
        if self.residue_number is None:
            return ""
        return f"{self.residue_number}{self.insertion_code}"

    @property
    def is_amino_acid(self) -> bool:
        return self.kind is GroupKind.AMINO_ACID

    @property
    def is_nucleotide(self) -> bool:
        return self.kind is GroupKind.NUCLEOTIDE

    @property
    def is_heterogen(self) -> bool:
        return self.kind is GroupKind.HETEROGEN

    @property
    def letter(self) -> Optional[str]:
        """Sequence letter for polymer groups, None for heterogens."""
        if self.kind is GroupKind.AMINO_ACID:
            return self.one_letter or "X"
        if self.kind is GroupKind.NUCLEOTIDE:
            return self.one_letter or nucleotide_letter(self.name)
        return None

    @property
    def num_atoms(self) -> int:
        return len(self.atoms)

    @property
    def ca(self) -> Optional[Atom]:
        """Alpha-carbon atom, or None."""
        for a in self.atoms:
            if a.is_alpha_carbon:
                return a
        return None

    def get_atom(self, name: str) -> Optional[Atom]:
        for a in self.atoms:
            if a.name == name:
                return a
        return None

    def has_atom(self, name: str) -> bool:
        return self.get_atom(name) is not None

    def add_atom(self, atom: Atom) -> None:
        self._check_mutable()
        self.atoms.append(atom)

    def set_number(self, residue_number: Optional[int], insertion_code: str = "") -> None:
        self.residue_number = residue_number
        self.insertion_code = insertion_code

    def clone(self) -> "Group":
        """Copy without atoms or addresses (used for declared sequences)."""
        return Group(
            name=self.name,
            kind=self.kind,
            residue_number=self.residue_number,
            insertion_code=self.insertion_code,
            one_letter=self.one_letter,
            record_type=self.record_type,
            seq_id=self.seq_id,
        )

    def _freeze(self) -> None:
        object.__setattr__(self, "atoms", tuple(self.atoms))
        for atom in self.atoms:
            atom.freeze()


# ======================================================================
# Chain
# ======================================================================

class Chain(Freezable):
    """Ordered list of groups with lookup by (residue number, insertion code).

    ``internal_id`` is the identifier used while parsing (the mmCIF asym id);
    ``name`` is the public (author/strand) id. They are equal for PDB input.
    """

    def __init__(self, name: str, internal_id: Optional[str] = None):
        self.name = name
        self.internal_id = internal_id if internal_id is not None else name
        self.groups: list[Group] = []
        self.seqres_groups: list[Group] = []
        self.compound: Optional[Compound] = None
        self._index: dict[tuple[Optional[int], str], Group] = {}

    # -- building ---------------------------------------------------------

    def add_group(self, group: Group) -> Group:
        """Append ``group``; a repeated (number, icode) key merges atoms.

        Returns the group that now holds the atoms.
        """
        self._check_mutable()
        key = group.key
        existing = self._index.get(key) if group.residue_number is not None else None
        if existing is not None and existing is not group:
            logger.debug(
                "Chain %s: residue %s seen again, merging %d atoms",
                self.name, group.pdb_code, group.num_atoms,
            )
            for atom in group.atoms:
                existing.add_atom(atom)
            return existing
        if existing is group:
            return group
        self.groups.append(group)
        if group.residue_number is not None:
            self._index[key] = group
        return group

    def renumber(self, group: Group, residue_number: int, insertion_code: str = "") -> bool:
        """Change the public number of ``group`` keeping the lookup index valid.

        Returns False (and leaves the group untouched) when another group of
        this chain already uses the new key.
        """
        self._check_mutable()
        new_key = (residue_number, insertion_code)
        holder = self._index.get(new_key)
        if holder is not None and holder is not group:
            logger.warning(
                "Chain %s: cannot renumber %s to %s%s, key already used by %s",
                self.name, group.name, residue_number, insertion_code, holder.name,
            )
            return False
        if self._index.get(group.key) is group:
            del self._index[group.key]
        group.set_number(residue_number, insertion_code)
        self._index[new_key] = group
        return True

    def renumber_all(self, changes: list[tuple[Group, int, str]]) -> int:
        """Renumber several groups at once, so numbers may shift or swap.

        A change whose new key is held by a group that keeps its number, or
        claimed by an earlier change, is skipped. Returns the number applied.
        """
        self._check_mutable()
        pending = list(changes)
        while True:
            moving = {id(g) for g, _, _ in pending}
            taken = {key for key, g in self._index.items() if id(g) not in moving}
            accepted, rejected = [], []
            for group, number, icode in pending:
                key = (number, icode)
                if key in taken:
                    rejected.append((group, number, icode))
                else:
                    taken.add(key)
                    accepted.append((group, number, icode))
            if not rejected:
                break
            for group, number, icode in rejected:
                logger.warning(
                    "Chain %s: cannot renumber %s %s to %s%s, key already used",
                    self.name, group.name, group.pdb_code, number, icode,
                )
            pending = accepted
        for group, _, _ in pending:
            if self._index.get(group.key) is group:
                del self._index[group.key]
        for group, number, icode in pending:
            group.set_number(number, icode)
            self._index[(number, icode)] = group
        return len(pending)

    def merge(self, other: "Chain") -> None:
        """Append the groups of ``other`` (used when two ids map to one name)."""
        for group in other.groups:
            self.add_group(group)
        if not self.seqres_groups:
            self.seqres_groups = list(other.seqres_groups)
        else:
            self.seqres_groups.extend(other.seqres_groups)

    def prune_empty_groups(self) -> int:
        """Drop groups without atoms. Returns the number removed."""
        self._check_mutable()
        kept = [g for g in self.groups if g.atoms]
        removed = len(self.groups) - len(kept)
        if removed:
            self._set_groups(kept)
        return removed

    def filter_ca_only(self) -> None:
        """Reduce every group to its first CA atom, dropping groups without one."""
        self._check_mutable()
        kept = []
        for g in self.groups:
            ca = g.ca
            if ca is None:
                continue
            g.atoms = [ca]
            kept.append(g)
        self._set_groups(kept)

    def _set_groups(self, groups: list[Group]) -> None:
        self.groups = groups
        self._index = {g.key: g for g in groups if g.residue_number is not None}

    # -- lookup and views -------------------------------------------------

    def get_group(self, residue_number: int, insertion_code: str = "") -> Optional[Group]:
        return self._index.get((residue_number, insertion_code))

    def get_group_by_code(self, pdb_code: str) -> Optional[Group]:
        """Lookup by a combined residue identifier such as ``"52A"``."""
        code = pdb_code.strip()
        icode = ""
        if code and code[-1].isalpha():
            code, icode = code[:-1], code[-1]
        try:
            number = int(code)
        except ValueError:
            return None
        return self.get_group(number, icode)

    def atom_groups(self, kind: Optional[GroupKind] = None) -> list[Group]:
        if kind is None:
            return list(self.groups)
        return [g for g in self.groups if g.kind is kind]

    @property
    def amino_acids(self) -> list[Group]:
        return self.atom_groups(GroupKind.AMINO_ACID)

    @property
    def atom_sequence(self) -> str:
        return "".join(g.letter for g in self.groups if g.kind.is_polymer)

    @property
    def seqres_sequence(self) -> str:
        return "".join(g.letter or "X" for g in self.seqres_groups)

    @property
    def seqres_length(self) -> int:
        return len(self.seqres_groups)

    @property
    def num_residues(self) -> int:
        return len(self.groups)

    @property
    def num_atoms(self) -> int:
        return sum(g.num_atoms for g in self.groups)

    @property
    def atoms(self) -> list[Atom]:
        return [a for g in self.groups for a in g.atoms]

    def ca_coords(self) -> np.ndarray:
        """(n, 3) array with the CA coordinates of all amino acids."""
        coords = [g.ca.coords for g in self.groups if g.is_amino_acid and g.ca is not None]
        return np.asarray(coords, dtype=float).reshape(-1, 3)

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[Group]:
        return iter(self.groups)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chain):
            return NotImplemented
        return (
            self.name == other.name
            and self.internal_id == other.internal_id
            and list(self.groups) == list(other.groups)
            and list(self.seqres_groups) == list(other.seqres_groups)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"<Chain {self.name} internal_id={self.internal_id} "
            f"groups={len(self.groups)} seqres={len(self.seqres_groups)}>"
        )

    def _freeze(self) -> None:
        for g in self.groups:
            g.freeze()
        for g in self.seqres_groups:
            g.freeze()
        object.__setattr__(self, "groups", tuple(self.groups))
        object.__setattr__(self, "seqres_groups", tuple(self.seqres_groups))


# ======================================================================
# Model
# ======================================================================

class Model(Freezable):
    """One set of chains; later models are alternate conformations."""

    def __init__(self, chains: Optional[list[Chain]] = None):
        self.chains: list[Chain] = []
        for c in chains or []:
            self.add_chain(c)

    def add_chain(self, chain: Chain) -> Chain:
        self._check_mutable()
        if self.get_chain(chain.name) is not None:
            raise ValueError(f"Chain {chain.name!r} already present in model")
        self.chains.append(chain)
        return chain

    def get_chain(self, name: str) -> Optional[Chain]:
        for c in self.chains:
            if c.name == name:
                return c
        return None

    def replace_chains(self, chains: list[Chain]) -> None:
        self._check_mutable()
        self.chains = []
        for c in chains:
            self.add_chain(c)

    @property
    def chain_names(self) -> list[str]:
        return [c.name for c in self.chains]

    def __len__(self) -> int:
        return len(self.chains)

    def __iter__(self) -> Iterator[Chain]:
        return iter(self.chains)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return list(self.chains) == list(other.chains)

    __hash__ = None

    def _freeze(self) -> None:
        for c in self.chains:
            c.freeze()
        object.__setattr__(self, "chains", tuple(self.chains))


# ======================================================================
# Structure
# ======================================================================

class Structure(Freezable):
    """Parsed macromolecular structure, returned frozen by the parsers."""

    def __init__(self, metadata: Optional[StructureMetadata] = None):
        self.metadata = metadata or StructureMetadata()
        self.models: list[Model] = []
        self.compounds: list[Compound] = []
        self.dbrefs: list[DBRef] = []
        self.ssbonds: list[SSBond] = []
        self.connections: list[Connection] = []
        self.secondary_structure: list[SecondaryStructureElement] = []
        self.journal: Optional[JournalArticle] = None
        self.is_nmr = False
        self.ca_only = False
        self.atom_overflow = False

    # -- building ---------------------------------------------------------

    def add_model(self, model: Model) -> Model:
        self._check_mutable()
        self.models.append(model)
        return model

    # -- navigation -------------------------------------------------------

    @property
    def num_models(self) -> int:
        return len(self.models)

    def get_chains(self, model: int = 0) -> list[Chain]:
        if not self.models:
            return []
        return list(self.models[model].chains)

    @property
    def chains(self) -> list[Chain]:
        """Chains of the canonical model (model 0)."""
        return self.get_chains(0)

    def get_chain(self, name: str, model: int = 0) -> Optional[Chain]:
        if not self.models:
            return None
        return self.models[model].get_chain(name)

    def find_chain_by_internal_id(self, internal_id: str, model: int = 0) -> Optional[Chain]:
        for c in self.get_chains(model):
            if c.internal_id == internal_id:
                return c
        return None

    def atoms(self, model: int = 0) -> list[Atom]:
        return [a for c in self.get_chains(model) for a in c.atoms]

    def coords(self, model: int = 0) -> np.ndarray:
        """(n, 3) array with all atom coordinates of ``model``."""
        return np.asarray([a.coords for a in self.atoms(model)], dtype=float).reshape(-1, 3)

    def get_compound(self, mol_id: str) -> Optional[Compound]:
        for comp in self.compounds:
            if comp.mol_id == mol_id:
                return comp
        return None

    def chain_of(self, item: Atom | Group) -> Chain:
        """Chain that owns a group or atom of this (frozen) structure."""
        address = self._address_of(item)
        return self.models[address.model].chains[address.chain]

    def group_of(self, atom: Atom) -> Group:
        address = self._address_of(atom)
        return self.models[address.model].chains[address.chain].groups[address.group]

    def _address_of(self, item: Atom | Group) -> Address:
        if item.address is None:
            raise ValueError("Item has no address; structure is not frozen or item is foreign")
        return item.address

    # -- convenience (same surface as the metadata) -----------------------

    @property
    def entry_id(self) -> str:
        return self.metadata.entry_id

    @property
    def resolution(self) -> Optional[float]:
        return self.metadata.resolution

    @property
    def method(self) -> Optional[str]:
        return self.metadata.method

    @property
    def title(self) -> Optional[str]:
        return self.metadata.title

    @property
    def num_chains(self) -> int:
        return len(self.chains)

    @property
    def num_atoms(self) -> int:
        return len(self.atoms())

    @property
    def chain_ids(self) -> list[str]:
        return [c.name for c in self.chains]

    @property
    def sequences(self) -> dict[str, str]:
        """Chain name -> observed polymer sequence."""
        return {c.name: c.atom_sequence for c in self.chains}

    def to_dict(self) -> dict:
        """Flat dict for manifest / DataFrame usage."""
        m = self.metadata
        return {
            "entry_id": m.entry_id,
            "format": m.format,
            "classification": m.classification,
            "method": m.method,
            "resolution": m.resolution,
            "deposit_date": m.deposit_date.isoformat() if m.deposit_date else None,
            "title": m.title,
            "space_group": m.space_group,
            "model_count": self.num_models,
            "chain_count": self.num_chains,
            "compound_count": len(self.compounds),
            "group_count": sum(len(c) for c in self.chains),
            "atom_count": self.num_atoms,
            "is_nmr": self.is_nmr,
            "ca_only": self.ca_only,
            "atom_overflow": self.atom_overflow,
        }

    # -- freezing ---------------------------------------------------------

    def _freeze(self) -> None:
        for mi, model in enumerate(self.models):
            for ci, chain in enumerate(model.chains):
                for gi, group in enumerate(chain.groups):
                    group.address = Address(mi, ci, gi)
                    for ai, atom in enumerate(group.atoms):
                        atom.address = Address(mi, ci, gi, ai)
            model.freeze()
        for comp in self.compounds:
            comp.freeze()
        self.metadata.freeze()
        for name in ("models", "compounds", "dbrefs", "ssbonds", "connections", "secondary_structure"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Structure):
            return NotImplemented
        return (
            list(self.models) == list(other.models)
            and self.metadata == other.metadata
            and list(self.compounds) == list(other.compounds)
            and list(self.dbrefs) == list(other.dbrefs)
            and list(self.ssbonds) == list(other.ssbonds)
            and (self.is_nmr, self.ca_only, self.atom_overflow)
            == (other.is_nmr, other.ca_only, other.atom_overflow)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.entry_id} models={self.num_models} "
            f"chains={self.num_chains} atoms={self.num_atoms}>"
        )
