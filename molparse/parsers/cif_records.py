"""Typed records for the mmCIF categories the assembler consumes.

Each record is a frozen dataclass whose field names are the (lower-cased)
mmCIF item names; ``from_row`` converts a reader row, raising
RecordParseError when a required item is missing or a number is malformed.
Fields whose item name is not a valid identifier carry it in metadata.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import ClassVar, Mapping, Optional

from molparse.parsers.base import RecordParseError

_CONVERTERS = {"int": int, "float": float, "str": str}


@dataclass(frozen=True)
class CifRecord:
    category: ClassVar[str] = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Optional[str]]):
        kwargs = {}
        for f in dataclasses.fields(cls):
            item = f.metadata.get("item", f.name)
            raw = row.get(item)
            type_name = str(f.type)
            optional = type_name.startswith("Optional[")
            if raw is None:
                if f.default is dataclasses.MISSING and not optional:
                    raise RecordParseError(f"_{cls.category}.{item} is missing")
                continue
            convert = _CONVERTERS[type_name.removeprefix("Optional[").rstrip("]")]
            try:
                kwargs[f.name] = convert(raw)
            except ValueError:
                raise RecordParseError(f"_{cls.category}.{item}: invalid value {raw!r}") from None
        return cls(**kwargs)


# ======================================================================
# Coordinates and entities
# ======================================================================

@dataclass(frozen=True)
class AtomSite(CifRecord):
    category: ClassVar[str] = "atom_site"

    id: int
    label_atom_id: str
    label_comp_id: str
    label_asym_id: str
    cartn_x: float
    cartn_y: float
    cartn_z: float
    group_pdb: str = "ATOM"
    type_symbol: Optional[str] = None
    label_alt_id: Optional[str] = None
    label_entity_id: Optional[str] = None
    label_seq_id: Optional[int] = None
    pdbx_pdb_ins_code: Optional[str] = None
    occupancy: float = 1.0
    b_iso_or_equiv: float = 0.0
    auth_seq_id: Optional[int] = None
    auth_comp_id: Optional[str] = None
    auth_asym_id: Optional[str] = None
    auth_atom_id: Optional[str] = None
    pdbx_pdb_model_num: int = 1

    @property
    def atom_name(self) -> str:
        return self.auth_atom_id or self.label_atom_id

    @property
    def comp_id(self) -> str:
        return self.auth_comp_id or self.label_comp_id

    @property
    def residue_number(self) -> Optional[int]:
        return self.auth_seq_id if self.auth_seq_id is not None else self.label_seq_id


@dataclass(frozen=True)
class Entity(CifRecord):
    category: ClassVar[str] = "entity"

    id: str
    type: str = "polymer"
    pdbx_description: Optional[str] = None
    pdbx_fragment: Optional[str] = None
    pdbx_ec: Optional[str] = None
    pdbx_mutation: Optional[str] = None
    details: Optional[str] = None


@dataclass(frozen=True)
class StructAsym(CifRecord):
    category: ClassVar[str] = "struct_asym"

    id: str
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class EntityPolySeq(CifRecord):
    category: ClassVar[str] = "entity_poly_seq"

    entity_id: str
    num: int
    mon_id: str
    hetero: Optional[str] = None


@dataclass(frozen=True)
class PdbxPolySeqScheme(CifRecord):
    category: ClassVar[str] = "pdbx_poly_seq_scheme"

    asym_id: str
    seq_id: int
    mon_id: str
    entity_id: Optional[str] = None
    pdb_strand_id: Optional[str] = None
    auth_seq_num: Optional[str] = None
    pdb_seq_num: Optional[str] = None
    pdb_mon_id: Optional[str] = None
    auth_mon_id: Optional[str] = None
    pdb_ins_code: Optional[str] = None


@dataclass(frozen=True)
class PdbxNonPolyScheme(CifRecord):
    category: ClassVar[str] = "pdbx_nonpoly_scheme"

    asym_id: str
    mon_id: str
    entity_id: Optional[str] = None
    pdb_strand_id: Optional[str] = None
    auth_seq_num: Optional[str] = None
    pdb_seq_num: Optional[str] = None
    pdb_ins_code: Optional[str] = None


# ======================================================================
# Header
# ======================================================================

@dataclass(frozen=True)
class Entry(CifRecord):
    category: ClassVar[str] = "entry"

    id: str


@dataclass(frozen=True)
class PdbxDatabaseStatus(CifRecord):
    category: ClassVar[str] = "pdbx_database_status"

    recvd_initial_deposition_date: Optional[str] = None


@dataclass(frozen=True)
class Struct(CifRecord):
    category: ClassVar[str] = "struct"

    entry_id: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class StructKeywords(CifRecord):
    category: ClassVar[str] = "struct_keywords"

    entry_id: Optional[str] = None
    pdbx_keywords: Optional[str] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class Exptl(CifRecord):
    category: ClassVar[str] = "exptl"

    method: str
    entry_id: Optional[str] = None


@dataclass(frozen=True)
class Refine(CifRecord):
    category: ClassVar[str] = "refine"

    ls_d_res_high: Optional[float] = None


@dataclass(frozen=True)
class AuditAuthor(CifRecord):
    category: ClassVar[str] = "audit_author"

    name: str
    pdbx_ordinal: Optional[int] = None


@dataclass(frozen=True)
class DatabasePDBRev(CifRecord):
    category: ClassVar[str] = "database_pdb_rev"

    num: int
    date: Optional[str] = None
    date_original: Optional[str] = None
    mod_type: Optional[str] = None


@dataclass(frozen=True)
class DatabasePDBRemark(CifRecord):
    category: ClassVar[str] = "database_pdb_remark"

    id: str
    text: Optional[str] = None


@dataclass(frozen=True)
class Cell(CifRecord):
    category: ClassVar[str] = "cell"

    length_a: Optional[float] = None
    length_b: Optional[float] = None
    length_c: Optional[float] = None
    angle_alpha: Optional[float] = None
    angle_beta: Optional[float] = None
    angle_gamma: Optional[float] = None


@dataclass(frozen=True)
class Symmetry(CifRecord):
    category: ClassVar[str] = "symmetry"

    space_group: Optional[str] = field(default=None, metadata={"item": "space_group_name_h-m"})


# ======================================================================
# Side records
# ======================================================================

@dataclass(frozen=True)
class StructRef(CifRecord):
    category: ClassVar[str] = "struct_ref"

    id: str
    db_name: Optional[str] = None
    db_code: Optional[str] = None
    pdbx_db_accession: Optional[str] = None
    entity_id: Optional[str] = None


@dataclass(frozen=True)
class StructRefSeq(CifRecord):
    category: ClassVar[str] = "struct_ref_seq"

    align_id: str
    ref_id: str
    pdbx_pdb_id_code: Optional[str] = None
    pdbx_strand_id: Optional[str] = None
    seq_align_beg: Optional[int] = None
    pdbx_seq_align_beg_ins_code: Optional[str] = None
    seq_align_end: Optional[int] = None
    pdbx_seq_align_end_ins_code: Optional[str] = None
    pdbx_db_accession: Optional[str] = None
    db_align_beg: Optional[int] = None
    pdbx_db_align_beg_ins_code: Optional[str] = None
    db_align_end: Optional[int] = None
    pdbx_db_align_end_ins_code: Optional[str] = None
    pdbx_auth_seq_align_beg: Optional[str] = None
    pdbx_auth_seq_align_end: Optional[str] = None


@dataclass(frozen=True)
class StructConn(CifRecord):
    category: ClassVar[str] = "struct_conn"

    id: str
    conn_type_id: str
    ptnr1_auth_asym_id: Optional[str] = None
    ptnr1_auth_seq_id: Optional[str] = None
    pdbx_ptnr1_pdb_ins_code: Optional[str] = None
    ptnr2_auth_asym_id: Optional[str] = None
    ptnr2_auth_seq_id: Optional[str] = None
    pdbx_ptnr2_pdb_ins_code: Optional[str] = None


@dataclass(frozen=True)
class StructConf(CifRecord):
    category: ClassVar[str] = "struct_conf"

    conf_type_id: str
    beg_auth_comp_id: Optional[str] = None
    beg_auth_asym_id: Optional[str] = None
    beg_auth_seq_id: Optional[int] = None
    pdbx_beg_pdb_ins_code: Optional[str] = None
    end_auth_comp_id: Optional[str] = None
    end_auth_asym_id: Optional[str] = None
    end_auth_seq_id: Optional[int] = None
    pdbx_end_pdb_ins_code: Optional[str] = None


@dataclass(frozen=True)
class StructSheetRange(CifRecord):
    category: ClassVar[str] = "struct_sheet_range"

    sheet_id: Optional[str] = None
    beg_auth_comp_id: Optional[str] = None
    beg_auth_asym_id: Optional[str] = None
    beg_auth_seq_id: Optional[int] = None
    pdbx_beg_pdb_ins_code: Optional[str] = None
    end_auth_comp_id: Optional[str] = None
    end_auth_asym_id: Optional[str] = None
    end_auth_seq_id: Optional[int] = None
    pdbx_end_pdb_ins_code: Optional[str] = None


RECORD_TYPES: dict[str, type[CifRecord]] = {
    cls.category: cls
    for cls in (
        AtomSite, Entity, StructAsym, EntityPolySeq, PdbxPolySeqScheme,
        PdbxNonPolyScheme, Entry, PdbxDatabaseStatus, Struct, StructKeywords,
        Exptl, Refine, AuditAuthor,
        DatabasePDBRev, DatabasePDBRemark, Cell, Symmetry, StructRef,
        StructRefSeq, StructConn, StructConf, StructSheetRange,
    )
}
