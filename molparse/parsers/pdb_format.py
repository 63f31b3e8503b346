"""Legacy PDB format parser, pure Python.

Parses .pdb and .ent(.gz) files line by line into a frozen Structure.
Every line is classified into a RecordKind and dispatched to one handler;
handlers read all fields of their line before touching the parse state, so
a malformed line raises RecordParseError and contributes nothing.

Single Responsibility: only handles PDB format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, NamedTuple, Optional

from molparse.core.logging_utils import get_logger
from molparse.model.components import (
    element_from_atom_name,
    normalize_element,
    parse_pdb_date,
)
from molparse.model.header import (
    Connection,
    DBRef,
    SecondaryStructureElement,
    SSBond,
)
from molparse.model.hierarchy import Atom, Chain, Group, Structure
from molparse.parsers.base import (
    RecordParseError,
    StructureIOError,
    StructureParser,
    entry_id_from_path,
)
from molparse.parsers.context import ParseContext
from molparse.parsers.crossref import link_compounds
from molparse.parsers.pdb_header import build_compounds, build_journal
from molparse.parsers.secstruc import assign_secondary_structure
from molparse.parsers.seqres import SeqResAligner, attach_seqres

logger = get_logger(__name__)


class RecordKind(str, Enum):
    """PDB record types the parser understands; everything else is skipped."""

    ATOM = "ATOM"
    HETATM = "HETATM"
    MODEL = "MODEL"
    SEQRES = "SEQRES"
    HEADER = "HEADER"
    TITLE = "TITLE"
    KEYWDS = "KEYWDS"
    AUTHOR = "AUTHOR"
    COMPND = "COMPND"
    SOURCE = "SOURCE"
    EXPDTA = "EXPDTA"
    REMARK = "REMARK"
    REVDAT = "REVDAT"
    JRNL = "JRNL"
    DBREF = "DBREF"
    SSBOND = "SSBOND"
    CONECT = "CONECT"
    CRYST1 = "CRYST1"
    HELIX = "HELIX"
    SHEET = "SHEET"
    TURN = "TURN"

    @classmethod
    def of(cls, line: str) -> Optional["RecordKind"]:
        try:
            return cls(line[:6].strip())
        except ValueError:
            return None


# ======================================================================
# Field helpers
# ======================================================================

def _int(text: str, what: str, line: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise RecordParseError(f"invalid {what} {text.strip()!r}", line) from None


def _opt_int(text: str, what: str, line: str) -> Optional[int]:
    if not text.strip():
        return None
    return _int(text, what, line)


def _float(text: str, what: str, line: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise RecordParseError(f"invalid {what} {text.strip()!r}", line) from None


def _float_or(text: str, default: float) -> float:
    # occupancy and temperature factor are often blank or junk
    try:
        return float(text)
    except ValueError:
        return default


def _icode(text: str) -> str:
    return text.strip()


class _AtomRecord(NamedTuple):
    record_type: str
    serial: int
    name: str
    alt_loc: str
    res_name: str
    chain_id: str
    res_seq: int
    icode: str
    x: float
    y: float
    z: float
    occupancy: float
    temp_factor: float
    element: str


def parse_atom_line(line: str) -> _AtomRecord:
    """Read all fields of an ATOM/HETATM line (columns per the PDB guide)."""
    if len(line) < 54:
        raise RecordParseError(f"truncated {line[:6].strip()} record", line)
    full_name = line[12:16]
    if len(line) > 77 and line[76:78].strip():
        element = normalize_element(line[76:78])
    else:
        element = element_from_atom_name(full_name)
    return _AtomRecord(
        record_type=line[:6].strip(),
        serial=_int(line[6:11], "atom serial", line),
        name=full_name.strip(),
        alt_loc=line[16:17].strip(),
        res_name=line[17:20].strip(),
        chain_id=line[21:22] or " ",
        res_seq=_int(line[22:26], "residue number", line),
        icode=_icode(line[26:27]),
        x=_float(line[30:38], "x coordinate", line),
        y=_float(line[38:46], "y coordinate", line),
        z=_float(line[46:54], "z coordinate", line),
        occupancy=_float_or(line[54:60], 1.0),
        temp_factor=_float_or(line[60:66], 0.0),
        element=element,
    )


@dataclass
class _HeaderBuffers:
    """Text that spans several lines and is interpreted at end of file."""

    title: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    authors: str = ""
    techniques: list[str] = field(default_factory=list)
    compnd: list[str] = field(default_factory=list)
    source: list[str] = field(default_factory=list)
    jrnl: list[str] = field(default_factory=list)
    revdat_seen: bool = False


# ======================================================================
# Parser
# ======================================================================

class PDBFormatParser(StructureParser):
    """Parse PDB-format files (.pdb, .ent, .ent.gz) into a Structure."""

    format_name = "pdb"

    def parse_lines(self, lines: Iterable[str], source_path: Optional[Path] = None) -> Structure:
        ctx = ParseContext(self.settings, self.lookup)
        ctx.structure.metadata.format = "pdb"
        buffers = _HeaderBuffers()
        empty = True

        for number, raw in enumerate(lines, 1):
            empty = False
            ctx.line_number = number
            line = raw.rstrip("\r\n")
            if len(line) < 6:
                if line.strip() and line.strip() != "END":
                    logger.debug("Line %d too short, skipped: %r", number, line)
                continue
            kind = RecordKind.of(line)
            if kind is None:
                continue
            try:
                self._dispatch(kind, line, ctx, buffers)
            except RecordParseError as e:
                logger.warning("Line %d: %s, record skipped: %r", number, e, line)

        if empty:
            raise StructureIOError(f"Empty PDB input{f' ({source_path})' if source_path else ''}")
        return self._finish(ctx, buffers, source_path)

    @staticmethod
    def extensions() -> list[str]:
        return [".pdb", ".pdb.gz", ".ent", ".ent.gz"]

    # -- dispatch ---------------------------------------------------------

    def _dispatch(self, kind: RecordKind, line: str, ctx: ParseContext, buf: _HeaderBuffers) -> None:
        if kind is RecordKind.ATOM or kind is RecordKind.HETATM:
            self._on_atom(line, ctx)
        elif kind is RecordKind.MODEL:
            if not self.settings.header_only:
                ctx.close_model()
        elif kind is RecordKind.SEQRES:
            self._on_seqres(line, ctx)
        elif kind is RecordKind.HEADER:
            self._on_header(line, ctx)
        elif kind is RecordKind.TITLE:
            buf.title.append(line[10:80].strip())
        elif kind is RecordKind.KEYWDS:
            buf.keywords.append(line[10:79].strip())
        elif kind is RecordKind.AUTHOR:
            buf.authors += line[10:].strip()
        elif kind is RecordKind.COMPND:
            buf.compnd.append(line)
        elif kind is RecordKind.SOURCE:
            buf.source.append(line)
        elif kind is RecordKind.EXPDTA:
            technique = line[10:70].strip()
            buf.techniques.append(technique)
            if "NMR" in technique:
                ctx.structure.is_nmr = True
        elif kind is RecordKind.REMARK:
            if line[:10].strip() == "REMARK   2":
                self._on_remark_2(line, ctx)
        elif kind is RecordKind.REVDAT:
            if not buf.revdat_seen:
                buf.revdat_seen = True
                ctx.structure.metadata.modification_date = parse_pdb_date(line[13:22])
        elif kind is RecordKind.JRNL:
            buf.jrnl.append(line)
        elif kind is RecordKind.DBREF:
            ctx.structure.dbrefs.append(self._parse_dbref(line))
        elif kind is RecordKind.SSBOND:
            ctx.structure.ssbonds.append(self._parse_ssbond(line))
        elif kind is RecordKind.CONECT:
            ctx.structure.connections.append(self._parse_conect(line))
        elif kind is RecordKind.CRYST1:
            self._on_cryst1(line, ctx)
        elif kind is RecordKind.HELIX:
            ctx.structure.secondary_structure.append(self._parse_helix(line))
        elif kind is RecordKind.SHEET:
            ctx.structure.secondary_structure.append(self._parse_sheet(line))
        elif kind is RecordKind.TURN:
            ctx.structure.secondary_structure.append(self._parse_turn(line))

    # -- coordinates ------------------------------------------------------

    def _on_atom(self, line: str, ctx: ParseContext) -> None:
        if self.settings.header_only:
            return
        rec = parse_atom_line(line)
        new_chain = ctx.select_chain(rec.chain_id)
        ctx.select_group(rec.res_name, rec.res_seq, rec.icode, rec.record_type, new_chain=new_chain)
        ctx.add_atom(Atom(
            serial=rec.serial,
            name=rec.name,
            element=rec.element,
            x=rec.x,
            y=rec.y,
            z=rec.z,
            occupancy=rec.occupancy,
            temp_factor=rec.temp_factor,
            alt_loc=rec.alt_loc,
        ))

    def _on_seqres(self, line: str, ctx: ParseContext) -> None:
        if ctx.seqres_discarded:
            return
        chain_id = line[11:12] or " "
        names = line[19:70].split()
        chain = next((c for c in ctx.seqres_chains if c.name == chain_id), None)
        if chain is None:
            chain = Chain(chain_id)
            ctx.seqres_chains.append(chain)
        for name in names:
            kind, code1 = self.lookup.resolve_kind(name, "ATOM")
            chain.add_group(Group(name=name, kind=kind, one_letter=code1, record_type="SEQRES"))

    # -- header records ---------------------------------------------------

    @staticmethod
    def _on_header(line: str, ctx: ParseContext) -> None:
        meta = ctx.structure.metadata
        meta.classification = line[10:50].strip()
        meta.deposit_date = parse_pdb_date(line[50:59])
        meta.entry_id = line[62:66].strip()

    @staticmethod
    def _on_remark_2(line: str, ctx: ParseContext) -> None:
        end = line.find("ANGSTROM")
        if end == -1:
            return
        ctx.structure.metadata.resolution = _float(line[22:end].strip(), "resolution", line)

    @staticmethod
    def _on_cryst1(line: str, ctx: ParseContext) -> None:
        meta = ctx.structure.metadata
        cell = [_float(line[a:b], "unit cell", line) for a, b in
                ((6, 15), (15, 24), (24, 33), (33, 40), (40, 47), (47, 54))]
        (meta.cell_a, meta.cell_b, meta.cell_c,
         meta.cell_alpha, meta.cell_beta, meta.cell_gamma) = cell
        meta.space_group = line[55:66].strip() or None

    # -- side records -----------------------------------------------------

    @staticmethod
    def _parse_dbref(line: str) -> DBRef:
        return DBRef(
            id_code=line[7:11].strip(),
            chain_id=line[12:13] or " ",
            seq_begin=_opt_int(line[14:18], "DBREF seqBegin", line),
            insert_begin=_icode(line[18:19]),
            seq_end=_opt_int(line[20:24], "DBREF seqEnd", line),
            insert_end=_icode(line[24:25]),
            database=line[26:32].strip(),
            db_accession=line[33:41].strip(),
            db_id_code=line[42:54].strip(),
            db_seq_begin=_opt_int(line[55:60], "DBREF dbseqBegin", line),
            db_insert_begin=_icode(line[60:61]),
            db_seq_end=_opt_int(line[62:67], "DBREF dbseqEnd", line),
            db_insert_end=_icode(line[67:68]),
        )

    @staticmethod
    def _parse_ssbond(line: str) -> SSBond:
        if len(line) < 35:
            raise RecordParseError("truncated SSBOND record", line)
        return SSBond(
            chain_id1=line[15:16],
            resnum1=line[17:21].strip(),
            ins_code1=_icode(line[21:22]),
            chain_id2=line[29:30],
            resnum2=line[31:35].strip(),
            ins_code2=_icode(line[35:36]),
        )

    @staticmethod
    def _parse_conect(line: str) -> Connection:
        def serials(*spans: tuple[int, int]) -> tuple[int, ...]:
            return tuple(
                _int(line[a:b], "CONECT serial", line)
                for a, b in spans if line[a:b].strip()
            )

        return Connection(
            atom_serial=_int(line[6:11], "CONECT serial", line),
            bonds=serials((11, 16), (16, 21), (21, 26), (26, 31)),
            hydrogen_bonds=serials((31, 36), (36, 41), (46, 51), (51, 56)),
            salt_bridges=serials((41, 46), (56, 61)),
        )

    @staticmethod
    def _secondary(kind: str, line: str, cols: tuple) -> SecondaryStructureElement:
        (rn1, ch1, sq1, ic1, rn2, ch2, sq2, ic2) = cols
        return SecondaryStructureElement(
            kind=kind,
            init_res_name=line[rn1[0]:rn1[1]].strip(),
            init_chain_id=line[ch1:ch1 + 1] or " ",
            init_seq_num=_int(line[sq1[0]:sq1[1]], f"{kind} start residue", line),
            init_ins_code=_icode(line[ic1:ic1 + 1]),
            end_res_name=line[rn2[0]:rn2[1]].strip(),
            end_chain_id=line[ch2:ch2 + 1] or " ",
            end_seq_num=_int(line[sq2[0]:sq2[1]], f"{kind} end residue", line),
            end_ins_code=_icode(line[ic2:ic2 + 1]),
        )

    def _parse_helix(self, line: str) -> SecondaryStructureElement:
        return self._secondary("HELIX", line, ((15, 18), 19, (21, 25), 25, (27, 30), 31, (33, 37), 37))

    def _parse_sheet(self, line: str) -> SecondaryStructureElement:
        return self._secondary("STRAND", line, ((17, 20), 21, (22, 26), 26, (28, 31), 32, (33, 37), 37))

    def _parse_turn(self, line: str) -> SecondaryStructureElement:
        return self._secondary("TURN", line, ((15, 18), 19, (20, 24), 24, (26, 29), 30, (31, 35), 35))

    # -- end of file ------------------------------------------------------

    def _finish(self, ctx: ParseContext, buf: _HeaderBuffers, source_path: Optional[Path]) -> Structure:
        structure = ctx.finish()
        meta = structure.metadata

        if buf.title:
            meta.title = " ".join(t for t in buf.title if t) or None
        if buf.keywords:
            meta.keywords = " ".join(k for k in buf.keywords if k) or None
        if buf.authors:
            meta.authors = buf.authors
        if buf.techniques:
            meta.method = " ".join(t for t in buf.techniques if t) or None
        if meta.modification_date is None:
            meta.modification_date = meta.deposit_date
        if not meta.entry_id:
            meta.entry_id = entry_id_from_path(source_path)

        structure.compounds.extend(build_compounds(buf.compnd, buf.source))
        structure.journal = build_journal(buf.jrnl)

        link_compounds(structure)
        if ctx.seqres_chains:
            if self.settings.align_seqres:
                SeqResAligner().align(structure, ctx.seqres_chains)
            else:
                attach_seqres(structure, ctx.seqres_chains)
        if self.settings.parse_secstruc and structure.secondary_structure:
            assign_secondary_structure(structure, structure.secondary_structure)

        logger.debug(
            "Parsed PDB %s: %d models, %d chains, %d atoms",
            meta.entry_id, structure.num_models, structure.num_chains, structure.num_atoms,
        )
        return structure.freeze()
