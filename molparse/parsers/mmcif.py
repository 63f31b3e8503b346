"""mmCIF parser, pure Python.

Parses .cif and .cif.gz files into a frozen Structure. The reader
(cif_reader) turns the first data block into categories, cif_records types
their rows, and this module assembles the hierarchy:

* chains are keyed by the internal asym id (``label_asym_id``) while
  reading, and renamed to the author strand id at the end;
* groups are keyed by (``auth_seq_id``, ``pdbx_PDB_ins_code``), with
  ``label_seq_id`` kept on the group as ``seq_id``;
* a change of ``pdbx_PDB_model_num`` starts a new model;
* ``_entity_poly_seq`` provides the declared sequence of every entity,
  copied once per ``_struct_asym`` of that entity.

Scheme categories are buffered and applied when the document ends, so the
category order inside the file does not matter.

Single Responsibility: only handles mmCIF format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from molparse.core.logging_utils import get_logger
from molparse.model.components import normalize_element, parse_cif_date
from molparse.model.header import Compound, DBRef, SecondaryStructureElement, SSBond
from molparse.model.hierarchy import Atom, Chain, Group, Structure
from molparse.parsers.base import (
    RecordParseError,
    StructureIOError,
    StructureParser,
    entry_id_from_path,
)
from molparse.parsers.cif_reader import CifReader
from molparse.parsers.cif_records import (
    RECORD_TYPES,
    AtomSite,
    AuditAuthor,
    Cell,
    CifRecord,
    DatabasePDBRemark,
    DatabasePDBRev,
    Entity,
    EntityPolySeq,
    Entry,
    Exptl,
    PdbxDatabaseStatus,
    PdbxNonPolyScheme,
    PdbxPolySeqScheme,
    Refine,
    Struct,
    StructAsym,
    StructConf,
    StructConn,
    StructKeywords,
    StructRef,
    StructRefSeq,
    StructSheetRange,
    Symmetry,
)
from molparse.parsers.context import ParseContext
from molparse.parsers.crossref import apply_chain_id_map, link_compounds
from molparse.parsers.secstruc import assign_secondary_structure
from molparse.parsers.seqres import SeqResAligner, attach_seqres

logger = get_logger(__name__)


def format_audit_author(name: str) -> str:
    """``"Smith, J.D."`` -> ``"J.D.Smith"`` (the PDB AUTHOR style)."""
    surname, _, initials = name.replace(" ", "").partition(",")
    return f"{initials}{surname}"


def _icode(value: Optional[str]) -> str:
    return value if value is not None else ""


@dataclass
class _DocumentState:
    """Category data that is only interpreted at the end of the document."""

    model_num: Optional[int] = None
    entities: list[Entity] = field(default_factory=list)
    struct_asyms: list[StructAsym] = field(default_factory=list)
    entity_seqs: dict[str, Chain] = field(default_factory=dict)
    poly_schemes: list[PdbxPolySeqScheme] = field(default_factory=list)
    asym_strand: dict[str, str] = field(default_factory=dict)
    struct_refs: dict[str, StructRef] = field(default_factory=dict)
    struct_ref_seqs: list[StructRefSeq] = field(default_factory=list)
    techniques: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)
    deposit_date: Optional[str] = None
    remark_resolution: Optional[float] = None


class CIFParser(StructureParser):
    """Parse mmCIF files (.cif, .cif.gz) into a Structure."""

    format_name = "mmcif"

    def parse_lines(self, lines: Iterable[str], source_path: Optional[Path] = None) -> Structure:
        ctx = ParseContext(self.settings, self.lookup)
        ctx.structure.metadata.format = "mmcif"
        state = _DocumentState()
        reader = CifReader(lines)
        n_categories = 0

        for category in reader:
            n_categories += 1
            record_cls = RECORD_TYPES.get(category.name)
            if record_cls is None:
                logger.debug("Ignoring category _%s (%d rows)", category.name, len(category))
                continue
            for row in category.rows:
                try:
                    record = record_cls.from_row(row)
                    self._dispatch(record, ctx, state)
                except RecordParseError as e:
                    logger.warning("Skipping _%s row: %s", category.name, e)

        if reader.block_name is None and not n_categories:
            raise StructureIOError(
                f"No mmCIF data found{f' in {source_path}' if source_path else ''}"
            )
        return self._finish(ctx, state, source_path)

    @staticmethod
    def extensions() -> list[str]:
        return [".cif", ".cif.gz", ".mmcif"]

    # -- dispatch ---------------------------------------------------------

    def _dispatch(self, record: CifRecord, ctx: ParseContext, state: _DocumentState) -> None:
        meta = ctx.structure.metadata
        if isinstance(record, AtomSite):
            self._on_atom_site(record, ctx, state)
        elif isinstance(record, Entity):
            state.entities.append(record)
        elif isinstance(record, StructAsym):
            state.struct_asyms.append(record)
        elif isinstance(record, EntityPolySeq):
            self._on_entity_poly_seq(record, state)
        elif isinstance(record, PdbxPolySeqScheme):
            state.poly_schemes.append(record)
            state.asym_strand.setdefault(record.asym_id, record.pdb_strand_id or record.asym_id)
        elif isinstance(record, PdbxNonPolyScheme):
            state.asym_strand.setdefault(record.asym_id, record.pdb_strand_id or record.asym_id)
        elif isinstance(record, Entry):
            meta.entry_id = meta.entry_id or record.id
        elif isinstance(record, Struct):
            meta.title = record.title
            if record.entry_id:
                meta.entry_id = record.entry_id
        elif isinstance(record, StructKeywords):
            meta.classification = record.pdbx_keywords or ""
            meta.keywords = record.text
        elif isinstance(record, Exptl):
            state.techniques.append(record.method)
            if "NMR" in record.method.upper():
                ctx.structure.is_nmr = True
        elif isinstance(record, Refine):
            if record.ls_d_res_high is not None:
                meta.resolution = record.ls_d_res_high
        elif isinstance(record, AuditAuthor):
            state.authors.append(format_audit_author(record.name))
        elif isinstance(record, DatabasePDBRev):
            self._on_database_pdb_rev(record, ctx)
        elif isinstance(record, PdbxDatabaseStatus):
            state.deposit_date = record.recvd_initial_deposition_date
        elif isinstance(record, DatabasePDBRemark):
            self._on_remark(record, state)
        elif isinstance(record, Cell):
            meta.cell_a, meta.cell_b, meta.cell_c = record.length_a, record.length_b, record.length_c
            meta.cell_alpha, meta.cell_beta, meta.cell_gamma = (
                record.angle_alpha, record.angle_beta, record.angle_gamma,
            )
        elif isinstance(record, Symmetry):
            meta.space_group = record.space_group
        elif isinstance(record, StructRef):
            state.struct_refs[record.id] = record
        elif isinstance(record, StructRefSeq):
            state.struct_ref_seqs.append(record)
        elif isinstance(record, StructConn):
            if record.conn_type_id.lower() == "disulf":
                ctx.structure.ssbonds.append(self._ssbond(record))
        elif isinstance(record, StructConf):
            if record.conf_type_id.upper().startswith("HELX"):
                ctx.structure.secondary_structure.append(self._sec_element("HELIX", record))
            elif record.conf_type_id.upper().startswith("TURN"):
                ctx.structure.secondary_structure.append(self._sec_element("TURN", record))
        elif isinstance(record, StructSheetRange):
            ctx.structure.secondary_structure.append(self._sec_element("STRAND", record))

    # -- coordinates ------------------------------------------------------

    def _on_atom_site(self, atom: AtomSite, ctx: ParseContext, state: _DocumentState) -> None:
        number = atom.residue_number
        if number is None:
            raise RecordParseError(f"atom {atom.id} has no residue number")

        if state.model_num is None:
            state.model_num = atom.pdbx_pdb_model_num
        elif atom.pdbx_pdb_model_num != state.model_num:
            state.model_num = atom.pdbx_pdb_model_num
            ctx.structure.is_nmr = True
            ctx.close_model()

        if self.settings.header_only:
            return
        new_chain = ctx.select_chain(atom.label_asym_id)
        ctx.select_group(
            atom.label_comp_id,
            number,
            _icode(atom.pdbx_pdb_ins_code),
            atom.group_pdb,
            new_chain=new_chain,
            seq_id=atom.label_seq_id,
        )
        ctx.add_atom(Atom(
            serial=atom.id,
            name=atom.label_atom_id,
            element=normalize_element(atom.type_symbol or atom.label_atom_id[:1]),
            x=atom.cartn_x,
            y=atom.cartn_y,
            z=atom.cartn_z,
            occupancy=atom.occupancy,
            temp_factor=atom.b_iso_or_equiv,
            alt_loc=atom.label_alt_id or "",
        ))

    def _on_entity_poly_seq(self, rec: EntityPolySeq, state: _DocumentState) -> None:
        chain = state.entity_seqs.get(rec.entity_id)
        if chain is None:
            chain = state.entity_seqs[rec.entity_id] = Chain(rec.entity_id)
        kind, code1 = self.lookup.resolve_kind(rec.mon_id, "ATOM")
        chain.add_group(Group(
            name=rec.mon_id, kind=kind, one_letter=code1, record_type="SEQRES", seq_id=rec.num,
        ))

    # -- header -----------------------------------------------------------

    @staticmethod
    def _on_database_pdb_rev(rec: DatabasePDBRev, ctx: ParseContext) -> None:
        meta = ctx.structure.metadata
        if rec.num == 1:
            meta.deposit_date = parse_cif_date(rec.date_original)
        meta.modification_date = parse_cif_date(rec.date) or meta.modification_date

    @staticmethod
    def _on_remark(rec: DatabasePDBRemark, state: _DocumentState) -> None:
        if rec.id != "2" or not rec.text:
            return
        end = rec.text.find("ANGSTROM")
        if end <= 5:
            return
        try:
            state.remark_resolution = float(rec.text[end - 5:end].strip())
        except ValueError:
            raise RecordParseError(f"invalid resolution in remark 2: {rec.text!r}") from None

    # -- side records -----------------------------------------------------

    @staticmethod
    def _ssbond(rec: StructConn) -> SSBond:
        return SSBond(
            chain_id1=rec.ptnr1_auth_asym_id or "",
            resnum1=rec.ptnr1_auth_seq_id or "",
            ins_code1=_icode(rec.pdbx_ptnr1_pdb_ins_code),
            chain_id2=rec.ptnr2_auth_asym_id or "",
            resnum2=rec.ptnr2_auth_seq_id or "",
            ins_code2=_icode(rec.pdbx_ptnr2_pdb_ins_code),
        )

    @staticmethod
    def _sec_element(kind: str, rec: StructConf | StructSheetRange) -> SecondaryStructureElement:
        if rec.beg_auth_seq_id is None or rec.end_auth_seq_id is None:
            raise RecordParseError(f"{kind} range without residue numbers")
        return SecondaryStructureElement(
            kind=kind,
            init_chain_id=rec.beg_auth_asym_id or "",
            init_res_name=rec.beg_auth_comp_id or "",
            init_seq_num=rec.beg_auth_seq_id,
            init_ins_code=_icode(rec.pdbx_beg_pdb_ins_code),
            end_chain_id=rec.end_auth_asym_id or "",
            end_res_name=rec.end_auth_comp_id or "",
            end_seq_num=rec.end_auth_seq_id,
            end_ins_code=_icode(rec.pdbx_end_pdb_ins_code),
        )

    @staticmethod
    def _dbref(rec: StructRefSeq, ref: Optional[StructRef]) -> DBRef:
        def number(value: Optional[str], fallback: Optional[int]) -> Optional[int]:
            try:
                return int(value) if value is not None else fallback
            except ValueError:
                return fallback

        return DBRef(
            id_code=rec.pdbx_pdb_id_code or "",
            chain_id=rec.pdbx_strand_id or "",
            seq_begin=number(rec.pdbx_auth_seq_align_beg, rec.seq_align_beg),
            insert_begin=_icode(rec.pdbx_seq_align_beg_ins_code),
            seq_end=number(rec.pdbx_auth_seq_align_end, rec.seq_align_end),
            insert_end=_icode(rec.pdbx_seq_align_end_ins_code),
            database=(ref.db_name or "") if ref else "",
            db_accession=rec.pdbx_db_accession or "",
            db_id_code=(ref.db_code or "") if ref else (rec.pdbx_db_accession or ""),
            db_seq_begin=rec.db_align_beg,
            db_insert_begin=_icode(rec.pdbx_db_align_beg_ins_code),
            db_seq_end=rec.db_align_end,
            db_insert_end=_icode(rec.pdbx_db_align_end_ins_code),
        )

    # -- end of document --------------------------------------------------

    def _finish(self, ctx: ParseContext, state: _DocumentState, source_path: Optional[Path]) -> Structure:
        structure = ctx.finish()
        meta = structure.metadata

        self._apply_poly_schemes(structure, state.poly_schemes)

        seqres_chains: list[Chain] = []
        if not ctx.seqres_discarded:
            for asym in state.struct_asyms:
                entity_chain = state.entity_seqs.get(asym.entity_id or "")
                if entity_chain is None:
                    continue
                declared = Chain(asym.id)
                for group in entity_chain.groups:
                    declared.add_group(group.clone())
                seqres_chains.append(declared)

        seqres_chains = apply_chain_id_map(structure, seqres_chains, state.asym_strand)

        for entity in state.entities:
            structure.compounds.append(self._compound(entity, state))
        link_compounds(structure)

        for rec in state.struct_ref_seqs:
            ref = state.struct_refs.get(rec.ref_id)
            if ref is None:
                logger.warning("No _struct_ref %s for _struct_ref_seq %s", rec.ref_id, rec.align_id)
            structure.dbrefs.append(self._dbref(rec, ref))

        if seqres_chains:
            if self.settings.align_seqres:
                SeqResAligner().align(structure, seqres_chains)
            else:
                attach_seqres(structure, seqres_chains)
        if self.settings.parse_secstruc and structure.secondary_structure:
            assign_secondary_structure(structure, structure.secondary_structure)

        if state.techniques:
            meta.method = "; ".join(state.techniques)
        if state.authors:
            meta.authors = ",".join(state.authors)
        if meta.resolution is None:
            meta.resolution = state.remark_resolution
        if meta.deposit_date is None:
            meta.deposit_date = parse_cif_date(state.deposit_date)
        if meta.modification_date is None:
            meta.modification_date = meta.deposit_date
        if not meta.entry_id:
            meta.entry_id = entry_id_from_path(source_path)

        logger.debug(
            "Parsed mmCIF %s: %d models, %d chains, %d atoms",
            meta.entry_id, structure.num_models, structure.num_chains, structure.num_atoms,
        )
        return structure.freeze()

    @staticmethod
    def _apply_poly_schemes(structure: Structure, schemes: list[PdbxPolySeqScheme]) -> None:
        """Overwrite public numbering of observed groups located by (asym id, seq_id)."""
        indexes = []
        changes: dict[int, tuple[Chain, list[tuple[Group, int, str]]]] = {}
        for model in structure.models:
            chains = {c.internal_id: c for c in model.chains}
            groups: dict[tuple[str, int], Group] = {}
            for chain in model.chains:
                for g in chain.groups:
                    if g.kind.is_polymer and g.seq_id is not None:
                        groups.setdefault((chain.internal_id, g.seq_id), g)
            indexes.append((chains, groups))

        for scheme in schemes:
            if scheme.auth_seq_num is None:
                continue
            try:
                number = int(scheme.auth_seq_num)
            except ValueError:
                logger.warning("Invalid auth_seq_num %r in poly seq scheme", scheme.auth_seq_num)
                continue
            icode = _icode(scheme.pdb_ins_code)
            for chains, groups in indexes:
                chain = chains.get(scheme.asym_id)
                if chain is None:
                    continue
                target = groups.get((scheme.asym_id, scheme.seq_id))
                if target is None:
                    logger.info(
                        "No group at sequence position %d in chain %s", scheme.seq_id, scheme.asym_id
                    )
                    continue
                if target.name != scheme.mon_id:
                    logger.info(
                        "Poly seq scheme %s %d %s does not match group %s",
                        scheme.asym_id, scheme.seq_id, scheme.mon_id, target.name,
                    )
                    continue
                if target.key != (number, icode):
                    changes.setdefault(id(chain), (chain, []))[1].append((target, number, icode))
        for chain, moves in changes.values():
            chain.renumber_all(moves)

    @staticmethod
    def _compound(entity: Entity, state: _DocumentState) -> Compound:
        chain_ids: list[str] = []
        for asym in state.struct_asyms:
            if asym.entity_id != entity.id:
                continue
            name = state.asym_strand.get(asym.id, asym.id)
            if name not in chain_ids:
                chain_ids.append(name)
        return Compound(
            mol_id=entity.id,
            name=entity.pdbx_description or "",
            entity_type=entity.type.lower(),
            chain_ids=chain_ids,
            fragment=entity.pdbx_fragment,
            ec_numbers=[e.strip() for e in (entity.pdbx_ec or "").split(",") if e.strip()],
            mutation=entity.pdbx_mutation,
            details=entity.details,
        )
