"""Shared builders for small PDB and mmCIF documents.

Both formats describe the same two-chain complex:

* chain L (asym A): declared ALA CYS GLY LEU ARG, observed 2-4;
* chain H (asym B): declared ILE VAL GLY GLY GLN GLU CYS LYS, observed
  16, 17, 18, 18A, 19, 22, 23 (GLU not observed);
* a water (asym C) with strand id H, residue 301.
"""

from __future__ import annotations

from typing import Iterator, Optional

import pytest

from molparse.config import ParserSettings

ENTRY = "1ABC"

SEQRES = {
    "L": ["ALA", "CYS", "GLY", "LEU", "ARG"],
    "H": ["ILE", "VAL", "GLY", "GLY", "GLN", "GLU", "CYS", "LYS"],
}

# chain, asym, entity, residue name, number, icode, label_seq_id
OBSERVED = [
    ("L", "A", "1", "CYS", 2, "", 2),
    ("L", "A", "1", "GLY", 3, "", 3),
    ("L", "A", "1", "LEU", 4, "", 4),
    ("H", "B", "2", "ILE", 16, "", 1),
    ("H", "B", "2", "VAL", 17, "", 2),
    ("H", "B", "2", "GLY", 18, "", 3),
    ("H", "B", "2", "GLY", 18, "A", 4),
    ("H", "B", "2", "GLN", 19, "", 5),
    ("H", "B", "2", "CYS", 22, "", 7),
    ("H", "B", "2", "LYS", 23, "", 8),
]
WATER = ("H", "C", "3", "HOH", 301, "", None)
BACKBONE = (("N", "N"), ("CA", "C"), ("C", "C"))

NUM_ATOMS = len(OBSERVED) * len(BACKBONE) + 1


def atom_line(
    serial: int,
    name: str,
    res_name: str,
    chain: str,
    res_seq: int,
    x: float,
    y: float,
    z: float,
    element: str,
    record: str = "ATOM",
    icode: str = "",
    alt_loc: str = "",
    occupancy: float = 1.0,
    temp_factor: float = 20.0,
) -> str:
    name4 = name if len(name) == 4 else f" {name:<3}"
    return (
        f"{record:<6}{serial:>5} {name4}{alt_loc:1}{res_name:>3} {chain:1}{res_seq:>4}{icode:1}   "
        f"{x:>8.3f}{y:>8.3f}{z:>8.3f}{occupancy:>6.2f}{temp_factor:>6.2f}          {element:>2}"
    )


def seqres_lines(chain: str, names: list[str]) -> list[str]:
    lines = []
    for i in range(0, len(names), 13):
        chunk = " ".join(names[i:i + 13])
        lines.append(f"SEQRES {i // 13 + 1:>3} {chain} {len(names):>4}  {chunk}")
    return lines


def coords(serial: int) -> tuple[float, float, float]:
    return serial * 1.5, serial * -0.5, 10.0 + serial * 0.25


def iter_atoms() -> Iterator[dict]:
    """Atoms of the complex in file order."""
    serial = 0
    for chain, asym, entity, res_name, number, icode, seq_id in OBSERVED:
        for name, element in BACKBONE:
            serial += 1
            yield dict(
                serial=serial, record="ATOM", name=name, element=element,
                res_name=res_name, chain=chain, asym=asym, entity=entity,
                number=number, icode=icode, seq_id=seq_id,
            )
    chain, asym, entity, res_name, number, icode, seq_id = WATER
    yield dict(
        serial=serial + 1, record="HETATM", name="O", element="O",
        res_name=res_name, chain=chain, asym=asym, entity=entity,
        number=number, icode=icode, seq_id=seq_id,
    )


def coordinate_lines() -> list[str]:
    lines = []
    for a in iter_atoms():
        x, y, z = coords(a["serial"])
        lines.append(atom_line(
            a["serial"], a["name"], a["res_name"], a["chain"], a["number"], x, y, z,
            a["element"], record=a["record"], icode=a["icode"],
        ))
    return lines


def journal_ref_line(journal: str, volume: str, page: str, year: str) -> str:
    return f"JRNL        REF    {journal:<28}  V.{volume:>4} {page:>5} {year:>4}"


def header_lines(technique: str = "X-RAY DIFFRACTION", entry: str = ENTRY) -> list[str]:
    return [
        f"HEADER    {'HYDROLASE/HYDROLASE INHIBITOR':<40}07-MAR-84   {entry}",
        "TITLE     TEST COMPLEX OF A PROTEASE",
        "TITLE    2 AND ITS INHIBITOR",
        "COMPND    MOL_ID: 1;",
        "COMPND   2 MOLECULE: PROTEASE LIGHT CHAIN;",
        "COMPND   3 CHAIN: L;",
        "COMPND   4 MOL_ID: 2;",
        "COMPND   5 MOLECULE: PROTEASE HEAVY",
        "COMPND   6 CHAIN;",
        "COMPND   7 CHAIN: H;",
        "COMPND   8 EC: 3.4.21.5;",
        "SOURCE    MOL_ID: 1;",
        "SOURCE   2 ORGANISM_SCIENTIFIC: HOMO SAPIENS;",
        "SOURCE   3 ORGANISM_TAXID: 9606;",
        "SOURCE   4 MOL_ID: 2;",
        "SOURCE   5 ORGANISM_SCIENTIFIC: HOMO SAPIENS;",
        "KEYWDS    HYDROLASE, SERINE PROTEASE",
        f"EXPDTA    {technique}",
        "AUTHOR    M.HAMMEL,G.SFYROERA,J.D.LAMBRIS",
        f"REVDAT   2   24-FEB-09 {entry}A   1       VERSN",
        f"REVDAT   1   15-APR-85 {entry}    0",
        "JRNL        AUTH   M.HAMMEL,G.SFYROERA,J.D.LAMBRIS",
        "JRNL        TITL   A STRUCTURAL BASIS FOR INHIBITION",
        journal_ref_line("NAT.STRUCT.MOL.BIOL.", "14", "157", "2007"),
        "JRNL        PMID   17293861",
        "REMARK   2",
        "REMARK   2 RESOLUTION.    2.40 ANGSTROMS.",
        f"DBREF  {entry} L {2:>4}  {4:>4}  {'UNP':<6} {'P00734':<8} {'THRB_HUMAN':<12} {328:>5}  {330:>5}",
        *seqres_lines("L", SEQRES["L"]),
        *seqres_lines("H", SEQRES["H"]),
        f"HELIX  {1:>3} {1:>3} ILE H {16:>4}  GLY H {18:>4}A 1",
        f"SSBOND {1:>3} CYS H {22:>4}    CYS L {2:>4} ",
        f"CRYST1{61.9:9.3f}{75.4:9.3f}{93.5:9.3f}{90.0:7.2f}{100.0:7.2f}{90.0:7.2f} {'P 1 21 1':<11}{4:4d}",
    ]


def build_pdb_text(models: int = 1, technique: Optional[str] = None) -> str:
    """PDB document; several models are wrapped in MODEL/ENDMDL."""
    if technique is None:
        technique = "SOLUTION NMR" if models > 1 else "X-RAY DIFFRACTION"
    lines = header_lines(technique)
    if models == 1:
        lines += coordinate_lines()
    else:
        for m in range(1, models + 1):
            lines.append(f"MODEL     {m:>4}")
            lines += coordinate_lines()
            lines.append("ENDMDL")
    lines += [f"CONECT{22:>5}{25:>5}", "END"]
    return "\n".join(lines) + "\n"


# ======================================================================
# mmCIF
# ======================================================================

_ATOM_SITE_COLUMNS = [
    "group_PDB", "id", "type_symbol", "label_atom_id", "label_alt_id", "label_comp_id",
    "label_asym_id", "label_entity_id", "label_seq_id", "pdbx_PDB_ins_code",
    "Cartn_x", "Cartn_y", "Cartn_z", "occupancy", "B_iso_or_equiv",
    "auth_seq_id", "auth_comp_id", "auth_asym_id", "auth_atom_id", "pdbx_PDB_model_num",
]


def _loop(category: str, columns: list[str], rows: list[list[object]]) -> list[str]:
    lines = ["loop_"] + [f"_{category}.{c}" for c in columns]
    for row in rows:
        lines.append(" ".join(str(v) for v in row))
    lines.append("#")
    return lines


def atom_site_rows(models: int = 1, with_auth_seq: bool = True) -> list[list[object]]:
    rows = []
    for model in range(1, models + 1):
        for a in iter_atoms():
            x, y, z = coords(a["serial"])
            rows.append([
                a["record"], a["serial"], a["element"], a["name"], ".", a["res_name"],
                a["asym"], a["entity"], a["seq_id"] if a["seq_id"] is not None else ".",
                a["icode"] or "?",
                f"{x:.3f}", f"{y:.3f}", f"{z:.3f}", "1.00", "20.00",
                a["number"] if with_auth_seq else "?", a["res_name"], a["chain"], a["name"], model,
            ])
    return rows


def poly_scheme_rows() -> list[list[object]]:
    observed = {(asym, seq_id): (number, icode) for _, asym, _, _, number, icode, seq_id in OBSERVED}
    rows = []
    for asym, entity, strand in (("A", "1", "L"), ("B", "2", "H")):
        for seq_id, name in enumerate(SEQRES[strand], 1):
            number, icode = observed.get((asym, seq_id), ("?", "?"))
            rows.append([asym, entity, seq_id, name, number, name, strand, icode or "."])
    return rows


def build_cif_text(models: int = 1, with_auth_seq: bool = True, method: Optional[str] = None) -> str:
    if method is None:
        method = "'SOLUTION NMR'" if models > 1 else "'X-RAY DIFFRACTION'"
    lines = [
        f"data_{ENTRY}",
        "#",
        f"_entry.id {ENTRY}",
        "#",
        f"_struct.entry_id {ENTRY}",
        "_struct.title 'TEST COMPLEX OF A PROTEASE AND ITS INHIBITOR'",
        "#",
        f"_struct_keywords.entry_id {ENTRY}",
        "_struct_keywords.pdbx_keywords 'HYDROLASE/HYDROLASE INHIBITOR'",
        "_struct_keywords.text 'HYDROLASE, SERINE PROTEASE'",
        "#",
        f"_exptl.entry_id {ENTRY}",
        f"_exptl.method {method}",
        "#",
        "_refine.ls_d_res_high 2.40",
        "#",
        "_cell.length_a 61.900",
        "_cell.length_b 75.400",
        "_cell.length_c 93.500",
        "_cell.angle_alpha 90.00",
        "_cell.angle_beta 100.00",
        "_cell.angle_gamma 90.00",
        "#",
        "_symmetry.space_group_name_H-M 'P 1 21 1'",
        "#",
    ]
    lines += _loop("audit_author", ["name", "pdbx_ordinal"], [
        ["'HAMMEL, M.'", 1], ["'SFYROERA, G.'", 2], ["'LAMBRIS, J.D.'", 3],
    ])
    lines += _loop("database_PDB_rev", ["num", "date", "date_original", "mod_type"], [
        [1, "1985-04-15", "1984-03-07", 0], [2, "2009-02-24", "?", 1],
    ])
    lines += _loop("entity", ["id", "type", "pdbx_description", "pdbx_ec"], [
        [1, "polymer", "'PROTEASE LIGHT CHAIN'", "?"],
        [2, "polymer", "'PROTEASE HEAVY CHAIN'", "3.4.21.5"],
        [3, "water", "water", "?"],
    ])
    lines += _loop("entity_poly_seq", ["entity_id", "num", "mon_id", "hetero"], [
        [entity, i, name, "n"]
        for entity, strand in (("1", "L"), ("2", "H"))
        for i, name in enumerate(SEQRES[strand], 1)
    ])
    lines += _loop("struct_asym", ["id", "entity_id"], [["A", 1], ["B", 2], ["C", 3]])
    lines += _loop(
        "pdbx_poly_seq_scheme",
        ["asym_id", "entity_id", "seq_id", "mon_id", "auth_seq_num", "pdb_mon_id", "pdb_strand_id", "pdb_ins_code"],
        poly_scheme_rows(),
    )
    lines += _loop(
        "pdbx_nonpoly_scheme",
        ["asym_id", "entity_id", "mon_id", "pdb_strand_id", "auth_seq_num", "pdb_ins_code"],
        [["C", 3, "HOH", "H", 301, "."]],
    )
    lines += _loop(
        "struct_conf",
        ["conf_type_id", "beg_auth_comp_id", "beg_auth_asym_id", "beg_auth_seq_id", "pdbx_beg_PDB_ins_code",
         "end_auth_comp_id", "end_auth_asym_id", "end_auth_seq_id", "pdbx_end_PDB_ins_code"],
        [["HELX_P", "ILE", "H", 16, "?", "GLY", "H", 18, "A"]],
    )
    lines += _loop(
        "struct_conn",
        ["id", "conn_type_id", "ptnr1_auth_asym_id", "ptnr1_auth_seq_id", "ptnr2_auth_asym_id", "ptnr2_auth_seq_id"],
        [["disulf1", "disulf", "H", 22, "L", 2], ["metalc1", "metalc", "H", 23, "H", 301]],
    )
    lines += _loop("atom_site", _ATOM_SITE_COLUMNS, atom_site_rows(models, with_auth_seq))
    return "\n".join(lines) + "\n"


# ======================================================================
# Three-chain complex
# ======================================================================
#
# A protease light chain (L), heavy chain (H) and peptide inhibitor (I) with
# 36/259/12 declared and 26/248/8 observed residues. The light chain and the
# inhibitor miss residues at both ends; the heavy chain also has two internal
# gaps and an insertion-code run 66, 66A, 66B.

COMPLEX_ENTRY = "2THR"

RESIDUE_NAMES = [
    "ALA", "ARG", "ASN", "ASP", "CYS", "GLN", "GLU", "GLY", "HIS", "ILE",
    "LEU", "LYS", "MET", "PHE", "PRO", "SER", "THR", "TRP", "TYR", "VAL",
]


def pair_unique_names(length: int) -> list[str]:
    """Residue names in which no pair of neighbours occurs twice.

    Prefer-largest walk over all residue pairs; any run of two matches
    therefore pins down one position of the sequence.
    """
    seq = [0, 0]
    seen = {(0, 0)}
    while len(seq) < length:
        last = seq[-1]
        for nxt in range(len(RESIDUE_NAMES) - 1, -1, -1):
            if (last, nxt) not in seen:
                break
        else:
            raise ValueError(f"no pair-unique sequence of length {length}")
        seen.add((last, nxt))
        seq.append(nxt)
    return [RESIDUE_NAMES[i] for i in seq]


def _heavy_number(pos: int) -> tuple[int, str]:
    if pos < 50:
        return pos + 16, ""
    if pos <= 52:
        return 66, ["", "A", "B"][pos - 50]
    return pos + 14, ""


def complex_chains() -> list[dict]:
    """Chains in file order: name, asym id, entity, declared names, observed residues.

    Observed residues are ``(declared index, residue number, insertion code)``.
    """
    names = pair_unique_names(259)
    heavy_missing = {0, 1, 120, 121, 122, 200, 201, 202, 256, 257, 258}
    return [
        dict(name="L", asym="A", entity="1", declared=names[100:136],
             observed=[(pos, pos + 1, "") for pos in range(4, 30)]),
        dict(name="H", asym="B", entity="2", declared=names,
             observed=[(pos, *_heavy_number(pos)) for pos in range(259) if pos not in heavy_missing]),
        dict(name="I", asym="C", entity="3", declared=names[200:212],
             observed=[(pos, 355 + pos, "") for pos in range(3, 11)]),
    ]


COMPLEX_WATER = dict(chain="H", asym="D", entity="4", number=501)


def _complex_atoms() -> Iterator[dict]:
    serial = 0
    for chain in complex_chains():
        for pos, number, icode in chain["observed"]:
            for name, element in BACKBONE:
                serial += 1
                yield dict(
                    serial=serial, record="ATOM", name=name, element=element,
                    res_name=chain["declared"][pos], chain=chain["name"], asym=chain["asym"],
                    entity=chain["entity"], number=number, icode=icode, seq_id=pos + 1,
                )
    w = COMPLEX_WATER
    yield dict(
        serial=serial + 1, record="HETATM", name="O", element="O", res_name="HOH",
        chain=w["chain"], asym=w["asym"], entity=w["entity"], number=w["number"], icode="", seq_id=None,
    )


def build_complex_pdb_text() -> str:
    lines = [
        f"HEADER    {'HYDROLASE/HYDROLASE INHIBITOR':<40}07-MAR-98   {COMPLEX_ENTRY}",
        "COMPND    MOL_ID: 1;",
        "COMPND   2 MOLECULE: PROTEASE LIGHT CHAIN;",
        "COMPND   3 CHAIN: L;",
        "COMPND   4 MOL_ID: 2;",
        "COMPND   5 MOLECULE: PROTEASE HEAVY CHAIN;",
        "COMPND   6 CHAIN: H;",
        "COMPND   7 MOL_ID: 3;",
        "COMPND   8 MOLECULE: PEPTIDE INHIBITOR;",
        "COMPND   9 CHAIN: I;",
        "EXPDTA    X-RAY DIFFRACTION",
    ]
    for chain in complex_chains():
        lines += seqres_lines(chain["name"], chain["declared"])
    for a in _complex_atoms():
        x, y, z = coords(a["serial"])
        lines.append(atom_line(
            a["serial"], a["name"], a["res_name"], a["chain"], a["number"], x, y, z,
            a["element"], record=a["record"], icode=a["icode"],
        ))
    lines.append("END")
    return "\n".join(lines) + "\n"


def build_complex_cif_text(with_auth_seq: bool = True) -> str:
    chains = complex_chains()
    lines = [f"data_{COMPLEX_ENTRY}", "#", f"_entry.id {COMPLEX_ENTRY}", "#"]
    lines += _loop("entity", ["id", "type", "pdbx_description"], [
        [1, "polymer", "'PROTEASE LIGHT CHAIN'"],
        [2, "polymer", "'PROTEASE HEAVY CHAIN'"],
        [3, "polymer", "'PEPTIDE INHIBITOR'"],
        [4, "water", "water"],
    ])
    lines += _loop("entity_poly_seq", ["entity_id", "num", "mon_id", "hetero"], [
        [c["entity"], i, name, "n"] for c in chains for i, name in enumerate(c["declared"], 1)
    ])
    lines += _loop("struct_asym", ["id", "entity_id"], [
        *[[c["asym"], c["entity"]] for c in chains], [COMPLEX_WATER["asym"], COMPLEX_WATER["entity"]],
    ])
    scheme = []
    for c in chains:
        observed = {pos: (number, icode) for pos, number, icode in c["observed"]}
        for pos, name in enumerate(c["declared"]):
            number, icode = observed.get(pos, ("?", "?"))
            scheme.append([c["asym"], c["entity"], pos + 1, name, number, name, c["name"], icode or "."])
    lines += _loop(
        "pdbx_poly_seq_scheme",
        ["asym_id", "entity_id", "seq_id", "mon_id", "auth_seq_num", "pdb_mon_id", "pdb_strand_id", "pdb_ins_code"],
        scheme,
    )
    w = COMPLEX_WATER
    lines += _loop(
        "pdbx_nonpoly_scheme",
        ["asym_id", "entity_id", "mon_id", "pdb_strand_id", "auth_seq_num", "pdb_ins_code"],
        [[w["asym"], w["entity"], "HOH", w["chain"], w["number"], "."]],
    )
    rows = []
    for a in _complex_atoms():
        x, y, z = coords(a["serial"])
        rows.append([
            a["record"], a["serial"], a["element"], a["name"], ".", a["res_name"],
            a["asym"], a["entity"], a["seq_id"] if a["seq_id"] is not None else ".",
            a["icode"] or "?",
            f"{x:.3f}", f"{y:.3f}", f"{z:.3f}", "1.00", "20.00",
            a["number"] if with_auth_seq else "?", a["res_name"], a["chain"], a["name"], 1,
        ])
    lines += _loop("atom_site", _ATOM_SITE_COLUMNS, rows)
    return "\n".join(lines) + "\n"


# ======================================================================
# Fixtures
# ======================================================================

@pytest.fixture
def settings() -> ParserSettings:
    return ParserSettings()


@pytest.fixture
def pdb_text() -> str:
    return build_pdb_text()


@pytest.fixture
def cif_text() -> str:
    return build_cif_text()


@pytest.fixture
def pdb_file(tmp_path, pdb_text):
    path = tmp_path / "1abc.pdb"
    path.write_text(pdb_text)
    return path


@pytest.fixture
def cif_file(tmp_path, cif_text):
    path = tmp_path / "1abc.cif"
    path.write_text(cif_text)
    return path


@pytest.fixture
def complex_pdb_text() -> str:
    return build_complex_pdb_text()


@pytest.fixture
def complex_cif_text() -> str:
    return build_complex_cif_text()
