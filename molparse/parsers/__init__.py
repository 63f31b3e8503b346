"""molparse.parsers: PDB and mmCIF structure parsers.

Architecture:
    - base.py: parser interface, error types, input opening
    - context.py: per-document assembly state (chains, groups, ceilings)
    - pdb_format.py + pdb_header.py: PDB format (records, COMPND/SOURCE/JRNL)
    - cif_reader.py + cif_records.py + mmcif.py: mmCIF format
    - crossref.py: chain id remapping, compound linking
    - seqres.py: SEQRES / observed residue reconciliation
    - secstruc.py: HELIX / STRAND / TURN assignment
    - dataset.py: StructureDataset and the format registry

Usage::

    from molparse.parsers import StructureDataset, CIFParser

    # Load from directory
    ds = StructureDataset.from_directory("/data/pdb/mmCIF", pattern="*.cif.gz")
    for structure in ds:
        print(structure.entry_id, structure.resolution, structure.num_chains)

    # Single file
    s = CIFParser().parse("1abc.cif.gz")
    for chain in s.chains:
        print(chain.name, chain.atom_sequence, chain.seqres_sequence)

    # Auto-detect format
    from molparse.parsers import auto_parser
    parser = auto_parser("1abc.pdb")
    s = parser.parse("1abc.pdb")
"""

from molparse.parsers.base import (
    FrozenStructureError,
    RecordParseError,
    StructureIOError,
    StructureParser,
)
from molparse.parsers.crossref import apply_chain_id_map, link_compounds
from molparse.parsers.dataset import StructureDataset, auto_parser, register_parser
from molparse.parsers.mmcif import CIFParser
from molparse.parsers.pdb_format import PDBFormatParser, RecordKind
from molparse.parsers.secstruc import assign_secondary_structure
from molparse.parsers.seqres import SeqResAligner

__all__ = [
    # Interface and errors
    "StructureParser",
    "FrozenStructureError",
    "RecordParseError",
    "StructureIOError",
    # Concrete parsers
    "CIFParser",
    "PDBFormatParser",
    "RecordKind",
    # Post-processing
    "SeqResAligner",
    "apply_chain_id_map",
    "assign_secondary_structure",
    "link_compounds",
    # Dataset
    "StructureDataset",
    "auto_parser",
    "register_parser",
]
