from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import pandas as pd

from molparse.model.hierarchy import Structure

CHAIN_COLUMNS = [
    "entry_id",
    "model",
    "chain",
    "internal_id",
    "compound",
    "groups",
    "amino_acids",
    "atoms",
    "seqres_length",
    "matched",
    "atom_sequence",
    "seqres_sequence",
]


@dataclass(frozen=True)
class Manifest:
    """A table of parsed structures.

    Convention:
      - one row per structure, columns from ``Structure.to_dict``
      - saved as parquet, or CSV when the path ends in ``.csv``
    """

    df: pd.DataFrame

    @classmethod
    def from_structures(cls, structures: Iterable[Structure]) -> "Manifest":
        rows = [s.to_dict() for s in structures]
        return cls(pd.DataFrame(rows))

    def save(self, path: Path) -> None:
        if path.suffix == ".csv":
            path.parent.mkdir(parents=True, exist_ok=True)
            self.df.to_csv(path, index=False)
        else:
            self.save_parquet(path)

    @staticmethod
    def load(path: Path) -> "Manifest":
        if path.suffix == ".csv":
            return Manifest(pd.read_csv(path))
        return Manifest.load_parquet(path)

    def save_parquet(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.df.to_parquet(path, index=False)

    @staticmethod
    def load_parquet(path: Path) -> "Manifest":
        return Manifest(pd.read_parquet(path))

    def count(self) -> int:
        return int(len(self.df))

    def atom_count(self) -> int:
        if "atom_count" not in self.df.columns:
            return 0
        return int(self.df["atom_count"].fillna(0).sum())


def chain_table(structure: Structure, model: int = 0) -> pd.DataFrame:
    """One row per chain of ``model`` with sizes and both sequences.

    ``matched`` counts declared residues that carry a public residue number.
    """
    rows = []
    for chain in structure.get_chains(model):
        rows.append({
            "entry_id": structure.entry_id,
            "model": model,
            "chain": chain.name,
            "internal_id": chain.internal_id,
            "compound": chain.compound.mol_id if chain.compound is not None else None,
            "groups": len(chain),
            "amino_acids": len(chain.amino_acids),
            "atoms": chain.num_atoms,
            "seqres_length": chain.seqres_length,
            "matched": sum(1 for g in chain.seqres_groups if g.residue_number is not None),
            "atom_sequence": chain.atom_sequence,
            "seqres_sequence": chain.seqres_sequence,
        })
    return pd.DataFrame(rows, columns=CHAIN_COLUMNS)
