"""Per-document assembly state shared by the PDB and mmCIF assemblers.

A ParseContext is created for every document and threaded through all
record handlers. It owns the structure under construction and the open
model/chain/group, and it enforces the atom-count ceilings:

* ``ca_threshold``: pending SEQRES data is discarded and everything built so
  far (and everything that follows) is reduced to CA atoms;
* ``max_atoms``: further atoms are dropped.

Neither ceiling raises; both are logged and flagged on the Structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from molparse.config import ParserSettings
from molparse.core.logging_utils import get_logger
from molparse.model.components import ComponentLookup
from molparse.model.hierarchy import Atom, Chain, Group, Model, Structure

logger = get_logger(__name__)


@dataclass
class ParseContext:
    settings: ParserSettings
    lookup: ComponentLookup
    structure: Structure = field(default_factory=Structure)
    current_model: Model = field(default_factory=Model)
    current_chain: Optional[Chain] = None
    current_group: Optional[Group] = None
    seqres_chains: list[Chain] = field(default_factory=list)
    atom_count: int = 0
    ca_only: bool = False
    seqres_discarded: bool = False
    line_number: int = 0

    def __post_init__(self) -> None:
        self.ca_only = self.settings.ca_only

    # -- chains and groups ------------------------------------------------

    def select_chain(self, chain_id: str) -> bool:
        """Make ``chain_id`` the open chain of the current model.

        A chain with the same name in the current model is reused. Returns
        True when the open chain changed.
        """
        if self.current_chain is not None and self.current_chain.name == chain_id:
            return False
        self.flush_group()
        chain = self.current_model.get_chain(chain_id)
        if chain is None:
            chain = self.current_model.add_chain(Chain(chain_id))
        self.current_chain = chain
        return True

    def select_group(
        self,
        name: str,
        residue_number: int,
        insertion_code: str,
        record_type: str,
        new_chain: bool = False,
        seq_id: Optional[int] = None,
    ) -> Group:
        """Return the open group, starting a new one when the residue changes."""
        group = self.current_group
        if new_chain or group is None or group.key != (residue_number, insertion_code):
            self.flush_group()
            kind, code1 = self.lookup.resolve_kind(name, record_type)
            group = Group(
                name=name,
                kind=kind,
                residue_number=residue_number,
                insertion_code=insertion_code,
                one_letter=code1,
                record_type=record_type,
                seq_id=seq_id,
            )
            self.current_group = group
        return group

    def flush_group(self) -> None:
        """Attach the open group to the open chain; empty groups are dropped."""
        group, self.current_group = self.current_group, None
        if group is None or self.current_chain is None:
            return
        if not group.atoms:
            return
        self.current_chain.add_group(group)

    def close_model(self) -> None:
        """End the current model (MODEL record or model-number change)."""
        if self.current_chain is None:
            return
        self.flush_group()
        self._prune(self.current_model)
        self.structure.add_model(self.current_model)
        self.current_model = Model()
        self.current_chain = None

    # -- atoms and ceilings -----------------------------------------------

    def add_atom(self, atom: Atom) -> bool:
        """Add ``atom`` to the open group unless a ceiling or CA filter drops it.

        ``atom_count`` runs over the whole document and is shared by both
        ceilings; atoms dropped by the CA filter are not counted.
        """
        group = self.current_group
        if group is None:
            return False
        if self.ca_only and not self._keeps_ca(atom, group):
            return False
        if self.atom_count >= self.settings.max_atoms:
            if not self.structure.atom_overflow:
                logger.warning(
                    "Too many atoms (>%d) in this structure, ignoring atoms from line %d on",
                    self.settings.max_atoms, self.line_number,
                )
                self.structure.atom_overflow = True
            return False
        self.atom_count += 1
        if not self.ca_only and self.atom_count >= self.settings.ca_threshold:
            logger.warning(
                "More than %d atoms in this structure, ignoring the SEQRES records "
                "and switching to CA-only", self.settings.ca_threshold,
            )
            self.seqres_chains.clear()
            self.seqres_discarded = True
            self.switch_ca_only()
            if not self._keeps_ca(atom, group):
                self.atom_count -= 1
                return False
        group.add_atom(atom)
        return True

    @staticmethod
    def _keeps_ca(atom: Atom, group: Group) -> bool:
        return atom.is_alpha_carbon and group.ca is None

    def switch_ca_only(self) -> None:
        """Retroactively reduce everything built so far to CA atoms."""
        self.ca_only = True
        for model in [*self.structure.models, self.current_model]:
            for chain in model.chains:
                chain.filter_ca_only()
        if self.current_group is not None:
            ca = self.current_group.ca
            self.current_group.atoms = [ca] if ca is not None else []

    # -- end of document --------------------------------------------------

    def finish(self) -> Structure:
        """Close the open group and model; returns the raw structure."""
        self.flush_group()
        self._prune(self.current_model)
        if self.current_model.chains or not self.structure.models:
            self.structure.add_model(self.current_model)
        self.current_chain = None
        self.structure.ca_only = self.ca_only
        return self.structure

    @staticmethod
    def _prune(model: Model) -> None:
        for chain in model.chains:
            chain.prune_empty_groups()
        if any(not c.groups for c in model.chains):
            model.replace_chains([c for c in model.chains if c.groups])
