"""Chain id remapping and compound linking.

mmCIF files build chains under their internal asym ids (``label_asym_id``);
the public name of a chain is the strand id (``pdb_strand_id``). Several
asym ids can share one strand id, in which case the chains are merged.
PDB files use the public id throughout and only go through compound linking.
"""

from __future__ import annotations

from typing import Mapping

from molparse.core.logging_utils import get_logger
from molparse.model.header import Compound
from molparse.model.hierarchy import Chain, Structure

logger = get_logger(__name__)


def _rename_and_merge(chains: list[Chain], mapping: Mapping[str, str]) -> list[Chain]:
    renamed: list[Chain] = []
    by_name: dict[str, Chain] = {}
    for chain in chains:
        new_name = mapping.get(chain.internal_id, chain.internal_id)
        holder = by_name.get(new_name)
        if holder is not None:
            logger.debug(
                "Merging chain %s into %s (both map to %s)",
                chain.internal_id, holder.internal_id, new_name,
            )
            holder.merge(chain)
            continue
        chain.name = new_name
        by_name[new_name] = chain
        renamed.append(chain)
    return renamed


def apply_chain_id_map(
    structure: Structure,
    seqres_chains: list[Chain],
    mapping: Mapping[str, str],
) -> list[Chain]:
    """Rename chains of every model from internal to public ids.

    Chains that collide after renaming are merged; the first one keeps its
    position and internal id. Returns the renamed declared-sequence chains.
    """
    for model in structure.models:
        model.replace_chains(_rename_and_merge(list(model.chains), mapping))
    return _rename_and_merge(list(seqres_chains), mapping)


def link_compounds(structure: Structure) -> None:
    """Attach each Compound to the chains named in its chain id list."""
    if not structure.models:
        return
    compounds = structure.compounds

    if len(compounds) == 1 and not compounds[0].chain_ids:
        chains = structure.chains
        if len(chains) == 1:
            _link(compounds[0], structure, chains[0].name)
        else:
            logger.warning(
                "Compound %s declares no chains and the structure has %d chains; not linked",
                compounds[0].mol_id, len(chains),
            )
        return

    for compound in compounds:
        for chain_id in compound.chain_ids or []:
            if chain_id == "NULL":
                chain_id = " "
            if structure.get_chain(chain_id) is None:
                logger.warning(
                    "Compound %s (%s) refers to chain %r which was not found",
                    compound.mol_id, compound.name, chain_id,
                )
                continue
            _link(compound, structure, chain_id)


def _link(compound: Compound, structure: Structure, chain_id: str) -> None:
    for model in structure.models:
        chain = model.get_chain(chain_id)
        if chain is None:
            continue
        # a chain holding a polymer and its ligands keeps the polymer compound
        if chain.compound is None or (compound.is_polymer and not chain.compound.is_polymer):
            chain.compound = compound
        if model is structure.models[0]:
            compound.add_chain(chain)
