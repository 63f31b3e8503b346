"""Tag amino acids with author-assigned secondary structure (HELIX/STRAND/TURN)."""

from __future__ import annotations

from typing import Iterable

from molparse.core.logging_utils import get_logger
from molparse.model.header import SecondaryStructureElement
from molparse.model.hierarchy import Structure

logger = get_logger(__name__)


def assign_secondary_structure(
    structure: Structure, elements: Iterable[SecondaryStructureElement]
) -> int:
    """Set ``sec_struc`` on the amino acids of model 0 covered by ``elements``.

    Groups are walked in file order from the start residue to the end
    residue, so ranges across insertion codes work. Returns the number of
    tagged groups.
    """
    tagged = 0
    for element in elements:
        chain = structure.get_chain(element.init_chain_id)
        if chain is None:
            logger.warning(
                "%s range starts in unknown chain %r", element.kind, element.init_chain_id
            )
            continue
        start = (element.init_seq_num, element.init_ins_code)
        end = (element.end_seq_num, element.end_ins_code)
        inside = False
        closed = False
        for group in chain.groups:
            if group.key == start:
                inside = True
            if inside and group.is_amino_acid:
                group.sec_struc = element.kind
                tagged += 1
            if inside and group.key == end:
                closed = True
                break
        if not inside:
            logger.warning(
                "%s start residue %s%s not found in chain %s",
                element.kind, element.init_seq_num, element.init_ins_code, chain.name,
            )
        elif not closed:
            logger.debug(
                "%s end residue %s%s not found in chain %s; tagged to chain end",
                element.kind, element.end_seq_num, element.end_ins_code, chain.name,
            )
    return tagged
