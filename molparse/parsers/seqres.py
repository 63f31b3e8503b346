"""Reconcile the declared sequence (SEQRES) with the observed residues.

Observed residues are numbered by the authors and may have gaps (disordered
loops), insertion codes and renumbering; the declared sequence is complete
but unnumbered. The aligner walks both sequences once, in order, and copies
the public residue number of each observed residue onto the declared residue
it matches, so that declared residues without coordinates can be located in
the author numbering.
"""

from __future__ import annotations

from typing import Optional

from molparse.core.logging_utils import get_logger
from molparse.model.hierarchy import Chain, Group, Structure

logger = get_logger(__name__)


def residues_match(declared: Group, observed: Group) -> bool:
    """One-letter comparison with a three-letter fallback.

    ``X`` (unknown) letters never match by letter, only by name.
    """
    a, b = declared.letter, observed.letter
    if a and b and a != "X" and b != "X" and a == b:
        return True
    return declared.name.upper() == observed.name.upper()


class SeqResAligner:
    """Monotone, gap-tolerant matcher between declared and observed residues.

    ``window`` is the number of consecutive matches looked at when choosing
    where to resume after a mismatch: of all later declared positions that
    match the observed residue, the one starting the longest run wins (the
    earliest on ties). The observed residue is skipped instead when the
    residues after it match from the current declared position for at least
    as long.
    """

    def __init__(self, window: int = 4):
        self.window = window

    def align(self, structure: Structure, seqres_chains: list[Chain]) -> None:
        """Number declared residues and attach them to chains of every model."""
        for declared in seqres_chains:
            target = structure.get_chain(declared.name)
            if target is None:
                logger.debug("SEQRES chain %r has no observed counterpart", declared.name)
                continue
            self.align_chain(declared.groups, target)
        attach_seqres(structure, seqres_chains)

    def align_chain(self, declared: list[Group], chain: Chain) -> int:
        """Align one chain; returns the number of matched residues."""
        observed = [g for g in chain.groups if g.kind.is_polymer]
        matched = 0
        j = 0
        for index, group in enumerate(observed):
            if j >= len(declared):
                logger.warning(
                    "Chain %s: observed residue %s %s lies beyond the declared sequence",
                    chain.name, group.name, group.pdb_code,
                )
                continue
            pos = self._next_match(declared, j, observed, index)
            if pos is None:
                logger.warning(
                    "Chain %s: observed residue %s %s has no match in the declared sequence",
                    chain.name, group.name, group.pdb_code,
                )
                continue
            declared[pos].set_number(group.residue_number, group.insertion_code)
            matched += 1
            j = pos + 1
        logger.debug(
            "Chain %s: matched %d of %d observed residues to %d declared",
            chain.name, matched, len(observed), len(declared),
        )
        return matched

    def _next_match(
        self,
        declared: list[Group],
        start: int,
        observed: list[Group],
        obs_index: int,
    ) -> Optional[int]:
        if residues_match(declared[start], observed[obs_index]):
            return start
        best: Optional[int] = None
        best_run = 0
        for pos in range(start + 1, len(declared)):
            if not residues_match(declared[pos], observed[obs_index]):
                continue
            run = self._run_length(declared, pos, observed, obs_index)
            if run > best_run:
                best, best_run = pos, run
                if run >= self.window:
                    break
        if best is None:
            return None
        # an extra observed residue: the walk continues better without it
        if self._run_length(declared, start, observed, obs_index + 1) >= best_run:
            return None
        return best

    def _run_length(self, declared: list[Group], pos: int, observed: list[Group], obs_index: int) -> int:
        run = 0
        while (
            run < self.window
            and pos + run < len(declared)
            and obs_index + run < len(observed)
            and residues_match(declared[pos + run], observed[obs_index + run])
        ):
            run += 1
        return run


def attach_seqres(structure: Structure, seqres_chains: list[Chain]) -> None:
    """Expose declared residues as ``seqres_groups`` on same-named chains.

    All models share the same declared Group objects.
    """
    for declared in seqres_chains:
        for model in structure.models:
            chain = model.get_chain(declared.name)
            if chain is not None:
                chain.seqres_groups = list(declared.groups)
