"""Generator-ancestry walks and truth classification of matched muons.

Truth particles live in an index-addressed `TruthArena`; the mother relation
is an optional arena index. Every walk is bounded by a hop budget so that a
malformed (cyclic) mother chain surfaces as `AncestryTraversalError`, and
every index is range-checked so that a dangling link surfaces as
`AncestryLinkError`.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from typing import Iterator

from .models import MuonCategory, TruthArena, TruthClassification, TruthParticle
from .pid import FINAL_STATE_STATUS, is_muon, is_photon

MAX_ANCESTRY_HOPS = 10_000
PILEUP_MAX_ABS_VZ = 1.0


class AncestryError(ValueError):
    """Malformed truth ancestry (dangling link or runaway chain)."""


class AncestryLinkError(AncestryError):
    """Raised when a truth index does not address a particle of the arena."""

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"Truth index {index} is outside the truth collection (size {size}).")
        self.index = index
        self.size = size


class AncestryTraversalError(AncestryError):
    """Raised when a mother chain exceeds the hop budget."""

    def __init__(self, start: int, max_hops: int) -> None:
        super().__init__(
            f"Mother chain starting at truth particle {start} exceeds {max_hops} hops; "
            "the ancestry is likely cyclic."
        )
        self.start = start
        self.max_hops = max_hops


def truth_particle(arena: TruthArena, index: int) -> TruthParticle:
    """Return `arena[index]`; negative or out-of-range indices raise `AncestryLinkError`."""
    if not 0 <= index < len(arena):
        raise AncestryLinkError(index, len(arena))
    return arena[index]


def iter_ancestry(
    arena: TruthArena,
    index: int,
    include_self: bool = True,
    max_hops: int = MAX_ANCESTRY_HOPS,
) -> Iterator[TruthParticle]:
    """Yield particles along the mother chain of `arena[index]`.

    With `include_self=False` the walk starts at the first mother. At most
    `max_hops` mother links are followed; one more raises
    `AncestryTraversalError`. A link outside the arena raises
    `AncestryLinkError`.
    """
    current: int | None = index if include_self else truth_particle(arena, index).mother
    hops = 0 if include_self else 1
    while current is not None:
        if hops > max_hops:
            raise AncestryTraversalError(index, max_hops)
        particle = truth_particle(arena, current)
        yield particle
        current = particle.mother
        hops += 1


def is_from_photon(arena: TruthArena, index: int, max_hops: int = MAX_ANCESTRY_HOPS) -> bool:
    """True if the particle itself or any ancestor is a photon."""
    return any(is_photon(p.pdg_id) for p in iter_ancestry(arena, index, True, max_hops))


def has_photon_mother(arena: TruthArena, index: int, max_hops: int = MAX_ANCESTRY_HOPS) -> bool:
    """True if any strict ancestor (mothers only, never the particle) is a photon."""
    return any(is_photon(p.pdg_id) for p in iter_ancestry(arena, index, False, max_hops))


def is_pileup_like(particle: TruthParticle, max_abs_vz: float = PILEUP_MAX_ABS_VZ) -> bool:
    """Flag-based OR geometric pileup signal.

    A particle is pileup-like if it is neither prompt nor from the hard
    process, or if its production point lies further than `max_abs_vz` from
    the origin along the beam axis.
    """
    unflagged = not particle.is_prompt and not particle.from_hard_process
    return unflagged or abs(particle.vz) > max_abs_vz


def is_signal(particle: TruthParticle) -> bool:
    """Prompt, hard-process, final-state muon."""
    return (
        particle.is_prompt
        and particle.is_hard_process
        and is_muon(particle.pdg_id)
        and particle.status == FINAL_STATE_STATUS
    )


def classify(
    arena: TruthArena,
    index: int,
    max_abs_vz: float = PILEUP_MAX_ABS_VZ,
    max_hops: int = MAX_ANCESTRY_HOPS,
) -> TruthClassification:
    """Compute photon-descent and pileup-like labels for `arena[index]`."""
    return TruthClassification(
        is_from_photon=is_from_photon(arena, index, max_hops),
        is_pileup_like=is_pileup_like(truth_particle(arena, index), max_abs_vz),
    )


def categorize(classification: TruthClassification) -> MuonCategory:
    """Pick the output category; photon descent takes precedence over pileup."""
    if classification.is_from_photon:
        return MuonCategory.FROM_PHOTON
    if classification.is_pileup_like:
        return MuonCategory.PILEUP
    return MuonCategory.PROMPT
