"""Displacement clustering of candidate tracks around a muon.

For each muon the candidates are binned by their 3D distance from the muon
production point into eleven nested radii. The surviving candidates are also
returned unbinned for the ratio curve and pt-range summaries.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from dataclasses import dataclass
from typing import Sequence

from .models import DISPLACEMENT_THRESHOLDS_MM, CandidateTrack, Muon
from .physics import distance3

SELF_MATCH_PT_TOLERANCE = 1e-3


@dataclass(frozen=True)
class ClusterResult:
    """Per-threshold counts and summed pt, plus the raw `(pt, charge)` list."""

    counts: tuple[int, ...]
    sum_pt: tuple[float, ...]
    raw: tuple[tuple[float, int], ...]

    @property
    def thresholds(self) -> tuple[float, ...]:
        return DISPLACEMENT_THRESHOLDS_MM


def is_self_match(muon: Muon, candidate: CandidateTrack, pt_tolerance: float = SELF_MATCH_PT_TOLERANCE) -> bool:
    """Proxy self-match on pt only.

    This is an approximation: an unrelated track with a coincident pt is also
    dropped, and the muon's own track survives if its pt differs by more than
    the tolerance.
    """
    return abs(candidate.pt - muon.pt) < pt_tolerance


def cluster_candidates(
    muon: Muon,
    candidates: Sequence[CandidateTrack],
    pt_tolerance: float = SELF_MATCH_PT_TOLERANCE,
) -> ClusterResult:
    """Accumulate candidate counts and pt inside each of `DISPLACEMENT_THRESHOLDS_MM`.

    Candidates without track details and the self-match are skipped. Each
    radius is an independent strict `<` test, so a close candidate enters
    every bucket.
    """
    thresholds = DISPLACEMENT_THRESHOLDS_MM
    counts = [0] * len(thresholds)
    sum_pt = [0.0] * len(thresholds)
    raw: list[tuple[float, int]] = []
    origin = muon.position
    for cand in candidates:
        if not cand.has_track_details:
            continue
        if is_self_match(muon, cand, pt_tolerance):
            continue
        distance = distance3(cand.position, origin)
        for i, threshold in enumerate(thresholds):
            if distance < threshold:
                counts[i] += 1
                sum_pt[i] += cand.pt
        raw.append((cand.pt, int(cand.charge)))
    return ClusterResult(counts=tuple(counts), sum_pt=tuple(sum_pt), raw=tuple(raw))
