"""Charge-weighted momentum ratio curve and pt summaries."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from dataclasses import dataclass
from typing import Sequence

from .models import ratio_exponents

MIN_PT_SENTINEL = 1e9


@dataclass(frozen=True)
class RatioCurve:
    """Ratios indexed by exponent plus pt reductions over the same list."""

    ratios: tuple[float, ...]
    sum_pt: float
    max_pt: float
    min_pt: float
    n_tracks: int


@dataclass(frozen=True)
class RatioSummary:
    """Scalar summaries derived from a `RatioCurve`."""

    max_pt_ratio: float
    pt_range: float
    sum_extra_pt: float
    extra_pt_ratio: float


def compute_ratio_curve(raw: Sequence[tuple[float, int]]) -> RatioCurve:
    """Compute `sum(q * pt**m) / sum(pt**m)` for `m = 0.1 ... 1.0`.

    With an empty list every ratio is 0, `sum_pt` and `max_pt` are 0 and
    `min_pt` keeps `MIN_PT_SENTINEL`.
    """
    sum_pt = 0.0
    max_pt = 0.0
    min_pt = MIN_PT_SENTINEL
    for pt, _ in raw:
        sum_pt += pt
        max_pt = max(max_pt, pt)
        min_pt = min(min_pt, pt)

    ratios: list[float] = []
    for m in ratio_exponents():
        num = 0.0
        den = 0.0
        for pt, charge in raw:
            weight = pt**m
            num += charge * weight
            den += weight
        ratios.append(num / den if den > 0.0 else 0.0)
    return RatioCurve(
        ratios=tuple(ratios),
        sum_pt=sum_pt,
        max_pt=max_pt,
        min_pt=min_pt,
        n_tracks=len(raw),
    )


def summarize(curve: RatioCurve) -> RatioSummary:
    """Derive max-pt ratio, pt range, total pt and the extra-pt indicator.

    `extra_pt_ratio` is 1.0 whenever any extra pt was found, 0.0 otherwise.
    """
    max_pt_ratio = curve.max_pt / curve.sum_pt if curve.sum_pt > 0.0 else 0.0
    pt_range = curve.max_pt - curve.min_pt if curve.n_tracks else 0.0
    return RatioSummary(
        max_pt_ratio=max_pt_ratio,
        pt_range=pt_range,
        sum_extra_pt=curve.sum_pt,
        extra_pt_ratio=1.0 if curve.sum_pt > 0.0 else 0.0,
    )
