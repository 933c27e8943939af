"""Per-event feature producer: classify, cluster and buffer every muon."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from .ancestry import (
    MAX_ANCESTRY_HOPS,
    PILEUP_MAX_ABS_VZ,
    AncestryError,
    AncestryLinkError,
    categorize,
    classify,
    has_photon_mother,
    is_pileup_like,
    is_signal,
    truth_particle,
)
from .clustering import SELF_MATCH_PT_TOLERANCE, cluster_candidates
from .models import (
    EventBuffers,
    EventInput,
    Muon,
    MuonCategory,
    MuonFeatureRecord,
    TruthMatchRecord,
    Vertex,
)
from .physics import impact_factor, longitudinal_impact_parameter, transverse_impact_parameter
from .ratio import compute_ratio_curve, summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProducerConfig:
    """Input collection names and producer settings.

    `com_energy` and `mass_window` are carried for bookkeeping only; no
    feature depends on them.
    """

    muons: str = "slimmedMuons"
    tracks: str = "packedPFCandidates"
    vertices: str = "offlineSlimmedPrimaryVertices"
    pileup_info: str = "slimmedAddPileupInfo"
    truth: str = "prunedGenParticles"
    com_energy: float = 13000.0
    mass_window: tuple[float, float] | None = None
    pileup_max_abs_vz: float = PILEUP_MAX_ABS_VZ
    self_match_pt_tolerance: float = SELF_MATCH_PT_TOLERANCE
    max_ancestry_hops: int = MAX_ANCESTRY_HOPS
    truth_linked: bool = False

    def __post_init__(self) -> None:
        if self.mass_window is not None:
            low, high = self.mass_window
            if not low < high:
                raise ValueError(f"Mass window {self.mass_window!r} must satisfy low < high.")
        if self.max_ancestry_hops <= 0:
            raise ValueError("max_ancestry_hops must be positive.")


class EventSink(Protocol):
    """Anything that accepts one flushed buffer per event."""

    def append(self, buffers: EventBuffers) -> None: ...


@dataclass
class ProducerStats:
    """Running counters over all processed events."""

    events: int = 0
    muons_seen: int = 0
    muons_written: int = 0
    skipped_quality: int = 0
    skipped_unmatched: int = 0
    traversal_faults: int = 0
    link_faults: int = 0
    per_category: dict[MuonCategory, int] = field(
        default_factory=lambda: {c: 0 for c in MuonCategory}
    )

    def record_fault(self, exc: AncestryError) -> None:
        """Count a malformed-ancestry fault by kind."""
        if isinstance(exc, AncestryLinkError):
            self.link_faults += 1
        else:
            self.traversal_faults += 1


def build_feature_record(
    muon: Muon,
    event: EventInput,
    vertex: Vertex,
    pt_tolerance: float = SELF_MATCH_PT_TOLERANCE,
) -> MuonFeatureRecord:
    """Run clustering and the ratio curve for one muon and assemble its row."""
    clusters = cluster_candidates(muon, event.tracks, pt_tolerance)
    curve = compute_ratio_curve(clusters.raw)
    summary = summarize(curve)
    dz = longitudinal_impact_parameter(muon, vertex)
    d0 = transverse_impact_parameter(muon, vertex)
    return MuonFeatureRecord(
        pt=muon.pt,
        eta=muon.eta,
        phi=muon.phi,
        dz=dz,
        d0=d0,
        impact_factor=impact_factor(dz, d0),
        charge=int(muon.charge),
        extra_tracks=clusters.counts,
        sum_extra_track_pt=clusters.sum_pt,
        charge_weighted_ratios=curve.ratios,
        max_pt_ratio=summary.max_pt_ratio,
        pt_range=summary.pt_range,
        sum_extra_pt=summary.sum_extra_pt,
        extra_pt_ratio=summary.extra_pt_ratio,
    )


@dataclass
class MuonFeatureProducer:
    """Fill category-partitioned muon features event by event.

    Each event goes through `clear -> populate -> flush`; `produce` runs the
    three steps. Buffers are replaced, never reused, after a flush.
    """

    config: ProducerConfig = field(default_factory=ProducerConfig)
    stats: ProducerStats = field(default_factory=ProducerStats)
    buffers: EventBuffers = field(default_factory=EventBuffers)

    def clear(self) -> None:
        """Start a fresh, empty event buffer."""
        self.buffers = EventBuffers()

    def populate(self, event: EventInput) -> EventBuffers:
        """Append one row per accepted muon to its category's columns.

        Workflow per muon:
        1. Require a tracker muon with a best track.
        2. Require a truth match.
        3. Classify the matched particle and pick its category.
        4. Cluster candidates, build the ratio curve and the feature row.
        """
        cfg = self.config
        self.buffers.event_id = event.event_id
        self.buffers.n_pileup = -1 if event.n_pileup is None else int(event.n_pileup)
        vertex = event.primary_vertex
        if not event.vertices:
            logger.debug("Event %s has no vertices; using the origin.", event.event_id)

        for muon in event.muons:
            self.stats.muons_seen += 1
            if not muon.is_tracker or not muon.has_best_track:
                self.stats.skipped_quality += 1
                continue
            if muon.truth_index is None:
                self.stats.skipped_unmatched += 1
                continue
            try:
                labels = classify(
                    event.truth,
                    muon.truth_index,
                    max_abs_vz=cfg.pileup_max_abs_vz,
                    max_hops=cfg.max_ancestry_hops,
                )
            except AncestryError as exc:
                self.stats.record_fault(exc)
                logger.warning("Event %s: skipping muon (%s)", event.event_id, exc)
                continue
            category = categorize(labels)
            record = build_feature_record(muon, event, vertex, cfg.self_match_pt_tolerance)
            self.buffers.append_feature(category, record)
            self.stats.per_category[category] += 1
            self.stats.muons_written += 1

        if cfg.truth_linked:
            self._populate_truth(event)
        return self.buffers

    def flush(self, sink: EventSink) -> EventBuffers:
        """Hand the current buffer to `sink` and start a new one."""
        flushed = self.buffers
        sink.append(flushed)
        self.stats.events += 1
        self.buffers = EventBuffers()
        return flushed

    def produce(self, event: EventInput, sink: EventSink) -> EventBuffers:
        """Clear, populate and flush one event."""
        self.clear()
        self.populate(event)
        flushed = self.flush(sink)
        logger.debug(
            "Event %s: %s",
            event.event_id,
            ", ".join(f"{c.value}={flushed.n_muons(c)}" for c in MuonCategory),
        )
        return flushed

    def produce_events(self, events: Iterable[EventInput], sink: EventSink) -> EventSink:
        """Run `produce` on each event in order and return the sink."""
        for event in events:
            self.produce(event, sink)
        return sink

    def _populate_truth(self, event: EventInput) -> None:
        """Record reco/truth pairs by position in the unfiltered muon list."""
        cfg = self.config
        for index, muon in enumerate(event.muons):
            if muon.truth_index is None:
                continue
            try:
                gen = truth_particle(event.truth, muon.truth_index)
                photon_mother = has_photon_mother(event.truth, muon.truth_index, cfg.max_ancestry_hops)
            except AncestryError as exc:
                self.stats.record_fault(exc)
                logger.warning("Event %s: skipping truth record %d (%s)", event.event_id, index, exc)
                continue
            self.buffers.append_truth(
                TruthMatchRecord(
                    index=index,
                    reco_pt=muon.pt,
                    reco_eta=muon.eta,
                    reco_phi=muon.phi,
                    reco_charge=int(muon.charge),
                    gen_pt=gen.pt,
                    gen_eta=gen.eta,
                    gen_phi=gen.phi,
                    gen_pdg_id=gen.pdg_id,
                    gen_status=gen.status,
                    is_signal=is_signal(gen),
                    is_pileup=is_pileup_like(gen, cfg.pileup_max_abs_vz),
                    has_photon_mother=photon_mother,
                    is_prompt=gen.is_prompt,
                    is_hard_process=gen.is_hard_process,
                    from_hard_process=gen.from_hard_process,
                    is_last_copy=gen.is_last_copy,
                )
            )
