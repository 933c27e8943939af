"""Public package exports for the muon displacement-feature producer."""
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from .ancestry import (
    AncestryError,
    AncestryLinkError,
    AncestryTraversalError,
    categorize,
    classify,
    has_photon_mother,
    is_from_photon,
    is_pileup_like,
    is_signal,
)
from .clustering import ClusterResult, cluster_candidates
from .models import (
    DISPLACEMENT_THRESHOLDS_MM,
    CandidateTrack,
    EventBuffers,
    EventInput,
    Muon,
    MuonCategory,
    MuonFeatureRecord,
    StatusFlag,
    TruthClassification,
    TruthMatchRecord,
    TruthParticle,
    Vertex,
)
from .producer import MuonFeatureProducer, ProducerConfig, build_feature_record
from .ratio import RatioCurve, compute_ratio_curve, summarize

__all__ = [
    "MuonFeatureProducer",
    "ProducerConfig",
    "build_feature_record",
    "Muon",
    "CandidateTrack",
    "Vertex",
    "TruthParticle",
    "StatusFlag",
    "EventInput",
    "EventBuffers",
    "MuonCategory",
    "MuonFeatureRecord",
    "TruthClassification",
    "TruthMatchRecord",
    "DISPLACEMENT_THRESHOLDS_MM",
    "AncestryError",
    "AncestryLinkError",
    "AncestryTraversalError",
    "classify",
    "categorize",
    "is_from_photon",
    "has_photon_mother",
    "is_pileup_like",
    "is_signal",
    "ClusterResult",
    "cluster_candidates",
    "RatioCurve",
    "compute_ratio_curve",
    "summarize",
]
