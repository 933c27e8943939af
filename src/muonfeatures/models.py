"""Core data models used by the muon feature producer.

This module defines:
- immutable reconstructed objects (`Muon`, `CandidateTrack`, `Vertex`)
- generator-level truth objects (`TruthParticle`, `StatusFlag`, `TruthArena`)
- the per-event input container (`EventInput`)
- classification labels (`MuonCategory`, `TruthClassification`)
- output rows (`MuonFeatureRecord`, `TruthMatchRecord`) and the per-event
  column buffers they are appended to (`EventBuffers`).
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import math
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any

Point3 = tuple[float, float, float]

DISPLACEMENT_THRESHOLDS_MM: tuple[float, ...] = (0.5, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, 10.0)
RATIO_EXPONENT_STEPS = 10


def threshold_label(threshold: float) -> str:
    """Format a radius for column names: `0.5 -> "0p5"`, `3.0 -> "3"`."""
    return f"{threshold:g}".replace(".", "p")


def ratio_exponents() -> tuple[float, ...]:
    """Return the exponents `0.1 ... 1.0`, built from an integer index."""
    return tuple(k * 0.1 for k in range(1, RATIO_EXPONENT_STEPS + 1))


class StatusFlag(IntFlag):
    """Generator-particle status-flag bits (standard bit positions)."""

    IS_PROMPT = 1 << 0
    IS_DECAYED_LEPTON_HADRON = 1 << 1
    IS_TAU_DECAY_PRODUCT = 1 << 2
    IS_PROMPT_TAU_DECAY_PRODUCT = 1 << 3
    IS_DIRECT_TAU_DECAY_PRODUCT = 1 << 4
    IS_DIRECT_PROMPT_TAU_DECAY_PRODUCT = 1 << 5
    IS_DIRECT_HADRON_DECAY_PRODUCT = 1 << 6
    IS_HARD_PROCESS = 1 << 7
    FROM_HARD_PROCESS = 1 << 8
    IS_HARD_PROCESS_TAU_DECAY_PRODUCT = 1 << 9
    IS_DIRECT_HARD_PROCESS_TAU_DECAY_PRODUCT = 1 << 10
    FROM_HARD_PROCESS_BEFORE_FSR = 1 << 11
    IS_FIRST_COPY = 1 << 12
    IS_LAST_COPY = 1 << 13
    IS_LAST_COPY_BEFORE_FSR = 1 << 14


@dataclass(frozen=True)
class Muon:
    """Reconstructed muon with its best-track reference point.

    `(vx, vy, vz)` is the production point used both for displacement
    clustering and as the track reference for impact parameters.
    `truth_index` is a weak link into the event `TruthArena`.
    """

    pt: float
    eta: float
    phi: float
    charge: int
    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    is_tracker: bool = True
    has_best_track: bool = True
    truth_index: int | None = None

    @property
    def position(self) -> Point3:
        return self.vx, self.vy, self.vz

    @property
    def momentum(self) -> Point3:
        """Cartesian momentum `(px, py, pz)` from `(pt, eta, phi)`."""
        return (
            self.pt * math.cos(self.phi),
            self.pt * math.sin(self.phi),
            self.pt * math.sinh(self.eta),
        )


@dataclass(frozen=True)
class CandidateTrack:
    """Charged candidate considered for displacement clustering."""

    pt: float
    charge: int
    x: float
    y: float
    z: float
    has_track_details: bool = True

    @property
    def position(self) -> Point3:
        return self.x, self.y, self.z


@dataclass(frozen=True)
class Vertex:
    """Reconstructed vertex; only its position is used."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def position(self) -> Point3:
        return self.x, self.y, self.z


@dataclass(frozen=True)
class TruthParticle:
    """Generator-level particle stored in a `TruthArena`.

    `mother` is the arena index of the mother particle, or `None` at the top
    of the chain.
    """

    pdg_id: int
    status: int
    pt: float = 0.0
    eta: float = 0.0
    phi: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    flags: StatusFlag = StatusFlag(0)
    mother: int | None = None

    def has_flag(self, flag: StatusFlag) -> bool:
        return bool(self.flags & flag)

    @property
    def is_prompt(self) -> bool:
        return self.has_flag(StatusFlag.IS_PROMPT)

    @property
    def is_hard_process(self) -> bool:
        return self.has_flag(StatusFlag.IS_HARD_PROCESS)

    @property
    def from_hard_process(self) -> bool:
        return self.has_flag(StatusFlag.FROM_HARD_PROCESS)

    @property
    def is_last_copy(self) -> bool:
        return self.has_flag(StatusFlag.IS_LAST_COPY)


TruthArena = tuple[TruthParticle, ...]


@dataclass(frozen=True)
class EventInput:
    """One event payload with all collections the producer reads."""

    event_id: str
    muons: tuple[Muon, ...]
    tracks: tuple[CandidateTrack, ...]
    vertices: tuple[Vertex, ...] = ()
    truth: TruthArena = ()
    n_pileup: int | None = None

    @property
    def primary_vertex(self) -> Vertex:
        """First vertex of the collection, or the origin if there is none."""
        return self.vertices[0] if self.vertices else Vertex()


class MuonCategory(Enum):
    """Generator-level origin of a truth-matched muon."""

    PROMPT = "prompt"
    PILEUP = "pileup"
    FROM_PHOTON = "fromPhoton"

    @property
    def prefix(self) -> str:
        """Column prefix, e.g. `muon_fromPhoton`."""
        return f"muon_{self.value}"


@dataclass(frozen=True)
class TruthClassification:
    """Photon-descent and pileup-like labels for one truth particle."""

    is_from_photon: bool
    is_pileup_like: bool


@dataclass(frozen=True)
class MuonFeatureRecord:
    """One accepted muon with kinematics and clustering features."""

    pt: float
    eta: float
    phi: float
    dz: float
    d0: float
    impact_factor: float
    charge: int
    extra_tracks: tuple[int, ...]
    sum_extra_track_pt: tuple[float, ...]
    charge_weighted_ratios: tuple[float, ...]
    max_pt_ratio: float
    pt_range: float
    sum_extra_pt: float
    extra_pt_ratio: float

    def columns(self) -> dict[str, Any]:
        """Flatten into `field -> value` pairs without the category prefix."""
        out: dict[str, Any] = {
            "pt": self.pt,
            "eta": self.eta,
            "phi": self.phi,
            "dz": self.dz,
            "d0": self.d0,
            "impactFactor": self.impact_factor,
            "charge": self.charge,
        }
        for threshold, count, sum_pt in zip(
            DISPLACEMENT_THRESHOLDS_MM, self.extra_tracks, self.sum_extra_track_pt, strict=True
        ):
            label = threshold_label(threshold)
            out[f"extratracks{label}mm"] = count
            out[f"sumExtraTrackPt{label}mm"] = sum_pt
        for k, ratio in enumerate(self.charge_weighted_ratios, start=1):
            out[f"chargeWeightedRatio_m{k:02d}"] = ratio
        out["maxPtRatio"] = self.max_pt_ratio
        out["ptRange"] = self.pt_range
        out["sumExtraPt"] = self.sum_extra_pt
        out["extraPtRatio"] = self.extra_pt_ratio
        return out


@dataclass(frozen=True)
class TruthMatchRecord:
    """Reco muon paired with its matched truth particle and labels."""

    index: int
    reco_pt: float
    reco_eta: float
    reco_phi: float
    reco_charge: int
    gen_pt: float
    gen_eta: float
    gen_phi: float
    gen_pdg_id: int
    gen_status: int
    is_signal: bool
    is_pileup: bool
    has_photon_mother: bool
    is_prompt: bool
    is_hard_process: bool
    from_hard_process: bool
    is_last_copy: bool

    def columns(self) -> dict[str, Any]:
        return {
            "recoMuon_index": self.index,
            "recoMuon_pt": self.reco_pt,
            "recoMuon_eta": self.reco_eta,
            "recoMuon_phi": self.reco_phi,
            "recoMuon_charge": self.reco_charge,
            "genMuon_pt": self.gen_pt,
            "genMuon_eta": self.gen_eta,
            "genMuon_phi": self.gen_phi,
            "genMuon_pdgId": self.gen_pdg_id,
            "genMuon_status": self.gen_status,
            "genMuon_isSignal": self.is_signal,
            "genMuon_isPileup": self.is_pileup,
            "genMuon_hasPhotonMother": self.has_photon_mother,
            "genMuon_isPrompt": self.is_prompt,
            "genMuon_isHardProcess": self.is_hard_process,
            "genMuon_fromHardProcess": self.from_hard_process,
            "genMuon_isLastCopy": self.is_last_copy,
        }


def feature_column_names(category: MuonCategory) -> tuple[str, ...]:
    """All feature columns of one category, in output order."""
    names = [
        "pt", "eta", "phi", "dz", "d0", "impactFactor", "charge",
    ]
    for threshold in DISPLACEMENT_THRESHOLDS_MM:
        label = threshold_label(threshold)
        names.append(f"extratracks{label}mm")
        names.append(f"sumExtraTrackPt{label}mm")
    names.extend(f"chargeWeightedRatio_m{k:02d}" for k in range(1, RATIO_EXPONENT_STEPS + 1))
    names.extend(["maxPtRatio", "ptRange", "sumExtraPt", "extraPtRatio"])
    return tuple(f"{category.prefix}_{name}" for name in names)


TRUTH_COLUMN_NAMES: tuple[str, ...] = (
    "recoMuon_index",
    "recoMuon_pt",
    "recoMuon_eta",
    "recoMuon_phi",
    "recoMuon_charge",
    "genMuon_pt",
    "genMuon_eta",
    "genMuon_phi",
    "genMuon_pdgId",
    "genMuon_status",
    "genMuon_isSignal",
    "genMuon_isPileup",
    "genMuon_hasPhotonMother",
    "genMuon_isPrompt",
    "genMuon_isHardProcess",
    "genMuon_fromHardProcess",
    "genMuon_isLastCopy",
)


@dataclass
class EventBuffers:
    """Per-event parallel output columns.

    Within one category every `muon_<category>_*` list is index-aligned: entry
    `i` of each list describes the same muon.
    """

    event_id: str | None = None
    n_pileup: int = -1
    features: dict[MuonCategory, dict[str, list[Any]]] = field(default_factory=dict)
    truth: dict[str, list[Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for category in MuonCategory:
            self.features.setdefault(category, {name: [] for name in feature_column_names(category)})
        for name in TRUTH_COLUMN_NAMES:
            self.truth.setdefault(name, [])

    def append_feature(self, category: MuonCategory, record: MuonFeatureRecord) -> None:
        """Append one record to every column of its category."""
        columns = self.features[category]
        for name, value in record.columns().items():
            columns[f"{category.prefix}_{name}"].append(value)

    def append_truth(self, record: TruthMatchRecord) -> None:
        for name, value in record.columns().items():
            self.truth[name].append(value)

    def n_muons(self, category: MuonCategory) -> int:
        return len(self.features[category][f"{category.prefix}_pt"])

    @property
    def n_truth(self) -> int:
        return len(self.truth["recoMuon_index"])

    def is_empty(self) -> bool:
        return self.n_truth == 0 and all(self.n_muons(c) == 0 for c in MuonCategory)

    def to_row(self) -> dict[str, Any]:
        """Flatten into a single columnar row (list-valued columns)."""
        row: dict[str, Any] = {"event_id": self.event_id, "nPU": self.n_pileup}
        for category in MuonCategory:
            for name, values in self.features[category].items():
                row[name] = list(values)
        for name, values in self.truth.items():
            row[name] = list(values)
        return row
