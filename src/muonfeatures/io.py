"""Input/output helpers for JSON event inputs and tabular feature export."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

from .models import CandidateTrack, EventBuffers, EventInput, Muon, StatusFlag, TruthParticle, Vertex
from .pid import status_flags_from_names
from .producer import ProducerConfig

logger = logging.getLogger(__name__)

_KNOWN_FLAG_BITS = sum(int(flag) for flag in StatusFlag)


class FeatureSink:
    """In-memory sink collecting one flushed `EventBuffers` per event."""

    def __init__(self) -> None:
        self.events: list[EventBuffers] = []

    def append(self, buffers: EventBuffers) -> None:
        self.events.append(buffers)

    def __len__(self) -> int:
        return len(self.events)

    def to_rows(self) -> list[dict[str, Any]]:
        """One row per event, list-valued columns per output field."""
        return [buffers.to_row() for buffers in self.events]


def load_config_json(path: str | Path) -> ProducerConfig:
    """Load a `ProducerConfig` from a JSON object with matching keys."""
    data = _load_json(path)
    known = {f.name for f in dataclasses.fields(ProducerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
    if data.get("mass_window") is not None:
        window = data["mass_window"]
        if not isinstance(window, list) or len(window) != 2:
            raise ValueError("Configuration key 'mass_window' must be a [low, high] list.")
        data["mass_window"] = (float(window[0]), float(window[1]))
    return ProducerConfig(**data)


def load_events_json(path: str | Path, config: ProducerConfig | None = None) -> list[EventInput]:
    """Load multi-event input JSON into `EventInput` objects.

    Expected shape (collection keys follow `config`):
    {
      "events": [
        {"event_id": "...", "slimmedMuons": [...], "packedPFCandidates": [...],
         "offlineSlimmedPrimaryVertices": [...], "prunedGenParticles": [...],
         "slimmedAddPileupInfo": {"n_pileup": 32}},
        ...
      ]
    }
    """
    cfg = config or ProducerConfig()
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise ValueError("Events JSON must contain a list under key 'events'.")
    out: list[EventInput] = []
    for idx, event in enumerate(events_data):
        if not isinstance(event, dict):
            raise ValueError(f"Event entry at index {idx} must be an object.")
        out.append(parse_event(event, idx, cfg))
    logger.info("Loaded %d events from %s", len(out), path)
    return out


def parse_event(event: dict[str, Any], idx: int, config: ProducerConfig) -> EventInput:
    """Parse one event payload using the configured collection keys."""
    event_id = str(event.get("event_id", f"evt{idx}"))
    context = f"event '{event_id}'"
    muons_data = _collection(event, config.muons, context, required=True)
    tracks_data = _collection(event, config.tracks, context, required=True)
    vertices_data = _collection(event, config.vertices, context, required=False)
    truth_data = _collection(event, config.truth, context, required=False)

    truth = tuple(
        _parse_truth_item(item=item, idx=tidx, context=context)
        for tidx, item in enumerate(truth_data)
    )
    for tidx, particle in enumerate(truth):
        if particle.mother is not None and not 0 <= particle.mother < len(truth):
            raise ValueError(
                f"Truth particle {tidx} in {context} has mother index {particle.mother} "
                f"outside the collection (size {len(truth)})."
            )
    muons = tuple(
        _parse_muon_item(item=item, idx=midx, context=context)
        for midx, item in enumerate(muons_data)
    )
    for midx, muon in enumerate(muons):
        if muon.truth_index is not None and not 0 <= muon.truth_index < len(truth):
            raise ValueError(
                f"Muon {midx} in {context} has truth index {muon.truth_index} "
                f"outside the truth collection (size {len(truth)})."
            )
    return EventInput(
        event_id=event_id,
        muons=muons,
        tracks=tuple(
            _parse_track_item(item=item, idx=tidx, context=context)
            for tidx, item in enumerate(tracks_data)
        ),
        vertices=tuple(
            _parse_vertex_item(item=item, idx=vidx, context=context)
            for vidx, item in enumerate(vertices_data)
        ),
        truth=truth,
        n_pileup=_parse_pileup_info(event.get(config.pileup_info), context),
    )


def write_feature_table(path: str | Path, sink: FeatureSink) -> None:
    """Write per-event feature rows into a Parquet/CSV/Pickle table.

    Parquet and Pickle keep the list-valued columns as lists. CSV has no list
    type, so each list cell is written as a JSON array string (`"[31.2]"`);
    read it back with `json.loads`.
    """
    pd = _require_pandas()
    out = Path(path)
    suffix = out.suffix.lower()
    rows = sink.to_rows()
    if suffix == ".csv":
        rows = [
            {k: json.dumps(v) if isinstance(v, list) else v for k, v in row.items()}
            for row in rows
        ]
    df = pd.DataFrame(rows)
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )
    logger.info("Wrote %d event rows to %s", len(df), out)


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _collection(event: dict[str, Any], key: str, context: str, required: bool) -> list[Any]:
    """Fetch a list-valued collection from an event payload."""
    value = event.get(key)
    if value is None:
        if required:
            raise ValueError(f"{context} must contain a list under key '{key}'.")
        return []
    if not isinstance(value, list):
        raise ValueError(f"Collection '{key}' in {context} must be a list.")
    return value


def _parse_muon_item(item: Any, idx: int, context: str) -> Muon:
    """Parse one muon dictionary into a `Muon`."""
    if not isinstance(item, dict):
        raise ValueError(f"Muon entry at index {idx} in {context} must be an object.")
    truth_index = item.get("truth_index")
    return Muon(
        pt=_non_negative(item["pt"], "pt", idx, context),
        eta=float(item["eta"]),
        phi=float(item["phi"]),
        charge=int(item.get("charge", 0)),
        vx=float(item.get("vx", 0.0)),
        vy=float(item.get("vy", 0.0)),
        vz=float(item.get("vz", 0.0)),
        is_tracker=bool(item.get("is_tracker", True)),
        has_best_track=bool(item.get("has_best_track", True)),
        truth_index=int(truth_index) if truth_index is not None else None,
    )


def _parse_track_item(item: Any, idx: int, context: str) -> CandidateTrack:
    """Parse one candidate dictionary into a `CandidateTrack`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    return CandidateTrack(
        pt=_non_negative(item["pt"], "pt", idx, context),
        charge=int(item.get("charge", 0)),
        x=float(item["x"]),
        y=float(item["y"]),
        z=float(item["z"]),
        has_track_details=bool(item.get("has_track_details", True)),
    )


def _parse_vertex_item(item: Any, idx: int, context: str) -> Vertex:
    """Parse one vertex dictionary into a `Vertex`."""
    if not isinstance(item, dict):
        raise ValueError(f"Vertex at index {idx} in {context} must be an object.")
    return Vertex(x=float(item["x"]), y=float(item["y"]), z=float(item["z"]))


def _parse_truth_item(item: Any, idx: int, context: str) -> TruthParticle:
    """Parse one generator-particle dictionary into a `TruthParticle`."""
    if not isinstance(item, dict):
        raise ValueError(f"Truth particle at index {idx} in {context} must be an object.")
    mother = item.get("mother")
    return TruthParticle(
        pdg_id=int(item["pdg_id"]),
        status=int(item.get("status", 1)),
        pt=float(item.get("pt", 0.0)),
        eta=float(item.get("eta", 0.0)),
        phi=float(item.get("phi", 0.0)),
        vx=float(item.get("vx", 0.0)),
        vy=float(item.get("vy", 0.0)),
        vz=float(item.get("vz", 0.0)),
        flags=_parse_flags(item.get("flags", 0), idx, context),
        mother=int(mother) if mother is not None else None,
    )


def _parse_flags(value: Any, idx: int, context: str) -> StatusFlag:
    """Accept an integer bit mask or a list of flag names."""
    if isinstance(value, bool):
        raise ValueError(f"Truth particle {idx} in {context}: 'flags' must be an int or a list.")
    if isinstance(value, int):
        if value < 0 or value & ~_KNOWN_FLAG_BITS:
            raise ValueError(
                f"Truth particle {idx} in {context}: 'flags' mask {value} sets bits outside "
                f"the known status flags (0..{_KNOWN_FLAG_BITS})."
            )
        return StatusFlag(value)
    if isinstance(value, list):
        return status_flags_from_names(str(x) for x in value)
    raise ValueError(f"Truth particle {idx} in {context}: 'flags' must be an int or a list.")


def _parse_pileup_info(value: Any, context: str) -> int | None:
    """Read the number of pileup interactions, if provided."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("n_pileup")
        if value is None:
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    raise ValueError(f"Pileup info in {context} must be a number or an object with 'n_pileup'.")


def _non_negative(value: Any, name: str, idx: int, context: str) -> float:
    number = float(value)
    if number < 0.0:
        raise ValueError(f"Entry {idx} in {context} has negative {name} {number}.")
    return number


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
