"""Multi-event API example: produce muon features and write a parquet table.

Run from repository root without installation:
    PYTHONPATH=src python examples/multi_event_api.py
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from pathlib import Path

from muonfeatures import MuonCategory, MuonFeatureProducer, ProducerConfig
from muonfeatures.io import FeatureSink, load_events_json, write_feature_table


def main() -> int:
    """Load events, fill category buffers, and write one row per event."""
    config = ProducerConfig(truth_linked=True)
    events = load_events_json("examples/events.json", config)
    producer = MuonFeatureProducer(config=config)
    sink = producer.produce_events(events, FeatureSink())
    out_path = Path("examples/multi_event_output.parquet")
    write_feature_table(out_path, sink)
    counts = ", ".join(f"{c.value}={producer.stats.per_category[c]}" for c in MuonCategory)
    print(f"Wrote {len(sink)} events ({counts}) to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
