"""Command-line interface for producing muon feature tables from event inputs."""

from __future__ import annotations

import argparse
import dataclasses
import logging

from .io import FeatureSink, load_config_json, load_events_json, write_feature_table
from .models import MuonCategory
from .producer import MuonFeatureProducer, ProducerConfig


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="muon-features",
        description="Compute displacement-clustering features and truth categories for muons.",
    )
    parser.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for per-event features (.parquet, .csv, .pkl); CSV stores list columns as JSON arrays.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON with producer settings (collection names, cuts).",
    )
    parser.add_argument(
        "--truth-linked",
        action="store_true",
        default=None,
        help="Also write reco/truth pairs indexed by reco-muon position.",
    )
    parser.add_argument(
        "--pileup-max-abs-vz",
        type=float,
        default=None,
        help="Truth |vz| above which a muon counts as pileup-like.",
    )
    parser.add_argument("--com-energy", type=float, default=None, help="Centre-of-mass energy (GeV).")
    parser.add_argument(
        "--mass-window",
        type=float,
        nargs=2,
        metavar=("LOW", "HIGH"),
        default=None,
        help="Optional mass window (accepted for bookkeeping).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser


def setup_logging(verbose: bool = False) -> None:
    """Configure process-wide logging (DEBUG if `verbose`, else INFO)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )


def resolve_config(args: argparse.Namespace) -> ProducerConfig:
    """Merge the optional config file with CLI overrides."""
    config = load_config_json(args.config) if args.config else ProducerConfig()
    overrides = {
        "truth_linked": args.truth_linked,
        "pileup_max_abs_vz": args.pileup_max_abs_vz,
        "com_energy": args.com_energy,
        "mass_window": tuple(args.mass_window) if args.mass_window is not None else None,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load events, produce features, write table."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = resolve_config(args)
    events = load_events_json(args.events, config)

    producer = MuonFeatureProducer(config=config)
    sink = producer.produce_events(events, FeatureSink())
    write_feature_table(args.out, sink)

    stats = producer.stats
    logging.info(
        "Processed %d events: %d/%d muons written (%s)",
        stats.events,
        stats.muons_written,
        stats.muons_seen,
        ", ".join(f"{c.value}={stats.per_category[c]}" for c in MuonCategory),
    )
    logging.info(
        "Skipped: quality=%d unmatched=%d traversal_faults=%d link_faults=%d",
        stats.skipped_quality,
        stats.skipped_unmatched,
        stats.traversal_faults,
        stats.link_faults,
    )
    if stats.traversal_faults:
        logging.warning("%d ancestry walks hit the hop limit; check the truth input.", stats.traversal_faults)
    if stats.link_faults:
        logging.warning("%d truth links point outside the truth collection.", stats.link_faults)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
