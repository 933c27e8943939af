"""Unit tests for JSON input loader helpers and table export."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import json
import tempfile
import unittest
from pathlib import Path

from muonfeatures import MuonFeatureProducer, ProducerConfig, StatusFlag
from muonfeatures.cli import main
from muonfeatures.io import FeatureSink, load_config_json, load_events_json, write_feature_table
from muonfeatures.pid import status_flag_from_name


def _event_payload() -> dict:
    """One event with two muons, three candidates and a short truth chain."""
    return {
        "events": [
            {
                "event_id": "evt42",
                "slimmedMuons": [
                    {"pt": 20.0, "eta": 0.1, "phi": 0.3, "charge": 1, "truth_index": 0},
                    {"pt": 9.0, "eta": -1.1, "phi": 2.0, "charge": -1, "is_tracker": False},
                ],
                "packedPFCandidates": [
                    {"pt": 5.0, "charge": 1, "x": 0.3, "y": 0.0, "z": 0.0},
                    {"pt": 3.0, "charge": -1, "x": 0.0, "y": 0.0, "z": 0.8},
                    {"pt": 2.0, "charge": 0, "x": 0.0, "y": 0.0, "z": 0.0, "has_track_details": False},
                ],
                "offlineSlimmedPrimaryVertices": [{"x": 0.0, "y": 0.0, "z": 0.0}],
                "prunedGenParticles": [
                    {
                        "pdg_id": 13,
                        "status": 1,
                        "pt": 19.5,
                        "flags": ["isPrompt", "isHardProcess", "fromHardProcess"],
                        "mother": 1,
                    },
                    {"pdg_id": 23, "status": 62, "flags": 384},
                ],
                "slimmedAddPileupInfo": {"n_pileup": 41},
            }
        ]
    }


class TestIOLoaders(unittest.TestCase):
    """Validate parsing of event payloads, configuration and table output."""

    def _write(self, tmpdir: str, name: str, payload: dict) -> Path:
        path = Path(tmpdir) / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_events_json_parses_event_payload(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            [event] = load_events_json(self._write(tmpdir, "events.json", _event_payload()))
        self.assertEqual(event.event_id, "evt42")
        self.assertEqual(len(event.muons), 2)
        self.assertEqual(len(event.tracks), 3)
        self.assertFalse(event.tracks[2].has_track_details)
        self.assertEqual(event.n_pileup, 41)
        self.assertEqual(event.muons[0].truth_index, 0)
        self.assertIsNone(event.muons[1].truth_index)
        self.assertFalse(event.muons[1].is_tracker)
        gen = event.truth[0]
        self.assertTrue(gen.is_prompt)
        self.assertTrue(gen.is_hard_process)
        self.assertEqual(gen.mother, 1)
        self.assertEqual(
            event.truth[1].flags, StatusFlag.IS_HARD_PROCESS | StatusFlag.FROM_HARD_PROCESS
        )

    def test_custom_collection_names(self) -> None:
        payload = _event_payload()
        event = payload["events"][0]
        event["muons"] = event.pop("slimmedMuons")
        config = ProducerConfig(muons="muons")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "events.json", payload)
            [parsed] = load_events_json(path, config)
            with self.assertRaises(ValueError):
                load_events_json(path)
        self.assertEqual(len(parsed.muons), 2)

    def test_invalid_mother_index_is_rejected(self) -> None:
        payload = _event_payload()
        payload["events"][0]["prunedGenParticles"][1]["mother"] = 7
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                load_events_json(self._write(tmpdir, "events.json", payload))

    def test_unknown_flag_name_is_rejected(self) -> None:
        self.assertIs(status_flag_from_name("is_last_copy"), StatusFlag.IS_LAST_COPY)
        with self.assertRaises(ValueError):
            status_flag_from_name("isVeryPrompt")

    def test_malformed_flag_masks_are_rejected(self) -> None:
        """Negative masks and unknown bits must not turn into 'all flags set'."""
        for mask in (-1, 1 << 15):
            payload = _event_payload()
            payload["events"][0]["prunedGenParticles"][0]["flags"] = mask
            with tempfile.TemporaryDirectory() as tmpdir:
                with self.assertRaisesRegex(ValueError, "Truth particle 0"):
                    load_events_json(self._write(tmpdir, "events.json", payload))

    def test_load_config_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_config_json(
                self._write(
                    tmpdir,
                    "config.json",
                    {"truth_linked": True, "mass_window": [70.0, 110.0], "pileup_max_abs_vz": 2.5},
                )
            )
            with self.assertRaises(ValueError):
                load_config_json(self._write(tmpdir, "bad.json", {"muon_collection": "x"}))
        self.assertTrue(config.truth_linked)
        self.assertEqual(config.mass_window, (70.0, 110.0))
        self.assertEqual(config.pileup_max_abs_vz, 2.5)

    def test_write_feature_table_pickle(self) -> None:
        import pandas as pd

        with tempfile.TemporaryDirectory() as tmpdir:
            events = load_events_json(self._write(tmpdir, "events.json", _event_payload()))
            sink = MuonFeatureProducer().produce_events(events, FeatureSink())
            out = Path(tmpdir) / "features.pkl"
            write_feature_table(out, sink)
            df = pd.read_pickle(out)
            with self.assertRaises(ValueError):
                write_feature_table(Path(tmpdir) / "features.txt", sink)
        self.assertEqual(list(df["event_id"]), ["evt42"])
        self.assertEqual(df["nPU"].iloc[0], 41)
        self.assertEqual(df["muon_prompt_extratracks1mm"].iloc[0], [2])
        self.assertEqual(df["muon_pileup_pt"].iloc[0], [])

    def test_write_feature_table_parquet(self) -> None:
        import pandas as pd

        payload = _event_payload()
        payload["events"].append(
            {"event_id": "evt43", "slimmedMuons": [], "packedPFCandidates": []}
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            events = load_events_json(self._write(tmpdir, "events.json", payload))
            sink = MuonFeatureProducer().produce_events(events, FeatureSink())
            out = Path(tmpdir) / "features.parquet"
            write_feature_table(out, sink)
            df = pd.read_parquet(out)
        self.assertEqual(list(df["event_id"]), ["evt42", "evt43"])
        self.assertEqual(list(df["nPU"]), [41, -1])
        self.assertEqual(list(df["muon_prompt_extratracks1mm"].iloc[0]), [2])
        self.assertEqual(list(df["muon_prompt_sumExtraTrackPt1mm"].iloc[0]), [8.0])
        self.assertEqual(len(df["muon_prompt_pt"].iloc[1]), 0)
        self.assertEqual(len(df["muon_fromPhoton_pt"].iloc[0]), 0)

    def test_write_feature_table_csv_keeps_lists_as_json(self) -> None:
        import pandas as pd

        with tempfile.TemporaryDirectory() as tmpdir:
            events = load_events_json(self._write(tmpdir, "events.json", _event_payload()))
            sink = MuonFeatureProducer().produce_events(events, FeatureSink())
            out = Path(tmpdir) / "features.csv"
            write_feature_table(out, sink)
            df = pd.read_csv(out)
        self.assertEqual(json.loads(df["muon_prompt_pt"].iloc[0]), [20.0])
        self.assertEqual(json.loads(df["muon_prompt_extratracks1mm"].iloc[0]), [2])
        self.assertEqual(json.loads(df["muon_pileup_pt"].iloc[0]), [])
        self.assertEqual(df["nPU"].iloc[0], 41)

    def test_cli_writes_table(self) -> None:
        import pandas as pd

        with tempfile.TemporaryDirectory() as tmpdir:
            events_path = self._write(tmpdir, "events.json", _event_payload())
            out = Path(tmpdir) / "features.pkl"
            code = main(["--events", str(events_path), "--out", str(out), "--truth-linked"])
            df = pd.read_pickle(out)
        self.assertEqual(code, 0)
        self.assertEqual(df["recoMuon_index"].iloc[0], [0])
        self.assertEqual(df["genMuon_isSignal"].iloc[0], [True])


if __name__ == "__main__":
    unittest.main()
