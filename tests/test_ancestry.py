"""Unit tests for ancestry walks and truth classification."""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


import unittest

from muonfeatures import (
    AncestryLinkError,
    AncestryTraversalError,
    MuonCategory,
    StatusFlag,
    TruthClassification,
    TruthParticle,
    categorize,
    classify,
    has_photon_mother,
    is_from_photon,
    is_pileup_like,
    is_signal,
)
from muonfeatures.ancestry import iter_ancestry

PROMPT_HARD = StatusFlag.IS_PROMPT | StatusFlag.IS_HARD_PROCESS | StatusFlag.FROM_HARD_PROCESS


class TestAncestryWalks(unittest.TestCase):
    """Validate the inclusive and strict photon walks and their hop bound."""

    @staticmethod
    def _chain(*pdg_ids: int) -> tuple[TruthParticle, ...]:
        """Build an arena where particle i has particle i+1 as mother."""
        last = len(pdg_ids) - 1
        return tuple(
            TruthParticle(pdg_id=pdg, status=1, mother=i + 1 if i < last else None)
            for i, pdg in enumerate(pdg_ids)
        )

    def test_muon_from_w_from_photon(self) -> None:
        """Muon -> W -> photon is photon-descended after two hops."""
        arena = self._chain(13, 24, 22)
        self.assertTrue(is_from_photon(arena, 0))
        self.assertEqual([p.pdg_id for p in iter_ancestry(arena, 0)], [13, 24, 22])

    def test_chain_without_photon(self) -> None:
        arena = self._chain(-13, 24, 2212)
        self.assertFalse(is_from_photon(arena, 0))
        self.assertFalse(has_photon_mother(arena, 0))

    def test_inclusive_and_strict_walks_differ_on_self(self) -> None:
        """A photon with no photon ancestors is photon-descended only inclusively."""
        arena = self._chain(22, 23)
        self.assertTrue(is_from_photon(arena, 0))
        self.assertFalse(has_photon_mother(arena, 0))
        self.assertTrue(has_photon_mother(self._chain(11, 22), 0))

    def test_particle_without_mother(self) -> None:
        arena = (TruthParticle(pdg_id=13, status=1),)
        self.assertFalse(is_from_photon(arena, 0))
        self.assertFalse(has_photon_mother(arena, 0))

    def test_walk_visits_exactly_the_chain(self) -> None:
        """Termination: a finite chain of length n yields n particles."""
        arena = self._chain(*([111] * 50))
        self.assertEqual(len(list(iter_ancestry(arena, 0))), 50)
        self.assertEqual(len(list(iter_ancestry(arena, 0, include_self=False))), 49)

    def test_cycle_raises_traversal_error(self) -> None:
        arena = (
            TruthParticle(pdg_id=13, status=1, mother=1),
            TruthParticle(pdg_id=24, status=2, mother=0),
        )
        with self.assertRaises(AncestryTraversalError):
            is_from_photon(arena, 0, max_hops=100)
        with self.assertRaises(AncestryTraversalError):
            has_photon_mother(arena, 0, max_hops=100)

    def test_negative_mother_index_is_a_link_fault(self) -> None:
        """A mother of -1 must not wrap around to the last arena entry."""
        arena = (
            TruthParticle(pdg_id=13, status=1, mother=-1),
            TruthParticle(pdg_id=22, status=1),
        )
        with self.assertRaises(AncestryLinkError):
            is_from_photon(arena, 0)
        with self.assertRaises(AncestryLinkError):
            has_photon_mother(arena, 0)

    def test_start_index_outside_arena_is_a_link_fault(self) -> None:
        arena = self._chain(13, 22)
        for index in (-1, 2):
            with self.assertRaises(AncestryLinkError):
                classify(arena, index)
            with self.assertRaises(AncestryLinkError):
                has_photon_mother(arena, index)

    def test_mother_past_end_of_arena_is_a_link_fault(self) -> None:
        arena = (TruthParticle(pdg_id=13, status=1, mother=5),)
        with self.assertRaises(AncestryLinkError):
            is_from_photon(arena, 0)

    def test_hop_budget_allows_chain_of_that_length(self) -> None:
        arena = self._chain(*([111] * 11))
        self.assertFalse(is_from_photon(arena, 0, max_hops=10))
        with self.assertRaises(AncestryTraversalError):
            is_from_photon(arena, 0, max_hops=9)


class TestTruthLabels(unittest.TestCase):
    """Validate pileup, signal and category decisions."""

    def test_unflagged_particle_is_pileup_like(self) -> None:
        particle = TruthParticle(pdg_id=13, status=1, vz=0.5)
        self.assertTrue(is_pileup_like(particle))

    def test_prompt_particle_displaced_along_beam_is_pileup_like(self) -> None:
        particle = TruthParticle(pdg_id=13, status=1, vz=-1.5, flags=PROMPT_HARD)
        self.assertTrue(is_pileup_like(particle))
        self.assertFalse(is_pileup_like(particle, max_abs_vz=2.0))

    def test_prompt_particle_near_origin_is_not_pileup_like(self) -> None:
        particle = TruthParticle(pdg_id=13, status=1, vz=0.2, flags=StatusFlag.IS_PROMPT)
        self.assertFalse(is_pileup_like(particle))

    def test_signal_requires_all_conditions(self) -> None:
        signal = TruthParticle(pdg_id=-13, status=1, flags=PROMPT_HARD)
        self.assertTrue(is_signal(signal))
        self.assertFalse(is_signal(TruthParticle(pdg_id=13, status=2, flags=PROMPT_HARD)))
        self.assertFalse(is_signal(TruthParticle(pdg_id=11, status=1, flags=PROMPT_HARD)))
        self.assertFalse(
            is_signal(TruthParticle(pdg_id=13, status=1, flags=StatusFlag.IS_PROMPT))
        )

    def test_classify_and_categorize(self) -> None:
        arena = (
            TruthParticle(pdg_id=13, status=1, flags=PROMPT_HARD, mother=1),
            TruthParticle(pdg_id=23, status=62, flags=PROMPT_HARD),
            TruthParticle(pdg_id=13, status=1, mother=3),
            TruthParticle(pdg_id=22, status=1),
            TruthParticle(pdg_id=13, status=1, vz=4.0),
        )
        prompt = classify(arena, 0)
        self.assertEqual(prompt, TruthClassification(is_from_photon=False, is_pileup_like=False))
        self.assertIs(categorize(prompt), MuonCategory.PROMPT)
        self.assertIs(categorize(classify(arena, 2)), MuonCategory.FROM_PHOTON)
        self.assertIs(categorize(classify(arena, 4)), MuonCategory.PILEUP)


if __name__ == "__main__":
    unittest.main()
