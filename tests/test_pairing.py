"""Unit tests for K0S-gamma pair building and the per-batch pipeline."""

from __future__ import annotations

import math
import unittest
from dataclasses import replace

from v0pairs import (
    AnalysisConfig,
    Candidate,
    CandidateBatch,
    Collision,
    DaughterTrack,
    PairCombiner,
    SelectionBit,
    TruthInfo,
    build_pairs,
    share_daughters,
)
from v0pairs.pid import MASS_K0SHORT, MASS_KAON_NEUTRAL


def _candidate(candidate_id: int, pos: int, neg: int, px=1.0, py=0.0, pz=0.0) -> Candidate:
    """Bare candidate; only identity, daughters and momentum matter for pairing."""
    return Candidate(
        candidate_id=candidate_id,
        positive=DaughterTrack(track_id=pos),
        negative=DaughterTrack(track_id=neg),
        px=px,
        py=py,
        pz=pz,
    )


def _selected_k0(candidate_id: int, pos: int, neg: int, **kwargs) -> Candidate:
    """Candidate passing the default K0S-like selection."""
    values = dict(
        px=1.0,
        py=0.0,
        pz=0.0,
        x=2.0,
        v0_radius=2.0,
        v0_cos_pa=0.999,
        dca_v0_daughters=0.1,
        dca_pos_to_pv=0.1,
        dca_neg_to_pv=0.1,
        dca_v0_to_pv=0.1,
        m_k0short=MASS_K0SHORT,
        m_lambda=1.2,
        m_gamma=0.3,
        qt_arm=0.2,
        alpha=0.1,
    )
    values.update(kwargs)
    return Candidate(
        candidate_id=candidate_id,
        positive=DaughterTrack(track_id=pos, tpc_crossed_rows=100),
        negative=DaughterTrack(track_id=neg, tpc_crossed_rows=100),
        **values,
    )


def _selected_photon(candidate_id: int, pos: int, neg: int, **kwargs) -> Candidate:
    """Candidate passing the default photon-like selection."""
    values = dict(
        px=0.0,
        py=1.0,
        pz=0.0,
        x=10.0,
        v0_radius=10.0,
        v0_cos_pa=0.999,
        dca_v0_daughters=0.1,
        dca_pos_to_pv=0.1,
        dca_neg_to_pv=0.1,
        dca_v0_to_pv=0.1,
        m_k0short=0.1,
        m_lambda=1.2,
        m_gamma=0.001,
        qt_arm=0.01,
        alpha=0.02,
    )
    values.update(kwargs)
    return Candidate(
        candidate_id=candidate_id,
        positive=DaughterTrack(track_id=pos, tpc_crossed_rows=100),
        negative=DaughterTrack(track_id=neg, tpc_crossed_rows=100),
        **values,
    )


def _good_collision(collision_id: int = 1, **kwargs) -> Collision:
    """Collision passing the default pp event selection."""
    values = dict(
        selection_bits=frozenset(SelectionBit),
        mult_ntracks_pv_eta1=5,
        cent_ft0m=12.5,
        cent_ft0c=30.0,
    )
    values.update(kwargs)
    return Collision(collision_id=collision_id, **values)


class TestBuildPairs(unittest.TestCase):
    """Validate identity/daughter exclusion and pair multiplicities."""

    def test_share_daughters_checks_all_four_combinations(self) -> None:
        a = _candidate(1, 10, 11)
        self.assertTrue(share_daughters(a, _candidate(2, 10, 20)))
        self.assertTrue(share_daughters(a, _candidate(2, 20, 10)))
        self.assertTrue(share_daughters(a, _candidate(2, 11, 20)))
        self.assertTrue(share_daughters(a, _candidate(2, 20, 11)))
        self.assertFalse(share_daughters(a, _candidate(2, 20, 21)))

    def test_candidate_never_paired_with_itself(self) -> None:
        candidates = [_candidate(1, 10, 11)]
        self.assertEqual(build_pairs(candidates, [True], [True]), [])

    def test_identity_is_the_candidate_position(self) -> None:
        candidates = [_candidate(5, 10, 11), _candidate(5, 20, 21)]
        pairs = build_pairs(candidates, [True, False], [False, True])
        self.assertEqual([(p.primary_index, p.secondary_index) for p in pairs], [(0, 1)])

    def test_shared_daughters_across_distinct_candidates(self) -> None:
        candidates = [
            _candidate(1, 10, 11),
            _candidate(2, 11, 12),
            _candidate(3, 12, 10),
            _candidate(4, 13, 14),
        ]
        pairs = build_pairs(candidates, [True] * 4, [True] * 4)
        got = {(p.primary_id, p.secondary_id) for p in pairs}
        self.assertEqual(got, {(1, 4), (2, 4), (3, 4), (4, 1), (4, 2), (4, 3)})
        for pair in pairs:
            self.assertNotEqual(pair.primary_id, pair.secondary_id)
            self.assertFalse(
                share_daughters(candidates[pair.primary_index], candidates[pair.secondary_index])
            )

    def test_pair_count_without_shared_daughters(self) -> None:
        candidates = [_candidate(i, 100 + 2 * i, 101 + 2 * i) for i in range(6)]
        mask_primary = [True, True, True, False, False, True]
        mask_secondary = [False, True, False, True, True, True]
        pairs = build_pairs(candidates, mask_primary, mask_secondary)
        overlaps = sum(a and b for a, b in zip(mask_primary, mask_secondary))
        self.assertEqual(len(pairs), sum(mask_primary) * sum(mask_secondary) - overlaps)

    def test_three_candidate_scenario(self) -> None:
        candidates = [
            _candidate(1, 10, 11),
            _candidate(2, 20, 21),
            _candidate(3, 11, 30),
        ]
        pairs = build_pairs(candidates, [True, False, True], [False, True, True])
        self.assertEqual([(p.primary_id, p.secondary_id) for p in pairs], [(1, 2), (3, 2)])

    def test_misaligned_masks_raise(self) -> None:
        candidates = [_candidate(1, 10, 11), _candidate(2, 20, 21)]
        with self.assertRaises(ValueError):
            build_pairs(candidates, [True], [True, True])

    def test_pair_kinematics_use_neutral_kaon_and_photon_masses(self) -> None:
        candidates = [_candidate(1, 10, 11, px=1.0), _candidate(2, 20, 21, px=0.0, py=2.0)]
        [pair] = build_pairs(candidates, [True, False], [False, True])
        e = math.sqrt(1.0 + MASS_KAON_NEUTRAL**2) + 2.0
        self.assertAlmostEqual(pair.p4.e, e, places=12)
        self.assertAlmostEqual(pair.mass, math.sqrt(e * e - 5.0), places=12)
        self.assertAlmostEqual(pair.pt, math.sqrt(5.0), places=12)
        self.assertAlmostEqual(pair.rapidity, 0.0, places=12)


class TestPairCombiner(unittest.TestCase):
    """Validate the classify-then-pair pipeline and the rapidity gate."""

    def test_process_selects_and_pairs(self) -> None:
        batch = CandidateBatch(
            collision=_good_collision(),
            candidates=(
                _selected_k0(1, 10, 11),
                _selected_photon(2, 20, 21),
                _selected_photon(3, 11, 31),
            ),
        )
        result = PairCombiner().process(batch)
        assert result is not None
        self.assertEqual(result.k0short_mask, (True, False, False))
        self.assertEqual(result.gamma_mask, (False, True, True))
        self.assertEqual([(p.primary_id, p.secondary_id) for p in result.pairs], [(1, 2)])
        self.assertEqual(result.centrality, 12.5)
        self.assertEqual(result.n_k0short, 1)
        self.assertEqual(result.n_gamma, 2)

    def test_no_pairs_when_one_mask_is_empty(self) -> None:
        batch = CandidateBatch(
            collision=_good_collision(),
            candidates=(_selected_photon(2, 20, 21), _selected_photon(3, 30, 31)),
        )
        result = PairCombiner().process(batch)
        assert result is not None
        self.assertEqual(result.pairs, ())

    def test_rejected_collision_returns_none_and_is_counted(self) -> None:
        combiner = PairCombiner()
        batch = CandidateBatch(
            collision=_good_collision(pos_z=12.0),
            candidates=(_selected_k0(1, 10, 11), _selected_photon(2, 20, 21)),
        )
        self.assertIsNone(combiner.process(batch))
        rows = dict(combiner.event_counter.as_rows())
        self.assertEqual(rows["kNoTimeFrameBorder"], 1)
        self.assertEqual(rows["posZ cut"], 0)

    def test_reconstructed_rapidity_gate(self) -> None:
        forward = _selected_photon(2, 20, 21, pz=5.0)
        batch = CandidateBatch(
            collision=_good_collision(),
            candidates=(_selected_k0(1, 10, 11), forward),
        )
        tight = PairCombiner().process(batch)
        loose = PairCombiner(config=AnalysisConfig(rapidity_cut=5.0)).process(batch)
        assert tight is not None and loose is not None
        self.assertEqual(tight.pairs, ())
        self.assertEqual(len(loose.pairs), 1)

    def test_truth_gate_requires_common_mother(self) -> None:
        k0_truth = TruthInfo(
            pdg_code=310, pdg_code_positive=211, pdg_code_negative=-211,
            pdg_code_mother=313, px_mc=1.0,
        )
        photon_truth = TruthInfo(
            pdg_code=22, pdg_code_positive=-11, pdg_code_negative=11,
            pdg_code_mother=313, py_mc=1.0,
        )

        def run(photon_mother: int, pz_mc: float = 0.0):
            batch = CandidateBatch(
                collision=_good_collision(),
                candidates=(
                    _selected_k0(1, 10, 11, truth=k0_truth),
                    _selected_photon(
                        2, 20, 21,
                        truth=replace(photon_truth, pdg_code_mother=photon_mother, pz_mc=pz_mc),
                    ),
                ),
                has_truth_info=True,
            )
            result = PairCombiner().process(batch)
            assert result is not None
            return result.pairs

        self.assertEqual(len(run(313)), 1)
        self.assertEqual(run(323), ())
        self.assertEqual(run(313, pz_mc=10.0), ())

    def test_truth_gate_rejects_unknown_mother(self) -> None:
        k0 = _selected_k0(
            1, 10, 11,
            truth=TruthInfo(310, 211, -211, pdg_code_mother=999999),
        )
        photon = _selected_photon(
            2, 20, 21,
            truth=TruthInfo(22, -11, 11, pdg_code_mother=999999),
        )
        batch = CandidateBatch(collision=_good_collision(), candidates=(k0, photon), has_truth_info=True)
        result = PairCombiner().process(batch)
        assert result is not None
        self.assertEqual(result.pairs, ())

    def test_process_batches_keeps_accepted_collisions(self) -> None:
        batches = [
            CandidateBatch(
                collision=_good_collision(1),
                candidates=(_selected_k0(1, 10, 11), _selected_photon(2, 20, 21)),
            ),
            CandidateBatch(collision=_good_collision(2, sel8=False), candidates=()),
            CandidateBatch(collision=_good_collision(3), candidates=()),
        ]
        combiner = PairCombiner()
        results = combiner.process_batches(batches)
        self.assertEqual([r.collision_id for r in results], [1, 3])
        self.assertEqual(sum(len(r.pairs) for r in results), 1)
        rows = dict(combiner.event_counter.as_rows())
        self.assertEqual(rows["All collisions"], 3)
        self.assertEqual(rows["INEL>0"], 2)


if __name__ == "__main__":
    unittest.main()
