"""Candidate-level classification into K0S-like and photon-like categories.

Cuts are evaluated in a fixed order and stop at the first failure. Every
comparison is written so that a NaN input fails the cut it feeds.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterator, Sequence

from .config import K0ShortSelection, MLConfiguration, PhotonSelection
from .models import Candidate, CandidateBatch, SelectionCategory
from .pid import MASS_K0SHORT, MASS_LAMBDA, PDG_ELECTRON, PDG_GAMMA, PDG_K0SHORT, PDG_PION

LOGGER = logging.getLogger("v0pairs.selector")

# Feature vector -> classifier score in [0, 1].
Scorer = Callable[[Sequence[float]], float]

_ORIGIN = (0.0, 0.0, 0.0)


def model_features(candidate: Candidate, pt: float | None = None) -> list[float]:
    """Input features handed to an external classifier.

    Slots 1 and 2 are reserved and always zero.
    """
    return [
        candidate.pt if pt is None else pt,
        0.0,
        0.0,
        candidate.v0_radius,
        candidate.v0_cos_pa,
        candidate.dca_v0_daughters,
        candidate.dca_pos_to_pv,
        candidate.dca_neg_to_pv,
    ]


V0_TALLY_LABELS: tuple[str, ...] = (
    "All",
    "Standard V0s",
    "Global tracks",
    "At least 1 non-ITS track",
)


def v0_tally(batches: Sequence[CandidateBatch]) -> list[tuple[str, int]]:
    """Count V0s before any selection, split by type and daughter ITS coverage.

    Only standard V0s (`v0_type == 1`) are split by whether both daughters
    have an ITS contribution.
    """
    counts: Counter[str] = Counter()
    for batch in batches:
        for candidate in batch.candidates:
            counts["All"] += 1
            if candidate.v0_type != 1:
                continue
            counts["Standard V0s"] += 1
            if candidate.positive.has_its and candidate.negative.has_its:
                counts["Global tracks"] += 1
            else:
                counts["At least 1 non-ITS track"] += 1
    return [(label, counts[label]) for label in V0_TALLY_LABELS]


@dataclass
class CandidateSelector:
    """Classify V0 candidates with topological/PID cuts or classifier scores."""

    k0short_selection: K0ShortSelection = field(default_factory=K0ShortSelection)
    photon_selection: PhotonSelection = field(default_factory=PhotonSelection)
    ml: MLConfiguration = field(default_factory=MLConfiguration)
    do_mc_association: bool = True
    k0short_scorer: Scorer | None = None
    gamma_scorer: Scorer | None = None

    def __post_init__(self) -> None:
        if self.ml.use_k0short_scores and self.ml.calculate_k0short_scores and self.k0short_scorer is None:
            raise ValueError("K0S score calculation requested but no K0S scorer was provided.")
        if self.ml.use_gamma_scores and self.ml.calculate_gamma_scores and self.gamma_scorer is None:
            raise ValueError("Gamma score calculation requested but no gamma scorer was provided.")

    def classify(
        self,
        candidate: Candidate,
        category: SelectionCategory,
        primary_vertex: tuple[float, float, float] | None = None,
        has_truth_info: bool = False,
    ) -> bool:
        """Return whether `candidate` passes the selection of `category`."""
        category = SelectionCategory(category)
        if self.uses_scores(category):
            return self.score(candidate, category, has_truth_info) > self._threshold(category)
        return self.first_failed_cut(candidate, category, primary_vertex, has_truth_info) is None

    def classify_batch(self, batch: CandidateBatch) -> tuple[list[bool], list[bool]]:
        """Evaluate both categories for every candidate of one batch.

        Returns `(k0short_mask, gamma_mask)` aligned with `batch.candidates`.
        """
        k0_mask: list[bool] = []
        gamma_mask: list[bool] = []
        pv = batch.collision.primary_vertex
        for candidate in batch.candidates:
            if batch.has_truth_info and candidate.truth is None:
                k0_mask.append(False)
                gamma_mask.append(False)
                continue
            k0_mask.append(
                self.classify(candidate, SelectionCategory.K0_LIKE, pv, batch.has_truth_info)
            )
            gamma_mask.append(
                self.classify(candidate, SelectionCategory.PHOTON_LIKE, pv, batch.has_truth_info)
            )
        LOGGER.debug(
            "collision %s: %d candidates, %d K0S-like, %d photon-like",
            batch.collision.collision_id,
            len(batch.candidates),
            sum(k0_mask),
            sum(gamma_mask),
        )
        return k0_mask, gamma_mask

    def uses_scores(self, category: SelectionCategory) -> bool:
        if SelectionCategory(category) == SelectionCategory.K0_LIKE:
            return self.ml.use_k0short_scores
        return self.ml.use_gamma_scores

    def score(
        self,
        candidate: Candidate,
        category: SelectionCategory,
        has_truth_info: bool = False,
    ) -> float:
        """Classifier score of `candidate` for `category`.

        Computed by the injected scorer when calculation is enabled, otherwise
        read from the score stored on the candidate.
        """
        if SelectionCategory(category) == SelectionCategory.K0_LIKE:
            calculate, scorer, stored = (
                self.ml.calculate_k0short_scores,
                self.k0short_scorer,
                candidate.k0short_score,
            )
        else:
            calculate, scorer, stored = (
                self.ml.calculate_gamma_scores,
                self.gamma_scorer,
                candidate.gamma_score,
            )
        if not calculate or scorer is None:
            return stored
        pt = None
        if has_truth_info and candidate.truth is not None:
            pt = candidate.truth.pt_mc
        return float(scorer(model_features(candidate, pt)))

    def first_failed_cut(
        self,
        candidate: Candidate,
        category: SelectionCategory,
        primary_vertex: tuple[float, float, float] | None = None,
        has_truth_info: bool = False,
    ) -> str | None:
        """Name of the first cut `candidate` fails, or `None` if all pass."""
        if SelectionCategory(category) == SelectionCategory.K0_LIKE:
            checks = self._k0short_checks(candidate, primary_vertex or _ORIGIN, has_truth_info)
        else:
            checks = self._photon_checks(candidate, has_truth_info)
        for name, passed in checks:
            if not passed:
                return name
        return None

    def cut_flow(
        self, batches: Sequence[CandidateBatch], category: SelectionCategory
    ) -> Counter[str]:
        """Count, per cut name, the candidates it rejects first.

        Accepted candidates are counted under `"passed"`; in score mode
        rejected ones are counted under `"score"`.
        """
        category = SelectionCategory(category)
        counts: Counter[str] = Counter()
        for batch in batches:
            pv = batch.collision.primary_vertex
            for candidate in batch.candidates:
                if batch.has_truth_info and candidate.truth is None:
                    counts["no_truth"] += 1
                elif self.uses_scores(category):
                    passed = self.classify(candidate, category, pv, batch.has_truth_info)
                    counts["passed" if passed else "score"] += 1
                else:
                    failed = self.first_failed_cut(candidate, category, pv, batch.has_truth_info)
                    counts[failed or "passed"] += 1
        return counts

    def _threshold(self, category: SelectionCategory) -> float:
        if SelectionCategory(category) == SelectionCategory.K0_LIKE:
            return self.ml.threshold_k0short
        return self.ml.threshold_gamma

    def _photon_checks(self, c: Candidate, has_truth_info: bool) -> Iterator[tuple[str, bool]]:
        cuts = self.photon_selection
        yield "photon_z_max", c.z <= cuts.photon_z_max
        yield "daughter_eta", _daughters_in_eta(c, cuts.daughter_eta_cut)
        yield "v0_type", cuts.v0_type_selection < 0 or c.v0_type == cuts.v0_type_selection
        yield from _topology_checks(c, cuts)
        yield "photon_mass", c.m_gamma <= cuts.photon_mass_max
        yield from _track_quality_checks(c, cuts)
        yield "tpc_nsigma_el", (
            abs(c.positive.tpc_nsigma_el) <= cuts.tpc_pid_nsigma_cut
            and abs(c.negative.tpc_nsigma_el) <= cuts.tpc_pid_nsigma_cut
        )
        yield from _detector_tag_checks(c, cuts)
        yield "armenteros", _armenteros(c, cuts.arm_pod_cut)
        if has_truth_info and self.do_mc_association:
            yield "truth", _truth_matches(c, PDG_GAMMA, -PDG_ELECTRON, PDG_ELECTRON)

    def _k0short_checks(
        self,
        c: Candidate,
        primary_vertex: tuple[float, float, float],
        has_truth_info: bool,
    ) -> Iterator[tuple[str, bool]]:
        cuts = self.k0short_selection
        yield "daughter_eta", _daughters_in_eta(c, cuts.daughter_eta_cut)
        yield "v0_type", cuts.v0_type_selection < 0 or c.v0_type == cuts.v0_type_selection
        yield from _topology_checks(c, cuts)
        yield "k0short_mass_window", abs(c.m_k0short - MASS_K0SHORT) < cuts.v0_mass_window
        # Only the K0S-like block vetoes the competing Lambda hypothesis.
        yield "competing_mass", abs(c.m_lambda - MASS_LAMBDA) >= cuts.comp_mass_rejection
        yield from _track_quality_checks(c, cuts)
        yield "tpc_nsigma_pi", (
            abs(c.positive.tpc_nsigma_pi) <= cuts.tpc_pid_nsigma_cut
            and abs(c.negative.tpc_nsigma_pi) <= cuts.tpc_pid_nsigma_cut
        )
        yield "tof_delta_time", (
            abs(c.pos_tof_delta_t_k0_pi) <= cuts.max_delta_time_pion
            and abs(c.neg_tof_delta_t_k0_pi) <= cuts.max_delta_time_pion
        )
        yield "tof_nsigma", (
            abs(c.tof_nsigma_k0_pi_plus) <= cuts.tof_pid_nsigma_cut_k0_pi
            and abs(c.tof_nsigma_k0_pi_minus) <= cuts.tof_pid_nsigma_cut_k0_pi
        )
        yield from _detector_tag_checks(c, cuts)
        yield "proper_lifetime", (
            c.distance_over_total_momentum(primary_vertex) * MASS_K0SHORT <= cuts.lifetime_cut
        )
        yield "armenteros", _armenteros(c, cuts.arm_pod_cut)
        if has_truth_info and self.do_mc_association:
            yield "truth", _truth_matches(c, PDG_K0SHORT, PDG_PION, -PDG_PION)


def _daughters_in_eta(c: Candidate, eta_cut: float) -> bool:
    return abs(c.positive_eta) <= eta_cut and abs(c.negative_eta) <= eta_cut


def _topology_checks(
    c: Candidate, cuts: K0ShortSelection | PhotonSelection
) -> Iterator[tuple[str, bool]]:
    yield "v0_radius", cuts.v0_radius <= c.v0_radius <= cuts.v0_radius_max
    yield "dca_pos_to_pv", abs(c.dca_pos_to_pv) >= cuts.dca_pos_to_pv
    yield "dca_neg_to_pv", abs(c.dca_neg_to_pv) >= cuts.dca_neg_to_pv
    yield "v0_cos_pa", c.v0_cos_pa >= cuts.v0_cos_pa
    yield "dca_v0_daughters", c.dca_v0_daughters <= cuts.dca_v0_daughters
    yield "dca_v0_to_pv", c.dca_v0_to_pv >= cuts.dca_v0_to_pv


def _track_quality_checks(
    c: Candidate, cuts: K0ShortSelection | PhotonSelection
) -> Iterator[tuple[str, bool]]:
    pos, neg = c.positive, c.negative
    yield "its_clusters", pos.its_ncls >= cuts.min_its_clusters and neg.its_ncls >= cuts.min_its_clusters
    yield "its_afterburner", not (
        (cuts.reject_pos_its_afterburner and pos.is_from_afterburner)
        or (cuts.reject_neg_its_afterburner and neg.is_from_afterburner)
    )
    yield "tpc_rows", pos.tpc_crossed_rows >= cuts.min_tpc_rows and neg.tpc_crossed_rows >= cuts.min_tpc_rows


def _detector_tag_checks(
    c: Candidate, cuts: K0ShortSelection | PhotonSelection
) -> Iterator[tuple[str, bool]]:
    pos, neg = c.positive, c.negative
    yield "its_only", not (
        (cuts.require_pos_its_only and pos.tpc_crossed_rows > 0)
        or (cuts.require_neg_its_only and neg.tpc_crossed_rows > 0)
    )
    yield "tpc_only", not (cuts.skip_tpc_only and (pos.is_tpc_only or neg.is_tpc_only))


def _armenteros(c: Candidate, slope: float) -> bool:
    """`qt * slope > |alpha|`; a non-positive slope disables the cut."""
    if not slope > 0.0:
        return True
    return c.qt_arm * slope > abs(c.alpha)


def _truth_matches(c: Candidate, pdg: int, pdg_positive: int, pdg_negative: int) -> bool:
    truth = c.truth
    if truth is None:
        return False
    return (
        truth.pdg_code == pdg
        and truth.pdg_code_positive == pdg_positive
        and truth.pdg_code_negative == pdg_negative
    )
