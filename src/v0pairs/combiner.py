"""Pairing engine for K0S-like x photon-like V0 combinations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .config import AnalysisConfig
from .events import EventCounter, EventSelector
from .models import BatchResult, Candidate, CandidateBatch, CandidatePair, ParticleHypothesis
from .physics import pair_kinematics, pair_p4, rapidity, truth_pair_rapidity
from .pid import make_gamma, make_neutral_kaon, particle_hypothesis_from_pdg
from .selector import CandidateSelector, Scorer

LOGGER = logging.getLogger("v0pairs.combiner")


def share_daughters(a: Candidate, b: Candidate) -> bool:
    """True if the two candidates have any daughter track in common."""
    return (
        a.positive.track_id == b.positive.track_id
        or a.positive.track_id == b.negative.track_id
        or a.negative.track_id == b.positive.track_id
        or a.negative.track_id == b.negative.track_id
    )


def make_pair(
    candidates: Sequence[Candidate],
    primary_index: int,
    secondary_index: int,
    primary_mass: float,
    secondary_mass: float,
) -> CandidatePair:
    """Build a `CandidatePair` with its summed kinematics."""
    a = candidates[primary_index]
    b = candidates[secondary_index]
    p4 = pair_p4(a, b, primary_mass, secondary_mass)
    pt, _ = pair_kinematics(p4)
    mass = p4.mass
    return CandidatePair(
        primary_id=a.candidate_id,
        secondary_id=b.candidate_id,
        primary_index=primary_index,
        secondary_index=secondary_index,
        p4=p4,
        mass=mass,
        pt=pt,
        rapidity=rapidity(p4.px, p4.py, p4.pz, mass),
    )


def build_pairs(
    candidates: Sequence[Candidate],
    mask_primary: Sequence[bool],
    mask_secondary: Sequence[bool],
    primary_mass: float | None = None,
    secondary_mass: float | None = None,
) -> list[CandidatePair]:
    """Enumerate every valid (primary, secondary) combination of one batch.

    Primary candidates are those with `mask_primary` set, secondary ones those
    with `mask_secondary` set. A candidate position is never paired with itself and two
    candidates sharing a daughter track are never paired. Roles are fixed, so
    the reversed combination is not emitted.
    """
    if len(mask_primary) != len(candidates) or len(mask_secondary) != len(candidates):
        raise ValueError(
            f"Selection masks ({len(mask_primary)}, {len(mask_secondary)}) "
            f"must be aligned with the {len(candidates)} candidates."
        )
    if primary_mass is None:
        primary_mass = make_neutral_kaon().mass
    if secondary_mass is None:
        secondary_mass = make_gamma().mass

    pairs: list[CandidatePair] = []
    for i, primary in enumerate(candidates):
        if not mask_primary[i]:
            continue
        for j, secondary in enumerate(candidates):
            if not mask_secondary[j]:
                continue
            if i == j:
                continue
            if share_daughters(primary, secondary):
                continue
            pairs.append(make_pair(candidates, i, j, primary_mass, secondary_mass))
    return pairs


@dataclass
class PairCombiner:
    """Run selection then pairing, one collision batch at a time."""

    config: AnalysisConfig = field(default_factory=AnalysisConfig)
    k0short_scorer: Scorer | None = None
    gamma_scorer: Scorer | None = None
    primary: ParticleHypothesis = field(default_factory=make_neutral_kaon)
    secondary: ParticleHypothesis = field(default_factory=make_gamma)
    selector: CandidateSelector = field(init=False)
    event_selector: EventSelector = field(init=False)
    event_counter: EventCounter = field(init=False)

    def __post_init__(self) -> None:
        self.selector = CandidateSelector(
            k0short_selection=self.config.k0short_selection,
            photon_selection=self.config.photon_selection,
            ml=self.config.ml,
            do_mc_association=self.config.do_mc_association,
            k0short_scorer=self.k0short_scorer,
            gamma_scorer=self.gamma_scorer,
        )
        self.event_selector = EventSelector(
            selection=self.config.event_selection,
            do_pp_analysis=self.config.do_pp_analysis,
        )
        self.event_counter = EventCounter(self.event_selector.stages)

    def process(self, batch: CandidateBatch) -> BatchResult | None:
        """Process one collision; return `None` if the collision is rejected.

        Workflow:
        1. Collision acceptance.
        2. Classify every candidate into the two masks.
        3. Pair, only if both masks select at least one candidate.
        4. Keep pairs passing the rapidity / truth gate.
        """
        collision = batch.collision
        passed = self.event_selector.passed_stages(collision)
        self.event_counter.record(passed)
        if len(passed) != len(self.event_selector.stages):
            LOGGER.debug("collision %s rejected after '%s'", collision.collision_id, passed[-1])
            return None

        k0_mask, gamma_mask = self.selector.classify_batch(batch)
        pairs: list[CandidatePair] = []
        if any(k0_mask) and any(gamma_mask):
            pairs = [
                pair
                for pair in build_pairs(
                    batch.candidates,
                    k0_mask,
                    gamma_mask,
                    primary_mass=self.primary.mass,
                    secondary_mass=self.secondary.mass,
                )
                if self.accept_pair(pair, batch)
            ]
        return BatchResult(
            collision_id=collision.collision_id,
            centrality=self.event_selector.centrality(collision),
            gap_side=collision.gap_side,
            k0short_mask=tuple(k0_mask),
            gamma_mask=tuple(gamma_mask),
            pairs=tuple(pairs),
        )

    def process_batches(self, batches: Sequence[CandidateBatch]) -> list[BatchResult]:
        """Run `process` on a list of batches and keep the accepted collisions."""
        out: list[BatchResult] = []
        for batch in batches:
            result = self.process(batch)
            if result is not None:
                out.append(result)
        LOGGER.info(
            "processed %d collisions, %d accepted, %d pairs",
            len(batches),
            len(out),
            sum(len(r.pairs) for r in out),
        )
        return out

    def accept_pair(self, pair: CandidatePair, batch: CandidateBatch) -> bool:
        """Rapidity gate on one pair.

        Without truth information the reconstructed pair rapidity must satisfy
        `|y| <= rapidity_cut`. With truth information (and MC association on)
        both candidates must come from the same mother and the generated pair
        rapidity, evaluated with the mother mass, must satisfy the same bound.
        """
        cut = self.config.rapidity_cut
        if not (batch.has_truth_info and self.config.do_mc_association):
            return abs(pair.rapidity) <= cut

        truth_a = batch.candidates[pair.primary_index].truth
        truth_b = batch.candidates[pair.secondary_index].truth
        if truth_a is None or truth_b is None:
            return False
        if truth_a.pdg_code_mother != truth_b.pdg_code_mother:
            return False
        mother = particle_hypothesis_from_pdg(truth_a.pdg_code_mother)
        if mother is None:
            LOGGER.debug("no mass known for mother PDG %d", truth_a.pdg_code_mother)
            return False
        return abs(truth_pair_rapidity(truth_a, truth_b, mother.mass)) <= cut
