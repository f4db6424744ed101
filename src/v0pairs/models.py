"""Core data models used by the V0 selection and pairing engine.

This module defines:
- per-collision inputs (`Collision`, `Candidate`, `DaughterTrack`, `TruthInfo`)
- the batch container processed in one go (`CandidateBatch`)
- kinematic helpers (`LorentzVector`, `ParticleHypothesis`)
- outputs handed to downstream reporting (`CandidatePair`, `BatchResult`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntFlag


class SelectionCategory(str, Enum):
    """Selection categories a V0 candidate can be classified into."""

    K0_LIKE = "K0Like"
    PHOTON_LIKE = "PhotonLike"


class DetectorMap(IntFlag):
    """Detectors contributing to a daughter track."""

    NONE = 0
    ITS = 1
    TPC = 2
    TRD = 4
    TOF = 8


class SelectionBit(str, Enum):
    """Collision-level selection bits computed upstream."""

    IS_TRIGGER_TVX = "kIsTriggerTVX"
    NO_ITS_ROF_BORDER = "kNoITSROFrameBorder"
    NO_TF_BORDER = "kNoTimeFrameBorder"
    IS_VERTEX_ITS_TPC = "kIsVertexITSTPC"
    IS_GOOD_ZVTX_FT0_VS_PV = "kIsGoodZvtxFT0vsPV"
    IS_VERTEX_TOF_MATCHED = "kIsVertexTOFmatched"
    IS_VERTEX_TRD_MATCHED = "kIsVertexTRDmatched"
    NO_SAME_BUNCH_PILEUP = "kNoSameBunchPileup"
    NO_COLL_IN_TIME_RANGE_STANDARD = "kNoCollInTimeRangeStandard"
    NO_COLL_IN_TIME_RANGE_STRICT = "kNoCollInTimeRangeStrict"
    NO_COLL_IN_TIME_RANGE_NARROW = "kNoCollInTimeRangeNarrow"
    NO_COLL_IN_TIME_RANGE_VZ_DEPENDENT = "kNoCollInTimeRangeVzDependent"
    NO_COLL_IN_ROF_STANDARD = "kNoCollInRofStandard"
    NO_COLL_IN_ROF_STRICT = "kNoCollInRofStrict"


@dataclass(frozen=True)
class DaughterTrack:
    """Quality and PID information of one V0 daughter track.

    `track_id` is only used to test whether two candidates share a daughter.
    """

    track_id: int
    tpc_crossed_rows: int = 0
    its_ncls: int = 0
    its_chi2_per_ncl: float = 0.0
    detector_map: int = DetectorMap.NONE
    tpc_nsigma_pi: float = 0.0
    tpc_nsigma_el: float = 0.0
    tpc_nsigma_pr: float = 0.0

    @property
    def is_from_afterburner(self) -> bool:
        """ITS afterburner tracks are flagged by a negative chi2 per cluster."""
        return self.its_chi2_per_ncl < 0

    @property
    def has_its(self) -> bool:
        return bool(int(self.detector_map) & DetectorMap.ITS)

    @property
    def is_tpc_only(self) -> bool:
        return int(self.detector_map) == DetectorMap.TPC


@dataclass(frozen=True)
class TruthInfo:
    """Generator-level association of a reconstructed candidate."""

    pdg_code: int
    pdg_code_positive: int
    pdg_code_negative: int
    pdg_code_mother: int = 0
    px_mc: float = 0.0
    py_mc: float = 0.0
    pz_mc: float = 0.0

    @property
    def pt_mc(self) -> float:
        return math.hypot(self.px_mc, self.py_mc)


@dataclass(frozen=True)
class Candidate:
    """One reconstructed V0 candidate with its derived topological scalars."""

    candidate_id: int
    positive: DaughterTrack
    negative: DaughterTrack
    px: float
    py: float
    pz: float
    x: float = 0.0  # decay vertex
    y: float = 0.0
    z: float = 0.0
    positive_eta: float = 0.0
    negative_eta: float = 0.0
    v0_type: int = 1
    v0_radius: float = 0.0
    v0_cos_pa: float = 1.0
    dca_v0_daughters: float = 0.0
    dca_pos_to_pv: float = 0.0
    dca_neg_to_pv: float = 0.0
    dca_v0_to_pv: float = 0.0
    m_k0short: float = 0.0
    m_lambda: float = 0.0
    m_antilambda: float = 0.0
    m_gamma: float = 0.0
    qt_arm: float = 0.0
    alpha: float = 0.0
    pos_tof_delta_t_k0_pi: float = 0.0
    neg_tof_delta_t_k0_pi: float = 0.0
    tof_nsigma_k0_pi_plus: float = 0.0
    tof_nsigma_k0_pi_minus: float = 0.0
    k0short_score: float = -1.0
    gamma_score: float = -1.0
    truth: TruthInfo | None = None

    @property
    def pt(self) -> float:
        """Transverse momentum."""
        return math.hypot(self.px, self.py)

    @property
    def p(self) -> float:
        """Momentum magnitude."""
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    @property
    def daughter_track_ids(self) -> tuple[int, int]:
        return self.positive.track_id, self.negative.track_id

    def distance_over_total_momentum(
        self, primary_vertex: tuple[float, float, float] = (0.0, 0.0, 0.0)
    ) -> float:
        """Decay length from the primary vertex divided by the momentum magnitude."""
        dx = self.x - primary_vertex[0]
        dy = self.y - primary_vertex[1]
        dz = self.z - primary_vertex[2]
        return math.sqrt(dx * dx + dy * dy + dz * dz) / (self.p + 1e-13)


@dataclass(frozen=True)
class Collision:
    """Collision-level quantities consumed as opaque upstream inputs."""

    collision_id: int
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    sel8: bool = True
    selection_bits: frozenset[SelectionBit] = field(default_factory=frozenset)
    mult_ntracks_pv_eta1: int = 0
    cent_ft0m: float = -1.0
    cent_ft0c: float = -1.0
    track_occupancy: float = -1.0
    ft0c_occupancy: float = -1.0
    gap_side: int = -1

    @property
    def primary_vertex(self) -> tuple[float, float, float]:
        return self.pos_x, self.pos_y, self.pos_z

    def has_bit(self, bit: SelectionBit) -> bool:
        return bit in self.selection_bits


@dataclass(frozen=True)
class CandidateBatch:
    """All V0 candidates of one collision, processed as one unit.

    `has_truth_info` is fixed when the batch is built and enables the
    generator-level checks in selection and pairing.
    """

    collision: Collision
    candidates: tuple[Candidate, ...]
    has_truth_info: bool = False

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis used to derive mass-dependent observables."""

    name: str
    mass: float
    pdg_id: int | None = None


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)


@dataclass(frozen=True)
class CandidatePair:
    """One (primary, secondary) candidate combination with its kinematics."""

    primary_id: int
    secondary_id: int
    primary_index: int
    secondary_index: int
    p4: LorentzVector
    mass: float
    pt: float
    rapidity: float


@dataclass(frozen=True)
class BatchResult:
    """Selection masks and accepted pairs of one processed collision."""

    collision_id: int
    centrality: float
    gap_side: int
    k0short_mask: tuple[bool, ...]
    gamma_mask: tuple[bool, ...]
    pairs: tuple[CandidatePair, ...]

    @property
    def n_k0short(self) -> int:
        return sum(self.k0short_mask)

    @property
    def n_gamma(self) -> int:
        return sum(self.gamma_mask)
