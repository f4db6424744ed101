"""Public package exports for the V0 selection and K0S-gamma pairing engine."""

from .combiner import PairCombiner, build_pairs, share_daughters
from .config import (
    AnalysisConfig,
    EventSelection,
    K0ShortSelection,
    MLConfiguration,
    PhotonSelection,
    config_from_mapping,
    config_to_mapping,
)
from .events import EventCounter, EventSelector
from .models import (
    BatchResult,
    Candidate,
    CandidateBatch,
    CandidatePair,
    Collision,
    DaughterTrack,
    DetectorMap,
    LorentzVector,
    ParticleHypothesis,
    SelectionBit,
    SelectionCategory,
    TruthInfo,
)
from .pid import (
    make_gamma,
    make_k0short,
    make_lambda,
    make_neutral_kaon,
    particle_hypothesis_from_name,
    particle_hypothesis_from_pdg,
)
from .selector import CandidateSelector, model_features, v0_tally

__all__ = [
    "PairCombiner",
    "CandidateSelector",
    "EventSelector",
    "EventCounter",
    "build_pairs",
    "share_daughters",
    "model_features",
    "v0_tally",
    "AnalysisConfig",
    "K0ShortSelection",
    "PhotonSelection",
    "EventSelection",
    "MLConfiguration",
    "config_from_mapping",
    "config_to_mapping",
    "Candidate",
    "CandidateBatch",
    "CandidatePair",
    "Collision",
    "DaughterTrack",
    "DetectorMap",
    "TruthInfo",
    "BatchResult",
    "LorentzVector",
    "ParticleHypothesis",
    "SelectionBit",
    "SelectionCategory",
    "make_k0short",
    "make_neutral_kaon",
    "make_gamma",
    "make_lambda",
    "particle_hypothesis_from_name",
    "particle_hypothesis_from_pdg",
]
