"""Selection configuration for the K0S-gamma analysis.

Each threshold set is an immutable dataclass carrying the analysis defaults.
A complete `AnalysisConfig` can be built from a flat key/value mapping that
uses the option names of the analysis task. Event options are configured
without a group prefix, as in the task; the `eventSelections.` prefix is
accepted as an alias. For example::

    {
        "rapidityCut": 0.5,
        "v0Selections.v0cospa": 0.99,
        "photonSelections.photonMassMax": 0.01,
        "maxZVtxPosition": 8.0,
        "mlConfigurations.useK0ShortScores": true
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class K0ShortSelection:
    """Cut thresholds for K0S-like candidates."""

    v0_type_selection: int = 1
    daughter_eta_cut: float = 0.8
    v0_cos_pa: float = 0.97
    dca_v0_daughters: float = 1.0
    dca_v0_to_pv: float = 0.05
    dca_pos_to_pv: float = 0.05
    dca_neg_to_pv: float = 0.05
    v0_radius: float = 1.2
    v0_radius_max: float = 1e5
    lifetime_cut: float = 20.0
    v0_mass_window: float = 0.008
    comp_mass_rejection: float = 0.008
    arm_pod_cut: float = 5.0
    min_tpc_rows: int = 70
    min_its_clusters: int = -1
    skip_tpc_only: bool = False
    require_pos_its_only: bool = False
    require_neg_its_only: bool = False
    reject_pos_its_afterburner: bool = False
    reject_neg_its_afterburner: bool = False
    tpc_pid_nsigma_cut: float = 5.0
    tof_pid_nsigma_cut_k0_pi: float = 1e6
    max_delta_time_pion: float = 1e9


@dataclass(frozen=True)
class PhotonSelection:
    """Cut thresholds for photon-conversion-like candidates."""

    v0_type_selection: int = 1
    daughter_eta_cut: float = 0.8
    photon_z_max: float = 240.0
    v0_cos_pa: float = 0.97
    dca_v0_daughters: float = 1.0
    dca_v0_to_pv: float = 0.05
    dca_pos_to_pv: float = 0.05
    dca_neg_to_pv: float = 0.05
    v0_radius: float = 1.2
    v0_radius_max: float = 1e5
    photon_mass_max: float = 0.008
    arm_pod_cut: float = 5.0
    min_tpc_rows: int = 70
    min_its_clusters: int = -1
    skip_tpc_only: bool = False
    require_pos_its_only: bool = False
    require_neg_its_only: bool = False
    reject_pos_its_afterburner: bool = False
    reject_neg_its_afterburner: bool = False
    tpc_pid_nsigma_cut: float = 5.0


@dataclass(frozen=True)
class EventSelection:
    """Switches for the collision-level acceptance."""

    require_sel8: bool = True
    require_trigger_tvx: bool = True
    reject_its_rof_border: bool = True
    reject_tf_border: bool = True
    require_is_vertex_its_tpc: bool = False
    require_is_good_zvtx_ft0_vs_pv: bool = True
    require_is_vertex_tof_matched: bool = False
    require_is_vertex_trd_matched: bool = False
    reject_same_bunch_pileup: bool = True
    require_no_coll_in_time_range_std: bool = False
    require_no_coll_in_time_range_strict: bool = False
    require_no_coll_in_time_range_narrow: bool = False
    require_no_coll_in_time_range_vz_dep: bool = False
    require_no_coll_in_rof_std: bool = False
    require_no_coll_in_rof_strict: bool = False
    require_inel0: bool = True
    require_inel1: bool = False
    max_z_vtx_position: float = 10.0
    use_ft0c_based_occupancy: bool = False
    min_occupancy: float = -1.0
    max_occupancy: float = -1.0


@dataclass(frozen=True)
class MLConfiguration:
    """Switches for classifier-score based selection."""

    use_k0short_scores: bool = False
    use_gamma_scores: bool = False
    calculate_k0short_scores: bool = False
    calculate_gamma_scores: bool = False
    threshold_k0short: float = -1.0
    threshold_gamma: float = -1.0


@dataclass(frozen=True)
class AnalysisConfig:
    """Top-level configuration read once before processing any batch."""

    do_pp_analysis: bool = True
    do_mc_association: bool = True
    rapidity_cut: float = 0.5
    k0short_selection: K0ShortSelection = field(default_factory=K0ShortSelection)
    photon_selection: PhotonSelection = field(default_factory=PhotonSelection)
    event_selection: EventSelection = field(default_factory=EventSelection)
    ml: MLConfiguration = field(default_factory=MLConfiguration)


# Option name used in flat mappings -> dataclass field, per group.
_TOP_LEVEL_KEYS: dict[str, str] = {
    "doPPAnalysis": "do_pp_analysis",
    "doMCAssociation": "do_mc_association",
    "rapidityCut": "rapidity_cut",
}

_SHARED_V0_KEYS: dict[str, str] = {
    "v0TypeSelection": "v0_type_selection",
    "daughterEtaCut": "daughter_eta_cut",
    "v0cospa": "v0_cos_pa",
    "dcav0dau": "dca_v0_daughters",
    "dcav0topv": "dca_v0_to_pv",
    "dcapostopv": "dca_pos_to_pv",
    "dcanegtopv": "dca_neg_to_pv",
    "v0radius": "v0_radius",
    "v0radiusMax": "v0_radius_max",
    "armPodCut": "arm_pod_cut",
    "minTPCrows": "min_tpc_rows",
    "minITSclusters": "min_its_clusters",
    "skipTPConly": "skip_tpc_only",
    "requirePosITSonly": "require_pos_its_only",
    "requireNegITSonly": "require_neg_its_only",
    "rejectPosITSafterburner": "reject_pos_its_afterburner",
    "rejectNegITSafterburner": "reject_neg_its_afterburner",
    "tpcPidNsigmaCut": "tpc_pid_nsigma_cut",
}

_GROUP_KEYS: dict[str, tuple[str, dict[str, str]]] = {
    "v0Selections": (
        "k0short_selection",
        {
            **_SHARED_V0_KEYS,
            "lifetimeCut": "lifetime_cut",
            "v0MassWindow": "v0_mass_window",
            "compMassRejection": "comp_mass_rejection",
            "tofPidNsigmaCutK0Pi": "tof_pid_nsigma_cut_k0_pi",
            "maxDeltaTimePion": "max_delta_time_pion",
        },
    ),
    "photonSelections": (
        "photon_selection",
        {
            **_SHARED_V0_KEYS,
            "photonZMax": "photon_z_max",
            "photonMassMax": "photon_mass_max",
        },
    ),
    "eventSelections": (
        "event_selection",
        {
            "requireSel8": "require_sel8",
            "requireTriggerTVX": "require_trigger_tvx",
            "rejectITSROFBorder": "reject_its_rof_border",
            "rejectTFBorder": "reject_tf_border",
            "requireIsVertexITSTPC": "require_is_vertex_its_tpc",
            "requireIsGoodZvtxFT0VsPV": "require_is_good_zvtx_ft0_vs_pv",
            "requireIsVertexTOFmatched": "require_is_vertex_tof_matched",
            "requireIsVertexTRDmatched": "require_is_vertex_trd_matched",
            "rejectSameBunchPileup": "reject_same_bunch_pileup",
            "requireNoCollInTimeRangeStd": "require_no_coll_in_time_range_std",
            "requireNoCollInTimeRangeStrict": "require_no_coll_in_time_range_strict",
            "requireNoCollInTimeRangeNarrow": "require_no_coll_in_time_range_narrow",
            "requireNoCollInTimeRangeVzDep": "require_no_coll_in_time_range_vz_dep",
            "requireNoCollInROFStd": "require_no_coll_in_rof_std",
            "requireNoCollInROFStrict": "require_no_coll_in_rof_strict",
            "requireINEL0": "require_inel0",
            "requireINEL1": "require_inel1",
            "maxZVtxPosition": "max_z_vtx_position",
            "useFT0CbasedOccupancy": "use_ft0c_based_occupancy",
            "minOccupancy": "min_occupancy",
            "maxOccupancy": "max_occupancy",
        },
    ),
    "mlConfigurations": (
        "ml",
        {
            "useK0ShortScores": "use_k0short_scores",
            "useGammaScores": "use_gamma_scores",
            "calculateK0ShortScores": "calculate_k0short_scores",
            "calculateGammaScores": "calculate_gamma_scores",
            "thresholdK0Short": "threshold_k0short",
            "thresholdGamma": "threshold_gamma",
        },
    ),
}

# Group whose options are read and written without a prefix.
_UNPREFIXED_GROUP = "eventSelections"


def config_from_mapping(mapping: Mapping[str, Any]) -> AnalysisConfig:
    """Build an `AnalysisConfig` from a flat option-name -> value mapping.

    Options not present keep their defaults. Unknown option names raise
    `ValueError`; values are coerced to the type of the field default.
    """
    top: dict[str, Any] = {}
    groups: dict[str, dict[str, Any]] = {}
    defaults = AnalysisConfig()
    for key, value in mapping.items():
        if key in _TOP_LEVEL_KEYS:
            name = _TOP_LEVEL_KEYS[key]
            top[name] = _coerce(value, getattr(defaults, name), key)
            continue
        prefix, _, option = key.partition(".")
        if not option and key in _GROUP_KEYS[_UNPREFIXED_GROUP][1]:
            prefix, option = _UNPREFIXED_GROUP, key
        if not option or prefix not in _GROUP_KEYS:
            raise ValueError(f"Unknown configuration option '{key}'.")
        attr, options = _GROUP_KEYS[prefix]
        if option not in options:
            supported = ", ".join(f"{prefix}.{o}" for o in sorted(options))
            raise ValueError(
                f"Unknown configuration option '{key}'. Supported options: {supported}"
            )
        name = options[option]
        groups.setdefault(attr, {})[name] = _coerce(
            value, getattr(getattr(defaults, attr), name), key
        )

    for attr, values in groups.items():
        top[attr] = replace(getattr(defaults, attr), **values)
    return replace(defaults, **top)


def config_to_mapping(config: AnalysisConfig) -> dict[str, Any]:
    """Flatten an `AnalysisConfig` back into option-name -> value form."""
    out: dict[str, Any] = {key: getattr(config, name) for key, name in _TOP_LEVEL_KEYS.items()}
    for prefix, (attr, options) in _GROUP_KEYS.items():
        group = getattr(config, attr)
        for option, name in options.items():
            flat_key = option if prefix == _UNPREFIXED_GROUP else f"{prefix}.{option}"
            out[flat_key] = getattr(group, name)
    return out


def _coerce(value: Any, default: Any, key: str) -> Any:
    """Convert a raw option value to the type of its default."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"Option '{key}' expects a boolean, got {value!r}.")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Option '{key}' expects a number, got {value!r}.")
    if isinstance(default, int):
        if float(value) != int(value):
            raise ValueError(f"Option '{key}' expects an integer, got {value!r}.")
        return int(value)
    return float(value)
