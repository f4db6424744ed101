"""Input/output helpers for JSON inputs and tabular result export."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .config import AnalysisConfig, config_from_mapping
from .models import (
    BatchResult,
    Candidate,
    CandidateBatch,
    Collision,
    DaughterTrack,
    SelectionBit,
    TruthInfo,
)

LOGGER = logging.getLogger("v0pairs.io")

_CANDIDATE_FLOAT_FIELDS: tuple[str, ...] = (
    "x",
    "y",
    "z",
    "positive_eta",
    "negative_eta",
    "v0_radius",
    "v0_cos_pa",
    "dca_v0_daughters",
    "dca_pos_to_pv",
    "dca_neg_to_pv",
    "dca_v0_to_pv",
    "m_k0short",
    "m_lambda",
    "m_antilambda",
    "m_gamma",
    "qt_arm",
    "alpha",
    "pos_tof_delta_t_k0_pi",
    "neg_tof_delta_t_k0_pi",
    "tof_nsigma_k0_pi_plus",
    "tof_nsigma_k0_pi_minus",
    "k0short_score",
    "gamma_score",
)

_BIT_BY_NAME: dict[str, SelectionBit] = {
    **{bit.value: bit for bit in SelectionBit},
    **{bit.name: bit for bit in SelectionBit},
}


def load_batches_json(path: str | Path) -> list[CandidateBatch]:
    """Load per-collision candidate batches from JSON.

    Expected shape:
    {
      "batches": [
        {"collision": {...}, "has_truth_info": false, "candidates": [...]},
        ...
      ]
    }
    """
    data = _load_json(path)
    batches_data = data.get("batches")
    if not isinstance(batches_data, list):
        raise ValueError("Batches JSON must contain a list under key 'batches'.")
    out: list[CandidateBatch] = []
    for idx, batch in enumerate(batches_data):
        if not isinstance(batch, dict):
            raise ValueError(f"Batch entry at index {idx} must be an object.")
        collision = _parse_collision(batch.get("collision", {}), idx)
        candidates_data = batch.get("candidates")
        if not isinstance(candidates_data, list):
            raise ValueError(
                f"Batch for collision {collision.collision_id} must contain a list under key 'candidates'."
            )
        context = f"collision {collision.collision_id}"
        candidates = tuple(
            _parse_candidate(item=item, idx=cidx, context=context)
            for cidx, item in enumerate(candidates_data)
        )
        ids = [c.candidate_id for c in candidates]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Candidate ids must be unique within {context}.")
        out.append(
            CandidateBatch(
                collision=collision,
                candidates=candidates,
                has_truth_info=_flag(batch, "has_truth_info", False, context),
            )
        )
    LOGGER.debug("loaded %d batches from %s", len(out), path)
    return out


def load_config_json(path: str | Path) -> AnalysisConfig:
    """Load a flat option-name -> value JSON object into an `AnalysisConfig`."""
    return config_from_mapping(_load_json(path))


def write_pairs_table(path: str | Path, results: list[BatchResult]) -> None:
    """Write accepted pairs into Parquet/CSV/Pickle table."""
    pd = _require_pandas()
    df = pd.DataFrame(_pair_rows(results), columns=_PAIR_COLUMNS)
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )
    LOGGER.info("wrote %d pairs to %s", len(df), out)


_PAIR_COLUMNS: list[str] = [
    "collision_id",
    "centrality",
    "gap_side",
    "n_k0short",
    "n_gamma",
    "k0short_id",
    "gamma_id",
    "px",
    "py",
    "pz",
    "energy",
    "pair_mass",
    "pair_pt",
    "pair_rapidity",
]


def _pair_rows(results: list[BatchResult]) -> list[dict[str, Any]]:
    """Flatten batch results into one DataFrame-ready row per pair."""
    rows: list[dict[str, Any]] = []
    for res in results:
        for pair in res.pairs:
            rows.append(
                {
                    "collision_id": res.collision_id,
                    "centrality": res.centrality,
                    "gap_side": res.gap_side,
                    "n_k0short": res.n_k0short,
                    "n_gamma": res.n_gamma,
                    "k0short_id": pair.primary_id,
                    "gamma_id": pair.secondary_id,
                    "px": pair.p4.px,
                    "py": pair.p4.py,
                    "pz": pair.p4.pz,
                    "energy": pair.p4.e,
                    "pair_mass": pair.mass,
                    "pair_pt": pair.pt,
                    "pair_rapidity": pair.rapidity,
                }
            )
    return rows


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_collision(item: Any, idx: int) -> Collision:
    """Parse one collision dictionary into a `Collision`."""
    if not isinstance(item, dict):
        raise ValueError(f"Collision of batch {idx} must be an object.")
    context = f"collision of batch {idx}"
    bits_raw = item.get("selection_bits", [])
    if not isinstance(bits_raw, list):
        raise ValueError("Collision field 'selection_bits' must be a list of names.")
    bits: set[SelectionBit] = set()
    for name in bits_raw:
        try:
            bits.add(_BIT_BY_NAME[str(name)])
        except KeyError as exc:
            raise ValueError(f"Unknown selection bit '{name}' in batch {idx}.") from exc
    return Collision(
        collision_id=_number(item, "collision_id", idx, context, int),
        pos_x=_number(item, "pos_x", 0.0, context),
        pos_y=_number(item, "pos_y", 0.0, context),
        pos_z=_number(item, "pos_z", 0.0, context),
        sel8=_flag(item, "sel8", True, context),
        selection_bits=frozenset(bits),
        mult_ntracks_pv_eta1=_number(item, "mult_ntracks_pv_eta1", 0, context, int),
        cent_ft0m=_number(item, "cent_ft0m", -1.0, context),
        cent_ft0c=_number(item, "cent_ft0c", -1.0, context),
        track_occupancy=_number(item, "track_occupancy", -1.0, context),
        ft0c_occupancy=_number(item, "ft0c_occupancy", -1.0, context),
        gap_side=_number(item, "gap_side", -1, context, int),
    )


def _parse_candidate(item: Any, idx: int, context: str) -> Candidate:
    """Parse one candidate dictionary into a `Candidate`."""
    if not isinstance(item, dict):
        raise ValueError(f"Candidate entry at index {idx} in {context} must be an object.")
    for key in ("candidate_id", "positive", "negative", "px", "py", "pz"):
        if key not in item:
            raise ValueError(f"Candidate at index {idx} in {context} must define '{key}'.")
    where = f"candidate {idx} in {context}"
    optional = {
        name: _number(item, name, 0.0, where) for name in _CANDIDATE_FLOAT_FIELDS if name in item
    }
    truth_raw = item.get("truth")
    return Candidate(
        candidate_id=_number(item, "candidate_id", 0, where, int),
        positive=_parse_daughter(item["positive"], f"positive daughter of {where}"),
        negative=_parse_daughter(item["negative"], f"negative daughter of {where}"),
        px=_number(item, "px", 0.0, where),
        py=_number(item, "py", 0.0, where),
        pz=_number(item, "pz", 0.0, where),
        v0_type=_number(item, "v0_type", 1, where, int),
        truth=None if truth_raw is None else _parse_truth(truth_raw, f"truth of {where}"),
        **optional,
    )


def _parse_daughter(item: Any, context: str) -> DaughterTrack:
    """Parse one daughter-track dictionary into a `DaughterTrack`."""
    if not isinstance(item, dict):
        raise ValueError(f"The {context} must be an object.")
    if "track_id" not in item:
        raise ValueError(f"The {context} must define 'track_id'.")
    return DaughterTrack(
        track_id=_number(item, "track_id", 0, context, int),
        tpc_crossed_rows=_number(item, "tpc_crossed_rows", 0, context, int),
        its_ncls=_number(item, "its_ncls", 0, context, int),
        its_chi2_per_ncl=_number(item, "its_chi2_per_ncl", 0.0, context),
        detector_map=_number(item, "detector_map", 0, context, int),
        tpc_nsigma_pi=_number(item, "tpc_nsigma_pi", 0.0, context),
        tpc_nsigma_el=_number(item, "tpc_nsigma_el", 0.0, context),
        tpc_nsigma_pr=_number(item, "tpc_nsigma_pr", 0.0, context),
    )


def _parse_truth(item: Any, context: str) -> TruthInfo:
    """Parse a generator-level association dictionary into `TruthInfo`."""
    if not isinstance(item, dict):
        raise ValueError(f"The {context} must be an object.")
    for key in ("pdg_code", "pdg_code_positive", "pdg_code_negative"):
        if key not in item:
            raise ValueError(f"The {context} must define '{key}'.")
    return TruthInfo(
        pdg_code=_number(item, "pdg_code", 0, context, int),
        pdg_code_positive=_number(item, "pdg_code_positive", 0, context, int),
        pdg_code_negative=_number(item, "pdg_code_negative", 0, context, int),
        pdg_code_mother=_number(item, "pdg_code_mother", 0, context, int),
        px_mc=_number(item, "px_mc", 0.0, context),
        py_mc=_number(item, "py_mc", 0.0, context),
        pz_mc=_number(item, "pz_mc", 0.0, context),
    )


def _number(item: dict[str, Any], key: str, default: Any, context: str, kind: type = float) -> Any:
    """Read `item[key]` (or `default`) as `kind`; bad values raise `ValueError`."""
    value = item.get(key, default)
    error = f"Field '{key}' of {context} must be {'an integer' if kind is int else 'a number'}, got {value!r}."
    if isinstance(value, (bool, str)):
        raise ValueError(error)
    try:
        converted = kind(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(error) from exc
    if kind is int and converted != value:
        raise ValueError(error)
    return converted


def _flag(item: dict[str, Any], key: str, default: bool, context: str) -> bool:
    """Read a JSON boolean; strings and numbers are rejected."""
    value = item.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"Field '{key}' of {context} must be true or false, got {value!r}.")
    return value


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
