"""Offline K*0 -> K0S gamma peak study on `v0-pairs` output tables.

Reads the pairs table written by the CLI, applies optional centrality / pT
slicing and a pandas query, then estimates signal and background around the
K*0 mass with symmetric sidebands.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

MASS_KSTAR0 = 0.89555


def _require_pandas():
    """Import pandas with a clear install hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required. Install with: pip install pandas pyarrow"
        ) from exc
    return pd


def load_table(path: str):
    """Load a pairs table from parquet/csv/pickle."""
    pd = _require_pandas()
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(p)
    raise ValueError("Supported input formats: .parquet, .csv, .pkl")


def select_pairs(
    df,
    centrality: tuple[float, float] | None,
    pt: tuple[float, float] | None,
    extra_query: str | None,
):
    """Slice in centrality and pair pT (lower edge inclusive), then apply a query."""
    out = df
    if centrality is not None:
        out = out[(out["centrality"] >= centrality[0]) & (out["centrality"] < centrality[1])]
    if pt is not None:
        out = out[(out["pair_pt"] >= pt[0]) & (out["pair_pt"] < pt[1])]
    if extra_query:
        out = out.query(extra_query)
    return out


def sideband_estimate(masses, m0: float, w_sig: float, w_sb_in: float, w_sb_out: float) -> dict[str, float]:
    """Signal-window counts minus a flat background taken from both sidebands."""
    in_signal = (masses - m0).abs() <= w_sig
    offset = (masses - m0).abs()
    in_sidebands = (offset >= w_sb_in) & (offset <= w_sb_out)

    n_window = float(in_signal.sum())
    n_sidebands = float(in_sidebands.sum())
    width_sb = 2.0 * (w_sb_out - w_sb_in)
    bkg = n_sidebands / width_sb * 2.0 * w_sig if width_sb > 0 else 0.0
    signal = n_window - bkg
    total = signal + bkg
    return {
        "n_window": n_window,
        "n_sidebands": n_sidebands,
        "background_est": bkg,
        "signal_est": signal,
        "s_over_b": signal / bkg if bkg > 0 else 0.0,
        "significance": signal / total**0.5 if total > 0 else 0.0,
    }


def maybe_plot(masses, m0: float, w_sig: float, out_png: Path, bins: int) -> None:
    """Draw the pair-mass spectrum with the signal window."""
    try:
        import matplotlib.pyplot as plt  # type: ignore
    except ModuleNotFoundError:
        print("matplotlib not installed; skipping plot.")
        return

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(masses, bins=bins, histtype="step", linewidth=1.4)
    ax.axvline(m0 - w_sig, color="green", linestyle="--", linewidth=1.2)
    ax.axvline(m0 + w_sig, color="green", linestyle="--", linewidth=1.2, label="signal window")
    ax.set_xlabel(r"$m(K^0_S\gamma)$ [GeV]")
    ax.set_ylabel("Pairs")
    ax.legend()
    fig.tight_layout()
    fig.savefig(out_png, dpi=120)
    plt.close(fig)


def _range(values: list[float] | None) -> tuple[float, float] | None:
    return None if values is None else (values[0], values[1])


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="K*0 -> K0S gamma peak study from a pairs table.")
    parser.add_argument("--input", required=True, help="Input table (.parquet/.csv/.pkl).")
    parser.add_argument("--centrality", nargs=2, type=float, default=None, metavar=("LO", "HI"))
    parser.add_argument("--pt", nargs=2, type=float, default=None, metavar=("LO", "HI"))
    parser.add_argument("--query", default=None, help="Additional pandas query.")
    parser.add_argument("--mass-center", type=float, default=MASS_KSTAR0)
    parser.add_argument("--signal-half-window", type=float, default=0.05)
    parser.add_argument("--sideband-inner", type=float, default=0.10)
    parser.add_argument("--sideband-outer", type=float, default=0.25)
    parser.add_argument("--bins", type=int, default=100)
    parser.add_argument("--plot", action="store_true", help="Write a histogram PNG next to the input.")
    parser.add_argument("--out-json", default=None, help="Optional JSON summary output path.")
    args = parser.parse_args(argv)

    df = load_table(args.input)
    selected = select_pairs(df, _range(args.centrality), _range(args.pt), args.query)
    masses = selected["pair_mass"]
    stats = sideband_estimate(
        masses, args.mass_center, args.signal_half_window, args.sideband_inner, args.sideband_outer
    )
    summary: dict[str, Any] = {
        "n_pairs": int(len(df)),
        "n_selected": int(len(selected)),
        "n_collisions": int(selected["collision_id"].nunique()),
        "mass_center": args.mass_center,
        **stats,
    }
    print(json.dumps(summary, indent=2))
    if args.out_json:
        Path(args.out_json).write_text(json.dumps(summary, indent=2), encoding="utf-8")
    if args.plot:
        maybe_plot(
            masses,
            args.mass_center,
            args.signal_half_window,
            Path(args.input).with_suffix(".mass.png"),
            args.bins,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
