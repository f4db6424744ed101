"""API example: classifier-score selection with an injected scorer.

Run from repository root without installation:
    PYTHONPATH=src python examples/score_mode_api.py
"""

from __future__ import annotations

import math
from pathlib import Path

from v0pairs import PairCombiner, config_from_mapping
from v0pairs.io import load_batches_json, write_pairs_table


def pointing_scorer(features) -> float:
    """Toy stand-in for a trained model: logistic in the pointing-angle cosine."""
    cos_pa = features[4]
    return 1.0 / (1.0 + math.exp(-200.0 * (cos_pa - 0.99)))


def main() -> int:
    """Select K0S candidates by score, photons by cuts, and write a parquet table."""
    config = config_from_mapping(
        {
            "mlConfigurations.useK0ShortScores": True,
            "mlConfigurations.calculateK0ShortScores": True,
            "mlConfigurations.thresholdK0Short": 0.5,
            "photonSelections.photonMassMax": 0.01,
        }
    )
    batches = load_batches_json("examples/batches.json")
    combiner = PairCombiner(config=config, k0short_scorer=pointing_scorer)
    results = combiner.process_batches(batches)
    out_path = Path("examples/score_mode_pairs.parquet")
    write_pairs_table(out_path, results)
    for label, count in combiner.event_counter.as_rows():
        print(f"{label:<28} {count}")
    print(f"Wrote {sum(len(r.pairs) for r in results)} pairs to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
