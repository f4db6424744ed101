"""Example custom callback: per-centrality pair counts next to the output table."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path


def process(results, context):
    """Count collisions and pairs in 10%-wide centrality classes."""
    collisions: Counter = Counter()
    pairs: Counter = Counter()
    for res in results:
        label = f"{int(res.centrality // 10) * 10}-{int(res.centrality // 10) * 10 + 10}"
        collisions[label] += 1
        pairs[label] += len(res.pairs)
    payload = {
        "event_counts": dict(context["event_counts"]),
        "centrality_classes": {
            label: {"collisions": collisions[label], "pairs": pairs[label]}
            for label in sorted(collisions)
        },
    }
    out = Path(context["output_path"]).with_name("pair_summary.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
