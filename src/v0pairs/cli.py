"""Command-line interface for running the V0 selection and pairing on batch inputs."""

from __future__ import annotations

import argparse
import importlib.util
import logging
from pathlib import Path
from typing import Any

from .combiner import PairCombiner
from .config import AnalysisConfig
from .io import load_batches_json, load_config_json, write_pairs_table
from .models import BatchResult, SelectionCategory
from .selector import v0_tally

LOGGER = logging.getLogger("v0pairs.cli")


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="v0-pairs",
        description="Select K0S-like and photon-like V0 candidates and build K0S-gamma pairs.",
    )
    parser.add_argument("--batches", required=True, help="Input JSON with key 'batches'.")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional JSON object of option-name -> value overrides (e.g. 'v0Selections.v0cospa').",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for accepted pairs (.parquet, .csv, .pkl).",
    )
    parser.add_argument(
        "--cut-flow",
        action="store_true",
        help="Log, per category, how many candidates each cut rejects first.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    parser.add_argument(
        "--custom-script",
        default=None,
        help="Path to Python file with process(results, context) function.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load inputs, run the pipeline, write table, optional custom hook."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = AnalysisConfig() if args.config is None else load_config_json(args.config)
    batches = load_batches_json(args.batches)

    combiner = PairCombiner(config=config)
    results = combiner.process_batches(batches)
    write_pairs_table(args.out, results)

    for label, count in combiner.event_counter.as_rows():
        LOGGER.info("%-28s %d", label, count)
    if args.cut_flow:
        for label, count in v0_tally(batches):
            LOGGER.info("V0s %-24s %d", label, count)
        for category in SelectionCategory:
            counts = combiner.selector.cut_flow(batches, category)
            for name, count in counts.most_common():
                LOGGER.info("%s %-22s %d", category.value, name, count)

    if args.custom_script:
        run_custom_script(
            script_path=args.custom_script,
            results=results,
            context={
                "batches_path": args.batches,
                "config_path": args.config,
                "config": config,
                "event_counts": combiner.event_counter.as_rows(),
                "v0_tally": v0_tally(batches),
                "output_path": args.out,
            },
        )
    return 0


def run_custom_script(
    script_path: str, results: list[BatchResult], context: dict[str, Any]
) -> None:
    """Execute user-supplied post-processing callback `process(results, context)`."""
    module = _load_module(script_path)
    process = getattr(module, "process", None)
    if process is None or not callable(process):
        raise ValueError(
            f"Custom script {script_path} must define callable process(results, context)."
        )
    process(results, context)


def _load_module(script_path: str):
    """Import a Python module from an arbitrary file path."""
    path = Path(script_path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import custom script: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


if __name__ == "__main__":
    raise SystemExit(main())
