"""
Command line entry point: cluster and project a result set, write JSON.

Usage:
    paper-projection features.npy --clusters 5 --neighbors 4
    paper-projection features.csv --header --output map.json
    paper-projection abstracts.txt --clusters 8      # one document per line
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import DISTANCE_MEASURES, INIT_POLICIES, ProjectionConfig
from .exceptions import ProjectionError
from .services.search_processing import SearchProcessingResult, SearchProcessor
from .utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

FEATURE_SUFFIXES = (".npy", ".csv")
DOCUMENT_SUFFIXES = (".txt",)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper-projection",
        description="Cluster search results and lay them out on a 2D map.",
    )
    parser.add_argument("input", type=Path, help="Feature matrix (.npy/.csv) or documents (.txt, one per line)")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Write JSON here (default: stdout)")
    parser.add_argument("--header", action="store_true", help="CSV first row holds the term names")
    parser.add_argument("--terms", type=Path, default=None, help="Vocabulary file, one term per line")
    parser.add_argument("--env-file", type=Path, default=None, help=".env file with PAPER_PROJECTION_* values")
    parser.add_argument("--clusters", type=int, default=None, help="Number of clusters")
    parser.add_argument("--neighbors", type=int, default=None, help="Neighbors per item in the mesh")
    parser.add_argument("--max-iterations", type=int, default=None, help="Medoid clustering passes")
    parser.add_argument("--force-iterations", type=int, default=None, help="Force Scheme sweeps")
    parser.add_argument("--labels", type=int, default=None, help="Label terms per cluster")
    parser.add_argument("--distance", choices=DISTANCE_MEASURES, default=None)
    parser.add_argument("--init", choices=INIT_POLICIES, default=None, help="Medoid initialization")
    parser.add_argument("--seed", type=int, default=None, help="Seed for --init random")
    parser.add_argument(
        "--allow-missing-layout",
        action="store_true",
        default=None,
        help="Return clusters without coordinates if the layout cannot be solved",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: PAPER_PROJECTION_LOG_LEVEL or WARNING)",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> ProjectionConfig:
    overrides = {
        "num_clusters": args.clusters,
        "num_neighbors": args.neighbors,
        "max_iterations": args.max_iterations,
        "force_iterations": args.force_iterations,
        "label_count": args.labels,
        "distance_measure": args.distance,
        "init_policy": args.init,
        "seed": args.seed,
        "allow_missing_layout": args.allow_missing_layout,
    }
    return ProjectionConfig.from_env(
        args.env_file, **{k: v for k, v in overrides.items() if v is not None}
    )


def _read_lines(path: Path) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def run(args: argparse.Namespace) -> SearchProcessingResult:
    """Load the input described by *args* and process it."""
    processor = SearchProcessor(_config_from_args(args))
    suffix = args.input.suffix.lower()

    if suffix in DOCUMENT_SUFFIXES:
        return processor.process_documents(_read_lines(args.input))

    if suffix not in FEATURE_SUFFIXES:
        raise ProjectionError(
            f"Unsupported input type {suffix!r}; expected one of {FEATURE_SUFFIXES + DOCUMENT_SUFFIXES}"
        )

    terms: Optional[List[str]] = None
    if suffix == ".npy":
        features = np.load(args.input)
    else:
        df = pd.read_csv(args.input, header=0 if args.header else None)
        features = df.to_numpy(dtype=np.float64)
        if args.header:
            terms = [str(c) for c in df.columns]
    if args.terms is not None:
        terms = _read_lines(args.terms)

    logger.info("Loaded %s with shape %s", args.input, features.shape)
    return processor.process(features, terms=terms)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        setup_logging(args.log_level)
        result = run(args)
    except (ProjectionError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output is None:
        print(payload)
    else:
        args.output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
