#!/usr/bin/env python3
"""
xml2coco CLI: per-object XML annotations -> COCO detection dataset

Input layout (one subdirectory per raw category, XML + image sharing a stem):

    source/
        whale1/ a.xml a.jpg b.xml b.jpg ...
        whale2/ ...
        dac3/   ...

Output layout:

    target/
        annotations/instances_train2017.json
        annotations/instances_val2017.json
        annotations/split_manifest.csv
        train2017/whale1_a.jpg ...
        val2017/...

Examples:
========
# Keep every category directory as its own class
python -m xml2coco.cli -s /data/dac -t /data/dac_coco

# Merge whale1, whale2, ... into "whale"
python -m xml2coco.cli -s /data/dac -t /data/dac_coco_medium --cls medium

# Class-agnostic detection dataset
python -m xml2coco.cli -s /data/dac -t /data/dac_coco_single --cls single
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm.contrib.logging import logging_redirect_tqdm

from .config import CONVERT_DEFAULTS, ConvertConfig
from .errors import ConversionError
from .logging_utils import setup_logging
from .naming import Granularity
from .pipeline import convert

log = logging.getLogger(__name__)

GRANULARITY_CHOICES = [g.value for g in Granularity]


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return n


def _percent(value: str) -> int:
    n = int(value)
    if not 0 <= n <= 100:
        raise argparse.ArgumentTypeError(f"expected an integer in [0, 100], got {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="xml2coco", description="Convert per-object XML annotations into a COCO dataset")
    p.add_argument("-s", "--source-path", type=Path, required=True, help="Dataset directory (one subdirectory per category)")
    p.add_argument("-t", "--target-path", type=Path, required=True, help="Target directory (created if missing)")
    p.add_argument("-c", "--cls", choices=GRANULARITY_CHOICES, default=CONVERT_DEFAULTS["granularity"],
                   help="Class granularity: full, medium (strip digit suffix) or single")
    p.add_argument("--seed", type=int, default=CONVERT_DEFAULTS["seed"], help="Shuffle seed for the train/val split")
    p.add_argument("--train-percent", type=_percent, default=CONVERT_DEFAULTS["train_percent"],
                   help="Percentage of files in the train split")
    p.add_argument("--workers", type=_positive_int, default=None, help="Parser threads (default: all cores)")
    p.add_argument("--image-ext", default=CONVERT_DEFAULTS["image_ext"], help="Extension of the paired images")
    p.add_argument("--single-label", default=CONVERT_DEFAULTS["single_label"],
                   help="Category name used with --cls single")
    p.add_argument("--log-dir", type=Path, default=Path("logs"), help="Directory for main.log")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def _check_paths(p: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if not args.source_path.is_dir():
        p.error(f"source path is not a directory: {args.source_path}")
    if args.target_path.exists() and not args.target_path.is_dir():
        p.error(f"target path exists and is not a directory: {args.target_path}")


def main(argv: Optional[List[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    _check_paths(p, args)

    setup_logging(args.log_dir, level=logging.DEBUG if args.verbose else logging.INFO)
    log.info("%s", vars(args))

    try:
        args.target_path.mkdir(parents=True, exist_ok=True)
        config = ConvertConfig(
            source_path=args.source_path,
            target_path=args.target_path,
            granularity=args.cls,
            seed=args.seed,
            train_percent=args.train_percent,
            workers=args.workers,
            image_ext=args.image_ext,
            single_label=args.single_label,
        )
        with logging_redirect_tqdm():
            summary = convert(config)
    except (ConversionError, OSError, ValueError) as e:
        log.error("Conversion failed: %s", e)
        return 1

    log.info("Wrote %s and %s", summary.train_json, summary.val_json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
