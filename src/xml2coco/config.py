"""
Conversion configuration and default parameters.

All defaults live in ``CONVERT_DEFAULTS`` so the CLI, the orchestrator and the
tests agree on them. The defaults reproduce the historical dataset layout
(seed 233, 80/20 split, ``*2017`` directory names).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .naming import ClassNamer, Granularity

CONVERT_DEFAULTS = {
    # Shuffle seed. Fixed so that the same source listing always yields the same split.
    "seed": 233,
    # Share of shuffled files that go to the train split (integer floor).
    "train_percent": 80,
    # Extension of the image paired with every XML file.
    "image_ext": ".jpg",
    "granularity": "full",
    # Label used by the single-class granularity.
    "single_label": "dac_object",
    "annotations_dir": "annotations",
    "train_name": "train2017",
    "val_name": "val2017",
    "year": 2021,
}

COCO_INFO = {
    "year": CONVERT_DEFAULTS["year"],
    "version": "1.0",
    "description": "For object detection",
    "date_created": str(CONVERT_DEFAULTS["year"]),
}

COCO_LICENSES = [
    {
        "id": 1,
        "name": "GNU General Public License v3.0",
        "url": "https://github.com/zhiqwang/yolov5-rt-stack/blob/master/LICENSE",
    }
]


def default_workers() -> int:
    """Worker pool size for parsing: all available cores."""
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ConvertConfig:
    """Everything one conversion run needs.

    Parameters
    ----------
    source_path : Path
        Directory holding one subdirectory per raw category.
    target_path : Path
        Output dataset root.
    granularity : Granularity
        How raw category directory names are collapsed.
    seed : int
        Shuffle seed for the train/val split.
    train_percent : int
        Percentage of files assigned to train, in ``[0, 100]``.
    workers : int, optional
        Parser pool size. ``None`` uses every available core.
    """
    source_path: Path
    target_path: Path
    granularity: Granularity = Granularity.FULL
    seed: int = CONVERT_DEFAULTS["seed"]
    train_percent: int = CONVERT_DEFAULTS["train_percent"]
    workers: Optional[int] = None
    image_ext: str = CONVERT_DEFAULTS["image_ext"]
    single_label: str = CONVERT_DEFAULTS["single_label"]
    info: Dict[str, Any] = field(default_factory=lambda: dict(COCO_INFO))
    licenses: List[Dict[str, Any]] = field(default_factory=lambda: [dict(l) for l in COCO_LICENSES])

    def __post_init__(self):
        # Accept plain strings for paths and granularity.
        object.__setattr__(self, "source_path", Path(self.source_path))
        object.__setattr__(self, "target_path", Path(self.target_path))
        object.__setattr__(self, "granularity", Granularity.parse(self.granularity))
        if not self.image_ext.startswith("."):
            object.__setattr__(self, "image_ext", "." + self.image_ext)

        if not (0 <= self.train_percent <= 100):
            raise ValueError(f"train_percent must be in [0, 100], got {self.train_percent}")
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.image_ext == ".xml":
            raise ValueError("image_ext cannot be '.xml'")

    @property
    def n_workers(self) -> int:
        return self.workers if self.workers is not None else default_workers()

    @property
    def annotations_dir(self) -> Path:
        return self.target_path / CONVERT_DEFAULTS["annotations_dir"]

    def split_image_dir(self, split: str) -> Path:
        """Image directory for ``split`` ("train" or "val")."""
        return self.target_path / _split_name(split)

    def split_json_path(self, split: str) -> Path:
        """Annotation JSON for ``split`` ("train" or "val")."""
        return self.annotations_dir / f"instances_{_split_name(split)}.json"

    @property
    def manifest_path(self) -> Path:
        return self.annotations_dir / "split_manifest.csv"

    def namer(self) -> ClassNamer:
        return ClassNamer(self.granularity, single_label=self.single_label)


def _split_name(split: str) -> str:
    try:
        return CONVERT_DEFAULTS[f"{split}_name"]
    except KeyError:
        raise ValueError(f"unknown split {split!r}; expected 'train' or 'val'") from None
