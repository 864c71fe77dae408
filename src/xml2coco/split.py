"""
Deterministic shuffle and train/val split.

The permutation comes from ``numpy.random.default_rng(SeedSequence(seed))``
(PCG64), which is stable across platforms and numpy releases, so a fixed
file listing and seed always give the same split.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

from numpy.random import SeedSequence, default_rng


@dataclass(frozen=True)
class DatasetSplit:
    train: Tuple[Path, ...]
    val: Tuple[Path, ...]

    def __len__(self) -> int:
        return len(self.train) + len(self.val)


def shuffle_files(files: Sequence[Path], seed: int) -> Tuple[Path, ...]:
    """Return ``files`` in a seed-determined order. Input is not modified."""
    rng = default_rng(SeedSequence(seed))
    order = rng.permutation(len(files))
    return tuple(files[int(i)] for i in order)


def train_count(n: int, train_percent: int) -> int:
    """floor(n * train_percent / 100), computed exactly in integers."""
    return n * train_percent // 100


def split_dataset(files: Sequence[Path], seed: int = 233, train_percent: int = 80) -> DatasetSplit:
    """Shuffle ``files`` and cut them into train (prefix) and val (suffix).

    ``len(train) == floor(N * train_percent / 100)``; nothing is dropped or
    duplicated.
    """
    if not (0 <= train_percent <= 100):
        raise ValueError(f"train_percent must be in [0, 100], got {train_percent}")
    shuffled = shuffle_files(files, seed)
    cut = train_count(len(shuffled), train_percent)
    return DatasetSplit(train=shuffled[:cut], val=shuffled[cut:])
