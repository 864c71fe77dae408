"""
Category registry: normalized category name -> 1-based integer id.

Ids are handed out in first-registration order. The registry is filled
single-threaded during the directory scan and then frozen, after which the
parallel parse/assemble stages only read from it.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Tuple

from .errors import UnknownCategoryError


class CategoryRegistry:
    def __init__(self):
        self._ids: Dict[str, int] = {}
        self._frozen = False

    def register(self, name: str) -> int:
        """Return the id for ``name``, allocating the next one on first sight."""
        if name in self._ids:
            return self._ids[name]
        if self._frozen:
            raise RuntimeError(f"registry is frozen; cannot register new category {name!r}")
        cat_id = len(self._ids) + 1
        self._ids[name] = cat_id
        return cat_id

    def lookup(self, name: str) -> int:
        try:
            return self._ids[name]
        except KeyError:
            raise UnknownCategoryError(name) from None

    def freeze(self) -> "CategoryRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def items(self) -> List[Tuple[str, int]]:
        """(name, id) pairs in id order."""
        return list(self._ids.items())

    def to_coco(self) -> List[dict]:
        return [
            {"id": cat_id, "name": name, "supercategory": name}
            for name, cat_id in self._ids.items()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"CategoryRegistry({self._ids!r}, {state})"
