"""
Category naming policy.

A ``ClassNamer`` maps a raw category directory name (or an XML ``<name>``)
to the category name written to the dataset. The same namer must be used for
registry construction and for parsing, otherwise ids and annotations disagree.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from .errors import NamingError


class Granularity(str, Enum):
    FULL = "full"
    MEDIUM = "medium"
    SINGLE = "single"

    @classmethod
    def parse(cls, value: Union[str, "Granularity"]) -> "Granularity":
        """Look up a granularity by value, rejecting anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(g.value for g in cls)
            raise ValueError(f"unknown granularity {value!r}; expected one of: {valid}") from None


def strip_trailing_digits(name: str) -> str:
    """Return ``name`` up to (excluding) its first ASCII digit.

    >>> strip_trailing_digits("whale1")
    'whale'

    Raises
    ------
    NamingError
        If ``name`` has no ASCII digit or starts with one.
    """
    for i, ch in enumerate(name):
        if "0" <= ch <= "9":
            if i == 0:
                raise NamingError(name, "name starts with a digit, prefix would be empty")
            return name[:i]
    raise NamingError(name, "medium granularity needs a digit suffix")


class ClassNamer:
    """Pure ``raw_name -> category_name`` policy for one granularity.

    - full: identity
    - medium: prefix before the first digit (``whale1``, ``whale2`` -> ``whale``)
    - single: every name collapses to ``single_label``
    """

    def __init__(self, granularity: Union[str, Granularity] = Granularity.FULL, single_label: str = "dac_object"):
        self.granularity = Granularity.parse(granularity)
        if not single_label:
            raise ValueError("single_label must be a non-empty string")
        self.single_label = single_label

    def __call__(self, raw_name: str) -> str:
        if self.granularity is Granularity.FULL:
            return raw_name
        if self.granularity is Granularity.MEDIUM:
            return strip_trailing_digits(raw_name)
        return self.single_label

    def __repr__(self) -> str:
        return f"ClassNamer({self.granularity.value!r})"
