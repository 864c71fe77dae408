"""
Exception hierarchy for the XML → COCO conversion.

Every error aborts the run. Each carries the offending file path (when known)
and the pipeline phase it was raised in so the failure can be acted on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

_PathLike = Union[str, Path]


class ConversionError(Exception):
    """Base class for all conversion failures."""

    def __init__(self, message: str, path: Optional[_PathLike] = None, phase: Optional[str] = None):
        self.path = Path(path) if path is not None else None
        self.phase = phase
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.path is not None:
            msg = f"{msg} [{self.path}]"
        if self.phase is not None:
            msg = f"{self.phase}: {msg}"
        return msg


class ParseError(ConversionError):
    """Malformed or structurally incomplete annotation XML."""

    def __init__(self, path: Optional[_PathLike], reason: str):
        self.reason = reason
        super().__init__(f"cannot parse annotation: {reason}", path=path, phase="parse")


class NamingError(ConversionError, ValueError):
    """A category name cannot be normalized under the active granularity."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"cannot normalize category name {name!r}: {reason}", phase="naming")


class UnknownCategoryError(ConversionError, KeyError):
    """Object name was never registered in the category registry."""

    def __init__(self, name: str, path: Optional[_PathLike] = None):
        self.name = name
        super().__init__(f"unknown category {name!r}", path=path, phase="assemble")


class ConversionIOError(ConversionError, OSError):
    """Filesystem failure during scan, parse, copy or write."""
