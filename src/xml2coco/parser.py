"""
Single-object XML annotation parser.

Input files look like::

    <annotation>
        <filename>720 (13)_0001</filename>
        <size><width>640</width><height>360</height></size>
        <object>
            <name>whale1</name>
            <bndbox><xmin>276</xmin><ymin>128</ymin><xmax>311</xmax><ymax>194</ymax></bndbox>
        </object>
    </annotation>

The parser streams the document and picks up a fixed set of leaf elements
wherever they appear, ignoring everything else. Parsing is all-or-nothing:
either every field is present and valid or ``ParseError`` is raised.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Optional, Tuple, Union

from .errors import ConversionIOError, NamingError, ParseError
from .registry import CategoryRegistry

log = logging.getLogger(__name__)

NUMERIC_FIELDS = ("width", "height", "xmin", "ymin", "xmax", "ymax")
TEXT_FIELDS = ("filename", "name")
RECOGNIZED_FIELDS = TEXT_FIELDS + NUMERIC_FIELDS


@dataclass(frozen=True)
class Size:
    width: int
    height: int


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box as two absolute pixel corners."""
    xmin: int
    ymin: int
    xmax: int
    ymax: int

    @property
    def width(self) -> int:
        return self.xmax - self.xmin

    @property
    def height(self) -> int:
        return self.ymax - self.ymin

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_xywh(self) -> list:
        """COCO ``bbox``: top-left corner plus extent."""
        return [self.xmin, self.ymin, self.width, self.height]

    def to_polygon(self) -> list:
        """The four corners as one flat polygon, clockwise from top-left."""
        return [self.xmin, self.ymin, self.xmax, self.ymin, self.xmax, self.ymax, self.xmin, self.ymax]


@dataclass(frozen=True)
class Annotation:
    """One parsed XML file: exactly one object per image."""
    filename: str
    size: Size
    object_name: str
    bndbox: BoundingBox

    def to_coco(
        self,
        record_id: int,
        file_name: str,
        registry: CategoryRegistry,
        date_captured: str = "2021",
    ) -> Tuple[dict, dict]:
        """Build the COCO (image, annotation) pair.

        One object per image, so the image record and the annotation record
        share ``record_id``.
        """
        box = self.bndbox
        image = {
            "date_captured": date_captured,
            "file_name": file_name,
            "id": record_id,
            "height": self.size.height,
            "width": self.size.width,
        }
        annotation = {
            "segmentation": [box.to_polygon()],
            "area": box.area,
            "iscrowd": 0,
            "image_id": record_id,
            "bbox": box.to_xywh(),
            "category_id": registry.lookup(self.object_name),
            "id": record_id,
        }
        return image, annotation


def _local_name(tag: str) -> str:
    # '{namespace}tag' -> 'tag'
    return tag.rsplit("}", 1)[-1]


def _parse_uint(field: str, text: str, path: Optional[Path]) -> int:
    if text.startswith("-") and text[1:].isascii() and text[1:].isdigit():
        raise ParseError(path, f"<{field}> is negative: {text}")
    digits = text[1:] if text.startswith("+") else text
    # int() alone would also take '1_000' and non-ASCII digits
    if not (digits.isascii() and digits.isdigit()):
        raise ParseError(path, f"<{field}> is not an integer: {text!r}")
    return int(digits)


def parse_annotation(
    source: Union[str, Path, BinaryIO],
    namer: Callable[[str], str],
    path: Optional[Union[str, Path]] = None,
) -> Annotation:
    """Parse one annotation document.

    Parameters
    ----------
    source : path or binary file object
        The XML document.
    namer : callable
        Normalizes the ``<name>`` text (see ``ClassNamer``).
    path : path, optional
        Reported in errors. Defaults to ``source`` when it is a path.

    Raises
    ------
    ParseError
        Malformed XML, missing or empty fields, non-integer numbers, or more
        than one ``<object>``.
    NamingError
        ``namer`` rejected the object name.
    """
    if path is None and isinstance(source, (str, Path)):
        path = source
    path = Path(path) if path is not None else None

    raw: Dict[str, str] = {}
    n_objects = 0
    try:
        for event, elem in ET.iterparse(source, events=("start", "end")):
            tag = _local_name(elem.tag)
            if event == "start":
                if tag == "object":
                    n_objects += 1
                    if n_objects > 1:
                        raise ParseError(path, "more than one <object>; only single-object files are supported")
                continue
            if tag not in RECOGNIZED_FIELDS or tag in raw:
                continue
            text = (elem.text or "").strip()
            if not text:
                raise ParseError(path, f"<{tag}> has no text")
            raw[tag] = text
    except ET.ParseError as exc:
        raise ParseError(path, f"malformed XML: {exc}") from exc

    missing = [f for f in RECOGNIZED_FIELDS if f not in raw]
    if missing:
        raise ParseError(path, "missing element(s): " + ", ".join(f"<{f}>" for f in missing))

    values = {f: _parse_uint(f, raw[f], path) for f in NUMERIC_FIELDS}

    try:
        object_name = namer(raw["name"])
    except NamingError as exc:
        exc.path = path
        raise

    return Annotation(
        filename=raw["filename"],
        size=Size(width=values["width"], height=values["height"]),
        object_name=object_name,
        bndbox=BoundingBox(
            xmin=values["xmin"], ymin=values["ymin"],
            xmax=values["xmax"], ymax=values["ymax"],
        ),
    )


def parse_annotation_file(path: Union[str, Path], namer: Callable[[str], str]) -> Annotation:
    """Open ``path`` and parse it; read failures become ``ConversionIOError``."""
    path = Path(path)
    try:
        with open(path, "rb") as fh:
            annotation = parse_annotation(fh, namer, path=path)
    except OSError as exc:
        raise ConversionIOError(f"cannot read annotation: {exc}", path=path, phase="parse") from exc

    box = annotation.bndbox
    if box.width < 0 or box.height < 0:
        log.warning("Inverted bounding box in %s: %s", path, box)
    return annotation
