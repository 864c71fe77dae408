"""Shared fixtures: annotation XML text and on-disk source datasets."""

from pathlib import Path
from typing import Dict, List, Tuple

import pytest


def annotation_xml(
    name: str = "whale1",
    filename: str = "720 (13)_0001",
    width: int = 640,
    height: int = 360,
    box: Tuple[int, int, int, int] = (276, 128, 311, 194),
) -> str:
    xmin, ymin, xmax, ymax = box
    return f"""<annotation>
    <folder>dac</folder>
    <filename>{filename}</filename>
    <size>
        <width>{width}</width>
        <height>{height}</height>
        <depth>3</depth>
    </size>
    <object>
        <name>{name}</name>
        <difficult>0</difficult>
        <bndbox>
            <xmin>{xmin}</xmin>
            <ymin>{ymin}</ymin>
            <xmax>{xmax}</xmax>
            <ymax>{ymax}</ymax>
        </bndbox>
    </object>
</annotation>
"""


@pytest.fixture
def xml_text():
    """Factory for a single-object annotation document."""
    return annotation_xml


@pytest.fixture
def make_source(tmp_path):
    """Build ``tmp_path/source/<category>/<stem>.{xml,jpg}`` from a layout dict.

    The object name in every XML equals its category directory name, and each
    image holds unique bytes so copies can be traced back to their source.
    """
    def _make(layout: Dict[str, List[str]], root_name: str = "source") -> Path:
        root = tmp_path / root_name
        root.mkdir(parents=True, exist_ok=True)
        for i, (category, stems) in enumerate(layout.items()):
            cat_dir = root / category
            cat_dir.mkdir()
            for j, stem in enumerate(stems):
                box = (10 * j, 20 * i, 10 * j + 30, 20 * i + 40)
                (cat_dir / f"{stem}.xml").write_text(annotation_xml(name=category, filename=stem, box=box))
                (cat_dir / f"{stem}.jpg").write_bytes(b"\xff\xd8" + f"{category}/{stem}".encode())
        return root

    return _make
