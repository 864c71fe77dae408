"""
COCO document assembly.

Turns an ordered sequence of parsed annotations into the COCO instances
structure::

    {"info", "images", "licenses", "type", "annotations", "categories"}

Image and annotation ids are the 1-based position in the sequence. The
category list always comes from the full registry, so train and val
documents share one category set.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .io import save_json
from .parser import Annotation
from .registry import CategoryRegistry

log = logging.getLogger(__name__)


def flattened_name(image_path: Union[str, Path]) -> str:
    """``<category_dir>/<image>`` -> ``<category_dir stem>_<image>``.

    Images from different category directories may share a name; prefixing
    the directory keeps them apart in the flat ``train2017``/``val2017`` dirs.
    The same name is used for the copied file and for the JSON ``file_name``.
    """
    image_path = Path(image_path)
    return f"{image_path.parent.stem}_{image_path.name}"


def build_coco_document(
    records: Iterable[Tuple[Annotation, str]],
    registry: CategoryRegistry,
    *,
    info: Optional[Dict[str, Any]] = None,
    licenses: Optional[List[Dict[str, Any]]] = None,
    date_captured: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble one COCO document.

    Parameters
    ----------
    records : iterable of (Annotation, file_name)
        In output order. Position ``i`` gets id ``i + 1``.
    registry : CategoryRegistry
        Resolves ``object_name`` to ``category_id`` and supplies
        ``categories``.
    info, licenses : optional
        Top-level blocks; empty when omitted.
    date_captured : str, optional
        Stamped on every image record. Defaults to ``info["year"]``.
    """
    info = dict(info or {})
    if date_captured is None:
        date_captured = str(info.get("year", ""))

    images = []
    annotations = []
    for record_id, (annotation, file_name) in enumerate(records, start=1):
        image, anno = annotation.to_coco(record_id, file_name, registry, date_captured=date_captured)
        images.append(image)
        annotations.append(anno)

    return {
        "info": info,
        "images": images,
        "licenses": list(licenses or []),
        "type": "instances",
        "annotations": annotations,
        "categories": registry.to_coco(),
    }


def write_coco_document(document: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write ``document`` to ``path``, overwriting any existing file."""
    path = Path(path)
    save_json(document, path)
    log.info(
        "Wrote %s (%d images, %d categories)",
        path, len(document["images"]), len(document["categories"]),
    )
    return path
