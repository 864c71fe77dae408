"""
Per-object XML annotations -> COCO object-detection dataset.

Usage::

    from xml2coco import ConvertConfig, convert

    summary = convert(ConvertConfig("dataset/", "dataset_coco/", granularity="medium"))

Building blocks are importable on their own::

    from xml2coco import ClassNamer, CategoryRegistry, parse_annotation_file, split_dataset

    namer = ClassNamer("medium")
    registry = CategoryRegistry()
    registry.register(namer("whale1"))
    anno = parse_annotation_file("dataset/whale1/0001.xml", namer)
"""

from .coco import build_coco_document, flattened_name, write_coco_document
from .config import CONVERT_DEFAULTS, ConvertConfig
from .errors import (
    ConversionError,
    ConversionIOError,
    NamingError,
    ParseError,
    UnknownCategoryError,
)
from .naming import ClassNamer, Granularity
from .parser import Annotation, BoundingBox, Size, parse_annotation, parse_annotation_file
from .pipeline import (
    ConversionSummary,
    ScanResult,
    convert,
    copy_images,
    generate_annotations,
    scan_source,
)
from .registry import CategoryRegistry
from .split import DatasetSplit, split_dataset

__all__ = [
    "Annotation",
    "BoundingBox",
    "CONVERT_DEFAULTS",
    "CategoryRegistry",
    "ClassNamer",
    "ConversionError",
    "ConversionIOError",
    "ConversionSummary",
    "ConvertConfig",
    "DatasetSplit",
    "Granularity",
    "NamingError",
    "ParseError",
    "ScanResult",
    "Size",
    "UnknownCategoryError",
    "build_coco_document",
    "convert",
    "copy_images",
    "flattened_name",
    "generate_annotations",
    "parse_annotation",
    "parse_annotation_file",
    "scan_source",
    "split_dataset",
    "write_coco_document",
]
