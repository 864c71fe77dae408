"""
Conversion orchestrator.

Phases:
    1. scan      list category dirs, build + freeze the registry, collect XML files
    2. split     seeded shuffle, 80/20 cut
    3. convert   two pipelines run concurrently over the same split:
                   annotations: parse (thread pool) -> assemble -> write JSON, train then val
                   copy:        copy paired images to flattened names, train then val

Output layout::

    <target>/annotations/instances_train2017.json
    <target>/annotations/instances_val2017.json
    <target>/annotations/split_manifest.csv      # written last, only on success
    <target>/train2017/<category>_<image>.jpg
    <target>/val2017/<category>_<image>.jpg
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .coco import build_coco_document, flattened_name, write_coco_document
from .config import ConvertConfig
from .errors import ConversionIOError, NamingError, UnknownCategoryError
from .io import save_csv
from .logging_utils import make_progress
from .parser import Annotation, parse_annotation_file
from .registry import CategoryRegistry
from .split import DatasetSplit, split_dataset

log = logging.getLogger(__name__)

# (total, description) -> object with update(n) and close()
ProgressFactory = Callable[[int, str], Any]

MANIFEST_COLUMNS = ["split", "image_id", "file_name", "source_dir", "xml_path", "image_path"]


@dataclass(frozen=True)
class ScanResult:
    files: Tuple[Path, ...]
    registry: CategoryRegistry


@dataclass(frozen=True)
class ConversionSummary:
    n_files: int
    n_train: int
    n_val: int
    categories: List[str]
    train_json: Path
    val_json: Path
    manifest_path: Path


class _NullProgress:
    def update(self, n: int = 1) -> None:
        pass

    def close(self) -> None:
        pass


def _open_progress(progress: Optional[ProgressFactory], total: int, desc: str):
    return progress(total, desc) if progress is not None else _NullProgress()


def image_path_for(xml_path: Path, image_ext: str = ".jpg") -> Path:
    """The image paired with ``xml_path``: same directory and stem."""
    return Path(xml_path).with_suffix(image_ext)


def _ensure_dir(path: Path, phase: str) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConversionIOError(f"cannot create directory: {exc}", path=path, phase=phase) from exc
    return path


# ============================================================================
# Phase 1: scan
# ============================================================================

def scan_source(
    source: Union[str, Path],
    namer: Callable[[str], str],
    *,
    image_ext: str = ".jpg",
    progress: Optional[ProgressFactory] = None,
) -> ScanResult:
    """Collect annotation files and register one category per subdirectory.

    Entries are visited in sorted order, so category ids and the file list do
    not depend on the filesystem's listing order. Every XML file must have its
    paired image, and no two images may flatten to the same output name;
    otherwise nothing is converted.
    """
    source = Path(source)
    try:
        entries = sorted(source.iterdir())
    except OSError as exc:
        raise ConversionIOError(f"cannot list source directory: {exc}", path=source, phase="scan") from exc

    registry = CategoryRegistry()
    files: List[Path] = []
    missing_images: List[Path] = []

    bar = _open_progress(progress, len(entries), "reading dir")
    try:
        for entry in entries:
            if not entry.is_dir():
                bar.update(1)
                continue
            try:
                registry.register(namer(entry.name))
            except NamingError as exc:
                exc.path = entry
                raise
            try:
                items = sorted(entry.iterdir())
            except OSError as exc:
                raise ConversionIOError(f"cannot list category directory: {exc}", path=entry, phase="scan") from exc
            for item in items:
                if item.suffix.lower() != ".xml" or not item.is_file():
                    continue
                if not image_path_for(item, image_ext).is_file():
                    missing_images.append(item)
                files.append(item)
            bar.update(1)
    finally:
        bar.close()

    if missing_images:
        for xml_path in missing_images:
            log.error("No %s image next to %s", image_ext, xml_path)
        raise ConversionIOError(
            f"{len(missing_images)} annotation file(s) have no paired {image_ext} image",
            path=missing_images[0],
            phase="scan",
        )

    # Category dirs sharing a stem ('a.x', 'a.y') flatten to the same output name.
    seen: Dict[str, Path] = {}
    collisions: List[Tuple[Path, Path]] = []
    for xml_path in files:
        name = flattened_name(image_path_for(xml_path, image_ext))
        if name in seen:
            collisions.append((seen[name], xml_path))
        else:
            seen[name] = xml_path
    if collisions:
        for first, second in collisions:
            log.error("%s and %s both flatten to %s", first, second,
                      flattened_name(image_path_for(second, image_ext)))
        raise ConversionIOError(
            f"{len(collisions)} annotation file(s) collide on their flattened image name",
            path=collisions[0][1],
            phase="scan",
        )

    registry.freeze()
    log.info("Found %d annotation files in %d categories", len(files), len(registry))
    return ScanResult(files=tuple(files), registry=registry)


# ============================================================================
# Phase 3a: annotation pipeline
# ============================================================================

def parse_files(
    files: Sequence[Path],
    namer: Callable[[str], str],
    *,
    workers: int = 1,
    progress: Optional[ProgressFactory] = None,
    desc: str = "parsing annotations",
) -> List[Annotation]:
    """Parse ``files`` on a thread pool; results keep input order."""
    annotations: List[Annotation] = []
    bar = _open_progress(progress, len(files), desc)
    try:
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            for annotation in pool.map(partial(parse_annotation_file, namer=namer), files):
                annotations.append(annotation)
                bar.update(1)
    finally:
        bar.close()
    return annotations


def generate_annotations(
    files: Sequence[Path],
    namer: Callable[[str], str],
    registry: CategoryRegistry,
    json_path: Union[str, Path],
    *,
    workers: int = 1,
    image_ext: str = ".jpg",
    info: Optional[Dict[str, Any]] = None,
    licenses: Optional[List[Dict[str, Any]]] = None,
    progress: Optional[ProgressFactory] = None,
    desc: str = "parsing annotations",
) -> Dict[str, Any]:
    """Parse ``files``, assemble one COCO document and write it to ``json_path``."""
    annotations = parse_files(files, namer, workers=workers, progress=progress, desc=desc)

    records = []
    for annotation, xml_path in zip(annotations, files):
        if annotation.object_name not in registry:
            raise UnknownCategoryError(annotation.object_name, path=xml_path)
        records.append((annotation, flattened_name(image_path_for(xml_path, image_ext))))

    document = build_coco_document(records, registry, info=info, licenses=licenses)
    try:
        write_coco_document(document, json_path)
    except OSError as exc:
        raise ConversionIOError(f"cannot write annotations: {exc}", path=json_path, phase="write") from exc
    return document


# ============================================================================
# Phase 3b: copy pipeline
# ============================================================================

def copy_images(
    files: Sequence[Path],
    target_dir: Union[str, Path],
    *,
    image_ext: str = ".jpg",
    progress: Optional[ProgressFactory] = None,
    desc: str = "copying images",
) -> List[Path]:
    """Copy the image paired with each XML file to ``target_dir/<flattened name>``."""
    target_dir = _ensure_dir(Path(target_dir), "copy")
    copied = []
    bar = _open_progress(progress, len(files), desc)
    try:
        for xml_path in files:
            src = image_path_for(xml_path, image_ext)
            dst = target_dir / flattened_name(src)
            try:
                shutil.copy2(src, dst)
            except OSError as exc:
                raise ConversionIOError(f"cannot copy image: {exc}", path=src, phase="copy") from exc
            copied.append(dst)
            bar.update(1)
    finally:
        bar.close()
    return copied


# ============================================================================
# Orchestration
# ============================================================================

def _run_annotation_pipeline(config: ConvertConfig, split: DatasetSplit, namer: Callable[[str], str],
                             registry: CategoryRegistry, progress: Optional[ProgressFactory]) -> None:
    for name, files in (("train", split.train), ("val", split.val)):
        generate_annotations(
            files, namer, registry, config.split_json_path(name),
            workers=config.n_workers,
            image_ext=config.image_ext,
            info=config.info,
            licenses=config.licenses,
            progress=progress,
            desc=f"parsing {name} annotations",
        )


def _run_copy_pipeline(config: ConvertConfig, split: DatasetSplit, progress: Optional[ProgressFactory]) -> None:
    for name, files in (("train", split.train), ("val", split.val)):
        copy_images(
            files, config.split_image_dir(name),
            image_ext=config.image_ext,
            progress=progress,
            desc=f"copying {name}",
        )


def build_split_manifest(split: DatasetSplit, image_ext: str = ".jpg") -> pd.DataFrame:
    """One row per converted file; ``image_id`` matches the COCO ids of its split."""
    rows = []
    for name, files in (("train", split.train), ("val", split.val)):
        for image_id, xml_path in enumerate(files, start=1):
            image_path = image_path_for(xml_path, image_ext)
            rows.append({
                "split": name,
                "image_id": image_id,
                "file_name": flattened_name(image_path),
                "source_dir": xml_path.parent.name,
                "xml_path": str(xml_path),
                "image_path": str(image_path),
            })
    return pd.DataFrame(rows, columns=MANIFEST_COLUMNS)


def convert(config: ConvertConfig, progress_factory: Optional[ProgressFactory] = make_progress) -> ConversionSummary:
    """Run a full conversion.

    Both pipelines must finish before this returns. The first pipeline
    failure is logged and re-raised once the other pipeline has stopped. The
    split manifest is only written after everything else succeeded, so its
    absence marks an incomplete target directory.
    """
    log.info("Converting %s -> %s (%s granularity, seed %d)",
             config.source_path, config.target_path, config.granularity.value, config.seed)

    namer = config.namer()
    scan = scan_source(config.source_path, namer, image_ext=config.image_ext, progress=progress_factory)

    split = split_dataset(scan.files, seed=config.seed, train_percent=config.train_percent)
    log.info("Shuffled %d items: %d train / %d val", len(split), len(split.train), len(split.val))

    _ensure_dir(config.annotations_dir, "setup")
    try:
        config.manifest_path.unlink(missing_ok=True)
    except OSError as exc:
        raise ConversionIOError(f"cannot remove stale manifest: {exc}", path=config.manifest_path,
                                phase="setup") from exc

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="xml2coco") as pool:
        futures = {
            pool.submit(_run_annotation_pipeline, config, split, namer, scan.registry, progress_factory): "annotation",
            pool.submit(_run_copy_pipeline, config, split, progress_factory): "copy",
        }
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        failed = next((f for f in done if f.exception() is not None), None)
        if failed is not None:
            log.error("%s pipeline failed: %s", futures[failed], failed.exception())

    # Executor is joined; the other pipeline has finished too.
    if failed is not None:
        for future, name in futures.items():
            if future is not failed and future.exception() is not None:
                log.error("%s pipeline also failed: %s", name, future.exception())
        raise failed.exception()

    manifest = build_split_manifest(split, config.image_ext)
    try:
        save_csv(manifest, config.manifest_path)
    except OSError as exc:
        raise ConversionIOError(f"cannot write manifest: {exc}", path=config.manifest_path, phase="write") from exc

    log.info("Finished: %d train, %d val images", len(split.train), len(split.val))
    return ConversionSummary(
        n_files=len(split),
        n_train=len(split.train),
        n_val=len(split.val),
        categories=list(scan.registry),
        train_json=config.split_json_path("train"),
        val_json=config.split_json_path("val"),
        manifest_path=config.manifest_path,
    )
