"""Tests for coco.py and io.py."""

import json
from pathlib import Path

import pandas as pd
import pytest

from xml2coco.coco import build_coco_document, flattened_name, write_coco_document
from xml2coco.errors import UnknownCategoryError
from xml2coco.io import save_csv, save_json
from xml2coco.parser import Annotation, BoundingBox, Size
from xml2coco.registry import CategoryRegistry


def _anno(name, box=(0, 0, 10, 20)):
    return Annotation(filename="f", size=Size(100, 50), object_name=name, bndbox=BoundingBox(*box))


@pytest.fixture
def registry():
    reg = CategoryRegistry()
    for name in ["cat1", "dog3", "bird2"]:
        reg.register(name)
    return reg.freeze()


class TestFlattenedName:
    def test_prefix_with_parent(self):
        assert flattened_name(Path("/data/src/dog3/b.jpg")) == "dog3_b.jpg"

    def test_parent_stem_drops_suffix(self):
        assert flattened_name("src/whale1.v2/a.jpg") == "whale1_a.jpg"

    def test_same_stem_different_dirs_differ(self):
        assert flattened_name("s/cat1/a.jpg") != flattened_name("s/dog3/a.jpg")


class TestBuildDocument:
    def test_structure(self, registry):
        doc = build_coco_document(
            [(_anno("dog3"), "dog3_b.jpg"), (_anno("cat1", (5, 5, 8, 9)), "cat1_a.jpg")],
            registry,
            info={"year": 2021, "version": "1.0"},
            licenses=[{"id": 1, "name": "GPL"}],
        )
        assert list(doc) == ["info", "images", "licenses", "type", "annotations", "categories"]
        assert doc["type"] == "instances"
        assert doc["licenses"] == [{"id": 1, "name": "GPL"}]
        assert [img["id"] for img in doc["images"]] == [1, 2]
        assert [a["image_id"] for a in doc["annotations"]] == [1, 2]
        assert [a["category_id"] for a in doc["annotations"]] == [2, 1]
        assert [img["file_name"] for img in doc["images"]] == ["dog3_b.jpg", "cat1_a.jpg"]
        assert doc["annotations"][1]["bbox"] == [5, 5, 3, 4]
        assert doc["images"][0]["date_captured"] == "2021"

    def test_categories_from_full_registry(self, registry):
        doc = build_coco_document([(_anno("cat1"), "cat1_a.jpg")], registry)
        assert [c["name"] for c in doc["categories"]] == ["cat1", "dog3", "bird2"]
        assert all(c["supercategory"] == c["name"] for c in doc["categories"])

    def test_empty_split(self, registry):
        doc = build_coco_document([], registry)
        assert doc["images"] == []
        assert doc["annotations"] == []
        assert len(doc["categories"]) == 3

    def test_unknown_category(self, registry):
        with pytest.raises(UnknownCategoryError):
            build_coco_document([(_anno("zebra"), "z.jpg")], registry)


class TestWriteDocument:
    def test_round_trip(self, tmp_path, registry):
        doc = build_coco_document([(_anno("bird2", (1, 2, 3, 4)), "bird2_x.jpg")], registry)
        path = write_coco_document(doc, tmp_path / "annotations" / "instances_train2017.json")
        assert json.loads(path.read_text()) == doc

    def test_overwrites_and_leaves_no_temp_files(self, tmp_path, registry):
        path = tmp_path / "out.json"
        path.write_text("stale")
        write_coco_document(build_coco_document([], registry), path)
        assert json.loads(path.read_text())["images"] == []
        assert [p.name for p in tmp_path.iterdir()] == ["out.json"]


class TestIOHelpers:
    def test_save_csv_creates_parents(self, tmp_path):
        out = tmp_path / "a" / "b.csv"
        save_csv(pd.DataFrame({"x": [1, 2]}), out)
        assert pd.read_csv(out)["x"].tolist() == [1, 2]

    def test_save_json_mode_matches_plain_write(self, tmp_path):
        reference = tmp_path / "plain.json"
        reference.write_text("{}")
        out = tmp_path / "atomic.json"
        save_json({"a": 1}, out)
        assert out.stat().st_mode & 0o777 == reference.stat().st_mode & 0o777

    def test_save_json_mode_matches_csv(self, tmp_path):
        save_json({"a": 1}, tmp_path / "doc.json")
        save_csv(pd.DataFrame({"x": [1]}), tmp_path / "doc.csv")
        json_mode = (tmp_path / "doc.json").stat().st_mode & 0o777
        assert json_mode == (tmp_path / "doc.csv").stat().st_mode & 0o777
