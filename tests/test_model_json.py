"""
Tests for the render-model JSON document (model_json.py).
"""

import hashlib
import json

from slidepress.core.render.model_json import build_document, dump_models, validate_document
from slidepress.core.resolve import resolve_presentation

from conftest import bg_pr, para, pic, run, slide_xml, solid, sp


def _models(builder, png):
    builder.add_media("image1.png", png)
    grad = (
        '<a:gradFill><a:gsLst><a:gs pos="0"><a:srgbClr val="000000"/></a:gs>'
        '<a:gs pos="100000"><a:srgbClr val="FFFFFF"><a:alpha val="50000"/></a:srgbClr></a:gs></a:gsLst></a:gradFill>'
    )
    builder.add_slide(
        slide_xml(
            sp(0, 0, 100, 100, fill=grad),
            sp(0, 0, 100, 40, paragraphs=[para(run("a", color="FF0000"), "<a:br/>", run("b")), para()], anchor="b"),
            pic(10, 10, 20, 20, "rId2", rot=30 * 60000),
            bg=bg_pr(solid("102030")),
        ),
        images={"rId2": "image1.png"},
    )
    return resolve_presentation(builder.build())


class TestDocument:
    def test_validates(self, builder, png):
        doc = build_document(_models(builder, png), "decks/Q3 Results.pptx")
        assert validate_document(doc) == []
        assert doc["document"]["document_id"] == "Q3_Results"
        assert doc["document"]["slide_count"] == 1

    def test_slide_content(self, builder, png):
        (slide,) = build_document(_models(builder, png))["slides"]
        assert slide["background"] == {"type": "solid", "color": {"rgb": "102030", "alpha": 1.0}}
        kinds = [p["kind"] for p in slide["draw_order"]]
        assert kinds == ["rect", "text", "image"]

        grad = slide["draw_order"][0]["fill"]
        assert grad["type"] == "gradient"
        assert grad["stops"][1]["color"]["alpha"] == 0.5

        text = slide["draw_order"][1]
        assert text["anchor"] == "bottom"
        items = text["paragraphs"][0]["items"]
        assert [i["type"] for i in items] == ["run", "break", "run"]
        assert items[0]["color"]["rgb"] == "FF0000"
        assert "color" not in items[2]
        assert text["paragraphs"][1]["items"] == []

    def test_media_referenced_by_digest(self, builder, png):
        (slide,) = build_document(_models(builder, png))["slides"]
        image = slide["draw_order"][2]
        assert image["media"] == {
            "name": "image1.png",
            "content_type": "image/png",
            "byte_size": len(png),
            "sha256": hashlib.sha256(png).hexdigest(),
        }
        assert image["rect"]["rotation"] == 30.0

    def test_schema_rejects_bad_document(self):
        errs = validate_document({"schema_version": "0.1", "document": {}, "slides": []})
        assert any(e.startswith("$['document']") for e in errs)
        assert any(e.startswith("$['slides']") for e in errs)


class TestDump:
    def test_writes_json(self, builder, png, tmp_path):
        out = tmp_path / "out" / "models.json"
        assert dump_models(_models(builder, png), out, "deck.pptx") == []
        doc = json.loads(out.read_text(encoding="utf-8"))
        assert doc["schema_version"] == "0.1"
        assert doc["document"]["document_id"] == "deck"
