"""Unit tests for the individual pipeline stages."""

import base64
import io

import pytest
from PIL import Image

from deckflow.errors import MalformedResponseError
from deckflow.models import PipelineStage, SourceDocument
from deckflow.pipeline.stages import (
    ConversionCaps,
    build_snapshot,
    convert_document,
    encode_page,
    normalize_page,
)
from deckflow.pipeline.stages.extract import DATA_URL_PREFIX


class TestConvert:
    """Tests for rasterizing documents."""

    def test_pdf_pages_capped(self, pdf_bytes):
        document = SourceDocument.from_bytes("deck.pdf", pdf_bytes)
        pages = convert_document(document, ConversionCaps(max_pages=6))
        assert len(pages) == 6
        assert all(page.mode == "RGB" for page in pages)

    def test_pdf_pages_fit_max_dimension(self, pdf_bytes):
        document = SourceDocument.from_bytes("deck.pdf", pdf_bytes)
        pages = convert_document(document, ConversionCaps(max_pages=2, max_dimension=100))
        assert all(max(page.size) <= 100 for page in pages)

    def test_large_image_downscaled(self, large_png_bytes):
        document = SourceDocument.from_bytes("slide.png", large_png_bytes)
        pages = convert_document(document, ConversionCaps())
        assert len(pages) == 1
        assert pages[0].size == (1200, 600)

    def test_small_image_not_upscaled(self, png_bytes):
        document = SourceDocument.from_bytes("slide.png", png_bytes)
        assert convert_document(document, ConversionCaps())[0].size == (40, 30)

    def test_unsupported_type_yields_no_pages(self, make_document):
        assert convert_document(make_document("numbers.csv"), ConversionCaps()) == []

    def test_normalize_drops_alpha(self):
        page = normalize_page(Image.new("RGBA", (10, 10)), 1200)
        assert page.mode == "RGB"


class TestExtract:
    def test_encode_page_is_jpeg_data_url(self):
        url = encode_page(Image.new("RGB", (30, 20), (0, 128, 0)), 0.65)
        assert url.startswith(DATA_URL_PREFIX)

        decoded = Image.open(io.BytesIO(base64.b64decode(url[len(DATA_URL_PREFIX):])))
        assert decoded.format == "JPEG"
        assert decoded.size == (30, 20)


class TestBuildSnapshot:
    """Tests for the response validation boundary."""

    def test_normalizes_valid_response(self, valid_response):
        snapshot = build_snapshot(valid_response)

        assert snapshot.company_name == "Acme Robotics"
        assert snapshot.deal_quality.score == 82
        assert snapshot.tags.traction_tags == ("12 customers", "3 pilots")
        assert len(snapshot.key_strengths) == 5
        assert snapshot.tags.ask.amount == 2000000
        assert snapshot.paragraphs == ["Acme sells picking robots.", "They have 12 paying customers."]

    def test_minimal_response(self):
        snapshot = build_snapshot({
            "company_name": "Solo",
            "deal_quality": {"score_0_100": "40", "verdict": "Too early"},
        })
        assert snapshot.tagline == ""
        assert snapshot.tags.revenue is None
        assert snapshot.key_risks == ()

    def test_null_lists_treated_as_empty(self):
        snapshot = build_snapshot({
            "company_name": "Solo",
            "deal_quality": {"score_0_100": 10, "verdict": "No"},
            "key_strengths": None,
            "tags": {"traction_tags": None},
        })
        assert snapshot.key_strengths == ()
        assert snapshot.tags.traction_tags == ()

    def test_unknown_fields_ignored(self, valid_response):
        valid_response["match_score"] = 99
        assert build_snapshot(valid_response).company_name == "Acme Robotics"

    @pytest.mark.parametrize("missing", ["company_name", "deal_quality"])
    def test_missing_required_field(self, valid_response, missing):
        del valid_response[missing]
        with pytest.raises(MalformedResponseError) as exc_info:
            build_snapshot(valid_response)
        assert missing in exc_info.value.message
        assert exc_info.value.stage == PipelineStage.SCORE

    def test_blank_company_name(self, valid_response):
        valid_response["company_name"] = "   "
        with pytest.raises(MalformedResponseError):
            build_snapshot(valid_response)

    def test_score_out_of_range(self, valid_response):
        valid_response["deal_quality"]["score_0_100"] = 140
        with pytest.raises(MalformedResponseError, match="out of range"):
            build_snapshot(valid_response)

    def test_non_numeric_score(self, valid_response):
        valid_response["deal_quality"]["score_0_100"] = "high"
        with pytest.raises(MalformedResponseError):
            build_snapshot(valid_response)

    def test_not_an_object(self):
        with pytest.raises(MalformedResponseError):
            build_snapshot(["company_name", "Acme"])
