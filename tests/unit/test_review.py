"""
Unit tests for the order summary and the confirmation review.
"""
import json

import pytest

from models.wizard import LabelValue, PackageInstructions, WizardState
from pipeline.review import ReviewRenderer, summarize_order


@pytest.mark.unit
class TestSummarizeOrder:
    """Tests for summarize_order()."""

    def test_totals(self, reference, sample_state):
        state = sample_state.model_copy(update={"products": {"p1": 2, "p2": 1, "x1": 3}})
        summary = summarize_order(state, reference)

        assert [line.product_id for line in summary.lines] == ["p1", "p2", "x1"]
        assert summary.lines[2].other_item is True
        assert summary.standard_products_count == 3
        assert summary.total_items == 6
        assert summary.total_amount == 20.0 + 12.5 + 15.0
        assert summary.unknown_products == []

    def test_sub_cent_price_is_not_rounded(self, reference, reference_dir, sample_state):
        (reference_dir / "manufacturer_products.json").write_text(json.dumps({
            "acme": {"spirits": [{"id": "p1", "price": 0.335}]},
        }))
        summary = summarize_order(sample_state.model_copy(update={"products": {"p1": 3}}), reference)

        assert summary.lines[0].total == 3 * 0.335
        assert summary.total_amount == 3 * 0.335

    def test_unknown_products_listed_not_raised(self, reference, sample_state):
        state = sample_state.model_copy(update={"products": {"p1": 1, "zz": 4}})
        summary = summarize_order(state, reference)

        assert summary.unknown_products == ["zz"]
        assert summary.total_items == 1

    def test_no_manufacturer_yet(self, reference):
        summary = summarize_order(WizardState(products={"p1": 1}), reference)
        assert summary.lines == []
        assert summary.unknown_products == ["p1"]
        assert summary.total_amount == 0.0


@pytest.mark.unit
class TestReviewRenderer:
    """Tests for the plain-text confirmation review."""

    @pytest.fixture
    def renderer(self, test_config, reference):
        return ReviewRenderer(test_config, reference)

    def test_review_lists_selections(self, renderer, sample_state):
        text = renderer.render(sample_state)

        assert text.startswith("ORDER REVIEW")
        assert "Acme Distilling Co." in text
        assert "Ground Freight" in text
        assert "2024-07-01" in text
        assert "Gin 700ml" in text
        assert "2 x $10.00 = $20.00" in text
        totals = [line.split(":", 1)[1].strip() for line in text.splitlines()
                  if line.strip().startswith("Total:")]
        assert totals == ["$20.00"]

    def test_review_with_po_number(self, renderer, sample_state):
        assert renderer.render(sample_state, po_number="1004").startswith("PURCHASE ORDER #1004")

    def test_review_shows_packaging_and_extra_fields(self, renderer, sample_state):
        state = sample_state.model_copy(update={
            "package_instructions": PackageInstructions(
                fields={"bottle": "Flint glass"},
                custom_fields=[LabelValue(label="Neck Label", value="Gold")],
            ),
            "extra_fields": [LabelValue(label="Project", value="Winter range")],
        })
        text = renderer.render(state)

        assert "Bottle: Flint glass" in text
        assert "Bottle Top: None" in text
        assert "Neck Label: Gold" in text
        assert "Additional Fields" in text
        assert "Project: Winter range" in text

    def test_unknown_ids_shown_raw(self, renderer):
        text = renderer.render(WizardState(manufacturer="ghost", shipped_via="teleport"))
        assert "ghost" in text
        assert "teleport" in text
        assert "No products selected" in text

    def test_template_override_from_config_dir(self, test_config, reference, temp_dir):
        override_dir = temp_dir / "config"
        override_dir.mkdir(parents=True, exist_ok=True)
        (override_dir / "order_review.txt.j2").write_text("Custom review for {{ names.manufacturer }}")

        text = ReviewRenderer(test_config, reference).render(WizardState(manufacturer="acme"))
        assert text == "Custom review for Acme Distilling Co."

    def test_missing_template(self, test_config, reference):
        test_config.review_template = "nope.j2"
        with pytest.raises(ValueError, match="nope.j2"):
            ReviewRenderer(test_config, reference).render(WizardState())
