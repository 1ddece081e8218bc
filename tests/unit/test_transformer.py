"""
Unit tests for wizard state -> purchase order transformation.
"""
import json
from datetime import date

import pytest

from models.wizard import LabelValue, PackageInstructions
from pipeline.errors import DocumentValidationError, MissingProductError, ReferenceNotFoundError
from pipeline.transformer import OrderTransformer, component_key

TODAY = date(2024, 6, 1)


@pytest.fixture
def transformer(reference):
    return OrderTransformer(reference)


@pytest.mark.unit
class TestTransform:
    """Tests for OrderTransformer.transform()."""

    def test_single_product_order(self, transformer, sample_state):
        """Test two Gin 700ml at 10.00 from acme."""
        document = transformer.transform(sample_state, "1004", today=TODAY)

        assert document.po_number == "1004"
        assert document.po_date == "2024-06-01"
        assert len(document.items) == 1
        item = document.items[0]
        assert item.item_number == "SP-GIN-700"
        assert item.description == "Gin 700ml"
        assert item.barcode == "9300000000011"
        assert item.quantity == 2
        assert item.unit_price == 10.0
        assert item.total == 20.0

        totals = document.summary_totals
        assert totals.subtotal == 20.0
        assert totals.grand_total == 20.0
        assert totals.total_bottles == 2
        assert totals.shipping == totals.other_fees == totals.deposit == 0.0

    def test_references_resolved_to_display_values(self, transformer, sample_state):
        document = transformer.transform(sample_state, "1004", today=TODAY)

        assert document.company.name == "Harbour Beverage Group"
        assert document.to_manufacturer.name == "Casey Lee"
        assert document.ship_to.address_line1 == "200 Dock Road"
        assert document.ship_to.title == ""
        info = document.general_po_info
        assert info.product_name == "Spirits"
        assert info.shipped_via == "Ground Freight"
        assert info.payment_terms == "Net 30"
        assert info.est_delivery_date == "2024-07-01"
        assert document.auth_details.authority == "Jordan Doe"
        assert document.auth_details.date_of_signature == "2024-06-01"

    def test_line_totals_and_subtotal(self, transformer, sample_state):
        """Test that line totals are quantity x unit price and sum to the subtotal."""
        state = sample_state.model_copy(update={
            "product_families": ["spirits", "wine"],
            "products": {"p1": 3, "p2": 1, "w1": 4, "x1": 2},
        })
        document = transformer.transform(state, "9", today=TODAY)

        for item in document.items:
            assert item.total == item.quantity * item.unit_price
        assert document.summary_totals.subtotal == sum(i.total for i in document.items)
        assert document.summary_totals.subtotal == 30.0 + 12.5 + 35.0 + 10.0
        assert document.summary_totals.total_bottles == 10
        assert document.general_po_info.product_name == "Spirits, Wine"

    def test_sub_cent_price_is_not_rounded(self, transformer, sample_state, reference_dir):
        """Test that a price with more than two decimals keeps total == quantity x unit price."""
        (reference_dir / "manufacturer_products.json").write_text(json.dumps({
            "acme": {"spirits": [{"id": "p1", "price": 0.335}]},
        }))
        state = sample_state.model_copy(update={"products": {"p1": 3}})

        document = transformer.transform(state, "9", today=TODAY)

        item = document.items[0]
        assert item.unit_price == 0.335
        assert item.total == item.quantity * item.unit_price
        assert item.total != 1.01
        assert document.summary_totals.subtotal == item.total
        assert document.summary_totals.grand_total == item.total

    def test_items_follow_selection_order(self, transformer, sample_state):
        state = sample_state.model_copy(update={"products": {"x1": 1, "p2": 2, "p1": 1}})
        document = transformer.transform(state, "9", today=TODAY)
        assert [i.item_number for i in document.items] == ["AC-SMP-01", "SP-VOD-700", "SP-GIN-700"]

    def test_zero_quantities_are_not_ordered(self, transformer, sample_state):
        state = sample_state.model_copy(update={"products": {"p1": 2, "p2": 0}})
        document = transformer.transform(state, "9", today=TODAY)
        assert [i.item_number for i in document.items] == ["SP-GIN-700"]

    def test_empty_selection(self, transformer, sample_state):
        """Test that no products gives an empty, zero-total order."""
        state = sample_state.model_copy(update={"products": {}})
        document = transformer.transform(state, "9", today=TODAY)

        assert document.items == []
        assert document.summary_totals.subtotal == 0
        assert document.summary_totals.grand_total == 0
        assert document.summary_totals.total_bottles == 0

    def test_idempotent(self, transformer, sample_state):
        """Test that the same inputs give equal documents."""
        first = transformer.transform(sample_state, "1004", today=TODAY)
        second = transformer.transform(sample_state, "1004", today=TODAY)
        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_delivery_date_defaults_to_today(self, transformer, sample_state):
        state = sample_state.model_copy(update={"estimated_delivery": None})
        document = transformer.transform(state, "9", today=TODAY)
        assert document.general_po_info.est_delivery_date == "2024-06-01"

    def test_blank_terms_allowed(self, transformer, sample_state):
        state = sample_state.model_copy(update={"terms": ""})
        assert transformer.transform(state, "9", today=TODAY).general_po_info.payment_terms == ""

    def test_remarks_copied(self, transformer, sample_state):
        state = sample_state.model_copy(update={"remarks": "Deliver before noon"})
        assert transformer.transform(state, "9", today=TODAY).remarks == "Deliver before noon"


@pytest.mark.unit
class TestPackagingAndAnnex:
    """Tests for packaging instructions and annex items."""

    def test_configured_fields_in_definition_order(self, transformer, sample_state):
        state = sample_state.model_copy(update={
            "package_instructions": PackageInstructions(
                fields={"bottleTop": "Black screw cap", "bottle": "Flint glass"},
            ),
        })
        document = transformer.transform(state, "9", today=TODAY)

        assert [(p.component, p.instructions) for p in document.packaging_instructions] == [
            ("bottle", "Flint glass"),
            ("bottle_top", "Black screw cap"),
        ]

    def test_blank_and_unconfigured_fields_skipped(self, transformer, sample_state, caplog):
        state = sample_state.model_copy(update={
            "package_instructions": PackageInstructions(
                fields={"bottle": "  ", "capsule": "Gold foil"},
            ),
        })
        with caplog.at_level("WARNING"):
            document = transformer.transform(state, "9", today=TODAY)

        assert document.packaging_instructions == []
        assert "capsule" in caplog.text

    def test_custom_rows_keyed_by_label(self, transformer, sample_state):
        state = sample_state.model_copy(update={
            "package_instructions": PackageInstructions(
                fields={"bottle": "Flint glass"},
                custom_fields=[
                    LabelValue(label="Neck Label", value="Gold"),
                    LabelValue(label="", value=""),
                ],
            ),
        })
        document = transformer.transform(state, "9", today=TODAY)

        assert [(p.component, p.instructions) for p in document.packaging_instructions] == [
            ("bottle", "Flint glass"),
            ("neck_label", "Gold"),
        ]

    def test_extra_fields_become_annex_items(self, transformer, sample_state):
        state = sample_state.model_copy(update={
            "extra_fields": [
                LabelValue(label="Project", value="Winter range"),
                LabelValue(label=" ", value=""),
            ],
        })
        document = transformer.transform(state, "9", today=TODAY)

        assert [a.model_dump() for a in document.annex_items] == [
            {"title": "Project", "type": "custom_field", "content": "Winter range"},
        ]

    def test_component_key(self):
        assert component_key("Neck Label") == "neck_label"
        assert component_key("Outer  Carton Print") == "outer_carton_print"


@pytest.mark.unit
class TestTransformFailures:
    """Tests for ids that do not resolve."""

    def test_unknown_product_raises(self, transformer, sample_state):
        state = sample_state.model_copy(update={"products": {"p1": 1, "zz": 1}})
        with pytest.raises(MissingProductError) as exc_info:
            transformer.transform(state, "9", today=TODAY)
        assert exc_info.value.product_id == "zz"

    def test_unpriced_product_raises(self, transformer, sample_state):
        """Test that a product without a positive price cannot be ordered."""
        state = sample_state.model_copy(update={"products": {"p3": 1}})
        with pytest.raises(MissingProductError):
            transformer.transform(state, "9", today=TODAY)

    def test_unknown_ship_to_raises(self, transformer, sample_state):
        state = sample_state.model_copy(update={"ship_to": "store-99"})
        with pytest.raises(ReferenceNotFoundError, match="ship-to contact"):
            transformer.transform(state, "9", today=TODAY)

    def test_unknown_family_raises(self, transformer, sample_state):
        state = sample_state.model_copy(update={"product_families": ["spirits", "beer"]})
        with pytest.raises(ReferenceNotFoundError, match="product family"):
            transformer.transform(state, "9", today=TODAY)

    def test_missing_company_info_fails_validation(self, transformer, sample_state, reference_dir):
        """Test that an order without the company block never validates."""
        (reference_dir / "company_info.json").unlink()
        with pytest.raises(DocumentValidationError) as exc_info:
            transformer.transform(sample_state, "9", today=TODAY)
        assert any(i.field and i.field.startswith("company") for i in exc_info.value.issues)
