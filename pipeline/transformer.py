"""
Wizard state -> purchase order transformation.

OrderTransformer.transform() resolves every id in the wizard state against
the reference data, builds the line items and totals, and hands the
assembled payload to DocumentValidator. It either returns a validated
PurchaseOrderDocument or raises; it never returns a partial document.

The only inputs are the state, the PO number, the reference data and
"today", so calling it twice with the same arguments gives equal documents.
"""
import logging
import re
from datetime import date
from typing import Optional

from models.purchase_order import PurchaseOrderDocument
from models.wizard import LabelValue, PackageInstructions, WizardState
from .reference_data import ReferenceData
from .validator import DocumentValidator

logger = logging.getLogger(__name__)

ANNEX_ITEM_TYPE = "custom_field"

_WHITESPACE = re.compile(r"\s+")


def component_key(label: str) -> str:
    """Machine key for a custom packaging label ("Neck Label" -> "neck_label")."""
    return _WHITESPACE.sub("_", label.lower())


class OrderTransformer:
    """
    Builds PurchaseOrderDocument instances from completed wizard state.

    Usage:
        transformer = OrderTransformer(ReferenceData(config.data_dir))
        document = transformer.transform(state, po_number="1042")
    """

    def __init__(
        self,
        reference: ReferenceData,
        validator: Optional[DocumentValidator] = None,
    ):
        self.reference = reference
        self.validator = validator or DocumentValidator()

    def transform(
        self,
        state: WizardState,
        po_number: str,
        today: Optional[date] = None,
    ) -> PurchaseOrderDocument:
        """
        Map *state* to a validated purchase order numbered *po_number*.

        Raises:
            ReferenceNotFoundError: manufacturer, ship-to, authorizer, family,
                shipping method or terms id is not in the reference data.
            MissingProductError: an ordered product is in neither the
                manufacturer's catalog nor its other items.
            DocumentValidationError: the assembled payload fails validation.
        """
        today = today or date.today()
        current_date = today.isoformat()
        ref = self.reference

        # Resolve contacts and named options up front
        company = ref.company_info()
        to_manufacturer = ref.manufacturer_contact(state.manufacturer)
        ship_to = ref.ship_to_contact(state.ship_to)
        authority = ref.option_name("authorized_by", state.authorized_by, "authorizer")
        shipped_via = ref.option_name("shipping_methods", state.shipped_via, "shipping method")
        payment_terms = ref.option_name("terms", state.terms, "terms")
        family_names = [
            ref.option_name("product_families", family, "product family")
            for family in state.product_families
        ]

        items = self._build_items(state)
        subtotal = sum(item["total"] for item in items)
        total_bottles = sum(item["quantity"] for item in items)
        shipping = 0.0
        other_fees = 0.0

        payload = {
            "po_number": po_number,
            "po_date": current_date,
            "company": company,
            "to_manufacturer": to_manufacturer,
            "ship_to": ship_to,
            "general_po_info": {
                "product_name": ", ".join(family_names),
                "shipped_via": shipped_via,
                "est_delivery_date": (
                    state.estimated_delivery.isoformat()
                    if state.estimated_delivery else current_date
                ),
                "payment_terms": payment_terms,
            },
            "items": items,
            "remarks": state.remarks or "",
            "summary_totals": {
                "total_bottles": total_bottles,
                "subtotal": subtotal,
                "shipping": shipping,
                "other_fees": other_fees,
                "grand_total": subtotal + shipping + other_fees,
                "deposit": 0.0,
            },
            "packaging_instructions": self._build_packaging(state.package_instructions),
            "auth_details": {
                "date_of_signature": current_date,
                "authority": authority,
            },
            "annex_items": [_annex_item(f) for f in state.extra_fields if not f.is_blank],
        }

        document = self.validator.validate(payload)
        logger.info(
            "Built PO %s: %d line(s), %d bottle(s), grand total %.2f",
            po_number, len(items), total_bottles, document.summary_totals.grand_total,
        )
        return document

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_items(self, state: WizardState) -> list[dict]:
        items = []
        for product_id, quantity in state.ordered_products.items():
            product = self.reference.find_product(
                state.manufacturer, state.product_families, product_id
            )
            items.append({
                "item_number": product.sku,
                "quantity": quantity,
                "description": product.name,
                "barcode": product.barcode,
                "unit_price": product.price,
                "total": quantity * product.price,
            })
        return items

    def _build_packaging(self, instructions: PackageInstructions) -> list[dict]:
        packaging = []
        known_ids = set()
        for definition in self.reference.package_instruction_fields():
            known_ids.add(definition.id)
            value = instructions.fields.get(definition.id, "")
            if value.strip():
                packaging.append({"component": definition.component, "instructions": value})

        unknown = [k for k, v in instructions.fields.items() if k not in known_ids and v.strip()]
        if unknown:
            logger.warning("Ignoring unconfigured package instruction field(s): %s", unknown)

        for custom in instructions.custom_fields:
            if custom.is_blank:
                continue
            packaging.append({
                "component": component_key(custom.label),
                "instructions": custom.value,
            })
        return packaging


def _annex_item(extra: LabelValue) -> dict:
    return {"title": extra.label, "type": ANNEX_ITEM_TYPE, "content": extra.value}
