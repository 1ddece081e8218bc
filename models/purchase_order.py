import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Loose address check, same rule the confirmation dialog applies
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SCHEMA_VERSION = "1.0"


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class CompanyInfo(_Strict):
    """The ordering company, printed in the PO header."""
    name: str
    address_line1: str
    address_line2: str
    phone: str


class ContactInfo(_Strict):
    """A manufacturer or ship-to contact block."""
    name: str
    title: str = ""
    company_name: str
    address_line1: str
    address_line2: str
    tel: str
    email: str = ""

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        if value and not EMAIL_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid email address")
        return value


class GeneralPOInfo(_Strict):
    product_name: str
    shipped_via: str
    est_delivery_date: str          # YYYY-MM-DD
    payment_terms: str


class POLineItem(_Strict):
    """A single line item on a Purchase Order."""
    item_number: str                # SKU
    quantity: int
    description: str
    barcode: str = ""
    unit_price: float
    total: float                    # quantity * unit_price


class SummaryTotals(_Strict):
    total_bottles: int
    subtotal: float
    shipping: float = 0
    other_fees: float = 0
    grand_total: float              # subtotal + shipping + other_fees
    deposit: float = 0


class PackagingInstruction(_Strict):
    component: str                  # e.g. "bottle", "bottle_top", "neck_label"
    instructions: str


class AnnexItem(_Strict):
    """A custom label/value pair attached to the order for information only."""
    title: str
    type: str = "document"
    content: str


class AuthDetails(_Strict):
    date_of_signature: str          # YYYY-MM-DD
    authority: str


class PurchaseOrderDocument(_Strict):
    """
    The canonical purchase order sent to the external endpoint.

    Field names are the wire format: the document is serialised as-is, so
    renaming a field here changes what the receiving system sees.
    Unknown keys are rejected at every level.
    """
    po_number: str
    po_date: str                    # YYYY-MM-DD
    company: CompanyInfo
    to_manufacturer: ContactInfo
    ship_to: ContactInfo
    general_po_info: GeneralPOInfo
    items: List[POLineItem]
    remarks: str = ""
    summary_totals: SummaryTotals
    packaging_instructions: List[PackagingInstruction]
    auth_details: AuthDetails
    annex_items: List[AnnexItem] = Field(default_factory=list)
