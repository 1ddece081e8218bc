from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LabelValue(BaseModel):
    """A free-form label/value pair entered by the user."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    label: str = ""
    value: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.label.strip() and not self.value.strip()


class PackageInstructions(BaseModel):
    """
    Packaging answers from the Remarks step.

    fields holds the answers for the configured instruction fields, keyed by
    the field id from package_instructions.json (e.g. "bottle", "bottleTop").
    custom_fields holds extra label/value rows the user added by hand.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    fields: Dict[str, str] = Field(default_factory=dict)
    custom_fields: List[LabelValue] = Field(default_factory=list)


class WizardState(BaseModel):
    """
    Everything the user has entered across the six wizard steps.

    Instances are frozen: each update produces a new state, so step handlers
    only ever see snapshots.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Step 1: Manufacturing
    manufacturer: str = ""
    ship_to: str = ""
    authorized_by: str = ""

    # Step 2: Product and Conditions
    product_families: List[str] = Field(default_factory=list)
    shipped_via: str = ""
    estimated_delivery: Optional[date] = None
    terms: str = ""

    # Step 3: Order Details (product id -> quantity; 0/absent = not ordered)
    products: Dict[str, int] = Field(default_factory=dict)

    # Step 4: Remarks
    remarks: str = ""
    package_instructions: PackageInstructions = Field(default_factory=PackageInstructions)

    # Step 5: Extra Fields
    extra_fields: List[LabelValue] = Field(default_factory=list)

    # Confirmation
    email: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_single_family(cls, data):
        # Older clients send a single "product_family" string
        if isinstance(data, dict) and "product_family" in data:
            data = dict(data)
            family = data.pop("product_family")
            if family and not data.get("product_families"):
                data["product_families"] = [family]
        return data

    @field_validator("products")
    @classmethod
    def _no_negative_quantities(cls, products: Dict[str, int]) -> Dict[str, int]:
        for product_id, quantity in products.items():
            if quantity < 0:
                raise ValueError(f"Quantity for product '{product_id}' cannot be negative")
        return products

    @field_validator("product_families")
    @classmethod
    def _dedupe_families(cls, families: List[str]) -> List[str]:
        return list(dict.fromkeys(f for f in families if f))

    @property
    def ordered_products(self) -> Dict[str, int]:
        """Products with a positive quantity, in the order they were added."""
        return {pid: qty for pid, qty in self.products.items() if qty > 0}
