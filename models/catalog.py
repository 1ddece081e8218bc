from pydantic import BaseModel, ConfigDict
from typing import Optional


class Option(BaseModel):
    """An entry in one of the simple id/name pick lists (manufacturers, terms, ...)."""
    id: str
    name: str


class CatalogEntry(BaseModel):
    """
    A product a manufacturer can supply, with that manufacturer's price.

    family is the product family id for standard catalog products and None for
    the manufacturer's "other items" (samples, labels, one-off extras).
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sku: str = ""
    barcode: str = ""
    price: float
    family: Optional[str] = None


class PackageInstructionField(BaseModel):
    """A configured packaging question shown on the Remarks step."""
    id: str                         # key in WizardState.package_instructions.fields
    label: str
    component: str                  # machine key written to the purchase order
    placeholder: str = ""
