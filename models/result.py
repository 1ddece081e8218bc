from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from .purchase_order import PurchaseOrderDocument


IssueType = Literal[
    # Schema
    "schema_violation",
    # Arithmetic / totals
    "line_total_mismatch",
    "subtotal_mismatch",
    "grand_total_mismatch",
    "bottle_count_mismatch",
    # Data quality
    "missing_po_number",
    "negative_amount",
    "non_positive_quantity",
]

SeverityLevel = Literal["error", "warning", "info"]


class ValidationIssue(BaseModel):
    """A single problem found while validating an assembled purchase order."""
    type: str                               # One of IssueType values
    severity: SeverityLevel                 # error / warning / info
    description: str                        # Human-readable explanation
    field: Optional[str] = None             # Dotted path of the affected field
    document_value: Optional[str] = None    # What the document shows
    expected_value: Optional[str] = None    # What was expected


class SubmissionResult(BaseModel):
    """Outcome of the single POST to the submission endpoint."""
    status: Literal["success", "failed"]
    status_code: Optional[int] = None
    response_body: Optional[str] = None     # Raw upstream text, truncated for audit
    error: Optional[str] = None
    endpoint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> None:
        """Raise SubmissionError if the submission did not succeed."""
        if not self.ok:
            from pipeline.errors import SubmissionError
            raise SubmissionError(self.status_code, self.error or self.response_body)


class OrderSubmission(BaseModel):
    """Everything produced by one submission attempt."""
    po_number: str
    document: PurchaseOrderDocument
    download_path: Optional[str] = None
    submission: SubmissionResult


class SummaryLine(BaseModel):
    product_id: str
    name: str
    sku: str = ""
    quantity: int
    unit_price: float
    total: float
    other_item: bool = False


class OrderSummary(BaseModel):
    """Running totals shown on the Order Details and Confirmation steps."""
    lines: List[SummaryLine] = Field(default_factory=list)
    standard_products_count: int = 0        # units from the family catalog only
    total_items: int = 0                    # all units, other items included
    total_amount: float = 0.0
    unknown_products: List[str] = Field(default_factory=list)
