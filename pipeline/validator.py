"""
Purchase-order document validation.

Checks:
  Schema:       required fields, types, no unknown keys (PurchaseOrderDocument)
  Arithmetic:   line totals, subtotal, grand total, bottle count
  Data quality: missing PO number, negative amounts, non-positive quantities

Any error-severity issue aborts the submission before anything is sent.
"""
import logging
from typing import Any, Union

from pydantic import ValidationError

from models.purchase_order import PurchaseOrderDocument
from models.result import ValidationIssue
from .errors import DocumentValidationError

logger = logging.getLogger(__name__)

# Totals are not rounded; only float noise is tolerated
ARITHMETIC_TOLERANCE = 1e-6


class DocumentValidator:
    """
    Parses a purchase-order payload against the strict schema, then checks
    that its totals add up.

    Usage:
        validator = DocumentValidator()
        document = validator.validate(payload)   # raises DocumentValidationError
        issues = validator.check(document)       # non-raising
    """

    def __init__(self, arithmetic_tolerance: float = ARITHMETIC_TOLERANCE):
        self.tolerance = arithmetic_tolerance

    def validate(self, payload: Union[dict, PurchaseOrderDocument]) -> PurchaseOrderDocument:
        """Return a validated document or raise DocumentValidationError."""
        if isinstance(payload, PurchaseOrderDocument):
            document = payload
        else:
            try:
                document = PurchaseOrderDocument.model_validate(payload)
            except ValidationError as exc:
                issues = _schema_issues(exc)
                logger.error(
                    "Purchase order %s failed schema validation (%d issue(s))",
                    _po_number_of(payload), len(issues),
                )
                raise DocumentValidationError(issues) from exc

        issues = self.check(document)
        errors = [i for i in issues if i.severity == "error"]
        for issue in issues:
            if issue.severity != "error":
                logger.warning("PO %s: %s", document.po_number, issue.description)
        if errors:
            logger.error(
                "Purchase order %s failed validation (%d error(s))",
                document.po_number, len(errors),
            )
            raise DocumentValidationError(issues)
        return document

    def check(self, document: PurchaseOrderDocument) -> list[ValidationIssue]:
        """Run all non-schema checks and return combined issues list."""
        issues: list[ValidationIssue] = []
        issues.extend(self._check_data_quality(document))
        issues.extend(self._check_arithmetic(document))
        return issues

    # ------------------------------------------------------------------
    # Data quality checks
    # ------------------------------------------------------------------

    def _check_data_quality(self, doc: PurchaseOrderDocument) -> list[ValidationIssue]:
        issues = []

        if not doc.po_number.strip():
            issues.append(ValidationIssue(
                type="missing_po_number",
                severity="error",
                description="Purchase order has no PO number",
                field="po_number",
            ))

        for i, item in enumerate(doc.items):
            if item.quantity <= 0:
                issues.append(ValidationIssue(
                    type="non_positive_quantity",
                    severity="error",
                    description=f"Line {i + 1} ({item.item_number}) has quantity {item.quantity}",
                    field=f"items[{i}].quantity",
                    document_value=str(item.quantity),
                    expected_value="> 0",
                ))
            if item.unit_price < 0:
                issues.append(ValidationIssue(
                    type="negative_amount",
                    severity="error",
                    description=f"Line {i + 1} ({item.item_number}) has a negative unit price: {item.unit_price:.2f}",
                    field=f"items[{i}].unit_price",
                    document_value=f"{item.unit_price:.2f}",
                ))

        totals = doc.summary_totals
        for name in ("shipping", "other_fees", "deposit"):
            value = getattr(totals, name)
            if value < 0:
                issues.append(ValidationIssue(
                    type="negative_amount",
                    severity="error",
                    description=f"{name.replace('_', ' ').capitalize()} is negative: {value:.2f}",
                    field=f"summary_totals.{name}",
                    document_value=f"{value:.2f}",
                ))

        return issues

    # ------------------------------------------------------------------
    # Arithmetic checks
    # ------------------------------------------------------------------

    def _check_arithmetic(self, doc: PurchaseOrderDocument) -> list[ValidationIssue]:
        issues = []
        tol = self.tolerance

        for i, item in enumerate(doc.items):
            expected = item.quantity * item.unit_price
            if abs(expected - item.total) > tol:
                issues.append(ValidationIssue(
                    type="line_total_mismatch",
                    severity="error",
                    description=(
                        f"Line {i + 1} total ({item.total:.2f}) does not match "
                        f"quantity × unit price ({expected:.2f})"
                    ),
                    field=f"items[{i}].total",
                    document_value=f"{item.total:.2f}",
                    expected_value=f"{expected:.2f}",
                ))

        totals = doc.summary_totals

        computed_subtotal = sum(item.total for item in doc.items)
        if abs(computed_subtotal - totals.subtotal) > tol:
            issues.append(ValidationIssue(
                type="subtotal_mismatch",
                severity="error",
                description=(
                    f"Sum of line items ({computed_subtotal:.2f}) does not match "
                    f"stated subtotal ({totals.subtotal:.2f})"
                ),
                field="summary_totals.subtotal",
                document_value=f"{totals.subtotal:.2f}",
                expected_value=f"{computed_subtotal:.2f}",
            ))

        components = totals.subtotal + totals.shipping + totals.other_fees
        if abs(components - totals.grand_total) > tol:
            issues.append(ValidationIssue(
                type="grand_total_mismatch",
                severity="error",
                description=(
                    f"Grand total ({totals.grand_total:.2f}) does not match "
                    f"subtotal + shipping + other fees ({components:.2f})"
                ),
                field="summary_totals.grand_total",
                document_value=f"{totals.grand_total:.2f}",
                expected_value=f"{components:.2f}",
            ))

        bottles = sum(item.quantity for item in doc.items)
        if bottles != totals.total_bottles:
            issues.append(ValidationIssue(
                type="bottle_count_mismatch",
                severity="error",
                description=(
                    f"Total bottles ({totals.total_bottles}) does not match "
                    f"sum of line quantities ({bottles})"
                ),
                field="summary_totals.total_bottles",
                document_value=str(totals.total_bottles),
                expected_value=str(bottles),
            ))

        return issues


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _schema_issues(exc: ValidationError) -> list[ValidationIssue]:
    issues = []
    for err in exc.errors():
        path = _dotted(err.get("loc", ()))
        issues.append(ValidationIssue(
            type="schema_violation",
            severity="error",
            description=f"{path or 'document'}: {err.get('msg', 'invalid value')}",
            field=path or None,
            document_value=_short(err.get("input")),
        ))
    return issues


def _dotted(loc: tuple) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _short(value: Any, limit: int = 80) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _po_number_of(payload: Any) -> str:
    if isinstance(payload, dict):
        return str(payload.get("po_number") or "(no number)")
    return "(no number)"
