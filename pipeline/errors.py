"""Custom exceptions for the purchase-order pipeline."""
from typing import Optional


class OrderFormError(Exception):
    """Base exception for all purchase-order pipeline errors."""

    pass


class ConfigurationError(OrderFormError):
    """Raised when a required setting (e.g. the submission endpoint) is missing."""

    def __init__(self, setting: str, hint: Optional[str] = None):
        self.setting = setting
        msg = f"{setting} is not configured"
        if hint:
            msg = f"{msg}. {hint}"
        super().__init__(msg)


class ReferenceNotFoundError(OrderFormError):
    """Raised when an id from the wizard cannot be found in the reference data."""

    def __init__(self, kind: str, ref_id: str):
        self.kind = kind
        self.ref_id = ref_id
        super().__init__(f"Unknown {kind}: '{ref_id}'")


class MissingProductError(ReferenceNotFoundError):
    """Raised when an ordered product is in neither the catalog nor the other items."""

    def __init__(self, product_id: str, manufacturer: Optional[str] = None):
        self.manufacturer = manufacturer
        super().__init__("product", product_id)
        if manufacturer:
            self.args = (f"Product {product_id} not found for manufacturer '{manufacturer}'",)
        else:
            self.args = (f"Product {product_id} not found",)

    @property
    def product_id(self) -> str:
        return self.ref_id


class DocumentValidationError(OrderFormError):
    """Raised when an assembled purchase order fails schema or arithmetic checks."""

    def __init__(self, issues: list):
        self.issues = issues
        errors = [i for i in issues if i.severity == "error"]
        shown = "; ".join(i.description for i in errors[:3])
        more = f" (+{len(errors) - 3} more)" if len(errors) > 3 else ""
        super().__init__(f"Purchase order failed validation: {shown}{more}")


class SubmissionError(OrderFormError):
    """Raised by callers that want a failed submission to be an exception."""

    def __init__(self, status_code: Optional[int], detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        if status_code is not None:
            msg = f"Submission endpoint returned HTTP {status_code}"
        else:
            msg = "Submission failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class WizardClosedError(OrderFormError):
    """Raised when a submitted wizard session is asked to change."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__("Order has already been submitted; start a new order to make changes")


class InvalidEmailError(OrderFormError):
    """Raised when the confirmation email address is missing or malformed."""

    def __init__(self, email: str):
        self.email = email
        if not email.strip():
            super().__init__("Email is required")
        else:
            super().__init__("Please enter a valid email address")


class FieldRowNotFoundError(OrderFormError):
    """Raised when a custom packaging row or extra field index is out of range."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"No field at position {index}")


class SubmissionInProgressError(OrderFormError):
    """Raised when an order is submitted again while its first submission is still in flight."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__("Order is already being submitted")
