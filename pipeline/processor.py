"""
Main pipeline orchestrator.

OrderProcessor ties together numbering, transformation, validation, the
download artifact and the outbound POST into a single submit() call:

  1. Validate the confirmation email
  2. next_po_number()      -- read existing POs, take max + 1
  3. OrderTransformer      -- wizard state -> PurchaseOrderDocument
  4. DocumentValidator     -- schema + arithmetic (inside the transformer)
  5. write PO_<n>.json     -- download artifact (if enabled)
  6. SubmissionGateway     -- single POST, status reported as-is

Steps 1-4 raise on failure, so nothing is written or sent for an order
that does not validate. A failed POST is returned, not raised; the caller
decides whether to let the user try again.
"""
import logging
import time
from datetime import date
from typing import Optional

from config import Config
from models.purchase_order import EMAIL_PATTERN, PurchaseOrderDocument
from models.result import OrderSubmission
from models.wizard import WizardState
from .errors import ConfigurationError, InvalidEmailError
from .numbering import next_po_number
from .reference_data import ReferenceData
from .submission import SubmissionGateway
from .transformer import OrderTransformer
from .validator import DocumentValidator

logger = logging.getLogger(__name__)


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not email or not EMAIL_PATTERN.match(email):
        raise InvalidEmailError(email)
    return email


class OrderProcessor:
    """
    Orchestrates the purchase-order pipeline for one configuration.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.reference = ReferenceData(self.config.data_dir)
        self.validator = DocumentValidator(self.config.arithmetic_tolerance)
        self.transformer = OrderTransformer(self.reference, self.validator)
        self.gateway = SubmissionGateway(self.config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_po_number(self) -> str:
        return next_po_number(self.reference.existing_purchase_orders())

    def build(
        self,
        state: WizardState,
        po_number: Optional[str] = None,
        today: Optional[date] = None,
    ) -> PurchaseOrderDocument:
        """Transform and validate without sending anything."""
        po_number = po_number or self.next_po_number()
        return self.transformer.transform(state, po_number, today=today)

    def submit(
        self,
        state: WizardState,
        email: Optional[str] = None,
        today: Optional[date] = None,
    ) -> OrderSubmission:
        """
        Build, export and send a purchase order for *state*.

        *email* overrides state.email. Raises InvalidEmailError,
        ReferenceNotFoundError / MissingProductError, DocumentValidationError
        or ConfigurationError before anything is sent.
        """
        start = time.monotonic()
        address = validate_email(email if email is not None else state.email)
        state = state.model_copy(update={"email": address})

        # Fail before numbering or writing anything if there is nowhere to send
        if not self.config.submission_url:
            raise ConfigurationError(
                "API_ENDPOINT_POST",
                "Set the submission endpoint before submitting orders.",
            )

        po_number = self.next_po_number()
        logger.info("=== Submitting order %s for %s ===", po_number, address)
        document = self.transformer.transform(state, po_number, today=today)

        download_path = None
        if self.config.download_enabled:
            download_path = str(self.gateway.write_download(document))

        result = self.gateway.submit(document)

        logger.info(
            "Order %s finished in %.2fs | lines=%d | grand_total=%.2f | status=%s",
            po_number,
            time.monotonic() - start,
            len(document.items),
            document.summary_totals.grand_total,
            result.status,
        )
        return OrderSubmission(
            po_number=po_number,
            document=document,
            download_path=download_path,
            submission=result,
        )

    def check_setup(self) -> dict:
        """Verify that reference data and the submission endpoint are ready."""
        return {
            "reference_data": self.reference.status(),
            "endpoint": {
                "ok": bool(self.config.submission_url),
                "url": self.config.submission_url,
            },
            "export_dir": {
                "path": str(self.config.export_dir),
                "exists": self.config.export_dir.exists(),
                "enabled": self.config.download_enabled,
            },
        }
