"""
Purchase-order submission gateway.

Sends the validated purchase order as JSON to the configured endpoint in a
single POST and reports whatever status comes back. There is no retry: a
failed attempt is returned to the caller, who may submit again.

Also writes the PO_<number>.json download artifact, a copy of exactly what
was (or is about to be) sent.
"""
import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Optional

from models.purchase_order import SCHEMA_VERSION, PurchaseOrderDocument
from models.result import SubmissionResult
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

USER_AGENT = "PO-Wizard-Submission/1.0"


def serialize_document(document: PurchaseOrderDocument, pretty: bool = False) -> str:
    """The exact JSON text sent to the endpoint and written to the download file."""
    data = document.model_dump(mode="json")
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def download_filename(po_number: str) -> str:
    return f"PO_{po_number}.json"


class SubmissionGateway:
    """
    Posts purchase orders to config.submission_url.
    """

    def __init__(self, config: Any) -> None:
        self.config = config

    def submit(self, document: PurchaseOrderDocument) -> SubmissionResult:
        """
        POST *document* to the submission endpoint.

        Returns a SubmissionResult describing the outcome (success only for
        2xx). Raises ConfigurationError if no endpoint is configured.
        """
        url = self.config.submission_url
        if not url:
            raise ConfigurationError(
                "API_ENDPOINT_POST",
                "Set the submission endpoint before submitting orders.",
            )

        payload = serialize_document(document).encode("utf-8")
        req = urllib.request.Request(url, data=payload, method="POST")

        # Add default headers
        req.add_header("Content-Type", "application/json")
        req.add_header("User-Agent", USER_AGENT)
        req.add_header("X-PO-Schema-Version", SCHEMA_VERSION)

        # Add custom headers from config
        if self.config.submission_headers_json:
            try:
                custom_headers = json.loads(self.config.submission_headers_json)
                for k, v in custom_headers.items():
                    if k.lower() == "content-type":
                        continue
                    req.add_header(k, str(v))
            except Exception as e:
                logger.warning("Failed to parse SUBMISSION_HEADERS: %s", e)

        po_number = document.po_number
        try:
            with urllib.request.urlopen(req, timeout=self.config.submission_timeout_seconds) as response:
                status_code = response.getcode()
                resp_body = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            resp_body = e.read().decode("utf-8", errors="replace") if e.fp else str(e)
            logger.error("Submission failed for PO %s: HTTP %d - %s", po_number, e.code, resp_body[:200])
            return SubmissionResult(
                status="failed",
                status_code=e.code,
                response_body=resp_body[:500],
                error=f"HTTP {e.code}",
                endpoint=url,
            )
        except Exception as e:
            logger.error("Submission error for PO %s: %s", po_number, e)
            return SubmissionResult(status="failed", error=str(e), endpoint=url)

        if not 200 <= status_code < 300:
            logger.error("Submission failed for PO %s: HTTP %d", po_number, status_code)
            return SubmissionResult(
                status="failed",
                status_code=status_code,
                response_body=resp_body[:500],
                error=f"HTTP {status_code}",
                endpoint=url,
            )

        logger.info("Submitted PO %s: HTTP %d", po_number, status_code)
        return SubmissionResult(
            status="success",
            status_code=status_code,
            response_body=resp_body[:500],
            endpoint=url,
        )

    def write_download(
        self,
        document: PurchaseOrderDocument,
        export_dir: Optional[Path] = None,
    ) -> Path:
        """Write PO_<number>.json to the export directory and return its path."""
        export_dir = Path(export_dir or self.config.export_dir)
        export_dir.mkdir(parents=True, exist_ok=True)
        path = export_dir / download_filename(document.po_number)
        path.write_text(
            serialize_document(document, pretty=self.config.pretty_json),
            encoding="utf-8",
        )
        logger.info("Wrote download artifact: %s", path)
        return path
