"""
Purchase-order number allocation.

The next number is one more than the highest number in the existing PO list.
This is read-then-compute with no lock or reservation: two submissions that
read the list before either is recorded get the same number. Nothing in this
system records new orders back into the list, so the receiving system must
treat po_number as advisory and de-duplicate on its side.
"""
import logging
import re
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def _parse_number(value) -> Optional[int]:
    """Leading integer of *value*, or None ("17" -> 17, "42-A" -> 42, "PO-9" -> None)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group()) if match else None


def next_po_number(existing: Iterable[dict]) -> str:
    """
    Return the next purchase-order number as a string.

    Each entry contributes its po_number, or doc_id when po_number is absent.
    Entries without a parseable number are skipped. An empty list yields "1".
    """
    numbers = []
    skipped = 0
    for po in existing:
        raw = po.get("po_number") or po.get("doc_id")
        number = _parse_number(raw)
        if number is None:
            skipped += 1
            continue
        numbers.append(number)

    if skipped:
        logger.warning("Ignored %d existing PO(s) without a numeric po_number/doc_id", skipped)

    next_number = max(numbers) + 1 if numbers else 1
    logger.info(
        "Allocated PO number %d from %d existing order(s) (not reserved)",
        next_number, len(numbers),
    )
    return str(next_number)
