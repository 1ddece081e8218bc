"""
Wizard session: step sequencing and state ownership.

A WizardSession is the only owner of its WizardState. Steps read snapshots
(the state is a frozen model) and ask for changes through the intent
methods below; each intent builds a new state and swaps it in.

Navigation is strictly linear over six steps. next()/back() clamp at the
ends, nothing is skipped, and once the order is submitted the session is
closed: back() does nothing and every intent raises WizardClosedError.
submission() lets one submit attempt through at a time.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Optional

from models.wizard import LabelValue, PackageInstructions, WizardState
from .errors import FieldRowNotFoundError, SubmissionInProgressError, WizardClosedError

logger = logging.getLogger(__name__)

STEP_TITLES = [
    "Manufacturing",
    "Product and Conditions",
    "Order Details",
    "Remarks",
    "Extra Fields",
    "Confirmation",
]
TOTAL_STEPS = len(STEP_TITLES)

# step number -> fields that must be filled in on that step
REQUIRED_FIELDS: dict[int, tuple[str, ...]] = {
    1: ("manufacturer", "ship_to", "authorized_by"),
    2: ("product_families", "shipped_via"),
    3: ("products",),
}


class WizardSession:
    """
    One in-progress order.

    Usage:
        session = WizardSession()
        session.update(manufacturer="acme", ship_to="warehouse")
        session.next()
        session.set_quantity("p1", 2)
    """

    def __init__(self, session_id: Optional[str] = None, state: Optional[WizardState] = None):
        self.id = session_id or uuid.uuid4().hex
        self._state = state or WizardState()
        self.current_step = 1
        self.submitted = False
        self.po_number: Optional[str] = None
        self.submitting = False
        self._submit_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def step_title(self) -> str:
        return STEP_TITLES[self.current_step - 1]

    def missing_required(self, step: Optional[int] = None) -> list[str]:
        """Required fields still empty, for one step or (default) all steps."""
        steps = [step] if step is not None else sorted(REQUIRED_FIELDS)
        missing = []
        for s in steps:
            for name in REQUIRED_FIELDS.get(s, ()):
                value = getattr(self._state, name)
                if name == "products":
                    value = self._state.ordered_products
                if not value:
                    missing.append(name)
        return missing

    def snapshot(self) -> dict:
        """JSON-ready view of the session for API clients."""
        return {
            "id": self.id,
            "current_step": self.current_step,
            "total_steps": TOTAL_STEPS,
            "step_title": self.step_title,
            "submitted": self.submitted,
            "submitting": self.submitting,
            "po_number": self.po_number,
            "missing_required": self.missing_required(),
            "state": self._state.model_dump(mode="json"),
        }

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> int:
        if self.current_step < TOTAL_STEPS:
            self.current_step += 1
        return self.current_step

    def back(self) -> int:
        if self.current_step > 1 and not self.submitted:
            self.current_step -= 1
        return self.current_step

    def mark_submitted(self, po_number: str) -> None:
        self.submitted = True
        self.po_number = po_number
        self.current_step = TOTAL_STEPS
        logger.info("Wizard %s closed after submitting PO %s", self.id, po_number)

    @contextmanager
    def submission(self):
        """
        Hold the session for one submission attempt.

        Only one attempt runs at a time: a second caller gets
        SubmissionInProgressError until the first one finishes, and
        WizardClosedError once the order has gone through.
        """
        with self._submit_lock:
            self._ensure_open()
            if self.submitting:
                raise SubmissionInProgressError(self.id)
            self.submitting = True
        try:
            yield self
        finally:
            with self._submit_lock:
                self.submitting = False

    def cancel(self) -> None:
        """Throw away everything entered and return to the first step."""
        self._state = WizardState()
        self.current_step = 1
        self.submitted = False
        self.po_number = None
        logger.info("Wizard %s cancelled", self.id)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def update(self, **changes: Any) -> WizardState:
        """Replace top-level fields; the merged result is re-validated."""
        self._ensure_open()
        if "product_family" in changes:
            family = changes.pop("product_family")
            changes.setdefault("product_families", [family] if family else [])
        merged = {**self._state.model_dump(), **changes}
        self._state = WizardState.model_validate(merged)
        return self._state

    def set_quantity(self, product_id: str, quantity: int) -> WizardState:
        """Set a product quantity; zero or less removes the product."""
        products = dict(self._state.products)
        if quantity > 0:
            products[product_id] = quantity
        else:
            products.pop(product_id, None)
        return self.update(products=products)

    def remove_product(self, product_id: str) -> WizardState:
        return self.set_quantity(product_id, 0)

    def toggle_family(self, family_id: str, selected: bool) -> WizardState:
        families = [f for f in self._state.product_families if f != family_id]
        if selected:
            families.append(family_id)
        return self.update(product_families=families)

    def set_package_instruction(self, field_id: str, value: str) -> WizardState:
        pkg = self._state.package_instructions
        fields = {**pkg.fields, field_id: value}
        return self._set_packaging(fields=fields, custom_fields=list(pkg.custom_fields))

    def add_package_field(self, label: str = "", value: str = "") -> WizardState:
        pkg = self._state.package_instructions
        custom = [*pkg.custom_fields, LabelValue(label=label, value=value)]
        return self._set_packaging(fields=dict(pkg.fields), custom_fields=custom)

    def update_package_field(self, index: int, label: Optional[str] = None,
                             value: Optional[str] = None) -> WizardState:
        pkg = self._state.package_instructions
        custom = _replace_at(pkg.custom_fields, index, label, value)
        return self._set_packaging(fields=dict(pkg.fields), custom_fields=custom)

    def remove_package_field(self, index: int) -> WizardState:
        pkg = self._state.package_instructions
        custom = _remove_at(pkg.custom_fields, index)
        return self._set_packaging(fields=dict(pkg.fields), custom_fields=custom)

    def add_extra_field(self, label: str = "", value: str = "") -> WizardState:
        extra = [*self._state.extra_fields, LabelValue(label=label, value=value)]
        return self.update(extra_fields=extra)

    def update_extra_field(self, index: int, label: Optional[str] = None,
                           value: Optional[str] = None) -> WizardState:
        return self.update(extra_fields=_replace_at(self._state.extra_fields, index, label, value))

    def remove_extra_field(self, index: int) -> WizardState:
        return self.update(extra_fields=_remove_at(self._state.extra_fields, index))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_packaging(self, fields: dict, custom_fields: list) -> WizardState:
        return self.update(
            package_instructions=PackageInstructions(fields=fields, custom_fields=custom_fields)
        )

    def _ensure_open(self) -> None:
        if self.submitted:
            raise WizardClosedError(self.id)


def _replace_at(rows: list[LabelValue], index: int, label: Optional[str],
                value: Optional[str]) -> list[LabelValue]:
    if not 0 <= index < len(rows):
        raise FieldRowNotFoundError(index)
    current = rows[index]
    updated = LabelValue(
        label=current.label if label is None else label,
        value=current.value if value is None else value,
    )
    return [*rows[:index], updated, *rows[index + 1:]]


def _remove_at(rows: list[LabelValue], index: int) -> list[LabelValue]:
    if not 0 <= index < len(rows):
        raise FieldRowNotFoundError(index)
    return [*rows[:index], *rows[index + 1:]]


class SessionStore:
    """In-process registry of open wizard sessions (not persisted)."""

    def __init__(self) -> None:
        self._sessions: dict[str, WizardSession] = {}

    def create(self, state: Optional[WizardState] = None) -> WizardSession:
        session = WizardSession(state=state)
        self._sessions[session.id] = session
        logger.debug("Wizard session started: %s", session.id)
        return session

    def get(self, session_id: str) -> Optional[WizardSession]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.cancel()
        return True

    def __len__(self) -> int:
        return len(self._sessions)
