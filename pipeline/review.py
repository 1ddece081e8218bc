"""
Order summary and confirmation review.

summarize_order() computes the running totals shown on the Order Details
and Confirmation steps. Unlike the transformer it tolerates incomplete state:
unknown product ids are listed rather than raised, since the review has to
render while the user is still editing.

ReviewRenderer turns the state and summary into a plain-text review using a
Jinja2 template. A template of the same name in the config directory
overrides the shipped default.
"""
import logging
from typing import Any, Optional

from jinja2 import ChoiceLoader, FileSystemLoader, select_autoescape
from jinja2.sandbox import SandboxedEnvironment

from config import DEFAULT_TEMPLATES_DIR, config_dir
from models.result import OrderSummary, SummaryLine
from models.wizard import WizardState
from .errors import ReferenceNotFoundError
from .reference_data import ReferenceData

logger = logging.getLogger(__name__)


def summarize_order(state: WizardState, reference: ReferenceData) -> OrderSummary:
    """Line totals and order totals for the products currently selected."""
    if not state.manufacturer:
        return OrderSummary(unknown_products=list(state.ordered_products))

    catalog = {e.id: e for e in reference.catalog(state.manufacturer, state.product_families)}
    others = {e.id: e for e in reference.other_items(state.manufacturer)}

    summary = OrderSummary()
    for product_id, quantity in state.ordered_products.items():
        entry = catalog.get(product_id)
        is_other = False
        if entry is None:
            entry = others.get(product_id)
            is_other = entry is not None
        if entry is None:
            summary.unknown_products.append(product_id)
            continue

        total = quantity * entry.price
        summary.lines.append(SummaryLine(
            product_id=product_id,
            name=entry.name,
            sku=entry.sku,
            quantity=quantity,
            unit_price=entry.price,
            total=total,
            other_item=is_other,
        ))
        summary.total_items += quantity
        if not is_other:
            summary.standard_products_count += quantity

    summary.total_amount = sum((line.total for line in summary.lines), 0.0)
    return summary


class ReviewRenderer:
    """
    Renders the Confirmation-step review text.
    """

    def __init__(self, config: Any, reference: ReferenceData) -> None:
        self.config = config
        self.reference = reference
        self.jinja_env = SandboxedEnvironment(
            loader=ChoiceLoader([
                FileSystemLoader(str(config_dir())),
                FileSystemLoader(str(DEFAULT_TEMPLATES_DIR)),
            ]),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.jinja_env.filters["money"] = _money

    def render(self, state: WizardState, summary: Optional[OrderSummary] = None,
               po_number: Optional[str] = None) -> str:
        template_name = self.config.review_template
        try:
            template = self.jinja_env.get_template(template_name)
        except Exception as e:
            logger.error("Review template not found: %s (%s)", template_name, e)
            raise ValueError(f"Review template '{template_name}' not found")

        summary = summary or summarize_order(state, self.reference)
        context = {
            "po_number": po_number,
            "state": state,
            "summary": summary,
            "names": self._display_names(state),
            "packaging_labels": {
                f.id: f.label for f in self.reference.package_instruction_fields()
            },
        }
        return template.render(**context)

    def _display_names(self, state: WizardState) -> dict[str, str]:
        """Display names for the ids in *state*; unknown ids are shown as-is."""
        lookups = {
            "manufacturer": ("manufacturers", state.manufacturer),
            "ship_to": ("ship_to", state.ship_to),
            "authorized_by": ("authorized_by", state.authorized_by),
            "shipped_via": ("shipping_methods", state.shipped_via),
            "terms": ("terms", state.terms),
        }
        names = {}
        for key, (list_name, option_id) in lookups.items():
            try:
                names[key] = self.reference.option_name(list_name, option_id, key)
            except ReferenceNotFoundError:
                names[key] = option_id
        families = []
        for family in state.product_families:
            try:
                families.append(self.reference.option_name("product_families", family, "family"))
            except ReferenceNotFoundError:
                families.append(family)
        names["product_families"] = ", ".join(families)
        return names


def _money(value: float) -> str:
    return f"${value:,.2f}"
