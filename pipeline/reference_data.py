"""
Static reference data for the wizard.

Every pick list, catalog, and contact block comes from a JSON file in the
data directory. Files are re-read only when their mtime changes, so editing
a price list takes effect on the next request without a restart.

Lookups that the purchase order depends on (contacts, products, named
options) raise ReferenceNotFoundError instead of returning None, so a bad id
is reported where it is looked up rather than later as a schema failure.
"""
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from models.catalog import CatalogEntry, Option, PackageInstructionField
from .errors import MissingProductError, ReferenceNotFoundError

logger = logging.getLogger(__name__)

# name -> (filename, empty value when the file is missing)
REFERENCE_FILES: dict[str, tuple[str, Any]] = {
    "manufacturers":          ("manufacturers.json", []),
    "ship_to":                ("ship_to.json", []),
    "authorized_by":          ("authorized_by.json", []),
    "product_families":       ("product_families.json", []),
    "shipping_methods":       ("shipping_methods.json", []),
    "terms":                  ("terms.json", []),
    "package_instructions":   ("package_instructions.json", []),
    "products":               ("products.json", {}),
    "manufacturer_products":  ("manufacturer_products.json", {}),
    "other_items":            ("other_items.json", {}),
    "company_info":           ("company_info.json", {}),
    "manufacturer_contacts":  ("manufacturer_contacts.json", {}),
    "ship_to_contacts":       ("ship_to_contacts.json", {}),
    "pos":                    ("pos.json", []),
}

# Pick lists served to the wizard steps as [{id, name}, ...]
OPTION_LISTS = (
    "manufacturers",
    "ship_to",
    "authorized_by",
    "product_families",
    "shipping_methods",
    "terms",
)

# Used when package_instructions.json is absent
DEFAULT_PACKAGE_FIELDS = [
    PackageInstructionField(id="bottle", label="Bottle", component="bottle",
                            placeholder="Bottle specifications"),
    PackageInstructionField(id="bottleTop", label="Bottle Top", component="bottle_top",
                            placeholder="Bottle top specifications"),
]


class ReferenceData:
    """
    Read-only view over the reference JSON files in *data_dir*.

    Usage:
        ref = ReferenceData(Path("data"))
        contact = ref.manufacturer_contact("acme")
        entry = ref.find_product("acme", ["spirits"], "p1")
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._cache: dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def path_for(self, name: str) -> Path:
        filename, _ = REFERENCE_FILES[name]
        return self.data_dir / filename

    def load(self, name: str) -> Any:
        """Return the parsed contents of reference file *name* (cached by mtime)."""
        if name not in REFERENCE_FILES:
            raise KeyError(f"Unknown reference data set: {name}")
        path = self.path_for(name)
        _, empty = REFERENCE_FILES[name]

        if not path.exists():
            logger.warning("Reference file not found: %s", path)
            return type(empty)()

        mtime = path.stat().st_mtime
        cached = self._cache.get(name)
        if cached and cached["mtime"] == mtime:
            return cached["data"]

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, type(empty)):
            raise ValueError(
                f"{path.name} must contain a JSON {type(empty).__name__}, "
                f"got {type(data).__name__}"
            )
        self._cache[name] = {"mtime": mtime, "data": data}
        logger.debug("Loaded reference file %s", path.name)
        return data

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Pick lists
    # ------------------------------------------------------------------

    def options(self, name: str) -> list[Option]:
        """Return one of the id/name pick lists."""
        if name not in OPTION_LISTS:
            raise KeyError(f"Not an option list: {name}")
        return [Option(id=str(o["id"]), name=o.get("name") or str(o["id"])) for o in self.load(name)]

    def option_name(self, name: str, option_id: str, kind: str) -> str:
        """
        Resolve *option_id* in pick list *name* to its display name.

        An empty id resolves to "" (the field was left blank); an id that is
        not in the list raises ReferenceNotFoundError.
        """
        if not option_id:
            return ""
        for option in self.options(name):
            if option.id == option_id:
                return option.name
        raise ReferenceNotFoundError(kind, option_id)

    def families_for(self, manufacturer: str) -> list[Option]:
        """Product families the manufacturer has a price list for."""
        priced = self.load("manufacturer_products").get(manufacturer, {})
        return [f for f in self.options("product_families") if f.id in priced]

    def package_instruction_fields(self) -> list[PackageInstructionField]:
        raw = self.load("package_instructions")
        if not raw:
            return list(DEFAULT_PACKAGE_FIELDS)
        return [PackageInstructionField(**f) for f in raw]

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    def company_info(self) -> dict:
        return dict(self.load("company_info"))

    def manufacturer_contact(self, manufacturer: str) -> dict:
        contacts = self.load("manufacturer_contacts")
        if manufacturer not in contacts:
            raise ReferenceNotFoundError("manufacturer", manufacturer)
        return dict(contacts[manufacturer])

    def ship_to_contact(self, ship_to: str) -> dict:
        contacts = self.load("ship_to_contacts")
        if ship_to not in contacts:
            raise ReferenceNotFoundError("ship-to contact", ship_to)
        return dict(contacts[ship_to])

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def catalog(self, manufacturer: str, families: Iterable[str]) -> list[CatalogEntry]:
        """
        Standard products for the selected families, priced for *manufacturer*.

        A product is offered only when the manufacturer's price list for that
        family has a positive price for it.
        """
        products = self.load("products")
        pricing = self.load("manufacturer_products").get(manufacturer, {})
        entries: list[CatalogEntry] = []
        seen: set[str] = set()

        for family in families:
            prices = {str(p["id"]): _price(p.get("price"), p["id"]) for p in pricing.get(family, [])}
            for product in products.get(family, []):
                pid = str(product["id"])
                price = prices.get(pid)
                if price is None or price <= 0 or pid in seen:
                    continue
                seen.add(pid)
                entries.append(CatalogEntry(
                    id=pid,
                    name=product.get("name", pid),
                    sku=product.get("sku", ""),
                    barcode=product.get("barcode", ""),
                    price=price,
                    family=family,
                ))
        return entries

    def other_items(self, manufacturer: str) -> list[CatalogEntry]:
        """Manufacturer-specific extras that sit outside the product families."""
        return [
            CatalogEntry(
                id=str(item["id"]),
                name=item.get("name", str(item["id"])),
                sku=item.get("sku", ""),
                barcode=item.get("barcode", ""),
                price=item["price"],
            )
            for item in self.load("other_items").get(manufacturer, [])
        ]

    def find_product(
        self,
        manufacturer: str,
        families: Iterable[str],
        product_id: str,
    ) -> CatalogEntry:
        """Catalog first, then other items; raise MissingProductError if neither has it."""
        entry = self._find(self.catalog(manufacturer, families), product_id)
        if entry is None:
            entry = self._find(self.other_items(manufacturer), product_id)
        if entry is None:
            raise MissingProductError(product_id, manufacturer or None)
        return entry

    @staticmethod
    def _find(entries: list[CatalogEntry], product_id: str) -> Optional[CatalogEntry]:
        return next((e for e in entries if e.id == product_id), None)

    # ------------------------------------------------------------------
    # Existing purchase orders
    # ------------------------------------------------------------------

    def existing_purchase_orders(self) -> list[dict]:
        return list(self.load("pos"))

    # ------------------------------------------------------------------
    # Setup check
    # ------------------------------------------------------------------

    def status(self) -> dict[str, dict]:
        """Per-file existence and entry counts, for the `check` command."""
        report = {}
        for name in REFERENCE_FILES:
            path = self.path_for(name)
            info = {"path": str(path), "exists": path.exists(), "count": 0}
            if info["exists"]:
                try:
                    info["count"] = len(self.load(name))
                except (ValueError, json.JSONDecodeError) as exc:
                    info["error"] = str(exc)
            report[name] = info
        return report


def _price(value: Any, product_id: Any) -> Optional[float]:
    """Price-list value as a float; numeric strings such as "10.00" are accepted."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring unreadable price %r for product %s", value, product_id)
        return None
