"""
Pytest configuration and shared fixtures for the purchase-order wizard test suite.
"""
import io
import json
import os
import shutil
import tempfile
import urllib.error
from datetime import date
from email.message import Message
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)

ENDPOINT_URL = "http://orders.test/api/purchase-orders"

REFERENCE_DATA = {
    "manufacturers.json": [
        {"id": "acme", "name": "Acme Distilling Co."},
        {"id": "northfield", "name": "Northfield Glassworks"},
    ],
    "ship_to.json": [{"id": "warehouse", "name": "Main Warehouse"}],
    "authorized_by.json": [{"id": "jdoe", "name": "Jordan Doe"}],
    "product_families.json": [
        {"id": "spirits", "name": "Spirits"},
        {"id": "wine", "name": "Wine"},
        {"id": "glassware", "name": "Glassware"},
    ],
    "shipping_methods.json": [{"id": "ground", "name": "Ground Freight"}],
    "terms.json": [{"id": "net30", "name": "Net 30"}],
    "package_instructions.json": [
        {"id": "bottle", "label": "Bottle", "component": "bottle"},
        {"id": "bottleTop", "label": "Bottle Top", "component": "bottle_top"},
    ],
    "products.json": {
        "spirits": [
            {"id": "p1", "name": "Gin 700ml", "sku": "SP-GIN-700", "barcode": "9300000000011"},
            {"id": "p2", "name": "Vodka 700ml", "sku": "SP-VOD-700", "barcode": "9300000000028"},
            {"id": "p3", "name": "Whisky 700ml", "sku": "SP-WHI-700", "barcode": ""},
        ],
        "wine": [
            {"id": "w1", "name": "Shiraz 750ml", "sku": "WN-SHZ-750", "barcode": ""},
        ],
    },
    "manufacturer_products.json": {
        "acme": {
            "spirits": [
                {"id": "p1", "price": 10.00},
                {"id": "p2", "price": 12.50},
                {"id": "p3", "price": 0},
            ],
            "wine": [{"id": "w1", "price": 8.75}],
        },
        "northfield": {"glassware": []},
    },
    "other_items.json": {
        "acme": [
            {"id": "x1", "name": "Sample Kit", "sku": "AC-SMP-01", "barcode": "", "price": 5.00},
        ],
    },
    "company_info.json": {
        "name": "Harbour Beverage Group",
        "address_line1": "12 Wharf Road",
        "address_line2": "Port Melbourne VIC 3207",
        "phone": "+61 3 9000 0000",
    },
    "manufacturer_contacts.json": {
        "acme": {
            "name": "Casey Lee",
            "title": "Sales Manager",
            "company_name": "Acme Distilling Co.",
            "address_line1": "4 Still Lane",
            "address_line2": "Geelong VIC 3220",
            "tel": "+61 3 5200 0000",
            "email": "orders@acme.example.com",
        },
    },
    "ship_to_contacts.json": {
        "warehouse": {
            "name": "Sam Rivera",
            "company_name": "Harbour Beverage Group",
            "address_line1": "200 Dock Road",
            "address_line2": "Port Melbourne VIC 3207",
            "tel": "+61 3 9000 0100",
        },
    },
    "pos.json": [
        {"po_number": "1001"},
        {"po_number": "1002"},
        {"doc_id": "1003"},
    ],
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="po_wizard_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def reference_dir(temp_dir: Path) -> Path:
    """Write the sample reference data set and return its directory."""
    data_dir = temp_dir / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in REFERENCE_DATA.items():
        (data_dir / filename).write_text(json.dumps(content), encoding="utf-8")
    return data_dir


@pytest.fixture
def reference(reference_dir: Path) -> "ReferenceData":
    from pipeline.reference_data import ReferenceData
    return ReferenceData(reference_dir)


@pytest.fixture
def test_config(temp_dir: Path, reference_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with isolated directories."""
    # Keep a developer's real settings file and endpoint out of the tests
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    monkeypatch.delenv("API_ENDPOINT_POST", raising=False)
    monkeypatch.delenv("SUBMISSION_HEADERS", raising=False)

    from config import Config

    config = Config()
    config.data_dir = reference_dir
    config.export_dir = temp_dir / "output" / "export"
    config.submission_url = ENDPOINT_URL
    return config


@pytest.fixture
def sample_state() -> "WizardState":
    """A complete wizard state: two Gin 700ml from acme at 10.00."""
    from models.wizard import WizardState
    return WizardState(
        manufacturer="acme",
        ship_to="warehouse",
        authorized_by="jdoe",
        product_families=["spirits"],
        shipped_via="ground",
        estimated_delivery=date(2024, 7, 1),
        terms="net30",
        products={"p1": 2},
        email="buyer@example.com",
    )


class FakeResponse:
    """Minimal stand-in for the object urllib.request.urlopen returns."""

    def __init__(self, status: int, body: bytes, content_type: str):
        self.status = status
        self._body = body
        self.headers = Message()
        self.headers["Content-Type"] = content_type

    def getcode(self) -> int:
        return self.status

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeEndpoint:
    """
    Replaces urllib.request.urlopen and records every request it sees.

    Queue replies with reply() or fail_with(); with nothing queued it answers
    200 {"ok": true}. Statuses >= 400 are raised as HTTPError, as urlopen does.
    """

    def __init__(self):
        self.requests = []
        self._replies = []

    def reply(self, status: int = 200, body: str = '{"ok": true}',
              content_type: str = "application/json") -> None:
        self._replies.append((status, body, content_type))

    def fail_with(self, exc: Exception) -> None:
        self._replies.append(exc)

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        reply = self._replies.pop(0) if self._replies else (200, '{"ok": true}', "application/json")
        if isinstance(reply, Exception):
            raise reply
        status, body, content_type = reply
        data = body.encode("utf-8")
        if status >= 400:
            headers = Message()
            headers["Content-Type"] = content_type
            raise urllib.error.HTTPError(req.full_url, status, "error", headers, io.BytesIO(data))
        return FakeResponse(status, data, content_type)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].data.decode("utf-8"))


@pytest.fixture
def fake_endpoint(monkeypatch) -> FakeEndpoint:
    """Route every urllib.request.urlopen call to a recording fake."""
    endpoint = FakeEndpoint()
    monkeypatch.setattr("urllib.request.urlopen", endpoint)
    return endpoint


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
