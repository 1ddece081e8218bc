"""
Purchase-Order Wizard: FastAPI backend.

Drives the six-step order wizard over JSON: the client reads pick lists and
catalogs, sends intent updates to its wizard session, and finally submits.
Sessions live in memory only; restarting the server discards open orders.

Endpoints
---------
  GET    /api/health                                  → liveness probe
  GET    /api/reference/{name}                        → pick list / package fields
  GET    /api/manufacturers/{manufacturer}/families   → families the manufacturer prices
  GET    /api/catalog?manufacturer=&family=           → products + other items with prices
  POST   /api/wizard                                  → start a new order
  GET    /api/wizard/{sid}                            → session snapshot
  PATCH  /api/wizard/{sid}                            → replace top-level state fields
  DELETE /api/wizard/{sid}                            → cancel (discard) the order
  POST   /api/wizard/{sid}/next | /back               → step navigation
  PUT    /api/wizard/{sid}/products/{product_id}      → set quantity (0 removes)
  PUT    /api/wizard/{sid}/families/{family_id}       → select / deselect a family
  PUT    /api/wizard/{sid}/package-instructions/{fid} → answer a packaging field
  POST   /api/wizard/{sid}/package-fields             → add custom packaging row
  PATCH  /api/wizard/{sid}/package-fields/{index}     → edit custom packaging row
  DELETE /api/wizard/{sid}/package-fields/{index}     → remove custom packaging row
  POST   /api/wizard/{sid}/extra-fields               → add extra field
  PATCH  /api/wizard/{sid}/extra-fields/{index}       → edit extra field
  DELETE /api/wizard/{sid}/extra-fields/{index}       → remove extra field
  GET    /api/wizard/{sid}/summary                    → totals + rendered review
  POST   /api/wizard/{sid}/submit                     → build, export and send the PO
  GET    /api/orders/{po_number}/download             → PO_<n>.json artifact
  *      /api/send_form_data                          → forwarding proxy (POST only)
"""
import json
import logging
import re
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from config import Config
from pipeline.errors import (
    ConfigurationError,
    DocumentValidationError,
    FieldRowNotFoundError,
    InvalidEmailError,
    ReferenceNotFoundError,
    SubmissionInProgressError,
    WizardClosedError,
)
from pipeline.processor import OrderProcessor
from pipeline.proxy import ForwardingProxy
from pipeline.reference_data import OPTION_LISTS
from pipeline.review import ReviewRenderer, summarize_order
from pipeline.submission import download_filename
from pipeline.wizard import SessionStore, WizardSession
from webapp.models import (
    FamilySelection,
    InstructionValue,
    LabelValueCreate,
    LabelValueUpdate,
    QuantityUpdate,
    SubmitRequest,
    WizardUpdate,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pipeline + session store (lazy, built on first request so the config is
# read after the environment is in place)
# ---------------------------------------------------------------------------
_processor: Optional[OrderProcessor] = None
_sessions: Optional[SessionStore] = None
_proxy = ForwardingProxy()

_SAFE_PO_NUMBER = re.compile(r"^[\w\-]+$")


def get_processor() -> OrderProcessor:
    global _processor
    if _processor is None:
        _processor = OrderProcessor(Config())
    return _processor


def get_sessions() -> SessionStore:
    global _sessions
    if _sessions is None:
        _sessions = SessionStore()
    return _sessions


def _session_or_404(sid: str) -> WizardSession:
    session = get_sessions().get(sid)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Order session not found: {sid}")
    return session


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Purchase Order Wizard", docs_url=None, redoc_url=None)


# ── Error mapping ────────────────────────────────────────────────────────────

@app.exception_handler(ReferenceNotFoundError)
async def _reference_not_found(request: Request, exc: ReferenceNotFoundError):
    return JSONResponse(status_code=422, content={
        "detail": str(exc), "kind": exc.kind, "id": exc.ref_id,
    })


@app.exception_handler(DocumentValidationError)
async def _document_invalid(request: Request, exc: DocumentValidationError):
    return JSONResponse(status_code=422, content={
        "detail": str(exc),
        "issues": [i.model_dump() for i in exc.issues],
    })


@app.exception_handler(ConfigurationError)
async def _misconfigured(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(InvalidEmailError)
async def _invalid_email(request: Request, exc: InvalidEmailError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(WizardClosedError)
async def _wizard_closed(request: Request, exc: WizardClosedError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def _state_invalid(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": json.loads(exc.json())})


@app.exception_handler(FieldRowNotFoundError)
async def _no_such_row(request: Request, exc: FieldRowNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc), "index": exc.index})


@app.exception_handler(SubmissionInProgressError)
async def _submit_in_flight(request: Request, exc: SubmissionInProgressError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ── Reference data ───────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    processor = get_processor()
    return {
        "status": "ok",
        "data_dir": str(processor.config.data_dir),
        "export_dir": str(processor.config.export_dir),
        "endpoint_configured": bool(processor.config.submission_url),
        "open_sessions": len(get_sessions()),
    }


@app.get("/api/reference/{name}")
def reference_list(name: str):
    ref = get_processor().reference
    if name == "package_instructions":
        return [f.model_dump() for f in ref.package_instruction_fields()]
    if name not in OPTION_LISTS:
        raise HTTPException(404, f"Unknown reference list: {name}")
    return [o.model_dump() for o in ref.options(name)]


@app.get("/api/manufacturers/{manufacturer}/families")
def manufacturer_families(manufacturer: str):
    return [f.model_dump() for f in get_processor().reference.families_for(manufacturer)]


@app.get("/api/catalog")
def catalog(
    manufacturer: str = Query(...),
    family: list[str] = Query(default=[]),
):
    ref = get_processor().reference
    return {
        "products": [e.model_dump() for e in ref.catalog(manufacturer, family)],
        "other_items": [e.model_dump() for e in ref.other_items(manufacturer)],
    }


# ── Wizard session ───────────────────────────────────────────────────────────

@app.post("/api/wizard", status_code=201)
def start_order():
    session = get_sessions().create()
    logger.info("Order session started: %s", session.id)
    return session.snapshot()


@app.get("/api/wizard/{sid}")
def get_order(sid: str):
    return _session_or_404(sid).snapshot()


@app.patch("/api/wizard/{sid}")
def update_order(sid: str, body: WizardUpdate):
    session = _session_or_404(sid)
    session.update(**body.changes)
    return session.snapshot()


@app.delete("/api/wizard/{sid}")
def cancel_order(sid: str):
    """Discard the order. Allowed at any point, including after submission."""
    if not get_sessions().discard(sid):
        raise HTTPException(404, f"Order session not found: {sid}")
    logger.info("Order session cancelled: %s", sid)
    return {"id": sid, "cancelled": True}


@app.post("/api/wizard/{sid}/next")
def next_step(sid: str):
    session = _session_or_404(sid)
    session.next()
    return session.snapshot()


@app.post("/api/wizard/{sid}/back")
def previous_step(sid: str):
    session = _session_or_404(sid)
    session.back()
    return session.snapshot()


@app.put("/api/wizard/{sid}/products/{product_id}")
def set_quantity(sid: str, product_id: str, body: QuantityUpdate):
    session = _session_or_404(sid)
    session.set_quantity(product_id, body.quantity)
    return session.snapshot()


@app.put("/api/wizard/{sid}/families/{family_id}")
def select_family(sid: str, family_id: str, body: FamilySelection):
    session = _session_or_404(sid)
    session.toggle_family(family_id, body.selected)
    return session.snapshot()


@app.put("/api/wizard/{sid}/package-instructions/{field_id}")
def set_package_instruction(sid: str, field_id: str, body: InstructionValue):
    session = _session_or_404(sid)
    session.set_package_instruction(field_id, body.value)
    return session.snapshot()


@app.post("/api/wizard/{sid}/package-fields")
def add_package_field(sid: str, body: LabelValueCreate):
    session = _session_or_404(sid)
    session.add_package_field(body.label, body.value)
    return session.snapshot()


@app.patch("/api/wizard/{sid}/package-fields/{index}")
def update_package_field(sid: str, index: int, body: LabelValueUpdate):
    session = _session_or_404(sid)
    session.update_package_field(index, body.label, body.value)
    return session.snapshot()


@app.delete("/api/wizard/{sid}/package-fields/{index}")
def remove_package_field(sid: str, index: int):
    session = _session_or_404(sid)
    session.remove_package_field(index)
    return session.snapshot()


@app.post("/api/wizard/{sid}/extra-fields")
def add_extra_field(sid: str, body: LabelValueCreate):
    session = _session_or_404(sid)
    session.add_extra_field(body.label, body.value)
    return session.snapshot()


@app.patch("/api/wizard/{sid}/extra-fields/{index}")
def update_extra_field(sid: str, index: int, body: LabelValueUpdate):
    session = _session_or_404(sid)
    session.update_extra_field(index, body.label, body.value)
    return session.snapshot()


@app.delete("/api/wizard/{sid}/extra-fields/{index}")
def remove_extra_field(sid: str, index: int):
    session = _session_or_404(sid)
    session.remove_extra_field(index)
    return session.snapshot()


@app.get("/api/wizard/{sid}/summary")
def order_summary(sid: str):
    session = _session_or_404(sid)
    processor = get_processor()
    summary = summarize_order(session.state, processor.reference)
    review = ReviewRenderer(processor.config, processor.reference).render(
        session.state, summary, po_number=session.po_number,
    )
    return {"summary": summary.model_dump(), "review": review}


@app.post("/api/wizard/{sid}/submit")
def submit_order(sid: str, body: SubmitRequest):
    """
    Build, validate, export and send the purchase order.

    On success the session is closed (no more edits, no going back). If the
    endpoint rejects the order the session stays open so the user can try
    again; nothing is retried automatically. A second submit while the first
    is still waiting on the endpoint gets 409 and sends nothing.
    """
    session = _session_or_404(sid)
    if session.submitted:
        raise HTTPException(409, f"Order already submitted as PO {session.po_number}")

    with session.submission():
        outcome = get_processor().submit(session.state, email=body.email)
        payload = {
            "po_number": outcome.po_number,
            "submission": outcome.submission.model_dump(),
            "download_url": (
                f"/api/orders/{outcome.po_number}/download" if outcome.download_path else None
            ),
            "document": outcome.document.model_dump(mode="json"),
        }

        if not outcome.submission.ok:
            return JSONResponse(status_code=502, content={
                "detail": "Error submitting order. Please try again.",
                **payload,
            })

        session.update(email=body.email.strip())
        session.mark_submitted(outcome.po_number)
    return payload


# ── Download artifact ────────────────────────────────────────────────────────

@app.get("/api/orders/{po_number}/download")
def download_order(po_number: str):
    if not _SAFE_PO_NUMBER.match(po_number):
        raise HTTPException(400, "Invalid PO number")
    filename = download_filename(po_number)
    path = get_processor().config.export_dir / filename
    if not path.exists():
        raise HTTPException(404, f"No download for PO {po_number}")
    return FileResponse(path, media_type="application/json", filename=filename)


# ── Forwarding proxy ─────────────────────────────────────────────────────────

@app.api_route("/api/send_form_data", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def send_form_data(request: Request):
    body = await request.body()
    result = await run_in_threadpool(_proxy.forward, request.method, body)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )
