"""
FastAPI web server: catalog, validation, pricing, saved designs, quotes,
catalog administration and server-side configurator sessions.

Callers identify themselves with an ``X-User-Id`` header; admin routes
additionally require an ``X-User-Email`` listed in ``ADMIN_EMAILS``.
Errors are returned as ``{"error": {"code", "message", "details"?}}``.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Body, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel, ConfigDict, Field

from playset.catalog import (
    CatalogError, CatalogRepository, CatalogResult, Vector3D, catalog_to_dict, component_to_dict,
    filter_components, get_component, parse_vector,
)
from playset.config import Settings
from playset.design import (
    Design, DesignParseError, attach_catalog_data, calculate_metadata, metadata_to_dict, parse_design,
)
from playset.pricing import (
    calculate_pricing_breakdown, format_price, parse_location, pricing_to_dict, validate_pricing,
)
from playset.quotes import (
    QuoteError, QuoteMailer, QuoteRepository, QuoteService, RateLimiter,
    client_key, quote_summary, quote_to_dict,
)
from playset.storage import DesignRepository, RepositoryError, saved_design_to_dict
from playset.store import DesignStore, store_to_dict
from playset.validation import default_engine, validation_to_dict

log = logging.getLogger("playset.web")

# ── App ────────────────────────────────────────────────────────────

app = FastAPI(title="Playset Configurator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def api_error(status: int, code: str, message: str, details: Any = None) -> HTTPException:
    detail = {"code": code, "message": message}
    if details is not None:
        detail["details"] = details
    return HTTPException(status, detail)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"code": f"HTTP_{exc.status_code}", "message": str(exc.detail)}
    return JSONResponse({"error": body}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def _request_invalid(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        {"error": {"code": "VALIDATION_ERROR", "message": "Invalid request data", "details": details}},
        status_code=400,
    )


@app.exception_handler(QuoteError)
@app.exception_handler(CatalogError)
async def _service_error(request: Request, exc: QuoteError | CatalogError):
    body = {"code": exc.code, "message": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse({"error": body}, status_code=exc.status)


# ── Server state (persists across requests) ────────────────────────

@dataclass
class _Session:
    store: DesignStore
    last_access: float


_settings: Settings
_catalog: CatalogResult
_catalog_admin: CatalogRepository
_designs: DesignRepository
_quotes: QuoteService
# session id -> session, least recently used first
_sessions: OrderedDict[str, _Session] = OrderedDict()
_sessions_lock = threading.Lock()
_clock: Callable[[], float] = time.monotonic


def configure(settings: Settings | None = None) -> None:
    """(Re)build server state from *settings* (default: the environment)."""
    global _settings, _catalog, _catalog_admin, _designs, _quotes
    _settings = settings or Settings.from_env()
    _designs = DesignRepository(_settings.data_dir)
    _catalog_admin = CatalogRepository(_settings.catalog_dir, designs_using=_designs.count_using_component)
    _catalog = _catalog_admin.catalog
    if not _catalog.ok:
        for err in _catalog.errors:
            log.warning("Catalog: %s", err)
    _quotes = QuoteService(
        QuoteRepository(_settings.data_dir),
        QuoteMailer(_settings),
        engine=default_engine(),
        limiter=RateLimiter(_settings.quote_rate_limit, _settings.quote_rate_window_s),
        catalog=_catalog,
    )
    with _sessions_lock:
        _sessions.clear()
    log.info("Configured with %d catalog components, data in %s",
             len(_catalog.components), _settings.data_dir)


configure()


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise api_error(401, "UNAUTHORIZED", "Authentication required")
    return user_id


def _require_admin(email: str | None) -> None:
    if not _settings.is_admin(email):
        raise api_error(401, "UNAUTHORIZED", "Admin access required")


def _parse_design_or_400(data: Any) -> Design:
    try:
        return parse_design(data)
    except DesignParseError as exc:
        raise api_error(400, "INVALID_DESIGN_DATA", str(exc))


def _catalog_design_or_400(data: Any) -> Design:
    """Parse *data* and swap in catalog entries for any client-sent component data."""
    design = _parse_design_or_400(data)
    if unknown := attach_catalog_data(design, _catalog):
        raise api_error(400, "INVALID_DESIGN", "Design references unknown components",
                        [f"Unknown component '{cid}'" for cid in unknown])
    design.metadata = calculate_metadata(design.components)
    return design


# ── Models ─────────────────────────────────────────────────────────

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ValidateRequest(_CamelModel):
    design: dict


class LocationModel(_CamelModel):
    city: str
    state: str = ""
    postal_code: str = Field(default="", alias="postalCode")


class PricingRequest(_CamelModel):
    design: dict
    location: LocationModel
    include_installation: bool = Field(default=False, alias="includeInstallation")


class SaveDesignRequest(_CamelModel):
    name: str
    design_data: dict = Field(alias="designData")
    thumbnail: str | None = None


class UpdateDesignRequest(_CamelModel):
    name: str | None = None
    design_data: dict | None = Field(default=None, alias="designData")
    thumbnail: str | None = None


class QuoteUpdateRequest(_CamelModel):
    status: str | None = None
    notes: str | None = None
    notify_message: str | None = Field(default=None, alias="notifyMessage")


class BulkPricingRequest(_CamelModel):
    updates: list[dict] | None = None
    adjustment_type: str | None = Field(default=None, alias="adjustmentType")
    adjustment_value: float | None = Field(default=None, alias="adjustmentValue")
    category: str | None = None
    tier: str | None = None
    component_ids: list[str] | None = Field(default=None, alias="componentIds")


# ── Catalog, validation, pricing ───────────────────────────────────

@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/components")
def list_components(category: str | None = None, search: str | None = None):
    found = filter_components(_catalog, category=category, search=search)
    return {"components": [component_to_dict(c) for c in found], "total": len(found)}


@app.get("/api/catalog")
def get_catalog():
    return catalog_to_dict(_catalog)


@app.get("/api/components/{component_id}")
def get_one_component(component_id: str):
    comp = get_component(_catalog, component_id)
    if comp is None:
        raise api_error(404, "NOT_FOUND", f"Component '{component_id}' not found")
    return {"component": component_to_dict(comp)}


@app.post("/api/validate")
def validate(req: ValidateRequest):
    design = _catalog_design_or_400(req.design)
    result = _quotes.engine.evaluate(design)
    return {"validation": validation_to_dict(result), "metadata": metadata_to_dict(design.metadata)}


@app.post("/api/pricing")
def pricing(req: PricingRequest):
    design = _catalog_design_or_400(req.design)
    location = parse_location(req.location.model_dump(by_alias=True))
    breakdown = calculate_pricing_breakdown(design, location, req.include_installation)
    ok, errors = validate_pricing(breakdown)
    return {
        "pricing": pricing_to_dict(breakdown),
        "isValid": ok,
        "errors": errors,
        "formattedTotal": format_price(breakdown.total),
    }


# ── Saved designs ──────────────────────────────────────────────────

@app.get("/api/designs")
def list_designs(x_user_id: str | None = Header(None)):
    user = _require_user(x_user_id)
    return {"designs": [saved_design_to_dict(d) for d in _designs.list_for_user(user)]}


@app.post("/api/designs", status_code=201)
def save_design(req: SaveDesignRequest, x_user_id: str | None = Header(None)):
    user = _require_user(x_user_id)
    _parse_design_or_400(req.design_data)
    try:
        saved = _designs.create(user, req.name, req.design_data, req.thumbnail)
    except RepositoryError as exc:
        raise api_error(400, "VALIDATION_ERROR", str(exc), {"field": exc.field})
    return {"design": saved_design_to_dict(saved)}


@app.get("/api/designs/{design_id}")
def get_design(design_id: str, x_user_id: str | None = Header(None)):
    saved = _designs.get(design_id, _require_user(x_user_id))
    if saved is None:
        raise api_error(404, "NOT_FOUND", "Design not found")
    return {"design": saved_design_to_dict(saved)}


@app.patch("/api/designs/{design_id}")
def update_design(design_id: str, req: UpdateDesignRequest, x_user_id: str | None = Header(None)):
    user = _require_user(x_user_id)
    if req.design_data is not None:
        _parse_design_or_400(req.design_data)
    try:
        saved = _designs.update(
            design_id, user, name=req.name, design_data=req.design_data, thumbnail=req.thumbnail,
        )
    except RepositoryError as exc:
        raise api_error(400, "VALIDATION_ERROR", str(exc), {"field": exc.field})
    if saved is None:
        raise api_error(404, "NOT_FOUND", "Design not found")
    return {"design": saved_design_to_dict(saved)}


@app.delete("/api/designs/{design_id}")
def delete_design(design_id: str, x_user_id: str | None = Header(None)):
    if not _designs.delete(design_id, _require_user(x_user_id)):
        raise api_error(404, "NOT_FOUND", "Design not found")
    return {"success": True}


@app.post("/api/designs/{design_id}/duplicate", status_code=201)
def duplicate_design(design_id: str, x_user_id: str | None = Header(None)):
    copy = _designs.duplicate(design_id, _require_user(x_user_id))
    if copy is None:
        raise api_error(404, "NOT_FOUND", "Design not found")
    return {"design": saved_design_to_dict(copy)}


# ── Quotes ─────────────────────────────────────────────────────────

@app.post("/api/quotes", status_code=201)
def submit_quote(
    body: Any = Body(None),
    x_forwarded_for: str | None = Header(None),
    x_user_id: str | None = Header(None),
):
    result = _quotes.submit(body, client_key(x_forwarded_for), user_id=x_user_id)
    return {
        "success": True,
        "quoteRequest": quote_summary(result.quote),
        "pricing": pricing_to_dict(result.pricing),
        "emailSent": result.email.success,
    }


@app.get("/api/quotes")
def list_my_quotes(
    status: str | None = None,
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None),
):
    user = _require_user(x_user_id)
    quotes, page = _quotes.list_for_user(user, status, limit, offset)
    return {"quoteRequests": [quote_to_dict(q) for q in quotes], "pagination": page}


@app.get("/api/quotes/{quote_id}")
def get_my_quote(quote_id: str, x_user_id: str | None = Header(None)):
    quote = _quotes.get_for_user(quote_id, _require_user(x_user_id))
    return {"quoteRequest": quote_to_dict(quote)}


@app.patch("/api/quotes/{quote_id}")
def update_my_quote(quote_id: str, body: Any = Body(None), x_user_id: str | None = Header(None)):
    user = _require_user(x_user_id)
    notes = body.get("notes") if isinstance(body, dict) else None
    quote = _quotes.update_notes(quote_id, user, notes)
    return {"quoteRequest": quote_to_dict(quote)}


@app.get("/api/admin/quotes")
def admin_list_quotes(
    status: str | None = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    x_user_email: str | None = Header(None),
):
    _require_admin(x_user_email)
    quotes, page = _quotes.list_all(status, limit, offset)
    return {"quoteRequests": [quote_to_dict(q) for q in quotes], "pagination": page}


@app.get("/api/admin/quotes/{quote_id}")
def admin_get_quote(quote_id: str, x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    return {"quoteRequest": quote_to_dict(_quotes.get(quote_id))}


@app.patch("/api/admin/quotes/{quote_id}")
def admin_update_quote(quote_id: str, req: QuoteUpdateRequest, x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    quote = _quotes.update_status(quote_id, req.status, req.notes, req.notify_message)
    return {"quoteRequest": quote_to_dict(quote)}


# ── Catalog administration ─────────────────────────────────────────

@app.get("/api/admin/components")
def admin_list_components(
    category: str | None = None,
    tier: str | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    x_user_email: str | None = Header(None),
):
    _require_admin(x_user_email)
    found, page = _catalog_admin.list(category, tier, search, limit, offset)
    return {"data": [component_to_dict(c) for c in found], "pagination": page}


@app.post("/api/admin/components", status_code=201)
def admin_create_component(body: Any = Body(None), x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    comp = _catalog_admin.create(body)
    return {"data": component_to_dict(comp), "message": "Component created successfully"}


@app.post("/api/admin/components/bulk-pricing")
def admin_bulk_pricing(req: BulkPricingRequest, x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    changed = _catalog_admin.bulk_update_prices(
        updates=req.updates,
        adjustment_type=req.adjustment_type,
        adjustment_value=req.adjustment_value,
        category=req.category,
        tier=req.tier,
        component_ids=req.component_ids,
    )
    return {
        "data": [component_to_dict(c) for c in changed],
        "count": len(changed),
        "message": f"Successfully updated {len(changed)} component(s)",
    }


@app.get("/api/admin/components/{component_id}")
def admin_get_component(component_id: str, x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    return {"data": component_to_dict(_catalog_admin.get(component_id))}


@app.patch("/api/admin/components/{component_id}")
def admin_update_component(
    component_id: str, body: Any = Body(None), x_user_email: str | None = Header(None),
):
    _require_admin(x_user_email)
    comp = _catalog_admin.update(component_id, body)
    return {"data": component_to_dict(comp), "message": "Component updated successfully"}


@app.delete("/api/admin/components/{component_id}")
def admin_delete_component(component_id: str, x_user_email: str | None = Header(None)):
    _require_admin(x_user_email)
    _catalog_admin.delete(component_id)
    return {"message": "Component deleted successfully"}


# ── Configurator sessions ──────────────────────────────────────────

def _vector(body: dict, key: str) -> Vector3D:
    if not isinstance(body.get(key), dict):
        raise ValueError(f"'{key}' must be an object with x, y, z")
    return parse_vector(body[key])


def _add_component(store: DesignStore, body: dict):
    comp = get_component(_catalog, body["componentId"])
    if comp is None:
        raise api_error(404, "NOT_FOUND", f"Component '{body['componentId']}' not found")
    position = _vector(body, "position") if "position" in body else Vector3D()
    return {"instanceId": store.add_component(comp, position)}


def _load(store: DesignStore, body: dict):
    store.load_design(_catalog_design_or_400(body["design"]))


# action -> handler(store, body); the return value is sent back as "result".
SESSION_ACTIONS: dict[str, Callable[[DesignStore, dict], Any]] = {
    "add-component": _add_component,
    "remove-component": lambda s, b: {"removed": s.remove_component(b["instanceId"])},
    "move-component": lambda s, b: s.update_component_position(b["instanceId"], _vector(b, "position")),
    "rotate-component": lambda s, b: s.update_component_rotation(b["instanceId"], _vector(b, "rotation")),
    "duplicate-component": lambda s, b: {"instanceId": s.duplicate_component(b["instanceId"])},
    "connect": lambda s, b: {"connectionId": s.create_connection(
        b["fromInstanceId"], b["toInstanceId"],
        b["fromConnectionPointId"], b["toConnectionPointId"], b["connectionType"],
    )},
    "disconnect": lambda s, b: s.remove_connection(b["connectionId"]),
    "select": lambda s, b: s.select_component(b["instanceId"], bool(b.get("multi", False))),
    "deselect": lambda s, b: s.deselect_component(b["instanceId"]),
    "clear-selection": lambda s, b: s.clear_selection(),
    "highlight": lambda s, b: s.highlight_components(list(b["instanceIds"])),
    "clear-highlight": lambda s, b: s.clear_highlight(),
    "undo": lambda s, b: {"changed": s.undo()},
    "redo": lambda s, b: {"changed": s.redo()},
    "clear": lambda s, b: s.clear_design(),
    "load": _load,
    "rename": lambda s, b: s.update_design_name(str(b["name"])),
    "view-mode": lambda s, b: s.set_view_mode(b["mode"]),
    "active-category": lambda s, b: s.set_active_category(b.get("category")),
    "toggle-snap": lambda s, b: s.toggle_snap_to_grid(),
    "grid-size": lambda s, b: s.set_grid_size(float(b["size"])),
    "validate": lambda s, b: validation_to_dict(s.validate_design()),
}


def _evict_sessions(now: float) -> None:
    """Drop expired sessions, then the least recently used until one more fits."""
    while _sessions:
        sid, oldest = next(iter(_sessions.items()))
        expired = now - oldest.last_access > _settings.session_ttl_s
        if not expired and len(_sessions) < _settings.max_sessions:
            break
        del _sessions[sid]
        log.info("Evicted configurator session %s (%s)", sid, "expired" if expired else "over limit")


def _get_store(session_id: str) -> DesignStore:
    """Look up a session and mark it used; caller holds ``_sessions_lock``."""
    now = _clock()
    session = _sessions.get(session_id)
    if session is not None and now - session.last_access > _settings.session_ttl_s:
        del _sessions[session_id]
        session = None
    if session is None:
        raise api_error(404, "NOT_FOUND", f"Session '{session_id}' not found")
    session.last_access = now
    _sessions.move_to_end(session_id)
    return session.store


@app.post("/api/configurator/sessions", status_code=201)
def create_configurator_session():
    sid = uuid.uuid4().hex
    store = DesignStore(engine=default_engine())
    with _sessions_lock:
        now = _clock()
        _evict_sessions(now)
        _sessions[sid] = _Session(store, now)
        state = store_to_dict(store)
    return {"sessionId": sid, "state": state}


@app.get("/api/configurator/sessions/{session_id}")
def get_configurator_session(session_id: str):
    with _sessions_lock:
        return {"sessionId": session_id, "state": store_to_dict(_get_store(session_id))}


@app.delete("/api/configurator/sessions/{session_id}")
def delete_configurator_session(session_id: str):
    with _sessions_lock:
        if _sessions.pop(session_id, None) is None:
            raise api_error(404, "NOT_FOUND", f"Session '{session_id}' not found")
    return {"success": True}


@app.post("/api/configurator/sessions/{session_id}/{action}")
def configurator_action(session_id: str, action: str, body: dict | None = Body(None)):
    handler = SESSION_ACTIONS.get(action)
    if handler is None:
        raise api_error(404, "UNKNOWN_ACTION", f"Unknown action '{action}'",
                        sorted(SESSION_ACTIONS))
    with _sessions_lock:
        store = _get_store(session_id)
        try:
            result = handler(store, body or {})
        except KeyError as exc:
            raise api_error(400, "INVALID_ACTION_DATA", f"Missing or unknown id: {exc}")
        except (ValueError, TypeError) as exc:
            raise api_error(400, "INVALID_ACTION_DATA", str(exc))
        return {"result": result, "state": store_to_dict(store)}


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run("playset.web.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
