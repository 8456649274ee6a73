"""Quote submission: rate limit, request checks, design validation, pricing,
persistence and notification, in that order.

Every rejection is a ``QuoteError`` carrying the API error code and HTTP
status; the web layer turns it into the JSON error body.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from playset.catalog import CatalogResult, load_catalog
from playset.design.metadata import calculate_metadata
from playset.design.models import Design, DesignParseError
from playset.design.parsing import attach_catalog_data, parse_design
from playset.design.serialization import design_to_dict
from playset.pricing import (
    Location, PricingBreakdown, calculate_pricing_breakdown, pricing_to_dict, validate_pricing,
)
from playset.storage import new_record_id, now_iso
from playset.validation import ValidationEngine, default_engine

from .email import EmailResult, QuoteMailer
from .models import QUOTE_STATUSES, CustomerInfo, QuoteRequest, parse_customer_info
from .repository import QuoteRepository

log = logging.getLogger("playset.quotes")


class QuoteError(Exception):
    """A quote operation was refused; ``status`` is the HTTP status to return."""

    def __init__(self, code: str, status: int, message: str, details: Any = None) -> None:
        self.code = code
        self.status = status
        self.message = message
        self.details = details
        super().__init__(f"{code}: {message}")


# ── Rate limiting ──────────────────────────────────────────────────


def client_key(forwarded_for: str | None) -> str:
    """First address of an X-Forwarded-For header, or ``unknown``."""
    if not forwarded_for:
        return "unknown"
    return forwarded_for.split(",")[0].strip() or "unknown"


class RateLimiter:
    """Fixed-window counter per key: *max_requests* per *window_seconds*."""

    def __init__(
        self,
        max_requests: int = 3,
        window_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}   # key -> (count, reset_at)
        self._lock = threading.Lock()

    def check(self, key: str) -> tuple[bool, int]:
        """Count one request against *key*; returns (allowed, remaining)."""
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if count == 0 or now > reset_at:
                self._windows[key] = (1, now + self.window_seconds)
                return True, self.max_requests - 1
            if count >= self.max_requests:
                return False, 0
            self._windows[key] = (count + 1, reset_at)
            return True, self.max_requests - count - 1


# ── Request validation ─────────────────────────────────────────────


@dataclass
class QuoteSubmission:
    design: Design
    customer_info: CustomerInfo
    include_installation: bool = False


def validate_quote_request(body: Any) -> tuple[QuoteSubmission | None, list[str]]:
    """Check a raw submission body; returns (submission, []) or (None, errors)."""
    if not isinstance(body, dict):
        return None, ["Design data is required", "Customer information is required"]

    errors: list[str] = []
    design_data = body.get("design")
    if not isinstance(design_data, dict):
        errors.append("Design data is required")
    elif not isinstance(design_data.get("components"), list):
        errors.append("Design must contain components")
    elif not design_data["components"]:
        errors.append("Design must have at least one component")

    info = body.get("customerInfo")
    customer = None
    if not isinstance(info, dict):
        errors.append("Customer information is required")
    else:
        customer, customer_errors = parse_customer_info(info)
        errors += customer_errors

    if errors:
        return None, errors

    try:
        design = parse_design(design_data)
    except DesignParseError as exc:
        return None, [str(exc)]
    return QuoteSubmission(design, customer, bool(body.get("includeInstallation", False))), []


# ── Service ────────────────────────────────────────────────────────


@dataclass
class SubmitResult:
    quote: QuoteRequest
    pricing: PricingBreakdown
    email: EmailResult = field(default_factory=lambda: EmailResult(False))


class QuoteService:
    def __init__(
        self,
        repo: QuoteRepository,
        mailer: QuoteMailer,
        engine: ValidationEngine | None = None,
        limiter: RateLimiter | None = None,
        catalog: CatalogResult | None = None,
    ) -> None:
        self.repo = repo
        self.mailer = mailer
        self.engine = engine or default_engine()
        self.limiter = limiter or RateLimiter()
        self.catalog = catalog if catalog is not None else load_catalog()

    def submit(self, body: Any, client: str, user_id: str | None = None) -> SubmitResult:
        allowed, _ = self.limiter.check(client)
        if not allowed:
            log.info("Quote rate limit hit for %s", client)
            raise QuoteError(
                "RATE_LIMIT_EXCEEDED", 429, "Too many quote requests. Please try again later.",
            )

        submission, errors = validate_quote_request(body)
        if submission is None:
            raise QuoteError("VALIDATION_ERROR", 400, "Invalid quote request data", errors)

        design = submission.design
        if unknown := attach_catalog_data(design, self.catalog):
            raise QuoteError(
                "INVALID_DESIGN", 400, "Design references unknown components",
                [f"Unknown component '{cid}'" for cid in unknown],
            )
        # Client-sent metadata and _componentData are replaced by catalog values.
        design.metadata = calculate_metadata(design.components)

        validation = self.engine.evaluate(design)
        if validation.errors:
            raise QuoteError(
                "INVALID_DESIGN", 400, "Design has validation errors",
                [e.message for e in validation.errors],
            )

        info = submission.customer_info
        pricing = calculate_pricing_breakdown(
            design, Location(info.city, info.state, info.postal_code),
            submission.include_installation,
        )
        ok, pricing_errors = validate_pricing(pricing)
        if not ok:
            raise QuoteError("PRICING_ERROR", 400, "Failed to calculate pricing", pricing_errors)

        now = now_iso()
        quote = self.repo.save(QuoteRequest(
            id=new_record_id(),
            customer_info=info,
            design_snapshot=design_to_dict(design),
            pricing=pricing_to_dict(pricing),
            user_id=user_id,
            status="pending",
            created_at=now,
            updated_at=now,
        ))
        log.info("Quote %s submitted (%d components, total %s)",
                 quote.id, len(design.components), pricing.total)

        email = self.mailer.send_quote_request_emails(quote, design, pricing)
        if not email.success:
            log.warning("Quote %s saved but emails incomplete: %s", quote.id, "; ".join(email.errors))
        return SubmitResult(quote, pricing, email)

    def get(self, quote_id: str) -> QuoteRequest:
        quote = self.repo.get(quote_id)
        if quote is None:
            raise QuoteError("NOT_FOUND", 404, "Quote request not found")
        return quote

    def get_for_user(self, quote_id: str, user_id: str) -> QuoteRequest:
        quote = self.get(quote_id)
        if quote.user_id != user_id:
            raise QuoteError("NOT_FOUND", 404, "Quote request not found")
        return quote

    def update_status(
        self,
        quote_id: str,
        status: str | None = None,
        notes: str | None = None,
        notify_message: str | None = None,
    ) -> QuoteRequest:
        """Admin update; mails the customer when *notify_message* is given."""
        if status is not None and status not in QUOTE_STATUSES:
            raise QuoteError(
                "INVALID_STATUS", 400, "Invalid status value",
                f"Status must be one of: {', '.join(QUOTE_STATUSES)}",
            )
        quote = self.get(quote_id)
        if status is not None:
            quote.status = status
        if notes is not None:
            quote.notes = notes
        quote.updated_at = now_iso()
        self.repo.save(quote)
        log.info("Quote %s is now %s", quote.id, quote.status)
        if notify_message:
            self.mailer.send_quote_update(quote, notify_message)
        return quote

    def update_notes(self, quote_id: str, user_id: str, notes: Any) -> QuoteRequest:
        """Owner edit of the notes on their own quote; ``None`` leaves them as they are."""
        quote = self.get(quote_id)
        if quote.user_id != user_id:
            raise QuoteError("FORBIDDEN", 403, "Access denied")
        if notes is not None and not isinstance(notes, str):
            raise QuoteError("VALIDATION_ERROR", 400, "Notes must be a string")
        if notes is not None:
            quote.notes = notes
            quote.updated_at = now_iso()
            self.repo.save(quote)
            log.info("Quote %s notes updated by owner", quote.id)
        return quote

    def _page(self, quotes: list[QuoteRequest], limit: int, offset: int) -> tuple[list[QuoteRequest], dict]:
        total = len(quotes)
        return quotes[offset:offset + limit], {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        }

    def list_for_user(
        self, user_id: str, status: str | None = None, limit: int = 10, offset: int = 0,
    ) -> tuple[list[QuoteRequest], dict]:
        return self._page(self.repo.list(user_id=user_id, status=status or None), limit, offset)

    def list_all(
        self, status: str | None = None, limit: int = 50, offset: int = 0,
    ) -> tuple[list[QuoteRequest], dict]:
        """Admin listing; ``all`` (or no status) means unfiltered."""
        if status == "all":
            status = None
        return self._page(self.repo.list(status=status or None), limit, offset)
