"""Quote emails: templates plus a thin client for the transactional-mail API.

Mail is sent with a single JSON POST per message (Resend-compatible:
``from``, ``to``, ``subject``, ``html``, ``text`` and a bearer token).
Send failures are logged and reported back, never raised; a quote
submission must not fail because a mail could not go out.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime

import requests

from playset.config import Settings
from playset.design.models import Design
from playset.pricing import PricingBreakdown, format_price

from .models import QuoteRequest

log = logging.getLogger("playset.quotes.email")

SUPPORT_PHONE = "+27 12 345 6789"
NOT_CONFIGURED = "Email service not configured"


@dataclass
class EmailMessage:
    subject: str
    html: str
    text: str


@dataclass
class EmailResult:
    success: bool
    errors: list[str] = field(default_factory=list)


def reference(quote_id: str) -> str:
    """Customer-facing reference: first 8 characters, upper-cased."""
    return quote_id[:8].upper()


def _submitted_on(created_at: str) -> str:
    try:
        return datetime.fromisoformat(created_at).strftime("%d %B %Y, %H:%M")
    except ValueError:
        return created_at


# ── Templates ──────────────────────────────────────────────────────


def _design_lines(design: Design) -> list[str]:
    meta = design.metadata
    dims = meta.dimensions
    lines = [f"Design Name: {design.name}"] if design.name else []
    lines += [
        f"Components: {meta.component_count} pieces",
        f"Dimensions: {dims.width:g} × {dims.depth:g} × {dims.height:g} {dims.unit}",
        f"Capacity: {meta.capacity} children",
    ]
    return lines


def _price_lines(pricing: PricingBreakdown, labels: tuple[str, str, str]) -> list[str]:
    subtotal_label, shipping_label, install_label = labels
    lines = [
        f"{subtotal_label}: {format_price(pricing.subtotal)}",
        f"{shipping_label}: {format_price(pricing.shipping.total if pricing.shipping else 0)}",
    ]
    if pricing.installation is not None:
        lines.append(f"{install_label}: {format_price(pricing.installation.total)}")
    lines.append(f"Total Estimate: {format_price(pricing.total)}")
    return lines


def _html_block(title: str, lines: list[str]) -> str:
    items = "".join(f"<li>{html.escape(line)}</li>" for line in lines)
    return f"<h3>{html.escape(title)}</h3><ul>{items}</ul>"


def _html_page(heading: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; color: #333;\">"
        f"<h2>{html.escape(heading)}</h2>{body}"
        "<hr><p>Extreme V - Creating Beautiful Play Spaces</p></body></html>"
    )


def business_notification(quote: QuoteRequest, design: Design, pricing: PricingBreakdown) -> EmailMessage:
    info = quote.customer_info
    customer = [
        f"Name: {info.name}",
        f"Email: {info.email}",
        f"Phone: {info.phone}",
        f"Location: {info.city}, {info.state} {info.postal_code}",
    ]
    design_lines = _design_lines(design)
    price_lines = _price_lines(
        pricing, ("Components Subtotal", "Shipping Estimate", "Installation Estimate"),
    )
    sections = [
        ("CUSTOMER INFORMATION", customer),
        ("DESIGN DETAILS", design_lines),
        ("PRICING ESTIMATE", price_lines),
    ]
    if info.notes:
        sections.append(("CUSTOMER NOTES", [info.notes]))

    text = f"New Quote Request #{quote.id[:8]}\n\n"
    text += "\n\n".join(title + "\n" + "\n".join(lines) for title, lines in sections)
    text += f"\n\nSubmitted on {_submitted_on(quote.created_at)}\n"

    body = "".join(_html_block(title.title(), lines) for title, lines in sections)
    body += f"<p>Submitted on {html.escape(_submitted_on(quote.created_at))}</p>"
    return EmailMessage(
        subject=f"New Quote Request #{quote.id[:8]} from {info.name}",
        html=_html_page(f"New Quote Request #{quote.id[:8]}", body),
        text=text,
    )


def customer_confirmation(quote: QuoteRequest, design: Design, pricing: PricingBreakdown) -> EmailMessage:
    info = quote.customer_info
    ref = reference(quote.id)
    intro = (
        "Thank you for your interest in our custom jungle gym designs! "
        "We've received your quote request and our team is reviewing it."
    )
    next_steps = [
        "Review: Our team will review your design and requirements (within 24 hours)",
        "Quote: We'll prepare a detailed quote with exact pricing and specifications",
        "Contact: We'll reach out via email or phone to discuss your project",
        "Customization: We can make any adjustments to your design as needed",
    ]
    design_lines = _design_lines(design)
    price_lines = _price_lines(pricing, ("Components", "Shipping", "Installation"))

    text = "\n".join([
        "Thank you for your quote request!",
        "",
        f"Hi {info.name},",
        "",
        intro,
        "",
        f"YOUR REFERENCE NUMBER: #{ref}",
        "Please save this for your records.",
        "",
        "YOUR DESIGN SUMMARY",
        *design_lines,
        "",
        "ESTIMATED PRICING",
        *price_lines,
        "",
        "* This is an initial estimate. Final pricing will be provided in your formal quote.",
        "",
        "WHAT HAPPENS NEXT?",
        *(f"{i}. {step}" for i, step in enumerate(next_steps, 1)),
        "",
        "QUESTIONS? WE'RE HERE TO HELP!",
        f"Phone: {SUPPORT_PHONE}",
    ]) + "\n"

    body = (
        f"<p>Hi {html.escape(info.name)},</p><p>{html.escape(intro)}</p>"
        f"<p><strong>Your reference number: #{ref}</strong></p>"
        + _html_block("Your Design Summary", design_lines)
        + _html_block("Estimated Pricing", price_lines)
        + _html_block("What Happens Next?", next_steps)
    )
    return EmailMessage(
        subject=f"Quote Request Received #{ref}",
        html=_html_page("Thank you for your quote request!", body),
        text=text,
    )


def quote_update(quote: QuoteRequest, message: str) -> EmailMessage:
    info = quote.customer_info
    ref = reference(quote.id)
    text = (
        f"Hi {info.name},\n\n"
        f"We have an update on your quote request #{ref}.\n\n"
        f"Status: {quote.status}\n\n{message}\n\n"
        "Best regards,\nThe Extreme V Team\n"
    )
    body = (
        f"<p>Hi {html.escape(info.name)},</p>"
        f"<p>We have an update on your quote request #{ref}.</p>"
        f"<p><strong>Status:</strong> {html.escape(quote.status)}</p>"
        f"<p>{html.escape(message)}</p>"
    )
    return EmailMessage(
        subject=f"Update on Your Quote Request #{ref}",
        html=_html_page("Quote Request Update", body),
        text=text,
    )


# ── Client ─────────────────────────────────────────────────────────


class QuoteMailer:
    def __init__(self, settings: Settings, timeout: float = 10.0) -> None:
        self.settings = settings
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.settings.email_api_key)

    def send(self, to: str, message: EmailMessage) -> None:
        """POST one message; raises requests.RequestException on failure."""
        r = requests.post(
            self.settings.email_api_url,
            headers={
                "Authorization": f"Bearer {self.settings.email_api_key}",
                "Content-Type": "application/json",
            },
            json={
                "from": self.settings.email_from,
                "to": [to],
                "subject": message.subject,
                "html": message.html,
                "text": message.text,
            },
            timeout=self.timeout,
        )
        r.raise_for_status()

    def send_quote_request_emails(
        self, quote: QuoteRequest, design: Design, pricing: PricingBreakdown,
    ) -> EmailResult:
        """Business notification first, then the customer confirmation."""
        if not self.configured:
            log.warning("%s. Skipping email send.", NOT_CONFIGURED)
            return EmailResult(False, [NOT_CONFIGURED])

        errors = []
        try:
            self.send(self.settings.business_email, business_notification(quote, design, pricing))
        except requests.RequestException as exc:
            log.error("Failed to send business notification for quote %s: %s", quote.id, exc)
            errors.append("Failed to send business notification")
        try:
            self.send(quote.customer_info.email, customer_confirmation(quote, design, pricing))
        except requests.RequestException as exc:
            log.error("Failed to send customer confirmation for quote %s: %s", quote.id, exc)
            errors.append("Failed to send customer confirmation")
        return EmailResult(not errors, errors)

    def send_quote_update(self, quote: QuoteRequest, message: str) -> bool:
        if not self.configured:
            log.warning("%s. Skipping email send.", NOT_CONFIGURED)
            return False
        try:
            self.send(quote.customer_info.email, quote_update(quote, message))
        except requests.RequestException as exc:
            log.error("Failed to send quote update for %s: %s", quote.id, exc)
            return False
        return True
