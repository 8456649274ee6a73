"""Tests for quote submission, rate limiting, admin updates and emails."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from playset.config import Settings
from playset.design.serialization import design_to_dict
from playset.quotes import (
    CustomerInfo, QuoteError, QuoteMailer, QuoteRepository, QuoteService, RateLimiter,
    client_key, parse_customer_info, validate_quote_request,
)
from playset.quotes.email import business_notification, customer_confirmation, reference
from tests.playset_fixture import catalog, make_design, make_starter_design, place

CUSTOMER = {
    "name": "Thandi Nkosi",
    "email": "thandi@example.com",
    "phone": "082 123 4567",
    "city": "Johannesburg",
    "state": "Gauteng",
    "postalCode": "2000",
}


def _body(design=None, **extra) -> dict:
    return {
        "design": design_to_dict(design or make_starter_design()),
        "customerInfo": dict(CUSTOMER),
        **extra,
    }


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestRateLimiter(unittest.TestCase):

    def test_window(self):
        clock = FakeClock()
        limiter = RateLimiter(3, 60, clock=clock)
        self.assertEqual([limiter.check("ip") for _ in range(4)],
                         [(True, 2), (True, 1), (True, 0), (False, 0)])
        self.assertEqual(limiter.check("other"), (True, 2))
        clock.now += 61
        self.assertEqual(limiter.check("ip"), (True, 2))

    def test_client_key(self):
        self.assertEqual(client_key("1.2.3.4, 10.0.0.1"), "1.2.3.4")
        self.assertEqual(client_key(None), "unknown")
        self.assertEqual(client_key(" , "), "unknown")


class TestRequestValidation(unittest.TestCase):

    def test_valid(self):
        submission, errors = validate_quote_request(_body(includeInstallation=True))
        self.assertEqual(errors, [])
        self.assertTrue(submission.include_installation)
        self.assertEqual(submission.customer_info.postal_code, "2000")
        self.assertEqual(len(submission.design.components), 3)

    def test_missing_everything(self):
        self.assertEqual(validate_quote_request({})[1],
                         ["Design data is required", "Customer information is required"])
        self.assertEqual(validate_quote_request("nope")[1],
                         ["Design data is required", "Customer information is required"])

    def test_empty_design(self):
        _, errors = validate_quote_request({"design": {"components": []}, "customerInfo": CUSTOMER})
        self.assertEqual(errors, ["Design must have at least one component"])
        _, errors = validate_quote_request({"design": {}, "customerInfo": CUSTOMER})
        self.assertEqual(errors, ["Design must contain components"])

    def test_customer_errors(self):
        body = _body()
        body["customerInfo"] = {"name": "T", "email": "not-an-email", "phone": " ", "city": ""}
        _, errors = validate_quote_request(body)
        self.assertEqual(errors, [
            "Valid name is required",
            "Invalid email format",
            "Phone number is required",
            "City is required",
            "State/Province is required",
            "Postal code is required",
        ])

    def test_missing_email(self):
        body = _body()
        del body["customerInfo"]["email"]
        self.assertEqual(validate_quote_request(body)[1], ["Email is required"])

    def test_customer_rules_come_from_the_model(self):
        raw = {**CUSTOMER, "email": "", "phone": 821234567}
        info, errors = parse_customer_info(raw)
        self.assertIsNone(info)
        self.assertEqual(errors, ["Email is required", "Phone number is required"])
        self.assertEqual(validate_quote_request({**_body(), "customerInfo": raw})[1], errors)
        self.assertEqual(parse_customer_info(CUSTOMER)[0].postal_code, "2000")


class QuoteServiceCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(data_dir=Path(self._tmp.name), email_api_key="re_test")
        self.repo = QuoteRepository(self.settings.data_dir)
        self.service = QuoteService(
            self.repo, QuoteMailer(self.settings), limiter=RateLimiter(100), catalog=catalog(),
        )
        patcher = mock.patch("playset.quotes.email.requests.post")
        self.post = patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self._tmp.cleanup()


class TestSubmit(QuoteServiceCase):

    def test_happy_path(self):
        result = self.service.submit(_body(), "1.2.3.4", user_id="user-1")
        self.assertEqual(result.quote.status, "pending")
        self.assertEqual(result.pricing.total, 10160)
        self.assertTrue(result.email.success)
        saved = self.repo.get(result.quote.id)
        self.assertEqual(saved.user_id, "user-1")
        self.assertEqual(saved.pricing["total"], 10160)
        self.assertEqual(len(saved.design_snapshot["components"]), 3)

        self.assertEqual(self.post.call_count, 2)
        first, second = self.post.call_args_list
        self.assertEqual(first.kwargs["json"]["to"], [self.settings.business_email])
        self.assertEqual(second.kwargs["json"]["to"], ["thandi@example.com"])
        self.assertEqual(first.kwargs["headers"]["Authorization"], "Bearer re_test")

    def test_client_totals_ignored(self):
        """Pricing comes from catalog data, not the metadata the client sent."""
        body = _body()
        body["design"]["metadata"]["totalPrice"] = 1
        body["design"]["metadata"]["estimatedWeight"] = 0
        result = self.service.submit(body, "ip")
        self.assertEqual(result.pricing.subtotal, 8900)
        self.assertEqual(result.pricing.shipping.weight_rate, 560)

    def test_component_data_comes_from_catalog(self):
        """Tampered _componentData never reaches pricing or the stored snapshot."""
        body = _body()
        for placed in body["design"]["components"]:
            data = placed["customizations"]["options"]["_componentData"]
            data["price"] = 1
            data["weight"] = 0
        result = self.service.submit(body, "ip")
        self.assertEqual(result.pricing.subtotal, 8900)
        self.assertEqual(result.pricing.shipping.weight_rate, 560)
        snapshot = self.repo.get(result.quote.id).design_snapshot
        self.assertEqual(snapshot["components"][0]["customizations"]["options"]["_componentData"]["price"], 4500)

    def test_missing_component_data_filled_from_catalog(self):
        body = _body()
        for placed in body["design"]["components"]:
            del placed["customizations"]["options"]["_componentData"]
        self.assertEqual(self.service.submit(body, "ip").pricing.subtotal, 8900)

    def test_unknown_component(self):
        body = _body()
        body["design"]["components"][0]["componentId"] = "rocket"
        with self.assertRaises(QuoteError) as ctx:
            self.service.submit(body, "ip")
        self.assertEqual((ctx.exception.code, ctx.exception.status), ("INVALID_DESIGN", 400))
        self.assertEqual(ctx.exception.details, ["Unknown component 'rocket'"])
        self.assertEqual(self.repo.list(), [])

    def test_installation_included(self):
        result = self.service.submit(_body(includeInstallation=True), "ip")
        self.assertEqual(result.pricing.installation.total, 2900)
        self.assertEqual(result.pricing.total, 13060)

    def test_invalid_request(self):
        with self.assertRaises(QuoteError) as ctx:
            self.service.submit({"design": {"components": []}}, "ip")
        self.assertEqual((ctx.exception.code, ctx.exception.status), ("VALIDATION_ERROR", 400))
        self.assertIn("Customer information is required", ctx.exception.details)

    def test_invalid_design(self):
        design = make_design([place("deck-4ft", "d", 0, 0, 4)])
        with self.assertRaises(QuoteError) as ctx:
            self.service.submit(_body(design), "ip")
        self.assertEqual(ctx.exception.code, "INVALID_DESIGN")
        self.assertIn("1 elevated deck(s) have no access point", ctx.exception.details)
        self.assertEqual(self.repo.list(), [])
        self.post.assert_not_called()

    def test_rate_limited(self):
        service = QuoteService(
            self.repo, QuoteMailer(self.settings), limiter=RateLimiter(1), catalog=catalog(),
        )
        service.submit(_body(), "ip")
        with self.assertRaises(QuoteError) as ctx:
            service.submit(_body(), "ip")
        self.assertEqual((ctx.exception.code, ctx.exception.status), ("RATE_LIMIT_EXCEEDED", 429))
        self.assertEqual(len(self.repo.list()), 1)

    def test_mail_failure_does_not_fail_submission(self):
        self.post.side_effect = requests.ConnectionError("mail host down")
        with self.assertLogs("playset.quotes", level="WARNING"):
            result = self.service.submit(_body(), "ip")
        self.assertFalse(result.email.success)
        self.assertEqual(result.email.errors, [
            "Failed to send business notification",
            "Failed to send customer confirmation",
        ])
        self.assertIsNotNone(self.repo.get(result.quote.id))

    def test_mailer_not_configured(self):
        settings = Settings(data_dir=self.settings.data_dir)
        service = QuoteService(
            self.repo, QuoteMailer(settings), limiter=RateLimiter(100), catalog=catalog(),
        )
        result = service.submit(_body(), "ip")
        self.assertEqual(result.email.errors, ["Email service not configured"])
        self.post.assert_not_called()


class TestQuoteAdmin(QuoteServiceCase):

    def setUp(self):
        super().setUp()
        self.quote = self.service.submit(_body(), "ip", user_id="user-1").quote
        self.post.reset_mock()

    def test_get_for_user(self):
        self.assertEqual(self.service.get_for_user(self.quote.id, "user-1").id, self.quote.id)
        with self.assertRaises(QuoteError) as ctx:
            self.service.get_for_user(self.quote.id, "user-2")
        self.assertEqual(ctx.exception.status, 404)

    def test_update_status_and_notify(self):
        updated = self.service.update_status(
            self.quote.id, status="reviewed", notes="Called customer",
            notify_message="We have reviewed your design.",
        )
        self.assertEqual(updated.status, "reviewed")
        self.assertEqual(self.repo.get(self.quote.id).notes, "Called customer")
        payload = self.post.call_args.kwargs["json"]
        self.assertEqual(payload["subject"], f"Update on Your Quote Request #{reference(self.quote.id)}")
        self.assertIn("We have reviewed your design.", payload["text"])

    def test_update_without_message_sends_nothing(self):
        self.service.update_status(self.quote.id, status="quoted")
        self.post.assert_not_called()

    def test_invalid_status(self):
        with self.assertRaises(QuoteError) as ctx:
            self.service.update_status(self.quote.id, status="shipped")
        self.assertEqual(ctx.exception.code, "INVALID_STATUS")

    def test_update_missing(self):
        with self.assertRaises(QuoteError) as ctx:
            self.service.update_status("doesnotexist", status="quoted")
        self.assertEqual(ctx.exception.code, "NOT_FOUND")

    def test_owner_updates_notes(self):
        updated = self.service.update_notes(self.quote.id, "user-1", "Please call after 5pm")
        self.assertEqual(updated.status, "pending")
        self.assertEqual(self.repo.get(self.quote.id).notes, "Please call after 5pm")
        self.service.update_notes(self.quote.id, "user-1", None)
        self.assertEqual(self.repo.get(self.quote.id).notes, "Please call after 5pm")

    def test_notes_update_refused(self):
        with self.assertRaises(QuoteError) as ctx:
            self.service.update_notes(self.quote.id, "user-2", "mine now")
        self.assertEqual((ctx.exception.code, ctx.exception.status), ("FORBIDDEN", 403))
        with self.assertRaises(QuoteError) as ctx:
            self.service.update_notes(self.quote.id, "user-1", 42)
        self.assertEqual(ctx.exception.message, "Notes must be a string")
        with self.assertRaises(QuoteError) as ctx:
            self.service.update_notes("doesnotexist", "user-1", "x")
        self.assertEqual(ctx.exception.code, "NOT_FOUND")
        self.assertIsNone(self.repo.get(self.quote.id).notes)

    def test_listing(self):
        for _ in range(2):
            self.service.submit(_body(), "ip", user_id="user-1")
        self.service.submit(_body(), "ip", user_id="user-2")

        quotes, page = self.service.list_for_user("user-1", limit=2)
        self.assertEqual(len(quotes), 2)
        self.assertEqual(page, {"total": 3, "limit": 2, "offset": 0, "hasMore": True})

        self.service.update_status(self.quote.id, status="converted")
        self.assertEqual(self.service.list_all("converted")[1]["total"], 1)
        self.assertEqual(self.service.list_all("all")[1]["total"], 4)


class TestEmailTemplates(unittest.TestCase):

    def setUp(self):
        from playset.pricing import Location, calculate_pricing_breakdown
        from playset.quotes import QuoteRequest

        self.design = make_starter_design()
        self.pricing = calculate_pricing_breakdown(self.design, Location("Johannesburg"))
        info = CustomerInfo.model_validate({**CUSTOMER, "name": "Sam <b>", "notes": "Shade please"})
        self.quote = QuoteRequest(
            id="abcdef1234567890", customer_info=info, created_at="2025-03-01T10:30:00+00:00",
        )

    def test_business_notification(self):
        msg = business_notification(self.quote, self.design, self.pricing)
        self.assertEqual(msg.subject, "New Quote Request #abcdef12 from Sam <b>")
        self.assertIn("Total Estimate: R 10,160", msg.text)
        self.assertIn("CUSTOMER NOTES\nShade please", msg.text)
        self.assertIn("Sam &lt;b&gt;", msg.html)
        self.assertNotIn("Sam <b>", msg.html)

    def test_customer_confirmation(self):
        msg = customer_confirmation(self.quote, self.design, self.pricing)
        self.assertEqual(msg.subject, "Quote Request Received #ABCDEF12")
        self.assertIn("YOUR REFERENCE NUMBER: #ABCDEF12", msg.text)
        self.assertIn("Components: 3 pieces", msg.text)
        self.assertNotIn("Installation", msg.text)


if __name__ == "__main__":
    unittest.main()
