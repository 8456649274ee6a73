"""Quote requests: customer details, submission pipeline, notification mail."""

from .models import (
    QUOTE_STATUSES, CustomerInfo, QuoteRequest, quote_to_dict, quote_summary, parse_quote,
    parse_customer_info,
)
from .email import (
    EmailMessage, EmailResult, QuoteMailer,
    business_notification, customer_confirmation, quote_update,
)
from .repository import QuoteRepository
from .service import (
    QuoteError, QuoteService, QuoteSubmission, RateLimiter, SubmitResult,
    client_key, validate_quote_request,
)

__all__ = [
    # Models
    "QUOTE_STATUSES", "CustomerInfo", "QuoteRequest",
    "quote_to_dict", "quote_summary", "parse_quote", "parse_customer_info",
    # Email
    "EmailMessage", "EmailResult", "QuoteMailer",
    "business_notification", "customer_confirmation", "quote_update",
    # Repository / Service
    "QuoteRepository",
    "QuoteError", "QuoteService", "QuoteSubmission", "RateLimiter", "SubmitResult",
    "client_key", "validate_quote_request",
]
