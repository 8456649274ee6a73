"""Quote request persistence on top of the JSON record store."""

from __future__ import annotations

from pathlib import Path

from playset.storage import JsonRepository

from .models import QuoteRequest, quote_to_dict, parse_quote


class QuoteRepository:
    def __init__(self, data_dir: Path) -> None:
        self.store = JsonRepository(data_dir, "quotes")

    def save(self, quote: QuoteRequest) -> QuoteRequest:
        self.store.write(quote.id, quote_to_dict(quote))
        return quote

    def get(self, quote_id: str) -> QuoteRequest | None:
        data = self.store.read(quote_id)
        return parse_quote(data) if data is not None else None

    def list(self, user_id: str | None = None, status: str | None = None) -> list[QuoteRequest]:
        """Quotes newest first, optionally filtered by owner and status."""
        quotes = []
        for data in self.store.list():
            if user_id is not None and data.get("userId") != user_id:
                continue
            if status is not None and data.get("status") != status:
                continue
            quotes.append(parse_quote(data))
        return quotes
