"""Runtime settings read from the environment.

``.env`` and ``.env.local`` at the repo root are loaded into
``os.environ`` on import; variables already set in the environment win.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]


# ── .env loader ────────────────────────────────────────────────────

def _load_env(root: Path = ROOT):
    for name in (".env", ".env.local"):
        p = root / name
        if p.exists():
            for line in p.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and "=" in line and not line.startswith("#"):
                    k, v = line.split("=", 1)
                    k = k.strip()
                    v = v.strip().strip('"').strip("'")
                    if k and k not in os.environ:
                        os.environ[k] = v

_load_env()


# ── Settings ───────────────────────────────────────────────────────

DEFAULT_EMAIL_API_URL = "https://api.resend.com/emails"
DEFAULT_EMAIL_FROM = "noreply@extremev.co.za"
DEFAULT_BUSINESS_EMAIL = "info@extremev.co.za"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = ROOT / "outputs" / "data"
    catalog_dir: Path = ROOT / "catalog"
    email_api_key: str = ""
    email_api_url: str = DEFAULT_EMAIL_API_URL
    email_from: str = DEFAULT_EMAIL_FROM
    business_email: str = DEFAULT_BUSINESS_EMAIL
    admin_emails: frozenset[str] = field(default_factory=frozenset)
    quote_rate_limit: int = 3
    quote_rate_window_s: float = 3600.0
    session_ttl_s: float = 3600.0
    max_sessions: int = 500

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        admins = frozenset(
            e.strip().lower() for e in env.get("ADMIN_EMAILS", "").split(",") if e.strip()
        )
        return cls(
            data_dir=Path(env.get("DATA_DIR") or cls.data_dir),
            catalog_dir=Path(env.get("CATALOG_DIR") or cls.catalog_dir),
            email_api_key=env.get("EMAIL_API_KEY", ""),
            email_api_url=env.get("EMAIL_API_URL") or DEFAULT_EMAIL_API_URL,
            email_from=env.get("EMAIL_FROM") or DEFAULT_EMAIL_FROM,
            business_email=env.get("BUSINESS_EMAIL") or DEFAULT_BUSINESS_EMAIL,
            admin_emails=admins,
            quote_rate_limit=int(env.get("QUOTE_RATE_LIMIT") or 3),
            quote_rate_window_s=float(env.get("QUOTE_RATE_WINDOW_S") or 3600),
            session_ttl_s=float(env.get("SESSION_TTL_S") or 3600),
            max_sessions=int(env.get("MAX_SESSIONS") or 500),
        )

    def is_admin(self, email: str | None) -> bool:
        return bool(email) and email.strip().lower() in self.admin_emails
