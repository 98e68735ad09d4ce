"""
Canonical public base URLs.

- get_public_app_url(): frontend origin hosting the public registration pages.
- get_public_api_url(): backend origin serving stored files.
No other code should build these links directly.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _normalize(raw: str) -> str:
    raw = (raw or "").strip().rstrip("/")
    if raw.startswith("http://") and "localhost" not in raw and "127.0.0.1" not in raw:
        raw = "https://" + raw.split("://", 1)[1]
    return raw


def get_public_app_url() -> str:
    """
    Return normalized public frontend base URL (no trailing slash).
    Fallback order: FRONTEND_PUBLIC_URL, PUBLIC_APP_URL, FRONTEND_URL, VERCEL_URL (as https).

    Rules:
    - Result is stripped and trailing slash removed.
    - Non-localhost http URLs are upgraded to https.
    - Falls back to http://localhost:3000, with a warning in production.
    """
    raw = (
        (os.getenv("FRONTEND_PUBLIC_URL") or "").strip()
        or (os.getenv("PUBLIC_APP_URL") or "").strip()
        or (os.getenv("FRONTEND_URL") or "").strip()
    )
    if not raw and os.getenv("VERCEL_URL"):
        raw = f"https://{os.getenv('VERCEL_URL', '').strip()}"
    raw = _normalize(raw)
    if not raw:
        env = (os.getenv("ENVIRONMENT") or "").strip().lower()
        if env in ("production", "prod"):
            logger.warning("FRONTEND_PUBLIC_URL is not set; public form links will point at localhost.")
        return "http://localhost:3000"
    return raw


def get_public_api_url() -> str:
    """Backend base URL for file links. BACKEND_PUBLIC_URL, then RENDER_EXTERNAL_URL."""
    raw = (
        (os.getenv("BACKEND_PUBLIC_URL") or "").strip()
        or (os.getenv("RENDER_EXTERNAL_URL") or "").strip()
    )
    raw = _normalize(raw)
    return raw or "http://localhost:8001"


def build_public_form_url(form_id: str) -> str:
    return f"{get_public_app_url()}/form/{form_id}"
