"""Authorization header for the Trendyol seller API."""

import base64

from app.models.trendyol_models import Credentials


def signature_header(credentials: Credentials) -> str:
    """Return ``Basic base64(api_key:api_secret)`` for the given snapshot."""
    token = f"{credentials.api_key}:{credentials.api_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(token).decode("ascii")
