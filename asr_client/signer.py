from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from urllib.parse import urlencode, urlsplit

from asr_client.errors import ConfigurationError

REQUEST_LINE_METHOD = "GET"
REQUEST_LINE_VERSION = "HTTP/1.1"
SIGNED_HEADERS = "host date request-line"


@dataclass(frozen=True)
class SignedUrl:
    url: str
    date: str
    host: str


def http_date(now: datetime | None = None) -> str:
    """Format ``now`` (default: current time) as an RFC 7231 HTTP-date in GMT."""
    now = now or datetime.now(timezone.utc)
    return format_datetime(now.astimezone(timezone.utc), usegmt=True)


def create_signed_url(
    url: str,
    api_key: str,
    api_secret: str,
    now: datetime | None = None,
) -> SignedUrl:
    """Sign ``url`` for a single connection attempt.

    The signature covers the host, the HTTP-date and the GET request line. The
    same date string goes into the signed text and into the ``date`` query
    parameter, so it is computed exactly once here.
    """
    if not api_key or not api_secret:
        raise ConfigurationError("API key and secret are required to sign the request")
    try:
        parsed = urlsplit(url)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid voice API URL: {url!r}") from exc
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"Invalid voice API URL: {url!r}")

    host = parsed.netloc
    path = parsed.path or "/"
    target = f"{path}?{parsed.query}" if parsed.query else path
    date = http_date(now)

    signature_origin = "\n".join(
        [
            f"host: {host}",
            f"date: {date}",
            f"{REQUEST_LINE_METHOD} {target} {REQUEST_LINE_VERSION}",
        ]
    )
    digest = hmac.new(
        api_secret.encode("utf-8"), signature_origin.encode("utf-8"), hashlib.sha256
    ).digest()
    signature = base64.b64encode(digest).decode("ascii")

    authorization_origin = (
        f'api_key="{api_key}", algorithm="hmac-sha256", '
        f'headers="{SIGNED_HEADERS}", signature="{signature}"'
    )
    authorization = base64.b64encode(authorization_origin.encode("utf-8")).decode("ascii")

    params = urlencode({"authorization": authorization, "date": date, "host": host})
    query = f"{parsed.query}&{params}" if parsed.query else params
    signed = f"{parsed.scheme}://{host}{path}?{query}"
    return SignedUrl(url=signed, date=date, host=host)
