"""Credential primitives: token hashing, refresh token generation, HMAC checks."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta

from mcphub.constants import REFRESH_TOKEN_PREFIX

SIGNATURE_PREFIX = "sha256="
# Values above this are treated as epoch milliseconds
_EPOCH_MILLIS_THRESHOLD = 10**11


def hash_token(raw_token: str) -> str:
    """Return the SHA-256 hex digest under which ``raw_token`` is stored."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_refresh_token() -> str:
    """Return a new opaque refresh token: ``rt_`` + 256 random bits in hex."""
    return REFRESH_TOKEN_PREFIX + secrets.token_hex(32)


def looks_like_refresh_token(raw_token: str) -> bool:
    return raw_token.startswith(REFRESH_TOKEN_PREFIX)


def compute_signature(secret: str, body: bytes) -> str:
    """Return the lower-case hex HMAC-SHA256 of ``body`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def signature_matches(secret: str, body: bytes, supplied: str) -> bool:
    """Compare ``supplied`` with the expected signature in constant time.

    The supplied value may carry a ``sha256=`` prefix and any hex case.

    :param secret: Shared secret of the claimed service.
    :type secret: str
    :param body: Raw request body, exactly as received.
    :type body: bytes
    :param supplied: Value of the ``X-Signature`` header.
    :type supplied: str
    :returns: ``True`` when the signature is valid.
    :rtype: bool
    """
    candidate = supplied.strip()
    if candidate.lower().startswith(SIGNATURE_PREFIX):
        candidate = candidate[len(SIGNATURE_PREFIX) :]
    expected = compute_signature(secret, body)
    return hmac.compare_digest(candidate.lower().encode("ascii", "replace"), expected.encode("ascii"))


def parse_timestamp(value: str) -> datetime:
    """Parse an ``X-Timestamp`` value.

    Accepts ISO-8601 (``Z`` suffix allowed; naive values are read as UTC) or
    epoch seconds / milliseconds.

    :param value: Raw header value.
    :type value: str
    :returns: Aware UTC datetime.
    :rtype: datetime
    :raises ValueError: When the value is not a recognisable timestamp.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")
    try:
        number = float(text)
    except ValueError:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    if number > _EPOCH_MILLIS_THRESHOLD:
        number /= 1000.0
    return datetime.fromtimestamp(number, tz=UTC)


def timestamp_within(value: str, *, now: datetime, tolerance: timedelta) -> bool:
    """Return ``True`` when ``value`` parses and lies within ``now ± tolerance``."""
    try:
        moment = parse_timestamp(value)
    except (ValueError, OverflowError, OSError):
        return False
    return abs(now - moment) <= tolerance
