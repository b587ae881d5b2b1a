# storefront/services/webhook_verifier.py
"""Weryfikacja podpisu webhookow od operatora platnosci.

Naglowek: ``t=<unix seconds>,v1=<hex hmac>[,v1=<hex hmac>...]``.
Podpis to HMAC-SHA256 z ``"{t}." + raw_body`` kluczem wspolnego sekretu.
Kazdy blad konczy sie tym samym ``Rejected``, router nie ma czego zdradzic.
"""
import hashlib
import hmac
import json
import re
import time
from dataclasses import dataclass

from storefront.utils.settings import WEBHOOK_TOLERANCE_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_SCHEME = "v1"
_HEX_DIGEST = re.compile(r"[0-9a-f]{64}")


@dataclass(frozen=True)
class VerifiedEvent:
    id: str | None
    type: str
    data: dict


@dataclass(frozen=True)
class Rejected:
    pass


def _as_bytes(value: bytes | str) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def compute_signature(raw_body: bytes | str, secret: str, timestamp: int) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + _as_bytes(raw_body)
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def sign(raw_body: bytes | str, secret: str, timestamp: int | None = None) -> str:
    """Naglowek jaki wyslalby gateway dla tego body (testy, narzedzia lokalne)."""
    if timestamp is None:
        timestamp = int(time.time())
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(raw_body, secret, timestamp)}"


def _parse_header(header: str) -> tuple[int, list[str]] | None:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None
        elif key == SIGNATURE_SCHEME:
            # tylko hex sha256, cokolwiek innego nie moze pasowac
            if not _HEX_DIGEST.fullmatch(value):
                return None
            signatures.append(value)
    if timestamp is None or not signatures:
        return None
    return timestamp, signatures


def _reject(reason: str) -> Rejected:
    logger.warning(f"Webhook verification failed: {reason}")
    return Rejected()


def verify(
    raw_body: bytes | str,
    signature_header: str | None,
    secret: str,
    now: float | None = None,
    tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
) -> VerifiedEvent | Rejected:
    if not secret:
        return _reject("no webhook secret configured")
    if not signature_header:
        return _reject("missing signature header")

    parsed = _parse_header(signature_header)
    if parsed is None:
        return _reject("malformed signature header")
    timestamp, signatures = parsed

    expected = compute_signature(raw_body, secret, timestamp).encode("ascii")
    # porownanie w stalym czasie z kazdym v1 (rotacja sekretow daje kilka)
    if not any(hmac.compare_digest(expected, c.encode("ascii")) for c in signatures):
        return _reject("no matching signature")

    if now is None:
        now = time.time()
    if abs(now - timestamp) > tolerance:
        return _reject("timestamp outside tolerance")

    try:
        body = json.loads(_as_bytes(raw_body).decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return _reject("unparsable body")

    if not isinstance(body, dict) or not isinstance(body.get("type"), str):
        return _reject("event without type")
    data = body.get("data")
    event_object = data.get("object") if isinstance(data, dict) else None
    if not isinstance(event_object, dict):
        return _reject("event without data object")

    return VerifiedEvent(id=body.get("id"), type=body["type"], data=event_object)
