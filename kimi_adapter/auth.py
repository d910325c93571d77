from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Callable, Dict, Literal, Mapping, Optional

from .errors import InvalidCredentialFormat, MissingCredential, UnsupportedCredentialType


TokenType = Literal["jwt", "refresh"]
DiagnosticSink = Callable[[str], None]

_BEARER_PREFIX = re.compile(r"^Bearer\s+", flags=re.IGNORECASE)
_SECRET_HEADERS = ("authorization", "x-goog-api-key", "x-api-key", "cookie")

EXPECTED_APP_ID = "kimi"
EXPECTED_TOKEN_TYPE = "access"

UNSUPPORTED_TOKEN_MESSAGE = (
    "Connect RPC requires a JWT access token. "
    "Please extract kimi-auth from browser cookies and send it as the bearer token."
)


def _fingerprint(value: str) -> str:
    # never echo secrets; length and tail are enough to tell tokens apart
    return f"len:{len(value)}:{value[-6:] if value else ''}"


def _emit_headers(sink: DiagnosticSink, headers: Dict[str, str]) -> None:
    redacted = {
        k: (_fingerprint(v) if k in _SECRET_HEADERS else v)
        for k, v in headers.items()
    }
    sink("inbound headers: " + json.dumps(redacted, ensure_ascii=False, sort_keys=True))


def extract_auth_token(
    headers: Mapping[str, str],
    diagnostics: Optional[DiagnosticSink] = None,
) -> str:
    """Pull the caller's credential out of ``authorization`` or ``x-goog-api-key``.

    ``x-goog-api-key`` is only consulted when ``authorization`` is absent or
    empty; its value is treated as if it had been sent as ``Bearer <value>``.
    """
    lowered = {str(k).lower(): str(v) for k, v in headers.items()}
    authorization = lowered.get("authorization")
    api_key = lowered.get("x-goog-api-key")

    if diagnostics is not None:
        _emit_headers(diagnostics, lowered)
        diagnostics(
            f"auth header found: {bool(authorization)}, api key found: {bool(api_key)}"
        )

    token_header = authorization
    if not token_header and api_key:
        token_header = "Bearer " + _BEARER_PREFIX.sub("", api_key)

    if not token_header:
        raise MissingCredential("Missing Authorization header or x-goog-api-key")

    token = _BEARER_PREFIX.sub("", token_header).strip()
    if not token:
        raise InvalidCredentialFormat("Invalid Authorization header format")
    return token


def _decode_segment(segment: str) -> Optional[bytes]:
    # accept both alphabets and missing padding
    normalized = segment.replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.urlsafe_b64decode(normalized)
    except (binascii.Error, ValueError):
        return None


def decode_claims(token: str) -> Optional[Dict[str, Any]]:
    """Decode the middle segment of a three-part token; ``None`` when that fails.

    No signature is checked.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    raw = _decode_segment(parts[1])
    if raw is None:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def detect_token_type(token: str) -> TokenType:
    if not isinstance(token, str):
        return "refresh"
    if token.startswith("eyJ") and len(token.split(".")) == 3:
        claims = decode_claims(token)
        if (
            claims is not None
            and claims.get("app_id") == EXPECTED_APP_ID
            and claims.get("typ") == EXPECTED_TOKEN_TYPE
        ):
            return "jwt"
    return "refresh"


def require_structured_token(token: str) -> None:
    if detect_token_type(token) != "jwt":
        raise UnsupportedCredentialType(UNSUPPORTED_TOKEN_MESSAGE)


def _read_claim(token: str, key: str) -> Optional[str]:
    claims = decode_claims(token)
    if claims is None:
        return None
    value = claims.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return None


# Each reader decodes on its own so a bad field never hides the others.

def extract_device_id(token: str) -> Optional[str]:
    return _read_claim(token, "device_id")


def extract_session_id(token: str) -> Optional[str]:
    return _read_claim(token, "ssid")


def extract_user_id(token: str) -> Optional[str]:
    return _read_claim(token, "sub")
