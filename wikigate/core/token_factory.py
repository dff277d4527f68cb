"""Pure functions for creating and decoding JWT session tokens.

No classes with behaviour, no state; just encode/decode. Used by the login
endpoint and by the auth dependency that turns a bearer token back into a
``Principal``.
"""

import hashlib
import hmac
import base64
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload. Immutable."""
    sub: str
    name: Optional[str]
    exp: datetime
    roles: tuple[str, ...] = field(default_factory=tuple)


def create_token(
    subject: str,
    roles: Sequence[str],
    secret: str,
    username: Optional[str] = None,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Create a signed JWT token.

    Args:
        subject: User id the token is issued to.
        roles: Role claims, e.g. ``["Admin"]`` or ``["Editor"]``.
        secret: HMAC signing key.
        username: Optional display name carried in the ``name`` claim.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry.

    Returns:
        Encoded JWT string.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": subject,
        "name": username,
        "roles": list(roles),
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
        "iss": "wikigate",
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Decode and validate a JWT token.

    Returns ``None`` on any validation failure (bad signature, expired, malformed)
    rather than raising; callers decide what to do with absence.
    """
    if algorithm != "HS256":
        return None

    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        actual_sig = _b64decode(parts[2])

        if not hmac.compare_digest(expected_sig, actual_sig):
            return None

        payload = json.loads(_b64decode(parts[1]))

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None

        roles = payload.get("roles") or []
        if not isinstance(roles, list):
            return None

        return TokenPayload(
            sub=payload.get("sub", ""),
            name=payload.get("name"),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
            roles=tuple(str(r) for r in roles),
        )
    except (json.JSONDecodeError, KeyError, ValueError, IndexError, TypeError):
        return None


# --- base64url helpers (no padding, URL-safe) ---

def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
