"""Access token helpers for the platform's identity provider."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from srm_collab.core.errors import AuthError
from srm_collab.core.settings import settings
from srm_collab.db.time import utcnow


@dataclass(frozen=True)
class AccessClaims:
    """Identity carried by a verified access token."""

    user_id: str
    email: str | None
    expires_at: datetime | None


def decode_access_token(token: str) -> AccessClaims:
    """Verify an access token and return the identity it carries.

    Args:
        token: Bearer token issued by the platform's identity provider.

    Returns:
        Claims with the user id taken from the ``sub`` claim.

    Raises:
        AuthError: If the token is expired, malformed, signed with another key,
            or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except ExpiredSignatureError as err:
        raise AuthError("Access token has expired") from err
    except JWTError as err:
        raise AuthError("Could not validate credentials") from err

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Could not validate credentials")

    exp = payload.get("exp")
    return AccessClaims(
        user_id=str(subject),
        email=payload.get("email"),
        expires_at=datetime.fromtimestamp(exp, tz=UTC) if exp else None,
    )


def create_access_token(
    user_id: str,
    *,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a token shaped like the platform's, for local runs and tests."""
    now = utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload: dict[str, object] = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
