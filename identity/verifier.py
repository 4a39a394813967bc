from __future__ import annotations  # Bearer token verification for API callers

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from errors import Unauthenticated, Unauthorized


logger = logging.getLogger(__name__)

SUBJECT_CLAIMS = ("sub", "user_id", "uid")  # First non-empty claim names the caller


class Caller(BaseModel):  # Authenticated caller identity
    user_id: str
    email: Optional[str] = None


class IdentityVerifier(Protocol):  # Maps a bearer token to a caller
    def verify(self, token: str) -> Caller: ...


class JwtIdentityVerifier:  # Verifies signed JWT identity tokens
    def __init__(
        self,
        secret: str,
        *,
        algorithms: Sequence[str] = ("HS256",),
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ) -> None:
        if not secret:
            raise ValueError("JWT verification requires a non-empty secret")
        self._secret = secret
        self._algorithms: List[str] = list(algorithms)
        self._audience = audience
        self._issuer = issuer

    def verify(self, token: str) -> Caller:
        """Return the caller encoded in ``token``.

        Raises:
            Unauthenticated: The token is missing or expired.
            Unauthorized: The token is malformed, badly signed or names no subject.
        """

        if not token or not token.strip():
            raise Unauthenticated("No authorization token provided.")
        try:
            claims = jwt.decode(
                token.strip(),
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
            )
        except ExpiredSignatureError as exc:
            raise Unauthenticated("Session expired. Please log in again.") from exc
        except JWTError as exc:
            logger.warning("Token verification failed: %s", exc.__class__.__name__)
            raise Unauthorized("Invalid token.") from exc
        return _caller_from_claims(claims)


def _caller_from_claims(claims: Dict[str, Any]) -> Caller:  # Pick subject and email claims
    for name in SUBJECT_CLAIMS:
        value = claims.get(name)
        if isinstance(value, (str, int)) and str(value).strip():
            email = claims.get("email")
            return Caller(user_id=str(value).strip(), email=email if isinstance(email, str) and email else None)
    raise Unauthorized("Token does not identify a user.")


def create_token(
    user_id: str,
    secret: str,
    *,
    email: Optional[str] = None,
    expires_in: timedelta = timedelta(minutes=30),
    algorithm: str = "HS256",
    audience: Optional[str] = None,
) -> str:
    """Issue a signed identity token, used by local tooling and tests."""

    expire = datetime.now(timezone.utc) + expires_in
    claims: Dict[str, Any] = {"sub": user_id, "exp": expire}
    if email:
        claims["email"] = email
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=algorithm)


__all__ = ["Caller", "IdentityVerifier", "JwtIdentityVerifier", "create_token"]
