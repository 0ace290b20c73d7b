"""
Identity token verification.

Callers authenticate with a bearer token issued by the external identity
provider. The token subject is the external-identity reference that maps
to exactly one business profile (tenant).
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.clock import utcnow
from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError


class TokenData(BaseModel):
    """Verified token payload."""
    subject: str
    email: Optional[str] = None


class IdentityVerifier(ABC):
    """Capability that turns an opaque caller token into a verified identity."""

    @abstractmethod
    def verify(self, token: str) -> TokenData:
        """
        Verify a token.

        Raises:
            AuthenticationError: If the token is invalid, expired or has no subject
        """


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies JWTs signed by the identity provider."""

    def __init__(
        self,
        key: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.key = key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTIdentityVerifier":
        return cls(
            key=settings.IDENTITY_SECRET_KEY,
            algorithm=settings.IDENTITY_ALGORITHM,
            audience=settings.IDENTITY_AUDIENCE,
            issuer=settings.IDENTITY_ISSUER,
        )

    def verify(self, token: str) -> TokenData:
        try:
            payload = jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as exc:
            raise AuthenticationError("Invalid or expired token") from exc

        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("Token has no subject")

        return TokenData(subject=str(subject), email=payload.get("email"))


def create_identity_token(
    subject: str,
    key: str,
    algorithm: str = "HS256",
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    audience: Optional[str] = None,
    issuer: Optional[str] = None,
) -> str:
    """
    Issue a token the way the identity provider does.

    Used by local tooling and tests; production tokens come from the provider.

    Args:
        subject: External-identity reference
        key: Signing key
        algorithm: Signing algorithm
        email: Optional email claim
        expires_delta: Token lifetime (defaults to IDENTITY_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().IDENTITY_TOKEN_EXPIRE_MINUTES)

    now = utcnow()
    to_encode = {
        "sub": subject,
        "iat": now,
        "exp": now + expires_delta,
    }
    if email:
        to_encode["email"] = email
    if audience:
        to_encode["aud"] = audience
    if issuer:
        to_encode["iss"] = issuer

    return jwt.encode(to_encode, key, algorithm=algorithm)
