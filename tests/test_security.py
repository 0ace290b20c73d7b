"""
Identity token verification tests.
"""

from datetime import timedelta

import pydantic
import pytest
from jose import jwt

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError
from app.core.security import JWTIdentityVerifier, create_identity_token
from factories import TEST_IDENTITY_SECRET


@pytest.fixture
def verifier() -> JWTIdentityVerifier:
    return JWTIdentityVerifier(TEST_IDENTITY_SECRET)


def test_verify_valid_token(verifier):
    token = create_identity_token("idp|42", TEST_IDENTITY_SECRET, email="a@b.com")

    identity = verifier.verify(token)

    assert identity.subject == "idp|42"
    assert identity.email == "a@b.com"


def test_verify_rejects_wrong_key(verifier):
    token = create_identity_token("idp|42", "another-secret-key-another-secret-key")

    with pytest.raises(AuthenticationError):
        verifier.verify(token)


def test_verify_rejects_expired_token(verifier):
    token = create_identity_token(
        "idp|42", TEST_IDENTITY_SECRET, expires_delta=timedelta(minutes=-5)
    )

    with pytest.raises(AuthenticationError) as exc_info:
        verifier.verify(token)
    assert exc_info.value.message == "Invalid or expired token"


def test_verify_rejects_token_without_subject(verifier):
    token = jwt.encode({"email": "a@b.com"}, TEST_IDENTITY_SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationError) as exc_info:
        verifier.verify(token)
    assert exc_info.value.message == "Token has no subject"


def test_verify_rejects_garbage(verifier):
    with pytest.raises(AuthenticationError):
        verifier.verify("not-a-token")


def test_verify_checks_audience():
    verifier = JWTIdentityVerifier(TEST_IDENTITY_SECRET, audience="smartinvoice")

    good = create_identity_token("idp|42", TEST_IDENTITY_SECRET, audience="smartinvoice")
    bad = create_identity_token("idp|42", TEST_IDENTITY_SECRET, audience="elsewhere")

    assert verifier.verify(good).subject == "idp|42"
    with pytest.raises(AuthenticationError):
        verifier.verify(bad)


def test_verifier_from_settings():
    settings = Settings(IDENTITY_SECRET_KEY="k" * 40, IDENTITY_ISSUER="https://idp.example.com")

    verifier = JWTIdentityVerifier.from_settings(settings)

    assert verifier.key == "k" * 40
    assert verifier.issuer == "https://idp.example.com"
    assert verifier.algorithm == "HS256"


def test_token_lifetime_defaults_to_setting(monkeypatch):
    monkeypatch.setattr(get_settings(), "IDENTITY_TOKEN_EXPIRE_MINUTES", 15)

    claims = jwt.get_unverified_claims(create_identity_token("idp|42", TEST_IDENTITY_SECRET))

    assert claims["exp"] - claims["iat"] == 15 * 60


def test_production_refuses_document_storage():
    with pytest.raises(pydantic.ValidationError) as exc_info:
        Settings(ENVIRONMENT="production", STORAGE_BACKEND="document")
    assert "cannot be used in production" in str(exc_info.value)

    assert Settings(ENVIRONMENT="development", STORAGE_BACKEND="document").STORAGE_BACKEND == "document"
    assert Settings(ENVIRONMENT="production", STORAGE_BACKEND="sql").is_production
