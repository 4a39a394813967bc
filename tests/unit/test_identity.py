from __future__ import annotations

from datetime import timedelta

import pytest
from jose import jwt

from errors import Unauthenticated, Unauthorized
from identity import JwtIdentityVerifier, create_token


SECRET = "test-secret"


def test_valid_token_yields_caller():
    verifier = JwtIdentityVerifier(SECRET)
    token = create_token("u1", SECRET, email="u1@example.com")
    caller = verifier.verify(token)
    assert caller.user_id == "u1"
    assert caller.email == "u1@example.com"


def test_alternate_subject_claim():
    verifier = JwtIdentityVerifier(SECRET)
    token = jwt.encode({"uid": "firebase-user"}, SECRET, algorithm="HS256")
    assert verifier.verify(token).user_id == "firebase-user"


def test_expired_token_is_unauthenticated():
    verifier = JwtIdentityVerifier(SECRET)
    token = create_token("u1", SECRET, expires_in=timedelta(minutes=-5))
    with pytest.raises(Unauthenticated):
        verifier.verify(token)


@pytest.mark.parametrize("token", ["", "   "])
def test_missing_token_is_unauthenticated(token):
    with pytest.raises(Unauthenticated):
        JwtIdentityVerifier(SECRET).verify(token)


def test_wrong_signature_is_unauthorized():
    token = create_token("u1", "another-secret")
    with pytest.raises(Unauthorized):
        JwtIdentityVerifier(SECRET).verify(token)


def test_garbage_token_is_unauthorized():
    with pytest.raises(Unauthorized):
        JwtIdentityVerifier(SECRET).verify("not.a.jwt")


def test_token_without_subject_is_unauthorized():
    token = jwt.encode({"email": "nobody@example.com"}, SECRET, algorithm="HS256")
    with pytest.raises(Unauthorized):
        JwtIdentityVerifier(SECRET).verify(token)


def test_audience_is_enforced():
    verifier = JwtIdentityVerifier(SECRET, audience="interview-practice")
    good = create_token("u1", SECRET, audience="interview-practice")
    bad = create_token("u1", SECRET, audience="someone-else")
    assert verifier.verify(good).user_id == "u1"
    with pytest.raises(Unauthorized):
        verifier.verify(bad)


def test_empty_secret_is_rejected():
    with pytest.raises(ValueError):
        JwtIdentityVerifier("")
