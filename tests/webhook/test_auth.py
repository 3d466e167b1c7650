"""Secret verification and version validation."""

import pytest

from helpers import RELEASE_SECRET, STAGING_SECRET
from services.auth import Authenticator, secret_fingerprint, validate_version
from services.deployment import MalformedRequest, Unauthorized


@pytest.fixture
def authenticator(registry) -> Authenticator:
    return Authenticator(registry)


def test_valid_secret_returns_target(authenticator):
    target = authenticator.authenticate("staging", STAGING_SECRET)

    assert target.name == "staging"


@pytest.mark.parametrize("target,secret", [
    ("staging", "wrong"),
    ("staging", RELEASE_SECRET),
    ("staging", STAGING_SECRET + "x"),
    ("production", STAGING_SECRET),
])
def test_rejected(authenticator, target, secret):
    with pytest.raises(Unauthorized):
        authenticator.authenticate(target, secret)


@pytest.mark.parametrize("target,secret", [("", STAGING_SECRET), ("staging", "")])
def test_empty_fields_are_malformed(authenticator, target, secret):
    with pytest.raises(MalformedRequest):
        authenticator.authenticate(target, secret)


@pytest.mark.parametrize("version", [None, "", "main", "v1.2.3", "refs/heads/main",
                                     "0a1b2c3d", "release@2024-01-01", "1.0+build:7"])
def test_valid_versions(version):
    assert validate_version(version) == (version or "")


@pytest.mark.parametrize("version", ["a b", "v1;ls", "$(id)", "`id`", "a\nb", "x" * 257])
def test_invalid_versions(version):
    with pytest.raises(MalformedRequest):
        validate_version(version)


def test_fingerprint_does_not_contain_secret():
    fingerprint = secret_fingerprint(STAGING_SECRET)

    assert len(fingerprint) == 12
    assert STAGING_SECRET not in fingerprint
    assert fingerprint == secret_fingerprint(STAGING_SECRET)
