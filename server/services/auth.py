"""Webhook secret verification and request validation."""

import hashlib
import hmac
from typing import Optional

from constants import MAX_VERSION_LENGTH, VERSION_PATTERN
from core.logging import get_logger
from models.targets import TargetConfig
from services.deployment.exceptions import MalformedRequest, Unauthorized
from services.targets import TargetRegistry

logger = get_logger(__name__)

# Compared against when the target is unknown so both paths cost the same
_DUMMY_SECRET = "x" * 64


def secret_fingerprint(secret: str) -> str:
    """Short hash for log correlation, never the secret itself."""
    return hashlib.sha256(secret.encode()).hexdigest()[:12]


def validate_version(version: Optional[str]) -> str:
    """Normalize the version parameter; absent means empty.

    Raises:
        MalformedRequest: If the version is too long or has unsafe characters
    """
    if version is None:
        return ""
    if len(version) > MAX_VERSION_LENGTH or not VERSION_PATTERN.fullmatch(version):
        raise MalformedRequest("invalid version")
    return version


class Authenticator:
    """Validates per-target webhook secrets."""

    def __init__(self, registry: TargetRegistry):
        self.registry = registry

    def authenticate(self, target: str, secret: str) -> TargetConfig:
        """Return the target config if `secret` matches.

        Raises:
            MalformedRequest: If target or secret is empty
            Unauthorized: If the target is unknown or the secret mismatches
        """
        if not target or not secret:
            raise MalformedRequest("target and secret are required")

        config = self.registry.get(target)
        expected = config.secret if config else _DUMMY_SECRET
        matches = hmac.compare_digest(secret.encode(), expected.encode())

        if config is None or not matches:
            logger.warning("Webhook rejected", target=target,
                           known_target=config is not None,
                           fingerprint=secret_fingerprint(secret))
            raise Unauthorized(target)

        logger.info("Webhook accepted", target=target)
        return config
