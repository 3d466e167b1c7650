"""Centralized constants for the webhook deployer.

Single source of truth for wire-level limits and the environment passed to
deploy commands.
"""

import re
from typing import FrozenSet, Pattern

# =============================================================================
# WEBHOOK REQUESTS
# =============================================================================

WEBHOOK_METHODS = ["GET", "POST", "PUT"]

# Versions end up on a command line, keep them to ref/tag/sha characters
MAX_VERSION_LENGTH = 256
VERSION_PATTERN: Pattern[str] = re.compile(r"^[A-Za-z0-9._/@+:-]*$")

# Target names double as file and log keys
TARGET_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"

# =============================================================================
# DEPLOY COMMANDS
# =============================================================================

ENV_DEPLOY_TARGET = "DEPLOY_TARGET"
ENV_DEPLOY_VERSION = "DEPLOY_VERSION"

TARGET_PLACEHOLDER = "{target}"
VERSION_PLACEHOLDER = "{version}"

# Characters of combined stdout/stderr kept per run
OUTPUT_TAIL_CHARS = 4000

# =============================================================================
# OPERATOR API
# =============================================================================

PROTECTED_PREFIXES = (
    "/api/",
)

PUBLIC_PATHS: FrozenSet[str] = frozenset([
    "/health",
])

# =============================================================================
# SYSTEMD SOCKET ACTIVATION
# =============================================================================

SD_LISTEN_FDS_START = 3
