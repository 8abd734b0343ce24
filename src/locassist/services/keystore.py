"""API key storage for the AI providers.

Keys live in the platform keychain through ``keyring`` (macOS Keychain,
Windows Credential Locker, Secret Service on Linux). When no key is stored,
the provider's conventional environment variable is used instead.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

log = logging.getLogger(__name__)

_SERVICE_PREFIX = "locassist"

# Checked in order when the keychain has nothing for a service.
ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


def store_secret(service: str, value: str) -> None:
    """Store the API key for *service* in the platform keychain."""
    keyring.set_password(_SERVICE_PREFIX, service, value)


def get_secret(service: str) -> Optional[str]:
    """Return the API key for *service*, or None when none is configured."""
    try:
        value = keyring.get_password(_SERVICE_PREFIX, service)
    except KeyringError as e:
        log.warning("Keychain unavailable for %s: %s", service, e)
        value = None
    if value:
        return value
    for name in ENV_VARS.get(service, ()):
        env_value = os.environ.get(name)
        if env_value:
            return env_value
    return None


def delete_secret(service: str) -> None:
    """Delete the stored API key for *service*."""
    try:
        keyring.delete_password(_SERVICE_PREFIX, service)
    except PasswordDeleteError:
        pass  # not found, fine


def backend_name() -> str:
    """Name of the active keyring backend for display."""
    return type(keyring.get_keyring()).__name__
