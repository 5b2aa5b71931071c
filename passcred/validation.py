"""Profile name validation.

The profile name comes straight from argv, is joined into a password-store
path and ends up as an argument to ``pass``. Anything outside a small,
boring alphabet is rejected before it gets near a subprocess.
"""

import re

from passcred.enums import AccessKeyKind
from passcred.exceptions import (
    EmptyProfileError,
    MalformedProfileError,
    ProfileTraversalError,
)
from passcred.models import ProfileIdentifier

PROFILE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
MAX_PROFILE_LENGTH = 64

# Longest slice of rejected input echoed back in an error message
_ECHO_LIMIT = 32


def _echo(raw: str) -> str:
    shown = raw[:_ECHO_LIMIT]
    suffix = "..." if len(raw) > _ECHO_LIMIT else ""
    return f"{shown!r}{suffix}"


def _has_traversal(raw: str) -> bool:
    return ".." in raw or raw.startswith((".", "/")) or raw.endswith("/")


def validate_profile(raw: str) -> ProfileIdentifier:
    """Validate a caller-supplied profile name.

    Args:
        raw: Untrusted profile name

    Returns:
        The same string, typed as ``ProfileIdentifier``

    Raises:
        EmptyProfileError: If ``raw`` is empty
        ProfileTraversalError: If ``raw`` contains ``..``, starts with ``.``
            or ``/``, or ends with ``/``
        MalformedProfileError: If ``raw`` has characters outside
            ``[A-Za-z0-9_-]`` or is longer than 64 characters

    Example:
        >>> validate_profile("staging-2024")
        'staging-2024'
        >>> validate_profile("../etc/passwd")
        Traceback (most recent call last):
        ...
        passcred.exceptions.ProfileTraversalError: ...
    """
    if not isinstance(raw, str):
        raise MalformedProfileError(f"Invalid profile name: expected a string, got {type(raw).__name__}")

    if raw == "":
        raise EmptyProfileError("Profile name cannot be empty")

    # Traversal is checked first so "../x" reports the more specific reason
    if _has_traversal(raw):
        raise ProfileTraversalError(
            f"Invalid profile name: {_echo(raw)}. Path traversal patterns not allowed"
        )

    if not PROFILE_PATTERN.fullmatch(raw):
        raise MalformedProfileError(
            f"Invalid profile name: {_echo(raw)}. Must contain only alphanumeric characters, "
            f"hyphens, and underscores (1-{MAX_PROFILE_LENGTH} chars)"
        )

    return ProfileIdentifier(raw)


_ACCESS_KEY_SHAPES: tuple[tuple[re.Pattern[str], AccessKeyKind], ...] = (
    (re.compile(r"^ASIA[A-Z0-9]{16}$"), AccessKeyKind.STS),
    (re.compile(r"^AKIA[A-Z0-9]{16}$"), AccessKeyKind.IAM),
    (re.compile(r"^AKI[A-Z0-9]{17}$"), AccessKeyKind.IAM_LEGACY),
    (re.compile(r"^[A-Z0-9]{16,20}$"), AccessKeyKind.NON_STANDARD),
)


def classify_access_key(access_key_id: str) -> AccessKeyKind:
    """Guess what kind of access key id this is.

    Diagnostic only. Callers must not reject a key based on the result.
    """
    for pattern, kind in _ACCESS_KEY_SHAPES:
        if pattern.fullmatch(access_key_id):
            return kind
    return AccessKeyKind.UNRECOGNIZED
