"""
Value types for a single credential_process invocation.

Nothing here is persisted or cached. A ``CredentialSet`` lives only long
enough to be serialized to stdout.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType

from passcred.enums import FailureKind
from passcred.exceptions import CredentialProcessError

ProfileIdentifier = NewType("ProfileIdentifier", str)
"""A profile name that passed ``validate_profile``."""


def _mask(value: str | None) -> str:
    if not value:
        return "None"
    return "'***'"


@dataclass(frozen=True)
class CredentialSet:
    """Resolved AWS credentials for one profile.

    ``repr`` never shows secret material, so an accidental log call or
    traceback cannot leak it.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    expiration: datetime | None = None

    def __post_init__(self) -> None:
        if not self.access_key_id:
            raise ValueError("access_key_id cannot be empty")
        if not self.secret_access_key:
            raise ValueError("secret_access_key cannot be empty")

    def __repr__(self) -> str:
        return (
            f"CredentialSet(access_key_id={_mask(self.access_key_id)}, "
            f"secret_access_key={_mask(self.secret_access_key)}, "
            f"session_token={_mask(self.session_token)}, "
            f"expiration={self.expiration!r})"
        )


@dataclass(frozen=True)
class ResolutionOutcome:
    """Tagged result of resolving a profile.

    Exactly one of ``credentials`` or ``error`` is set.

    Example:
        >>> outcome = resolver.resolve(profile)
        >>> if outcome.ok:
        ...     print(outcome.credentials.access_key_id)
        ... else:
        ...     print(outcome.code, outcome.message)
    """

    credentials: CredentialSet | None = None
    error: CredentialProcessError | None = None

    def __post_init__(self) -> None:
        if (self.credentials is None) == (self.error is None):
            raise ValueError("ResolutionOutcome needs exactly one of credentials or error")

    @classmethod
    def succeeded(cls, credentials: CredentialSet) -> "ResolutionOutcome":
        return cls(credentials=credentials)

    @classmethod
    def failed(cls, error: CredentialProcessError) -> "ResolutionOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.credentials is not None

    @property
    def code(self) -> FailureKind | None:
        """Failure code, or None on success."""
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error is not None else None
