"""Exception hierarchy for passcred.

Every failure is classified once, where it happens, by raising one of the
classes below. Each ``CredentialProcessError`` subclass carries the
``FailureKind`` that ends up in the ``Code`` field of the JSON written for
AWS tooling, so the class is the classification.

Exception Hierarchy:
    PassCredError (base)
    ├── ConfigurationError
    └── CredentialProcessError (generic fallback)
        ├── InvalidProfileError
        │   ├── EmptyProfileError
        │   ├── MalformedProfileError
        │   └── ProfileTraversalError
        ├── DependencyError
        ├── NotInitializedError
        ├── AuthenticationError
        │   ├── GPGAuthError
        │   └── GPGAgentError
        ├── CredentialNotFoundError
        ├── ExpiredCredentialsError
        ├── RetrievalError
        ├── EmptyCredentialError
        └── SecretNotFoundError

Example Usage:
    >>> from passcred.exceptions import DependencyError
    >>> if shutil.which("pass") is None:
    ...     raise DependencyError("pass command not found")
"""

from passcred.enums import FailureKind


class PassCredError(Exception):
    """Base exception for all passcred errors.

    Attributes:
        message: Human-readable error description
        suggestion: Optional hint shown to a human on stderr
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            suggestion: Optional suggestion for resolution
        """
        self.suggestion = suggestion

        full_message = message
        if suggestion:
            full_message = f"{message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Keep the bare message for the wire format
        self.message = message


class ConfigurationError(PassCredError):
    """Invalid settings (bad environment value or config file)."""

    pass


class CredentialProcessError(PassCredError):
    """Failure reported to the credential_process caller.

    Also used directly as the catch-all for anything not otherwise
    classified.
    """

    code: FailureKind = FailureKind.CREDENTIAL_PROCESS


class InvalidProfileError(CredentialProcessError):
    """Profile name failed validation."""

    code = FailureKind.INVALID_PROFILE


class EmptyProfileError(InvalidProfileError):
    """Profile name is empty."""

    pass


class MalformedProfileError(InvalidProfileError):
    """Profile name has characters outside the allowed set or a bad length."""

    pass


class ProfileTraversalError(InvalidProfileError):
    """Profile name contains a path traversal pattern."""

    pass


class DependencyError(CredentialProcessError):
    """A required external tool is not installed."""

    code = FailureKind.DEPENDENCY


class NotInitializedError(CredentialProcessError):
    """The password store has never been initialized."""

    code = FailureKind.NOT_INITIALIZED


class AuthenticationError(CredentialProcessError):
    """The decryption backend could not be brought to a ready state."""

    code = FailureKind.GPG_AGENT


class GPGAuthError(AuthenticationError):
    """Interactive pre-authentication (PIN, touch) failed."""

    code = FailureKind.GPG_AUTH


class GPGAgentError(AuthenticationError):
    """The GPG agent did not become reachable."""

    code = FailureKind.GPG_AGENT


class CredentialNotFoundError(CredentialProcessError):
    """A required entry does not exist in the store."""

    code = FailureKind.CREDENTIAL_NOT_FOUND


class ExpiredCredentialsError(CredentialProcessError):
    """The stored expiration timestamp is in the past."""

    code = FailureKind.EXPIRED_CREDENTIALS


class RetrievalError(CredentialProcessError):
    """An existing entry could not be decrypted after all attempts."""

    code = FailureKind.RETRIEVAL


class EmptyCredentialError(CredentialProcessError):
    """An entry was decrypted but held no content."""

    code = FailureKind.EMPTY_CREDENTIAL


class SecretNotFoundError(CredentialProcessError):
    """Store-level miss: the entry is absent or could not be read.

    Raised by secret store clients. The resolver turns it into
    ``CredentialNotFoundError`` or ``RetrievalError`` depending on the step.
    """

    pass
