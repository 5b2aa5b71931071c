"""Enumerations for passcred failure codes, secret fields and key kinds."""

from enum import Enum


class FailureKind(str, Enum):
    """Machine-readable failure codes written to the ``Code`` field.

    These are consumed by AWS tooling reading credential_process output, so
    the values are part of the wire contract and must not change.
    """

    INVALID_PROFILE = "InvalidProfileError"
    DEPENDENCY = "DependencyError"
    NOT_INITIALIZED = "NotInitializedError"
    GPG_AUTH = "GPGAuthError"
    GPG_AGENT = "GPGAgentError"
    CREDENTIAL_NOT_FOUND = "CredentialNotFoundError"
    EXPIRED_CREDENTIALS = "ExpiredCredentialsError"
    RETRIEVAL = "RetrievalError"
    EMPTY_CREDENTIAL = "EmptyCredentialError"
    CREDENTIAL_PROCESS = "CredentialProcessError"

    def __str__(self) -> str:
        return self.value


class SecretField(str, Enum):
    """Entries stored under ``<prefix>/<profile>/`` in the password store."""

    ACCESS_KEY_ID = "access-key-id"
    SECRET_ACCESS_KEY = "secret-access-key"
    SESSION_TOKEN = "session-token"
    EXPIRATION = "expiration"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        """Human-readable name used in error messages."""
        return {
            SecretField.ACCESS_KEY_ID: "Access key",
            SecretField.SECRET_ACCESS_KEY: "Secret key",
            SecretField.SESSION_TOKEN: "Session token",
            SecretField.EXPIRATION: "Expiration",
        }[self]


class AccessKeyKind(str, Enum):
    """Recognized shapes of an AWS access key id.

    Only used for diagnostics. Key formats are an AWS convention that can
    change, so an unrecognized shape never fails resolution.
    """

    IAM_LEGACY = "iam_legacy"
    STS = "sts"
    IAM = "iam"
    NON_STANDARD = "non_standard"
    UNRECOGNIZED = "unrecognized"

    def __str__(self) -> str:
        return self.value
