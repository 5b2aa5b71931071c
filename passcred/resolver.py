"""Resolve a profile to AWS credentials stored in a secret store.

Resolution is a straight line with one bounded retry loop:

1. Preflight: the store tool is installed and the store is initialized
2. Authentication gate: the decryption agent is ready
3. Required entries (access key, secret key) exist
4. Optional expiration entry is not in the past
5. Required entries are fetched, retrying transient misses
6. Fetched values are non-empty
7. Optional session token is fetched if present

Any failure stops resolution and is returned as a typed
``ResolutionOutcome``; nothing above this module retries.
"""

import time
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from passcred.config.settings import HelperSettings
from passcred.enums import AccessKeyKind, SecretField
from passcred.exceptions import (
    CredentialNotFoundError,
    CredentialProcessError,
    DependencyError,
    EmptyCredentialError,
    ExpiredCredentialsError,
    NotInitializedError,
    RetrievalError,
    SecretNotFoundError,
)
from passcred.models import CredentialSet, ProfileIdentifier, ResolutionOutcome
from passcred.store.backend import AuthGate, SecretStore
from passcred.store.gpg_agent import GpgAgentGate
from passcred.store.pass_backend import PassBackend
from passcred.utils.retry import RetryExhaustedError, RetryPolicy, retry_call
from passcred.validation import classify_access_key

log = structlog.get_logger(__name__)

_KNOWN_KEY_KINDS = {AccessKeyKind.IAM, AccessKeyKind.IAM_LEGACY, AccessKeyKind.STS}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_expiration(raw: str) -> datetime | None:
    """Parse a stored expiration timestamp.

    Accepts ISO-8601 (``2024-12-31T23:59:59Z``, ``2024-12-31 23:59:59``,
    ``2024-12-31``) or integer epoch seconds. Naive values are taken as UTC.

    Returns:
        Timezone-aware datetime, or None if the value cannot be parsed
    """
    text = raw.strip()
    if not text:
        return None

    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text), UTC)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class CredentialResolver:
    """Resolve profiles to ``CredentialSet`` values.

    Example:
        >>> resolver = CredentialResolver.from_settings(HelperSettings.load())
        >>> outcome = resolver.resolve(validate_profile("dev"))
        >>> outcome.ok
        True
    """

    def __init__(
        self,
        store: SecretStore,
        auth_gate: AuthGate,
        prefix: str = "aws",
        fetch_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize resolver.

        Args:
            store: Secret store to read entries from
            auth_gate: Gate to open before the first decryption
            prefix: Store folder holding one sub-folder per profile
            fetch_policy: Attempts and delay for each fetched entry
            sleep: Blocking sleep between attempts (tests pass a no-op)
            clock: Current time, used for the expiration check
        """
        self.store = store
        self.auth_gate = auth_gate
        self.prefix = prefix.strip("/")
        self.fetch_policy = fetch_policy or RetryPolicy(max_attempts=3, delay=1.0)
        self.sleep = sleep
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: HelperSettings) -> "CredentialResolver":
        """Build a resolver using ``pass`` and the GPG agent."""
        store = PassBackend(settings.store_dir, command=settings.pass_command)
        gate = GpgAgentGate(
            policy=RetryPolicy(max_attempts=settings.agent_attempts, delay=settings.agent_delay),
            auth_helper=settings.auth_helper,
            connect_command=settings.gpg_connect_agent_command,
            agent_command=settings.gpg_agent_command,
        )
        return cls(
            store=store,
            auth_gate=gate,
            prefix=settings.pass_prefix,
            fetch_policy=RetryPolicy(max_attempts=settings.fetch_attempts, delay=settings.fetch_delay),
        )

    def entry_path(self, profile: ProfileIdentifier, field: SecretField) -> str:
        """Logical store path of one field, e.g. ``aws/dev/access-key-id``."""
        return f"{self.prefix}/{profile}/{field.value}"

    def resolve(self, profile: ProfileIdentifier) -> ResolutionOutcome:
        """Resolve credentials for a validated profile.

        Args:
            profile: Profile returned by ``validate_profile``

        Returns:
            Outcome holding either the credentials or the classified error.
            Never raises.
        """
        log.debug("resolution_started", profile=profile)
        try:
            credentials = self._resolve(profile)
        except CredentialProcessError as e:
            log.debug("resolution_failed", profile=profile, code=str(e.code))
            return ResolutionOutcome.failed(e)
        except Exception as e:
            log.debug("resolution_unexpected_error", profile=profile, exc_info=True)
            return ResolutionOutcome.failed(
                CredentialProcessError(
                    f"Unexpected error while resolving profile '{profile}': {type(e).__name__}"
                )
            )

        log.debug("resolution_succeeded", profile=profile)
        return ResolutionOutcome.succeeded(credentials)

    def _resolve(self, profile: ProfileIdentifier) -> CredentialSet:
        self._preflight()

        log.debug("auth_gate_opening")
        self.auth_gate.ensure_ready()

        access_path = self.entry_path(profile, SecretField.ACCESS_KEY_ID)
        secret_path = self.entry_path(profile, SecretField.SECRET_ACCESS_KEY)

        for field, path in ((SecretField.ACCESS_KEY_ID, access_path), (SecretField.SECRET_ACCESS_KEY, secret_path)):
            if not self.store.exists(path):
                raise CredentialNotFoundError(
                    f"{field.label} not found for profile: {profile}",
                    suggestion=f"Store it with: pass insert {self.prefix}/{profile}/{field.value}",
                )

        expiration = self._check_expiration(profile)

        access_key_id = self._fetch_required(profile, SecretField.ACCESS_KEY_ID, access_path)
        secret_access_key = self._fetch_required(profile, SecretField.SECRET_ACCESS_KEY, secret_path)

        self._log_access_key_kind(access_key_id)

        session_token = self._fetch_optional(self.entry_path(profile, SecretField.SESSION_TOKEN))
        if session_token:
            log.debug("session_token_found", profile=profile)
        else:
            log.debug("session_token_absent", profile=profile)

        return CredentialSet(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token or None,
            expiration=expiration,
        )

    def _preflight(self) -> None:
        if not self.store.available:
            raise DependencyError(
                f"{self.store.name} command not found. Please install {self.store.name} password manager."
            )
        if not self.store.initialized:
            raise NotInitializedError(
                "Password store not initialized. Run: pass init YOUR-GPG-KEY-ID",
            )

    def _check_expiration(self, profile: ProfileIdentifier) -> datetime | None:
        raw = self._fetch_optional(self.entry_path(profile, SecretField.EXPIRATION))
        if raw is None:
            return None

        expiration = parse_expiration(raw)
        if expiration is None:
            # Optional metadata: a malformed value means no constraint
            log.debug("expiration_unparseable", profile=profile)
            return None

        if expiration < self.clock():
            raise ExpiredCredentialsError(
                f"Credentials for profile '{profile}' have expired",
                suggestion="Rotate the credentials and update the expiration entry",
            )

        log.debug("expiration_valid", profile=profile, expires=expiration.isoformat())
        return expiration

    def _fetch_required(self, profile: ProfileIdentifier, field: SecretField, path: str) -> str:
        try:
            value = retry_call(
                lambda: self.store.fetch(path),
                policy=self.fetch_policy,
                accept=bool,
                exceptions=(SecretNotFoundError,),
                sleep=self.sleep,
                operation=f"fetch_{field.name.lower()}",
            )
        except RetryExhaustedError as e:
            raise RetrievalError(
                f"Failed to retrieve {field.label.lower()} for profile: {profile}",
                suggestion="Check that your GPG key or hardware token is available",
            ) from e

        value = value.strip()
        if not value:
            raise EmptyCredentialError(f"Empty {field.label.lower()} retrieved for profile: {profile}")
        return value

    def _fetch_optional(self, path: str) -> str | None:
        """Fetch an entry whose absence is not an error.

        Returns:
            Stripped value, or None if the entry is missing, empty, or
            unreadable after all attempts
        """
        if not self.store.exists(path):
            return None
        try:
            value = retry_call(
                lambda: self.store.fetch(path),
                policy=self.fetch_policy,
                accept=bool,
                exceptions=(SecretNotFoundError,),
                sleep=self.sleep,
                operation="fetch_optional",
            )
        except RetryExhaustedError:
            log.debug("optional_entry_unreadable")
            return None
        return value.strip() or None

    @staticmethod
    def _log_access_key_kind(access_key_id: str) -> None:
        kind = classify_access_key(access_key_id)
        if kind in _KNOWN_KEY_KINDS:
            log.debug("access_key_format_detected", kind=str(kind))
        else:
            # Format conventions change; this never fails resolution
            log.debug("access_key_format_unrecognized", kind=str(kind))
