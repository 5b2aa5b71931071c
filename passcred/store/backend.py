"""Protocols for the secret store and the authentication gate.

The resolver only talks to these two interfaces. The concrete
implementations shell out to ``pass`` and the GPG agent; tests swap in
in-memory fakes.
"""

from typing import Protocol


class SecretStore(Protocol):
    """Read-only access to a store of decrypted secrets by logical path."""

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'pass')."""
        ...

    @property
    def available(self) -> bool:
        """Check if the backing tool is installed."""
        ...

    @property
    def initialized(self) -> bool:
        """Check if the store has been set up and can hold entries."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether an entry exists.

        Args:
            path: Logical path (e.g., 'aws/dev/access-key-id')

        Returns:
            True if the entry exists and is readable
        """
        ...

    def fetch(self, path: str) -> str:
        """Decrypt and return an entry.

        The returned value must never be logged, printed, or written
        anywhere by the store.

        Args:
            path: Logical path

        Returns:
            Decrypted value without trailing newline (may be empty)

        Raises:
            SecretNotFoundError: If the entry is absent or could not be read
            DependencyError: If the backing tool is missing
        """
        ...


class AuthGate(Protocol):
    """Interactive unlock step required before secrets can be decrypted."""

    def ensure_ready(self) -> None:
        """Make sure the decryption backend is ready.

        May prompt for a PIN or a hardware-token touch and may start a
        background agent. Calling it again once ready is a no-op.

        Raises:
            GPGAuthError: If pre-authentication failed
            GPGAgentError: If the agent never became reachable
            DependencyError: If the agent tooling is missing
        """
        ...
