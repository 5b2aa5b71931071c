"""Secret store and authentication gate backends.

- ``SecretStore`` / ``AuthGate``: protocols the resolver depends on
- ``PassBackend``: reads entries with ``pass show``
- ``GpgAgentGate``: prepares the GPG agent for decryption
"""

from passcred.store.backend import AuthGate, SecretStore
from passcred.store.gpg_agent import GpgAgentGate
from passcred.store.pass_backend import PassBackend

__all__ = ["AuthGate", "GpgAgentGate", "PassBackend", "SecretStore"]
