"""Secret store backed by the ``pass`` password manager.

``pass`` keeps one GPG-encrypted file per entry under the store directory
(``~/.password-store`` unless ``PASSWORD_STORE_DIR`` says otherwise) and
prints the decrypted entry on ``pass show <path>``.

Security Considerations:
- The command is run from an argument list, never through a shell
- Paths are checked against a strict alphabet before any process starts
- Decrypted values are returned to the caller only; nothing is logged
"""

import os
import re
import shutil
import subprocess
from pathlib import Path

import structlog

from passcred.exceptions import DependencyError, SecretNotFoundError

log = structlog.get_logger(__name__)

SAFE_PATH_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]*(/[A-Za-z0-9_-]+)*$")


class PassBackend:
    """Read entries from a ``pass`` store.

    Example:
        >>> backend = PassBackend(Path("~/.password-store").expanduser())
        >>> if backend.exists("aws/dev/access-key-id"):
        ...     key = backend.fetch("aws/dev/access-key-id")
    """

    def __init__(self, store_dir: Path, command: str = "pass") -> None:
        """Initialize backend.

        Args:
            store_dir: Password store directory
            command: ``pass`` executable name or path
        """
        self.store_dir = store_dir
        self.command = command

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "pass"
        """
        return "pass"

    @property
    def available(self) -> bool:
        """Check if the pass executable is on PATH."""
        return shutil.which(self.command) is not None

    @property
    def initialized(self) -> bool:
        """Check if the store directory exists (``pass init`` has been run)."""
        return self.store_dir.is_dir()

    @staticmethod
    def is_safe_path(path: str) -> bool:
        """Check a logical path against the allowed alphabet.

        Rejects traversal, absolute paths, option-like leading dashes, and
        anything a shell or ``pass`` might interpret.
        """
        return ".." not in path and SAFE_PATH_PATTERN.fullmatch(path) is not None

    def _entry_file(self, path: str) -> Path:
        return self.store_dir / f"{path}.gpg"

    def exists(self, path: str) -> bool:
        """Check whether the encrypted entry file exists.

        Looks at the store directory instead of running ``pass show`` so
        that an existence check never costs a decryption (and a hardware
        token touch).
        """
        if not self.is_safe_path(path):
            log.debug("pass_path_rejected")
            return False
        return self._entry_file(path).is_file()

    def fetch(self, path: str) -> str:
        """Decrypt an entry with ``pass show``.

        Args:
            path: Logical path (e.g., 'aws/dev/access-key-id')

        Returns:
            Entry content with trailing newlines removed

        Raises:
            SecretNotFoundError: If the path is unsafe or ``pass`` exits non-zero
            DependencyError: If the pass executable is missing
        """
        if not self.is_safe_path(path):
            raise SecretNotFoundError("Refusing to look up an unsafe store path")

        try:
            result = subprocess.run(
                [self.command, "show", path],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                env={**os.environ, "PASSWORD_STORE_DIR": str(self.store_dir)},
                check=False,
            )
        except FileNotFoundError as e:
            raise DependencyError(
                "pass command not found. Please install pass password manager.",
                suggestion="See https://www.passwordstore.org/",
            ) from e
        except OSError as e:
            raise SecretNotFoundError(f"Could not run pass: {e.strerror}") from e

        if result.returncode != 0:
            # stderr may echo the path; keep only the exit code
            log.debug("pass_show_failed", exit_code=result.returncode)
            raise SecretNotFoundError(f"pass exited with status {result.returncode}")

        return result.stdout.rstrip("\n")
