"""Authentication gate for GPG-backed decryption.

Before ``pass`` can decrypt anything the GPG agent has to be running and
know which terminal to use for PIN entry or hardware-token prompts.
``GpgAgentGate.ensure_ready`` takes care of both:

1. Set ``GPG_TTY`` if the environment does not provide it
2. Run an optional pre-authentication helper (PIN, token touch)
3. Check the agent, start it once if needed, then wait and re-check
   until it answers
4. Point the agent at the current terminal (best effort)
"""

import os
import subprocess
import sys
import time
from collections.abc import Callable, MutableMapping
from pathlib import Path

import structlog

from passcred.exceptions import DependencyError, GPGAgentError, GPGAuthError
from passcred.utils.retry import RetryExhaustedError, RetryPolicy, retry_call

log = structlog.get_logger(__name__)

FALLBACK_TTY = "/dev/console"


def detect_tty() -> str:
    """Return the controlling terminal of stdin, or a console fallback."""
    try:
        return os.ttyname(sys.stdin.fileno())
    except (AttributeError, OSError, ValueError):
        return FALLBACK_TTY


class GpgAgentGate:
    """Bring the GPG agent to a usable state.

    Example:
        >>> gate = GpgAgentGate(policy=RetryPolicy(max_attempts=5, delay=0.5))
        >>> gate.ensure_ready()
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        auth_helper: Path | None = None,
        connect_command: str = "gpg-connect-agent",
        agent_command: str = "gpg-agent",
        environ: MutableMapping[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize gate.

        Args:
            policy: Readiness checks and the wait after each failed one
            auth_helper: Executable run before the agent check; skipped if missing
            connect_command: ``gpg-connect-agent`` executable
            agent_command: ``gpg-agent`` executable
            environ: Environment to read and update (default: ``os.environ``)
            sleep: Blocking sleep function
        """
        self.policy = policy or RetryPolicy(max_attempts=5, delay=0.5)
        self.auth_helper = auth_helper
        self.connect_command = connect_command
        self.agent_command = agent_command
        self.environ = os.environ if environ is None else environ
        self.sleep = sleep
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def ensure_ready(self) -> None:
        """Prepare the agent for decryption.

        Raises:
            GPGAuthError: If the pre-authentication helper failed
            GPGAgentError: If the agent did not answer after all checks
            DependencyError: If GnuPG tools are not installed
        """
        if self._ready:
            log.debug("gpg_agent_already_ready")
            return

        self._ensure_tty()
        self._run_auth_helper()

        if not self._agent_reachable():
            log.debug("gpg_agent_starting")
            self._start_agent()
            # Give the daemon one delay before the first re-check
            self.sleep(self.policy.delay)
            try:
                retry_call(
                    self._agent_reachable,
                    policy=self.policy,
                    accept=bool,
                    exceptions=(),
                    sleep=self.sleep,
                    operation="gpg_agent_check",
                )
            except RetryExhaustedError as e:
                raise GPGAgentError(
                    f"Failed to start GPG agent after {e.attempts} attempts",
                    suggestion="Check 'gpgconf --launch gpg-agent' and your gpg-agent.conf",
                ) from e
            log.debug("gpg_agent_started")

        self._update_startup_tty()
        self._ready = True

    def _ensure_tty(self) -> None:
        if self.environ.get("GPG_TTY"):
            return
        tty = detect_tty()
        self.environ["GPG_TTY"] = tty
        log.debug("gpg_tty_set", tty=tty)

    def _run_auth_helper(self) -> None:
        helper = self.auth_helper
        if helper is None:
            return
        if not (helper.is_file() and os.access(helper, os.X_OK)):
            log.debug("gpg_auth_helper_skipped", helper=str(helper))
            return

        log.debug("gpg_auth_helper_running")
        try:
            # stdout carries the JSON contract, keep the helper off it
            result = subprocess.run(
                [str(helper)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=dict(self.environ),
                check=False,
            )
        except OSError as e:
            raise GPGAuthError(f"GPG authentication helper could not run: {e.strerror}") from e

        if result.returncode != 0:
            raise GPGAuthError(
                "GPG authentication failed. Please authenticate with GPG to access AWS credentials."
            )

    def _agent_reachable(self) -> bool:
        try:
            result = subprocess.run(
                [self.connect_command, "--quiet", "/bye"],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=dict(self.environ),
                check=False,
            )
        except FileNotFoundError as e:
            raise DependencyError(
                f"{self.connect_command} not found. Please install GnuPG.",
            ) from e
        return result.returncode == 0

    def _start_agent(self) -> None:
        try:
            subprocess.run(
                [self.agent_command, "--daemon", "--quiet"],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=dict(self.environ),
                check=False,
            )
        except FileNotFoundError as e:
            raise DependencyError(f"{self.agent_command} not found. Please install GnuPG.") from e

    def _update_startup_tty(self) -> None:
        try:
            result = subprocess.run(
                [self.connect_command, "updatestartuptty", "/bye"],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=dict(self.environ),
                check=False,
            )
        except OSError as e:
            log.debug("gpg_update_tty_failed", error=type(e).__name__)
            return
        log.debug("gpg_update_tty", exit_code=result.returncode)
