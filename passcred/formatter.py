"""Serialize resolution outcomes for the AWS credential_process contract.

AWS tooling parses JSON from stdout whatever the outcome, so failures are
written to stdout too. A human-readable copy of every failure also goes to
stderr for whoever is watching the terminal.

Success::

    {"Version":1,"AccessKeyId":"...","SecretAccessKey":"...","SessionToken":"..."}

Failure::

    {"Version":1,"Code":"CredentialNotFoundError","Message":"..."}
"""

import json
from dataclasses import dataclass
from typing import Any, TextIO

import click

from passcred.enums import FailureKind
from passcred.exceptions import CredentialProcessError
from passcred.models import CredentialSet, ResolutionOutcome

PROTOCOL_VERSION = 1

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class Styler:
    """Terminal styling for human-facing stderr lines."""

    enabled: bool = False

    def error(self, text: str) -> str:
        return click.style(text, fg="red") if self.enabled else text

    def warning(self, text: str) -> str:
        return click.style(text, fg="yellow", bold=True) if self.enabled else text


def format_for_tty(is_tty: bool) -> Styler:
    """Pick styling once at startup from the terminal capability of stderr."""
    return Styler(enabled=is_tty)


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


class ResponseFormatter:
    """Write outcomes to stdout/stderr and map them to exit codes."""

    def __init__(self, styler: Styler | None = None) -> None:
        self.styler = styler or Styler()

    def format_success(self, credentials: CredentialSet) -> str:
        """Serialize credentials. ``SessionToken`` is omitted when absent."""
        payload: dict[str, Any] = {
            "Version": PROTOCOL_VERSION,
            "AccessKeyId": credentials.access_key_id,
            "SecretAccessKey": credentials.secret_access_key,
        }
        if credentials.session_token:
            payload["SessionToken"] = credentials.session_token
        return _dumps(payload)

    def format_failure(self, kind: FailureKind, message: str) -> str:
        """Serialize a failure code and message."""
        return _dumps({"Version": PROTOCOL_VERSION, "Code": str(kind), "Message": message})

    def format_error_line(self, message: str) -> str:
        """One-line human-readable error for stderr."""
        single_line = " ".join(message.split())
        return f"{self.styler.error('[ERROR]')} {single_line}"

    def emit_failure(self, error: CredentialProcessError, stdout: TextIO, stderr: TextIO) -> int:
        """Write a failure to both streams.

        Returns:
            Process exit code (always 1)
        """
        click.echo(self.format_error_line(error.message), file=stderr)
        if error.suggestion:
            click.echo(self.styler.warning(f"Suggestion: {error.suggestion}"), file=stderr)
        click.echo(self.format_failure(error.code, error.message), file=stdout)
        return EXIT_FAILURE

    def emit(self, outcome: ResolutionOutcome, stdout: TextIO, stderr: TextIO) -> int:
        """Write an outcome and return the exit code.

        Args:
            outcome: Resolution result
            stdout: Stream read by the credential_process caller
            stderr: Stream read by a human

        Returns:
            0 on success, 1 on failure
        """
        if outcome.credentials is not None:
            click.echo(self.format_success(outcome.credentials), file=stdout)
            return EXIT_SUCCESS
        else:
            return self.emit_failure(outcome.error, stdout, stderr)
