"""Tests for the GPG agent authentication gate."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from passcred.exceptions import DependencyError, GPGAgentError, GPGAuthError
from passcred.store.gpg_agent import FALLBACK_TTY, GpgAgentGate, detect_tty
from passcred.utils.retry import RetryPolicy


class FakeGpg:
    """Stand-in for subprocess.run answering GnuPG commands.

    ``checks`` lists the outcomes of successive ``gpg-connect-agent --quiet``
    calls; once used up, checks keep failing.
    """

    def __init__(self, checks: list[bool], helper_exit: int = 0) -> None:
        self.checks = list(checks)
        self.helper_exit = helper_exit
        self.calls: list[list[str]] = []

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        if args[0] == "gpg-connect-agent" and args[1] == "--quiet":
            code = 0 if (self.checks and self.checks.pop(0)) else 1
        elif args[0] in ("gpg-agent", "gpg-connect-agent"):
            code = 0
        else:
            code = self.helper_exit
        return subprocess.CompletedProcess(args, code, b"", b"")

    def count(self, command: str, first_arg: str | None = None) -> int:
        return sum(1 for call in self.calls if call[0] == command and (first_arg is None or call[1] == first_arg))


@pytest.fixture
def environ():
    """Environment with a terminal already known."""
    return {"GPG_TTY": "/dev/pts/1"}


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_gate(environ, sleeps):
    """Factory building a gate with recorded sleeps."""

    def _make(**kwargs):
        kwargs.setdefault("policy", RetryPolicy(max_attempts=5, delay=0.5))
        return GpgAgentGate(environ=environ, sleep=sleeps.append, **kwargs)

    return _make


class TestEnsureReady:
    """Tests for agent startup and polling."""

    def test_agent_already_running(self, make_gate, sleeps):
        """Should not start an agent that already answers."""
        fake = FakeGpg(checks=[True])
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert gate.ready
        assert fake.count("gpg-agent") == 0
        assert fake.count("gpg-connect-agent", "updatestartuptty") == 1
        assert sleeps == []

    def test_idempotent(self, make_gate):
        """Should spawn at most one agent across repeated calls."""
        fake = FakeGpg(checks=[False, True])
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()
            calls_after_first = len(fake.calls)
            gate.ensure_ready()

        assert fake.count("gpg-agent") == 1
        assert len(fake.calls) == calls_after_first

    def test_starts_agent_and_polls(self, make_gate, sleeps):
        """Should start the agent once and poll until it answers."""
        fake = FakeGpg(checks=[False, False, False, True])
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert fake.count("gpg-agent") == 1
        assert fake.count("gpg-connect-agent", "--quiet") == 4
        assert sleeps == [0.5, 0.5, 0.5]

    def test_waits_after_starting_agent(self, make_gate, sleeps):
        """Should wait one delay after spawning the agent before re-checking."""
        fake = FakeGpg(checks=[False, True])
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert fake.count("gpg-agent") == 1
        assert fake.count("gpg-connect-agent", "--quiet") == 2
        assert sleeps == [0.5]

    def test_agent_never_answers(self, make_gate, sleeps):
        """Should give up after the configured number of checks."""
        fake = FakeGpg(checks=[])
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            with pytest.raises(GPGAgentError, match="after 5 attempts"):
                gate.ensure_ready()

        assert fake.count("gpg-agent") == 1
        # initial check plus five polls, each preceded by one delay
        assert fake.count("gpg-connect-agent", "--quiet") == 6
        assert sleeps == [0.5] * 5
        assert not gate.ready

    def test_gnupg_not_installed(self, make_gate):
        """Should report missing GnuPG tools as a dependency error."""
        gate = make_gate()

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(DependencyError, match="gpg-connect-agent not found"):
                gate.ensure_ready()

    def test_update_tty_failure_is_ignored(self, make_gate):
        """Should treat updatestartuptty as best effort."""
        fake = FakeGpg(checks=[True])

        def run(args, **kwargs):
            if args[1] == "updatestartuptty":
                raise PermissionError(13, "denied")
            return fake(args, **kwargs)

        gate = make_gate()
        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=run):
            gate.ensure_ready()

        assert gate.ready

    def test_commands_never_touch_stdout(self, make_gate):
        """Should capture or discard output of every spawned command."""
        gate = make_gate()
        mock_run = Mock(side_effect=FakeGpg(checks=[False, True]))

        with patch("passcred.store.gpg_agent.subprocess.run", mock_run):
            gate.ensure_ready()

        for call in mock_run.call_args_list:
            kwargs = call.kwargs
            assert kwargs.get("capture_output") or kwargs.get("stdout") is subprocess.DEVNULL
            assert kwargs["stdin"] is subprocess.DEVNULL


class TestAuthHelper:
    """Tests for the optional pre-authentication helper."""

    @pytest.fixture
    def helper(self, tmp_path):
        path = tmp_path / "gpg-auth-helper.sh"
        path.write_text("#!/bin/sh\nexit 0\n")
        path.chmod(0o755)
        return path

    def test_helper_runs_before_agent_check(self, make_gate, helper):
        """Should run the helper before talking to the agent."""
        fake = FakeGpg(checks=[True])
        gate = make_gate(auth_helper=helper)

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert fake.calls[0] == [str(helper)]

    def test_helper_failure(self, make_gate, helper):
        """Should raise GPGAuthError when the helper exits non-zero."""
        fake = FakeGpg(checks=[True], helper_exit=1)
        gate = make_gate(auth_helper=helper)

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            with pytest.raises(GPGAuthError, match="GPG authentication failed"):
                gate.ensure_ready()

        assert fake.count("gpg-connect-agent") == 0

    def test_non_executable_helper_skipped(self, make_gate, helper):
        """Should skip a helper that is not executable."""
        helper.chmod(0o644)
        fake = FakeGpg(checks=[True])
        gate = make_gate(auth_helper=helper)

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert [str(helper)] not in fake.calls

    def test_missing_helper_skipped(self, make_gate, tmp_path):
        """Should skip a helper path that does not exist."""
        fake = FakeGpg(checks=[True])
        gate = make_gate(auth_helper=tmp_path / "nope.sh")

        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=fake):
            gate.ensure_ready()

        assert gate.ready


class TestGpgTty:
    """Tests for GPG_TTY handling."""

    def test_existing_value_kept(self, make_gate, environ):
        """Should not override a GPG_TTY set by the user."""
        with patch("passcred.store.gpg_agent.subprocess.run", side_effect=FakeGpg(checks=[True])):
            make_gate().ensure_ready()

        assert environ["GPG_TTY"] == "/dev/pts/1"

    def test_missing_value_detected(self, make_gate, environ):
        """Should set GPG_TTY from the detected terminal."""
        environ.clear()

        with patch("passcred.store.gpg_agent.detect_tty", return_value="/dev/pts/7"):
            with patch("passcred.store.gpg_agent.subprocess.run", side_effect=FakeGpg(checks=[True])) as mock_run:
                make_gate().ensure_ready()

        assert environ["GPG_TTY"] == "/dev/pts/7"
        assert mock_run.call_args.kwargs["env"]["GPG_TTY"] == "/dev/pts/7"

    def test_detect_tty(self, monkeypatch):
        """Should return the terminal attached to stdin."""
        monkeypatch.setattr("sys.stdin", Mock(fileno=Mock(return_value=0)))
        monkeypatch.setattr("passcred.store.gpg_agent.os.ttyname", Mock(return_value="/dev/pts/3"))

        assert detect_tty() == "/dev/pts/3"

    def test_detect_tty_fallback(self, monkeypatch):
        """Should fall back to the console without a terminal."""
        monkeypatch.setattr("sys.stdin", Mock(fileno=Mock(return_value=0)))
        monkeypatch.setattr("passcred.store.gpg_agent.os.ttyname", Mock(side_effect=OSError(25, "not a tty")))

        assert detect_tty() == FALLBACK_TTY
