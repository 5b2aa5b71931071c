"""Command-line entry point used as an AWS ``credential_process``.

Configure a profile in ``~/.aws/config``::

    [profile dev]
    credential_process = passcred dev

The command prints credential JSON on stdout and exits 0, or prints an
error JSON on stdout (plus a readable line on stderr) and exits 1.
"""

import sys
from pathlib import Path
from typing import Any, TextIO

import click
import structlog

from passcred import __version__
from passcred.config.settings import CONFIG_ENV_VAR, HelperSettings
from passcred.exceptions import ConfigurationError, CredentialProcessError, InvalidProfileError
from passcred.formatter import ResponseFormatter, format_for_tty
from passcred.resolver import CredentialResolver
from passcred.utils.logging_config import configure_logging
from passcred.validation import validate_profile

log = structlog.get_logger(__name__)

VERSION_MESSAGE = "AWS Credential Process Script v%(version)s"

EPILOG = """\b
Environment Variables:
  AWS_CREDENTIAL_PROCESS_DEBUG     Enable redacted debug output (true/false)
  AWS_CREDENTIAL_PROCESS_CONFIG    Path to a YAML config file
  GPG_TTY                          Terminal for PIN/touch prompts

\b
Expected pass entries:
  aws/PROFILE/access-key-id       AWS Access Key ID (required)
  aws/PROFILE/secret-access-key   AWS Secret Access Key (required)
  aws/PROFILE/session-token       AWS Session Token (optional)
  aws/PROFILE/expiration          Credential expiration (optional)

\b
Example:
  passcred personal
  AWS_CREDENTIAL_PROCESS_DEBUG=true passcred work
"""


def _stream_formatter() -> tuple[TextIO, TextIO, ResponseFormatter]:
    stdout = click.get_text_stream("stdout")
    stderr = click.get_text_stream("stderr")
    return stdout, stderr, ResponseFormatter(format_for_tty(stderr.isatty()))


class CredentialProcessCommand(click.Command):
    """Click command that keeps the credential_process contract on any argv.

    Profiles may start with ``-`` (``-dev`` is valid), so only exact option
    names are parsed as options and every other single-dash token is a
    profile. Unknown ``--long`` options and other usage errors are reported
    as ``InvalidProfileError`` JSON with exit code 1 instead of Click's
    usage message.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        flags: set[str] = set()
        valued: set[str] = set()
        for param in self.get_params(ctx):
            if isinstance(param, click.Option):
                names = [*param.opts, *param.secondary_opts]
                (flags if param.is_flag else valued).update(names)

        options: list[str] = []
        positionals: list[str] = []
        tokens = iter(args)
        for token in tokens:
            if token == "--":
                positionals.extend(tokens)
                break
            if token in flags:
                options.append(token)
            elif token in valued:
                value = next(tokens, None)
                if value is None:
                    raise click.BadOptionUsage(token, f"Option '{token}' requires an argument.", ctx=ctx)
                options.extend((token, value))
            elif token.startswith("--") and token.split("=", 1)[0] in valued:
                options.append(token)
            elif token.startswith("--"):
                raise click.NoSuchOption(token.split("=", 1)[0], ctx=ctx)
            else:
                positionals.append(token)

        return super().parse_args(ctx, [*options, "--", *positionals])

    def make_context(
        self,
        info_name: str | None,
        args: list[str],
        parent: click.Context | None = None,
        **extra: Any,
    ) -> click.Context:
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            stdout, stderr, formatter = _stream_formatter()
            error = InvalidProfileError(f"Invalid arguments: {e.format_message()}")
            sys.exit(formatter.emit_failure(error, stdout, stderr))


@click.command(
    name="passcred",
    cls=CredentialProcessCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.argument("profiles", nargs=-1, metavar="[PROFILE]")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=CONFIG_ENV_VAR,
    default=None,
    help="YAML config file (default: ~/.config/passcred/config.yaml if present)",
)
@click.version_option(__version__, "-v", "--version", message=VERSION_MESSAGE)
def main(profiles: tuple[str, ...], config_path: Path | None) -> None:
    """Retrieve AWS credentials from the pass password manager.

    PROFILE is the AWS profile name (default: "default"). Output follows
    the AWS CLI credential_process format.
    """
    stdout, stderr, formatter = _stream_formatter()

    if len(profiles) > 1:
        error = InvalidProfileError(f"Expected at most one profile, got {len(profiles)}")
        sys.exit(formatter.emit_failure(error, stdout, stderr))

    # Keep logs off stdout before settings are known
    configure_logging(debug=False, stream=stderr)

    try:
        settings = HelperSettings.load(config_path)
    except ConfigurationError as e:
        sys.exit(formatter.emit_failure(CredentialProcessError(e.message), stdout, stderr))

    configure_logging(debug=settings.debug, path_prefixes=(settings.pass_prefix,), stream=stderr)
    log.debug("helper_started", version=__version__)

    raw_profile = profiles[0] if profiles else settings.default_profile
    try:
        validated = validate_profile(raw_profile)
    except InvalidProfileError as e:
        log.debug("profile_rejected", reason=type(e).__name__)
        sys.exit(formatter.emit_failure(e, stdout, stderr))

    try:
        resolver = CredentialResolver.from_settings(settings)
        outcome = resolver.resolve(validated)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    sys.exit(formatter.emit(outcome, stdout, stderr))


if __name__ == "__main__":
    main()
