"""Allow ``python -m passcred PROFILE``."""

from passcred.cli import main

main(prog_name="passcred")
