"""passcred: AWS credential_process helper backed by the pass password manager.

The package resolves a profile name to AWS credentials stored as
GPG-encrypted ``pass`` entries and prints them in the JSON format AWS
tooling expects from a ``credential_process``.

Modules:
    validation: Profile name checks against path and argument injection
    store: ``pass`` secret store and GPG agent authentication gate
    resolver: Bounded-retry credential resolution
    formatter: credential_process JSON and exit codes
    cli: Click entry point
"""

__version__ = "1.0.0"
