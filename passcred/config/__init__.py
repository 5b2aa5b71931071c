"""Settings for the credential helper."""

from passcred.config.settings import CONFIG_ENV_VAR, ENV_PREFIX, HelperSettings

__all__ = ["CONFIG_ENV_VAR", "ENV_PREFIX", "HelperSettings"]
