"""
Settings for the transformer.

Values are read from environment variables, falling back to the defaults the
generated resources were designed around.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError


def _get_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class TransformerSettings:
    """Compile-time settings shared by every compilation."""

    lambda_runtime: str = "nodejs18.x"
    lambda_handler: str = "index.handler"
    max_labels: int = 10
    min_confidence: int = 55
    name_delimiter: str = "-"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TransformerSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. If None, reads os.environ.

        Returns:
            Settings with any overrides applied
        """
        if environ is None:
            environ = os.environ
        defaults = cls()
        return cls(
            lambda_runtime=environ.get("PREDICTIONS_LAMBDA_RUNTIME") or defaults.lambda_runtime,
            lambda_handler=environ.get("PREDICTIONS_LAMBDA_HANDLER") or defaults.lambda_handler,
            max_labels=_get_int(environ, "PREDICTIONS_MAX_LABELS", defaults.max_labels),
            min_confidence=_get_int(environ, "PREDICTIONS_MIN_CONFIDENCE", defaults.min_confidence),
            name_delimiter=environ.get("PREDICTIONS_NAME_DELIMITER") or defaults.name_delimiter,
            log_level=(environ.get("LOG_LEVEL") or defaults.log_level).upper(),
        )
