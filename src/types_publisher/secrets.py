import os
from enum import Enum
from pathlib import Path
from typing import Optional

from . import config
from .domain.errors import MissingSecretError


class Secret(str, Enum):
    NPM_TOKEN = "NPM_TOKEN"


def get_secret(secret: Secret, config_file: Optional[Path] = None) -> str:
    """
    resolve a secret from the environment, falling back to the config file.

    raises:
        MissingSecretError: if neither source provides a value
    """
    value = os.environ.get(secret.value) or config.get_config_value(
        secret.value, config_file or config.CONFIG_FILE
    )
    if not value:
        raise MissingSecretError(secret.value)
    return value
