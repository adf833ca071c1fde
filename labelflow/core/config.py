from pathlib import Path

import pydantic

import labelflow.paths as lfp
from labelflow.core.errors import ConfigError
from labelflow.core.schema import ClientConfig
from labelflow.util import deserialize


def load_client_config(path: Path | str | None = None) -> ClientConfig:
    if path is None:
        path = lfp.CLIENT_CONFIG_PATH

    try:
        return deserialize.parse_yaml_file(path, ClientConfig)
    except (FileNotFoundError, pydantic.ValidationError) as e:
        raise ConfigError(f"Invalid client configuration at {path}: {e}") from e
