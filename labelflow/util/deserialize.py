import logging
from pathlib import Path
from typing import TypeVar

from omegaconf import OmegaConf

import pydantic

T = TypeVar("T", bound=pydantic.BaseModel)


def parse_yaml_file(file_path: Path | str, clazz: type[T]) -> T:
    if isinstance(file_path, str):
        file_path = Path(file_path)

    if not file_path.is_file() or file_path.suffix not in (".yaml", ".yml"):
        msg = f"Cannot find yaml file at path: {file_path}"
        logging.error(msg)
        raise FileNotFoundError(msg)

    try:
        cfg = OmegaConf.load(file_path)
        cfg_raw = OmegaConf.to_container(cfg, resolve=True)
    except Exception as e:
        logging.error(
            "\n".join([
                f"Failed to parse yaml file: {file_path}",
                f"Error: {e}",
            ])
        )
        raise

    return validate_payload(cfg_raw, clazz, source=str(file_path))


def validate_payload(payload: object, clazz: type[T], source: str = "payload") -> T:
    try:
        return clazz.model_validate(payload)
    except pydantic.ValidationError as e:
        logging.error(
            "\n".join([
                f"Pydantic validation for {clazz.__name__} failed for {source}.",
                f"Error: {e}",
            ])
        )
        raise


def validate_list(payload: object, clazz: type[T], source: str = "payload") -> list[T]:
    if not isinstance(payload, list):
        msg = f"Expected a list of {clazz.__name__} for {source}, got {type(payload).__name__}"
        logging.error(msg)
        raise TypeError(msg)
    return [validate_payload(item, clazz, source=source) for item in payload]
