import logging
from os.path import join
from pathlib import Path
from typing import Any, Dict, Optional, Union

import ruamel.yaml
from pydantic import ValidationError
from ruamel.yaml.comments import CommentedMap

from keyforge import prefix_path
from keyforge.client.config.client_config_map import ClientConfigMap

# Use ruamel.yaml to preserve order and comments in .yml file
yaml = ruamel.yaml.YAML()

CLIENT_CONFIG_FILE_NAME = "conf_client.yml"


def default_client_config_path() -> Path:
    return Path(join(prefix_path(), "conf", CLIENT_CONFIG_FILE_NAME))


def _read_yml(yml_path: Path) -> Dict[str, Any]:
    with open(yml_path) as stream:
        return yaml.load(stream) or {}


def load_client_config_map_from_file(yml_path: Optional[Union[str, Path]] = None) -> ClientConfigMap:
    """
    Loads the client configuration. A missing file yields the defaults; invalid values raise `ValidationError`.
    """
    yml_path = Path(yml_path) if yml_path is not None else default_client_config_path()
    if not yml_path.exists():
        logging.getLogger(__name__).debug(f"{yml_path} not found, using the default client configuration.")
        return ClientConfigMap()
    data = _read_yml(yml_path)
    try:
        return ClientConfigMap(**dict(data))
    except ValidationError:
        logging.getLogger(__name__).error(f"Invalid client configuration in {yml_path}.")
        raise


def save_to_yml(yml_path: Union[str, Path], cm: ClientConfigMap):
    """
    Writes the config map to `yml_path`, keeping the order and comments of keys already in the file.
    """
    yml_path = Path(yml_path)
    data = _read_yml(yml_path) if yml_path.exists() else CommentedMap()
    for key, value in cm.model_dump(mode="json").items():
        data[key] = value
    yml_path.parent.mkdir(parents=True, exist_ok=True)
    with open(yml_path, "w+") as outfile:
        yaml.dump(data, outfile)
