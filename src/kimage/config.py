"""
Config loading for kimage.

Both the client and the server read ``~/.config/kimage.toml``::

    port = 8080                             # server only
    api_key = "secret"
    storage_path = "images"                 # server only, relative to home
    server_url = "http://localhost:8080"
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigParseError, ConfigReadError
from .logger import create_logger


CONFIG_DIR = '.config'
CONFIG_FILE = 'kimage.toml'

logger = create_logger('Kimage.Config')


@dataclass(frozen=True)
class ServerConfig:
    """Settings used by kimage-serve."""
    port: int
    api_key: str
    storage_path: Path
    server_url: str


@dataclass(frozen=True)
class ClientConfig:
    """Settings used by the kimage upload client."""
    server_url: str
    api_key: str


def config_path(home: Optional[Path] = None) -> Path:
    """Return the location of the config file for the given home directory."""
    home = Path(home) if home is not None else Path.home()
    return home / CONFIG_DIR / CONFIG_FILE


def _read_config(path: Path) -> Dict[str, Any]:
    logger.info(f"Loading config from: {path}")
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"Failed to read config file {path}: {e}") from e

    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse config file {path}: {e}") from e


def _require_str(data: Dict[str, Any], key: str) -> str:
    if key not in data:
        raise ConfigParseError(f"Missing required config key: {key}")
    value = data[key]
    if not isinstance(value, str):
        raise ConfigParseError(f"Config key {key} must be a string")
    return value


def _require_port(data: Dict[str, Any]) -> int:
    if 'port' not in data:
        raise ConfigParseError("Missing required config key: port")
    port = data['port']
    # bool is an int subclass; `port = true` is still a type error
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigParseError("Config key port must be an integer")
    if not 0 <= port <= 65535:
        raise ConfigParseError(f"Config key port out of range: {port}")
    return port


def load_server_config(home: Optional[Path] = None) -> ServerConfig:
    """
    Load the server configuration.

    A relative ``storage_path`` is resolved against the home directory.

    Raises:
        ConfigReadError: If the file is missing or unreadable
        ConfigParseError: If the file is not valid TOML or a key is missing
            or has the wrong type
    """
    home = Path(home) if home is not None else Path.home()
    data = _read_config(config_path(home))

    port = _require_port(data)
    api_key = _require_str(data, 'api_key')
    storage_path = Path(_require_str(data, 'storage_path'))
    server_url = _require_str(data, 'server_url')

    if not storage_path.is_absolute():
        storage_path = home / storage_path

    logger.info("Config loaded successfully")
    return ServerConfig(
        port=port,
        api_key=api_key,
        storage_path=storage_path,
        server_url=server_url,
    )


def load_client_config(home: Optional[Path] = None) -> ClientConfig:
    """
    Load the client configuration. Server-only keys are ignored.

    Raises:
        ConfigReadError: If the file is missing or unreadable
        ConfigParseError: If the file is not valid TOML or a key is missing
            or has the wrong type
    """
    data = _read_config(config_path(home))
    config = ClientConfig(
        server_url=_require_str(data, 'server_url'),
        api_key=_require_str(data, 'api_key'),
    )
    logger.info("Config loaded successfully")
    return config
