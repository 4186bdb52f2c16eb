"""
kimage - Python implementation
A minimal image upload and serve service with a clipboard upload client.
"""

__version__ = "0.1.3"

from .logger import create_logger
from .errors import KimageError
from .config import ClientConfig, ServerConfig, load_client_config, load_server_config
from .filenames import generate_filename
from .client import KimageClient
from .server import KimageServer

__all__ = [
    "create_logger",
    "KimageError",
    "ClientConfig",
    "ServerConfig",
    "load_client_config",
    "load_server_config",
    "generate_filename",
    "KimageClient",
    "KimageServer",
]
