"""
Command line entry points for kimage and kimage-serve.
"""

import argparse
from typing import List, Optional

from . import __version__
from .client import KimageClient
from .clipboard import copy_to_clipboard
from .config import load_client_config, load_server_config
from .errors import KimageError
from .logger import create_logger
from .server import DEFAULT_HOST, KimageServer


def _upload_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='kimage',
        description='Upload an image and copy its URL to the clipboard.',
    )
    parser.add_argument('image_path', help='Path to the image file to upload')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def _serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='kimage-serve',
        description='Serve uploaded images and accept new uploads.',
    )
    parser.add_argument(
        '--host',
        default=DEFAULT_HOST,
        help=f'Address to bind (default: {DEFAULT_HOST})',
    )
    parser.add_argument(
        '--reload-config',
        action='store_true',
        help='Re-read ~/.config/kimage.toml on every request',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def upload_main(argv: Optional[List[str]] = None) -> int:
    """
    Upload an image and copy the resulting URL to the clipboard.

    Returns:
        Process exit code: 0 on success, 1 on any failure
    """
    args = _upload_parser().parse_args(argv)
    logger = create_logger('Kimage.CLI')

    try:
        config = load_client_config()
        client = KimageClient(config.server_url, config.api_key)
        url = client.upload_file(args.image_path)
        copy_to_clipboard(url)
    except KimageError as e:
        logger.error(str(e))
        return 1

    logger.info("URL copied to clipboard.")
    return 0


def serve_main(argv: Optional[List[str]] = None) -> int:
    """
    Run the kimage server until interrupted.

    Returns:
        Process exit code: 0 on clean shutdown, 1 if startup fails
    """
    args = _serve_parser().parse_args(argv)
    logger = create_logger('Kimage.CLI')

    try:
        config = load_server_config()
        server = KimageServer(config, reload_config=args.reload_config)
    except KimageError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"Failed to create storage directory: {e}")
        return 1

    try:
        server.run(host=args.host)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    return 0
