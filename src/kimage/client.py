"""
kimage upload client

Reads a local image, normalises it to PNG and uploads it to a kimage server
as base64 text.
"""

import base64
import io
from pathlib import Path
from typing import Optional, Union

import requests
from PIL import Image, UnidentifiedImageError

from .errors import (
    FileReadError,
    ImageDecodeError,
    ImageEncodeError,
    InvalidResponseFormatError,
    NetworkError,
    ServerStatusError,
)
from .logger import create_logger


# Image modes the PNG encoder can write as-is
PNG_MODES = {'1', 'L', 'LA', 'I', 'I;16', 'P', 'RGB', 'RGBA'}


class KimageClient:
    """Upload client for a kimage server."""

    def __init__(
        self,
        server_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        log_level: Optional[str] = None
    ):
        """
        Initialize kimage client.

        Args:
            server_url: Base URL of the kimage server
            api_key: API key sent in the Authorization header
            session: Optional requests session (defaults to module-level requests)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        self.server_url = server_url
        self.api_key = api_key
        self.session = session or requests
        self.logger = create_logger('Kimage.Client', level=log_level)

    @property
    def upload_url(self) -> str:
        return f"{self.server_url}/upload"

    def upload_file(self, image_path: Union[str, Path]) -> str:
        """
        Re-encode an image file as PNG and upload it.

        Args:
            image_path: Path to the local image file

        Returns:
            URL of the uploaded image
        """
        return self.upload(self.encode_image(image_path))

    def encode_image(self, image_path: Union[str, Path]) -> str:
        """
        Load an image in any format Pillow reads and return it as base64 PNG.

        Raises:
            FileReadError: If the file cannot be read
            ImageDecodeError: If the file is not a recognised image
            ImageEncodeError: If the image cannot be written as PNG
        """
        image_path = Path(image_path)
        self.logger.info(f"Loading image from path: {image_path}")
        try:
            image_data = image_path.read_bytes()
        except OSError as e:
            raise FileReadError(f"Failed to read image file {image_path}: {e}") from e

        try:
            img = Image.open(io.BytesIO(image_data))
            img.load()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
        ) as e:
            raise ImageDecodeError(f"Failed to load image: {e}") from e

        buffer = io.BytesIO()
        try:
            with img:
                if img.mode not in PNG_MODES:
                    has_alpha = 'A' in img.getbands()
                    img = img.convert('RGBA' if has_alpha else 'RGB')
                img.save(buffer, format='PNG')
        except (OSError, ValueError) as e:
            raise ImageEncodeError(f"Failed to encode image as PNG: {e}") from e

        return base64.b64encode(buffer.getvalue()).decode('ascii')

    def upload(self, image_b64: str) -> str:
        """
        Upload base64 PNG data and return the URL the server assigned.

        Raises:
            NetworkError: If the request cannot be sent
            ServerStatusError: If the server answers with a non-success status
            InvalidResponseFormatError: If the response has no string "url"
        """
        self.logger.info("Sending image to server")
        try:
            response = self.session.post(
                self.upload_url,
                headers={'Authorization': self.api_key},
                # (None, value) sends a plain text part without a filename
                files={'image': (None, image_b64)},
            )
        except requests.RequestException as e:
            raise NetworkError(f"Failed to send request: {e}") from e

        if not 200 <= response.status_code < 300:
            self.logger.error(f"Server returned error: {response.status_code}")
            raise ServerStatusError(response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise InvalidResponseFormatError(f"Failed to parse response: {e}") from e

        url = body.get('url') if isinstance(body, dict) else None
        if not isinstance(url, str):
            raise InvalidResponseFormatError("Invalid response format")

        self.logger.info(f"Image uploaded successfully. URL: {url}")
        return url
