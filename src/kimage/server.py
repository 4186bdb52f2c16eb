"""
kimage server

A FastAPI application that accepts base64 encoded image uploads and serves
the stored images back by name.
"""

import asyncio
import base64
import binascii
import secrets
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from . import __version__
from .config import ServerConfig, load_server_config
from .errors import (
    AuthMismatchError,
    AuthMissingError,
    Base64DecodeError,
    ConfigError,
    FileWriteError,
    ImageNotFoundError,
    MultipartFieldMissingError,
    RequestError,
    StoredImageReadError,
)
from .filenames import generate_filename, is_stored_name
from .logger import create_logger


DEFAULT_HOST = "127.0.0.1"
IMAGE_FIELD = "image"
FORM_MEDIA_TYPE = "multipart/form-data"
IMAGE_MEDIA_TYPE = "image/png"

# Starlette caps non-file form fields at 1MB; base64 images are sent as text
MAX_FIELD_SIZE = 64 * 1024 * 1024


class KimageServer:
    """
    Image upload and serve server.
    """

    def __init__(
        self,
        config: ServerConfig,
        home: Optional[Path] = None,
        reload_config: bool = False,
        log_level: Optional[str] = None,
    ):
        """
        Initialize kimage server.

        Args:
            config: Server configuration loaded at startup
            home: Home directory used when reloading the config file
            reload_config: Re-read the config file on every request
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        self.config = config
        self.home = home
        self.reload_config = reload_config
        self.logger = create_logger('Kimage.Server', level=log_level)

        # Ensure storage directory exists
        self.config.storage_path.mkdir(parents=True, exist_ok=True)

    def create_app(self) -> FastAPI:
        """
        Create and configure FastAPI application.

        Returns:
            FastAPI: Configured FastAPI application instance
        """
        app = FastAPI(
            title="kimage",
            description="Image upload and serve service",
            version=__version__,
        )

        @app.post("/upload")
        async def upload_endpoint(
            request: Request,
            authorization: Optional[str] = Header(None),
        ):
            """Handle image upload endpoint."""
            try:
                config = await asyncio.to_thread(self.get_config)
                self.verify_api_key(authorization, config)
                url = await self.handle_upload(request, config)
            except RequestError as error:
                return self._error_response(error)
            return JSONResponse(status_code=200, content={"url": url})

        @app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {"status": "ok", "service": "kimage"}

        @app.get("/{filename}")
        async def serve_endpoint(filename: str):
            """Serve a previously uploaded image."""
            try:
                config = await asyncio.to_thread(self.get_config)
                contents = await asyncio.to_thread(self.read_image, filename, config)
            except RequestError as error:
                return self._error_response(error)
            return Response(content=contents, media_type=IMAGE_MEDIA_TYPE)

        return app

    def run(self, host: str = DEFAULT_HOST) -> None:
        """Serve the application with uvicorn until interrupted."""
        self.logger.info(f"Server running on http://{host}:{self.config.port}")
        uvicorn.run(
            self.create_app(),
            host=host,
            port=self.config.port,
            log_level="info",
        )

    def get_config(self) -> ServerConfig:
        """
        Return the configuration for the current request.

        Raises:
            RequestError: If reloading is enabled and the file cannot be loaded
        """
        if not self.reload_config:
            return self.config
        try:
            return load_server_config(self.home)
        except ConfigError as e:
            self.logger.error(f"Failed to load config: {e}")
            raise RequestError("Failed to load config") from e

    def verify_api_key(
        self,
        authorization: Optional[str],
        config: ServerConfig
    ) -> None:
        """
        Check the Authorization header against the configured API key.

        The header carries the bare key, without a "Bearer" scheme.

        Raises:
            AuthMissingError: If the header is absent or not plain ASCII
            AuthMismatchError: If the header does not match the API key
        """
        if authorization is None or not authorization.isascii():
            self.logger.error("Missing Authorization header")
            raise AuthMissingError()

        if not secrets.compare_digest(
            authorization.encode('ascii'),
            config.api_key.encode('utf-8')
        ):
            self.logger.info("Unauthorized access attempt")
            raise AuthMismatchError()

    async def handle_upload(self, request: Request, config: ServerConfig) -> str:
        """
        Store the image carried by an upload request.

        Args:
            request: FastAPI request with a multipart body
            config: Configuration for this request

        Returns:
            str: Public URL of the stored image

        Raises:
            MultipartFieldMissingError: If there is no "image" field
            Base64DecodeError: If the field is not valid base64
            FileWriteError: If the image cannot be written to storage
        """
        encoded = await self.read_image_field(request)

        try:
            decoded = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            self.logger.error(f"Invalid base64 data: {e}")
            raise Base64DecodeError() from e

        filename = generate_filename()
        file_path = config.storage_path / filename
        self.logger.info(f"Saving file to: {file_path}")
        try:
            await asyncio.to_thread(self._write_image, file_path, decoded)
        except OSError as e:
            self.logger.error(f"Failed to write file: {e}")
            raise FileWriteError() from e

        url = f"{config.server_url}/{filename}"
        self.logger.info(f"File uploaded successfully: {url}")
        return url

    async def read_image_field(self, request: Request) -> bytes:
        """
        Return the raw bytes of the first form field named "image".

        Raises:
            MultipartFieldMissingError: If the body has no such field or
                cannot be parsed
        """
        content_type = request.headers.get('content-type', '')
        media_type = content_type.split(';', 1)[0].strip().lower()
        if media_type != FORM_MEDIA_TYPE:
            self.logger.error(f"Bad request: expected multipart form data, got {content_type!r}")
            raise MultipartFieldMissingError()

        try:
            form = await request.form(max_part_size=MAX_FIELD_SIZE)
        except (StarletteHTTPException, MultiPartException) as e:
            self.logger.error(f"Failed to read multipart data: {e}")
            raise MultipartFieldMissingError() from e

        try:
            for name, value in form.multi_items():
                if name != IMAGE_FIELD:
                    continue
                if isinstance(value, str):
                    return value.encode('utf-8')
                return await value.read()
        finally:
            await form.close()

        self.logger.error("Bad request: No image field found in payload")
        raise MultipartFieldMissingError()

    @staticmethod
    def _write_image(file_path: Path, data: bytes) -> None:
        with open(file_path, 'wb') as f:
            f.write(data)

    def read_image(self, filename: str, config: ServerConfig) -> bytes:
        """
        Read a stored image.

        Only names shaped like generated filenames are looked up, so the
        request path can never leave the storage directory.

        Raises:
            ImageNotFoundError: If the name is not a stored image
            StoredImageReadError: If the file exists but cannot be read
        """
        if not is_stored_name(filename):
            self.logger.info(f"Rejected image name: {filename!r}")
            raise ImageNotFoundError()

        file_path = config.storage_path / filename
        if not file_path.exists():
            self.logger.info(f"Image not found: {file_path}")
            raise ImageNotFoundError()

        try:
            with open(file_path, 'rb') as f:
                contents = f.read()
        except OSError as e:
            self.logger.error(f"Failed to read file {file_path}: {e}")
            raise StoredImageReadError() from e

        self.logger.info(f"Serving image: {file_path}")
        return contents

    @staticmethod
    def _error_response(error: RequestError) -> JSONResponse:
        return JSONResponse(
            status_code=error.status_code,
            content={"error": str(error)}
        )
