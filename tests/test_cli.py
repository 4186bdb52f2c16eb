import pytest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import Mock, patch

import pyperclip
import requests
from PIL import Image

from kimage import __version__
from kimage.cli import serve_main, upload_main
from kimage.clipboard import copy_to_clipboard
from kimage.errors import ClipboardError


@pytest.fixture
def home(monkeypatch):
    """Temporary home directory with a client config."""
    temp_dir = Path(tempfile.mkdtemp())
    (temp_dir / ".config").mkdir()
    (temp_dir / ".config" / "kimage.toml").write_text(
        'api_key = "test-key"\nserver_url = "http://host"\n',
        encoding="utf-8",
    )
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: temp_dir))
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def jpeg(home):
    path = home / "photo.jpg"
    Image.new("RGB", (16, 16), (10, 120, 200)).save(path, format="JPEG")
    return path


def server_reply(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = body
    return response


class TestClipboard:

    def test_copies_text(self):
        with patch("kimage.clipboard.pyperclip.copy") as copy:
            copy_to_clipboard("http://host/x.png")
        copy.assert_called_once_with("http://host/x.png")

    def test_unavailable_clipboard(self):
        with patch(
            "kimage.clipboard.pyperclip.copy",
            side_effect=pyperclip.PyperclipException("no clipboard mechanism"),
        ):
            with pytest.raises(ClipboardError):
                copy_to_clipboard("http://host/x.png")


class TestUploadMain:

    def test_success_copies_url(self, jpeg):
        reply = server_reply(body={"url": "http://host/x.png"})
        with patch("kimage.client.requests.post", return_value=reply) as post, \
                patch("kimage.clipboard.pyperclip.copy") as copy:
            assert upload_main([str(jpeg)]) == 0

        copy.assert_called_once_with("http://host/x.png")
        assert post.call_args.args[0] == "http://host/upload"
        assert post.call_args.kwargs["headers"] == {"Authorization": "test-key"}

    def test_server_error_leaves_clipboard(self, jpeg):
        with patch("kimage.client.requests.post", return_value=server_reply(500, {})), \
                patch("kimage.clipboard.pyperclip.copy") as copy:
            assert upload_main([str(jpeg)]) != 0

        copy.assert_not_called()

    def test_network_error(self, jpeg):
        with patch(
            "kimage.client.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ), patch("kimage.clipboard.pyperclip.copy") as copy:
            assert upload_main([str(jpeg)]) == 1

        copy.assert_not_called()

    def test_missing_image(self, home):
        with patch("kimage.client.requests.post") as post, \
                patch("kimage.clipboard.pyperclip.copy") as copy:
            assert upload_main([str(home / "missing.jpg")]) == 1

        post.assert_not_called()
        copy.assert_not_called()

    def test_missing_config(self, home, jpeg):
        (home / ".config" / "kimage.toml").unlink()

        with patch("kimage.client.requests.post") as post:
            assert upload_main([str(jpeg)]) == 1
        post.assert_not_called()

    def test_clipboard_failure(self, jpeg):
        reply = server_reply(body={"url": "http://host/x.png"})
        with patch("kimage.client.requests.post", return_value=reply), \
                patch(
                    "kimage.clipboard.pyperclip.copy",
                    side_effect=pyperclip.PyperclipException("no clipboard"),
                ):
            assert upload_main([str(jpeg)]) == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            upload_main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_requires_image_path(self):
        with pytest.raises(SystemExit) as exc_info:
            upload_main([])
        assert exc_info.value.code == 2


class TestServeMain:

    def test_missing_config(self, home):
        (home / ".config" / "kimage.toml").unlink()
        assert serve_main([]) == 1

    def test_client_only_config_is_rejected(self, home):
        assert serve_main([]) == 1

    def test_runs_server_with_options(self, home):
        (home / ".config" / "kimage.toml").write_text(
            'port = 9090\napi_key = "k"\nstorage_path = "images"\n'
            'server_url = "http://host"\n',
            encoding="utf-8",
        )
        with patch("kimage.server.uvicorn.run") as run:
            assert serve_main(["--host", "0.0.0.0", "--reload-config"]) == 0

        assert (home / "images").is_dir()
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert run.call_args.kwargs["port"] == 9090


class TestOversizedImage:

    def test_decompression_bomb_is_logged_failure(self, home, monkeypatch):
        path = home / "huge.png"
        Image.new("RGB", (64, 64)).save(path, format="PNG")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        with patch("kimage.client.requests.post") as post, \
                patch("kimage.clipboard.pyperclip.copy") as copy:
            assert upload_main([str(path)]) == 1

        post.assert_not_called()
        copy.assert_not_called()
