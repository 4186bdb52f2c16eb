import pyperclip

from .errors import ClipboardError


def copy_to_clipboard(text: str) -> None:
    """Place ``text`` on the system clipboard."""
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Failed to copy URL to clipboard: {e}") from e
