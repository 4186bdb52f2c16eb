import re
import secrets
import string


ALPHABET = string.ascii_letters + string.digits
NAME_LENGTH = 10
EXTENSION = '.png'

STORED_NAME_RE = re.compile(r'[A-Za-z0-9]{%d}\.png' % NAME_LENGTH)


def generate_filename() -> str:
    """Generate a random name for an uploaded image, e.g. ``aZ3k9QwE1x.png``."""
    return ''.join(secrets.choice(ALPHABET) for _ in range(NAME_LENGTH)) + EXTENSION


def is_stored_name(name: str) -> bool:
    """Return True if ``name`` has the shape of a generated filename."""
    return STORED_NAME_RE.fullmatch(name) is not None
