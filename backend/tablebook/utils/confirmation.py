import secrets
import string

_ALPHABET = string.ascii_lowercase + string.digits


def generate_confirmation_code(length: int = 9) -> str:
    """Random base-36 code handed to guests for change/cancel lookups."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
