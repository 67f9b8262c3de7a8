import secrets
import string

_ALPHABET = string.ascii_uppercase + string.digits


def generate_invitation_code(length: int) -> str:
    """Random join code made of upper-case letters and digits."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
