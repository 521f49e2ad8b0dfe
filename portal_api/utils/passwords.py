import secrets
import string

PASSWORD_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "!@#$%"
DEFAULT_PASSWORD_LENGTH = 12


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
