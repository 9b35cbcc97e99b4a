import secrets
import time

INVITE_TOKEN_LENGTH = 48


def generate_invite_token() -> str:
    """Unguessable, URL-safe public identifier for an invite."""
    return secrets.token_urlsafe(36)[:INVITE_TOKEN_LENGTH]


def generate_file_name(prefix: str, extension: str) -> str:
    timestamp = int(time.time() * 1000)
    return f"{prefix}_{timestamp}_{secrets.token_hex(8)}.{extension}"
