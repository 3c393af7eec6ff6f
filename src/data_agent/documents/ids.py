"""Opaque identifiers for saved documents."""

import secrets
import string

DOCUMENT_ID_ALPHABET = string.ascii_letters + string.digits
DOCUMENT_ID_LENGTH = 64


def generate_document_id(length: int = DOCUMENT_ID_LENGTH) -> str:
    """Generate a random alphanumeric id using a cryptographically secure source."""
    return "".join(secrets.choice(DOCUMENT_ID_ALPHABET) for _ in range(length))
