"""
HMAC-SHA256 webhook signature helpers.
"""
import hmac
from hashlib import sha256
from typing import Optional


def compute_signature(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    mac = hmac.new(key=secret.encode("utf-8"), msg=body, digestmod=sha256)
    return mac.hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time check of a hex signature, with or without a "sha256=" prefix."""
    if not signature:
        return False
    provided = signature.strip()
    if provided.lower().startswith("sha256="):
        provided = provided[len("sha256="):]
    expected = compute_signature(secret, body)
    return hmac.compare_digest(provided.lower(), expected)
