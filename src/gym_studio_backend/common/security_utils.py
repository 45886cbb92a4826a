'''
Security helpers shared by services and test factories:
password hashing for member accounts and webhook signature checks.
Kept free of service imports to prevent circular imports.
'''
import base64
import hashlib
import hmac
import time
from typing import Mapping, Optional

from passlib.context import CryptContext

# --- Password Hashing ---
class HashedPassword:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
    @classmethod
    def verify(cls, plain_password: str, hashed_password: str) -> bool:
        return cls.pwd_context.verify(plain_password, hashed_password)

    @classmethod
    def get_hash(cls, password: str) -> str:
        return cls.pwd_context.hash(password)


# --- Webhook Signatures (svix format) ---
class WebhookSignatureError(Exception):
    """Raised when a webhook request cannot be authenticated."""
    pass


class WebhookSignature:
    """
    Verifies svix-style signatures:
    'svix-signature: v1,<base64(hmac_sha256(key, "{id}.{timestamp}.{body}"))>'
    The header may carry several space separated signatures.
    """
    PREFIX = "whsec_"

    @classmethod
    def _signing_key(cls, secret: str) -> bytes:
        if not secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        if secret.startswith(cls.PREFIX):
            return base64.b64decode(secret[len(cls.PREFIX):])
        return secret.encode("utf-8")

    @classmethod
    def sign(cls, secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
        signed_content = f"{msg_id}.{timestamp}.".encode("utf-8") + body
        digest = hmac.new(cls._signing_key(secret), signed_content, hashlib.sha256).digest()
        return "v1," + base64.b64encode(digest).decode("utf-8")

    @classmethod
    def verify(
        cls,
        secret: str,
        headers: Mapping[str, str],
        body: bytes,
        tolerance_seconds: int = 300,
        now: Optional[float] = None
    ) -> None:
        msg_id = headers.get("svix-id")
        timestamp = headers.get("svix-timestamp")
        signature_header = headers.get("svix-signature")
        if not msg_id or not timestamp or not signature_header:
            raise WebhookSignatureError("Missing svix headers")

        try:
            ts = int(timestamp)
        except ValueError:
            raise WebhookSignatureError("Invalid svix timestamp")

        current = int(now if now is not None else time.time())
        if abs(current - ts) > tolerance_seconds:
            raise WebhookSignatureError("Webhook timestamp outside of tolerance")

        expected = cls.sign(secret, msg_id, timestamp, body).split(",", 1)[1]
        for candidate in signature_header.split(" "):
            version, _, value = candidate.partition(",")
            if version == "v1" and hmac.compare_digest(value, expected):
                return
        raise WebhookSignatureError("No matching signature found")
