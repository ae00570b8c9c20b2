import hashlib
import hmac


def generate_signature(body: str | bytes, secret: str) -> str:
    """Generate a hex HMAC-SHA256 signature over a raw webhook body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: str | bytes, secret: str, signature: str | None) -> bool:
    if not signature:
        return False
    expected = generate_signature(body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


def normalize_payload(body: str) -> str:
    """Line endings unified, surrounding whitespace dropped."""
    return body.replace("\r\n", "\n").replace("\r", "\n").strip()


def payload_hash(provider_name: str, body: str) -> str:
    """Dedup key for a webhook delivery: SHA-256 of provider name and normalized body."""
    message = f"{provider_name.strip().lower()}\n{normalize_payload(body)}"
    return hashlib.sha256(message.encode("utf-8")).hexdigest()
