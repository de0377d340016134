import hashlib
import uuid


def new_nonce() -> str:
    return uuid.uuid4().hex


def derive_key(*parts) -> str:
    """
    Stable idempotency key from request identity (product, package, customer, nonce).
    Same parts -> same key, so a client retry lands on the same row.
    """
    raw = "|".join(str(p if p is not None else "").strip().lower() for p in parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
