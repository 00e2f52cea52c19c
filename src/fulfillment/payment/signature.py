"""Razorpay-style payment signatures.

The checkout widget returns ``HMAC-SHA256(key_secret, "<order_id>|<payment_id>")``
as lowercase hex. Comparison is constant time.
"""

import hashlib
import hmac


def compute_signature(key_secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


def signature_matches(key_secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    if not key_secret or not signature:
        return False
    expected = compute_signature(key_secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected, signature)
