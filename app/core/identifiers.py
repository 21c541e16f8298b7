"""Human-readable record identifiers.

Every identifier is a prefix, the trailing digits of the current epoch
milliseconds and a zero-padded random suffix, e.g. ``ORD482913057``.
"""
import random
import time


def _generate(prefix: str, timestamp_digits: int, random_digits: int) -> str:
    timestamp = str(int(time.time() * 1000))[-timestamp_digits:]
    suffix = str(random.randrange(10 ** random_digits)).zfill(random_digits)
    return f"{prefix}{timestamp}{suffix}"


def generate_customer_id() -> str:
    """CUST + 6 timestamp digits + 3 random digits."""
    return _generate("CUST", 6, 3)


def generate_product_id() -> str:
    """P + 6 timestamp digits + 3 random digits."""
    return _generate("P", 6, 3)


def generate_order_id() -> str:
    """ORD + 6 timestamp digits + 3 random digits."""
    return _generate("ORD", 6, 3)


def generate_tracking_number() -> str:
    """TRK + 8 timestamp digits + 4 random digits."""
    return _generate("TRK", 8, 4)
