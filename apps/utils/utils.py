import secrets
import string
import time


def timestamp_ms():
    return int(time.time() * 1000)


def random_suffix(length=6):
    """
    Lowercase alphanumeric token, e.g. for file names and payment references.
    """
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_payment_reference(prefix="jr"):
    return f"{prefix}-{timestamp_ms()}-{random_suffix(10)}"
