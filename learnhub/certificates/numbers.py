"""Certificate number generation.

Format: ``{PREFIX}-{TIME}-{RANDOM}`` where TIME is the microsecond clock in
base 36 and RANDOM six characters from ``secrets``, e.g.
``CERT-LZ4K1M2QX9-7GQ2ZD``.
"""

import re
import secrets
import string
import time


ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 6

CERTIFICATE_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]+-[0-9A-Z]+-[0-9A-Z]{6}$")


def to_base36(value: int) -> str:
    if value < 0:
        msg = "value must be non-negative"
        raise ValueError(msg)
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_certificate_number(prefix: str = "CERT") -> str:
    timestamp = to_base36(time.time_ns() // 1000)
    suffix = "".join(secrets.choice(ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix.upper()}-{timestamp}-{suffix}"
