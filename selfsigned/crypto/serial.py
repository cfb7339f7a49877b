"""
Certificate serial numbers.

Provides:
- random_serial_number() -> (serial_int, fingerprint)

The serial is drawn uniformly from [0, 2**128). The fingerprint is the last
four hex digits of the serial, uppercased, and is what gets appended to the
subject CN so operators can tell certificates of different runs apart.
"""

import secrets
from typing import Tuple

from selfsigned.common.utils import hex_tail
from selfsigned.crypto.errors import RandomSourceError

SERIAL_BITS = 128


def random_serial_number() -> Tuple[int, str]:
    try:
        serial = secrets.randbits(SERIAL_BITS)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"failed to generate serial number: {e}") from e
    return serial, hex_tail(serial)
