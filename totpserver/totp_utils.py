import struct
import time
from typing import NamedTuple, Optional

from cryptography.hazmat.primitives import hashes, hmac

from . import base32
from .config import OTP_LENGTH, TIME_STEP
from .errors import CodeGenerationError


class TotpCode(NamedTuple):
    code: str
    remaining: int


def _hmac_sha1(key: bytes, message: bytes) -> bytes:
    mac = hmac.HMAC(key, hashes.SHA1())
    mac.update(message)
    return mac.finalize()


def hotp_value(secret_bytes: bytes, counter: int, digits: int = OTP_LENGTH) -> str:
    """
    HOTP code for a raw counter (RFC 4226).

    Args:
        secret_bytes: Decoded shared secret
        counter: Moving factor, serialized as 8-byte big-endian
        digits: Length of the returned code

    Returns:
        Zero-padded decimal code, e.g. '287082'

    Raises:
        CodeGenerationError if the counter cannot be serialized
        or the HMAC primitive rejects the key.
    """
    if digits < 1:
        raise ValueError("digits must be a positive integer")

    try:
        counter_bytes = struct.pack(">Q", counter)
        digest = _hmac_sha1(secret_bytes, counter_bytes)
    except Exception as e:
        raise CodeGenerationError(f"HMAC-SHA1 computation failed: {e}") from e

    # Dynamic truncation
    offset = digest[-1] & 0x0F
    value = int.from_bytes(digest[offset:offset + 4], "big") & 0x7FFFFFFF

    return str(value % 10 ** digits).zfill(digits)


def remaining_seconds(now_seconds: int, time_step: int = TIME_STEP) -> int:
    """Seconds left in the window containing now_seconds (time_step on a boundary)."""
    counter = now_seconds // time_step
    return (counter + 1) * time_step - now_seconds


def compute_code(
    secret_bytes: bytes,
    now_seconds: int,
    time_step: int = TIME_STEP,
    digits: int = OTP_LENGTH,
) -> TotpCode:
    """
    TOTP code for a decoded secret at a given unix time (RFC 6238).

    The same now_seconds drives both the counter and the remaining time,
    so the pair always describes one window.
    """
    if time_step < 1:
        raise ValueError("time_step must be a positive integer")

    counter = now_seconds // time_step
    code = hotp_value(secret_bytes, counter, digits)
    return TotpCode(code=code, remaining=(counter + 1) * time_step - now_seconds)


def generate_totp_with_validity(
    secret: str,
    now_seconds: Optional[int] = None,
    time_step: int = TIME_STEP,
    digits: int = OTP_LENGTH,
) -> TotpCode:
    """
    Helper for the HTTP layer:
    decode a Base32 secret and return (code, remaining) for now_seconds,
    reading the wall clock once if it is not given.
    """
    secret_bytes = base32.decode(secret)
    if not secret_bytes:
        # e.g. "A" or "AB": fewer than 8 bits of key material
        raise CodeGenerationError("Secret key decodes to zero bytes")
    if now_seconds is None:
        now_seconds = int(time.time())
    return compute_code(secret_bytes, now_seconds, time_step=time_step, digits=digits)
