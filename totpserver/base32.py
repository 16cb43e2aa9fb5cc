from .errors import InvalidCharacterError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"


def normalize_secret(secret: str) -> str:
    """
    Uppercase a Base32 secret and drop any trailing '=' padding.
    """
    return secret.upper().rstrip("=")


def decode(secret: str) -> bytes:
    """
    Decode a Base32 (RFC 4648) string to raw bytes.

    Args:
        secret: Base32 text, any case, with or without '=' padding.
                Whitespace is not accepted; strip it before calling.

    Returns:
        Decoded bytes. Leftover bits that do not fill a whole byte
        are dropped, so "" and single-character input give b"".

    Raises:
        InvalidCharacterError on the first character outside A-Z / 2-7.
    """
    buffer = 0
    bits = 0
    out = bytearray()

    for ch in normalize_secret(secret):
        index = ALPHABET.find(ch)
        if index < 0:
            raise InvalidCharacterError(ch)

        # 5 bits in, a full byte out whenever 8 are buffered
        buffer = (buffer << 5) | index
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1

    return bytes(out)
