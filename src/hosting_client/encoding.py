"""UTF-8-safe base64 transcoding for repository file content.

The contents API carries file bodies as base64. Text is encoded to UTF-8
bytes before base64 so multi-byte characters (emoji, non-Latin scripts)
survive the round trip intact.
"""

import base64
import binascii


def encode_content(content: str) -> str:
    """Encode text as base64 over its UTF-8 bytes.

    Args:
        content: Text to encode

    Returns:
        ASCII base64 string
    """
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> str:
    """Decode base64 content returned by the contents API.

    The API wraps base64 at 60 columns, so embedded newlines are removed
    before decoding.

    Args:
        encoded: Base64 string, possibly containing newlines

    Returns:
        Decoded text

    Raises:
        ValueError: If the payload is not valid base64 or not valid UTF-8
    """
    compact = encoded.replace("\n", "").replace("\r", "")
    try:
        raw = base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e
    return raw.decode("utf-8")
