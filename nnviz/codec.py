"""
Transport encoding of a network.

encode() produces an opaque, URL-safe string (compact JSON, zlib deflate,
base64url without padding) that can be stored in a file, a query parameter or a
URL fragment. decode() reverses it and validates the result.
"""

import base64
import binascii
import json
import zlib

from nnviz.network import (
    NetworkError,
    NeuralNetwork,
    ValidationError,
    network_from_dict,
    network_to_dict,
)


class DecodeError(NetworkError, ValueError):
    """Persisted text could not be turned back into a valid network."""


def encode(network: NeuralNetwork) -> str:
    payload = json.dumps(network_to_dict(network), separators=(",", ":"), ensure_ascii=False)
    packed = zlib.compress(payload.encode("utf-8"), 9)
    return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")


def decode(text: str) -> NeuralNetwork:
    if not isinstance(text, str) or not text.strip():
        raise DecodeError("encoded network is empty")
    text = text.strip()
    padded = text + "=" * (-len(text) % 4)
    try:
        packed = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"not valid base64url: {e}") from e
    try:
        payload = zlib.decompress(packed)
    except zlib.error as e:
        raise DecodeError(f"corrupt compressed data: {e}") from e
    try:
        doc = json.loads(payload.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        # ValueError also covers bad UTF-8 and over-long integer literals
        raise DecodeError(f"payload is not JSON: {e}") from e
    try:
        return network_from_dict(doc)
    except ValidationError as e:
        raise DecodeError(f"decoded network is invalid: {e}") from e
