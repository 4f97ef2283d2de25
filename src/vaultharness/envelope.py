"""
Secret envelope codec.

Every backend stores a secret value wrapped as ``{"secret": <value>}`` so the
calling test suite can verify round trips the same way regardless of the
backend's payload shape. Backends with binary payload fields carry the
envelope base64-encoded.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import base64
import binascii
import json

ENVELOPE_KEY = "secret"


def wrap(value: str) -> dict[str, str]:
    """Return the envelope as a mapping."""
    return {ENVELOPE_KEY: value}


def encode(value: str) -> str:
    """Encode a plaintext value as envelope JSON."""
    return json.dumps(wrap(value))


def encode_base64(value: str) -> str:
    """Encode a plaintext value as base64 envelope JSON."""
    return base64.b64encode(encode(value).encode("utf-8")).decode("ascii")


def decode(blob: str | bytes) -> str:
    """Decode envelope JSON back to the plaintext value.

    Raises:
        ValueError: If the blob is not an envelope
    """
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")

    try:
        data = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ValueError(f"Secret envelope is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get(ENVELOPE_KEY), str):
        raise ValueError(f"Secret envelope must be an object with a string {ENVELOPE_KEY!r} field")

    return data[ENVELOPE_KEY]


def decode_base64(blob: str | bytes) -> str:
    """Decode base64 envelope JSON back to the plaintext value."""
    try:
        raw = base64.b64decode(blob, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Secret envelope is not valid base64: {e}") from e
    return decode(raw)
