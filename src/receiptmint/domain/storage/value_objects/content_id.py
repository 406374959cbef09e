"""Content identifiers derived from stored bytes.

Identifiers are CIDv1 with the ``raw`` codec and a sha2-256 multihash,
rendered in lowercase base32 multibase. This is the identifier an IPFS node
returns for a single-chunk upload made with ``cid-version=1`` and
``raw-leaves=true``.
"""

from __future__ import annotations

import base64
import hashlib

from receiptmint.domain.shared.exceptions import ValidationError

CID_VERSION = 0x01
RAW_CODEC = 0x55
SHA2_256 = 0x12
SHA2_256_LENGTH = 0x20
BASE32_PREFIX = "b"

URI_SCHEME = "ipfs://"
_GATEWAY_MARKER = "/ipfs/"


def compute_cid(data: bytes) -> str:
    digest = hashlib.sha256(data).digest()
    binary = bytes([CID_VERSION, RAW_CODEC, SHA2_256, SHA2_256_LENGTH]) + digest
    encoded = base64.b32encode(binary).decode("ascii").lower().rstrip("=")
    return BASE32_PREFIX + encoded


def content_uri(cid: str) -> str:
    return f"{URI_SCHEME}{cid}"


def cid_from_uri(uri: str) -> str:
    """Extract the CID from ``ipfs://<cid>`` or a gateway ``.../ipfs/<cid>`` URL."""
    value = uri.strip()
    if value.startswith(URI_SCHEME):
        cid = value[len(URI_SCHEME) :]
    elif _GATEWAY_MARKER in value:
        cid = value.split(_GATEWAY_MARKER, 1)[1]
    else:
        msg = f"Unsupported content URI: {uri}"
        raise ValidationError(msg, details={"uri": uri})
    cid = cid.split("/", 1)[0].split("?", 1)[0]
    if not cid:
        msg = f"Content URI has no identifier: {uri}"
        raise ValidationError(msg, details={"uri": uri})
    return cid
