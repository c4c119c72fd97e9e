import hashlib

from .errors import HashToCurveFailed, InvalidPoint
from .secp import GroupElement

DOMAIN_SEPARATOR = b"Secp256k1_HashToCurve_Cashu_"

# Prefix of the even-y compressed encoding tried for every candidate
EVEN_PREFIX = b"\x02"

# Counter is 4 bytes little-endian
MAX_COUNTER = 2**32

def hash_to_curve(message: bytes) -> GroupElement:
    """
    Map `message` to a curve point deterministically.

    Y = PublicKey('02' || SHA256(SHA256(DOMAIN_SEPARATOR || message) || counter))
    for the first 32-bit little-endian counter that yields a valid point.
    """
    msg_to_hash = hashlib.sha256(DOMAIN_SEPARATOR + message).digest()
    counter = 0
    while counter < MAX_COUNTER:
        _hash = hashlib.sha256(msg_to_hash + counter.to_bytes(4, "little")).digest()
        try:
            # will error if point does not lie on curve
            return GroupElement(EVEN_PREFIX + _hash)
        except InvalidPoint:
            counter += 1
    # it should never reach this point
    raise HashToCurveFailed("No valid point found")

def hash_to_curve_secret(secret: str | bytes) -> GroupElement:
    """Text secrets are hashed as their UTF-8 bytes."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hash_to_curve(secret)
