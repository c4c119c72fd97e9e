from secp256k1 import PrivateKey, PublicKey

from .errors import InvalidPoint, InvalidScalar

# Order of the curve
q = int('FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141', 16)

SCALAR_ZERO = b"\x00"*32

# Compressed SEC1 encoding of the generator
G_BYTES = bytes.fromhex(
    "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
)

class Scalar(PrivateKey):
    """
    A non-zero scalar modulo the group order.

    There is no zero scalar: constructing one, or an arithmetic result
    that lands on zero, raises InvalidScalar. `Scalar()` samples a
    uniformly random scalar.
    """

    def __init__(self, data: bytes | None = None):
        if data is not None:
            if not isinstance(data, bytes) or len(data) != 32:
                raise InvalidScalar("scalar must be composed of 32 bytes")
            if data == SCALAR_ZERO:
                raise InvalidScalar("scalar is zero")
        try:
            super().__init__(data, raw=True)
        except Exception as e:
            raise InvalidScalar(f"scalar out of range: {e}") from e

    @classmethod
    def from_int(cls, n: int) -> "Scalar":
        if not 0 < n < q:
            raise InvalidScalar("scalar out of range")
        return cls(n.to_bytes(32, "big"))

    @classmethod
    def from_hex(cls, data: str) -> "Scalar":
        try:
            raw = bytes.fromhex(data)
        except (ValueError, TypeError) as e:
            raise InvalidScalar(f"scalar is not valid hex: {e}") from e
        return cls(raw)

    def __add__(self, scalar2):
        if isinstance(scalar2, Scalar):
            try:
                new_scalar = self.tweak_add(scalar2.to_bytes())
            except Exception as e:
                raise InvalidScalar(f"scalar addition failed: {e}") from e
            return Scalar(new_scalar)
        else:
            raise TypeError(f"Cannot add {scalar2.__class__} and Scalar")

    def __neg__(self):
        s = int.from_bytes(self.to_bytes(), "big")
        s_ = q - s
        return Scalar(s_.to_bytes(32, "big"))

    def __sub__(self, scalar2):
        if isinstance(scalar2, Scalar):
            return self + (-scalar2)
        else:
            raise TypeError(f"Cannot subtract {scalar2.__class__} and Scalar")

    def __mul__(self, obj):
        if isinstance(obj, Scalar):
            try:
                new_scalar = self.tweak_mul(obj.to_bytes())
            except Exception as e:
                raise InvalidScalar(f"scalar multiplication failed: {e}") from e
            return Scalar(new_scalar)
        elif isinstance(obj, GroupElement):
            return obj.__mul__(self)
        else:
            raise TypeError(f"Cannot multiply {obj.__class__} and Scalar")

    def __eq__(self, scalar2):
        if isinstance(scalar2, Scalar):
            # no early exit on the first differing byte
            diff = 0
            for s, s2 in zip(self.to_bytes(), scalar2.to_bytes()):
                diff |= s ^ s2
            return diff == 0
        return NotImplemented

    def __hash__(self):
        return hash(self.to_bytes())

    def __repr__(self):
        # never print key material
        return "Scalar(<secret>)"

    def to_bytes(self) -> bytes:
        return self.private_key

    def to_hex(self) -> str:
        return self.private_key.hex()

# We extend the public key to define some operations on points
# Adapted from https://github.com/WTRMQDev/secp256k1-zkp-py/blob/master/secp256k1_zkp/__init__.py
class GroupElement(PublicKey):
    """
    A point on secp256k1, never the point at infinity.

    `GroupElement(data)` parses a 33-byte compressed (or 65-byte
    uncompressed) SEC1 encoding and raises InvalidPoint if the bytes do
    not decode to a point on the curve. Any operation whose result
    would be the point at infinity raises InvalidPoint as well.

    Scalar multiplication delegates to libsecp256k1's constant-time
    `ec_pubkey_tweak_mul`.
    """

    def __init__(self, data: bytes | None = None):
        if data is not None:
            if not isinstance(data, bytes):
                raise InvalidPoint("point encoding must be bytes")
            try:
                super().__init__(data, raw=True)
            except Exception as e:
                raise InvalidPoint(f"not a valid curve point: {e}") from e
        else:
            super().__init__(None, raw=True)

    @classmethod
    def from_hex(cls, data: str) -> "GroupElement":
        try:
            raw = bytes.fromhex(data)
        except (ValueError, TypeError) as e:
            raise InvalidPoint(f"point is not valid hex: {e}") from e
        return from_compressed_bytes(raw)

    def __add__(self, pubkey2):
        if isinstance(pubkey2, GroupElement):
            new_pub = GroupElement()
            try:
                new_pub.combine([self.public_key, pubkey2.public_key])
            except Exception as e:
                # only fails when the sum is the point at infinity
                raise InvalidPoint(f"point addition failed: {e}") from e
            return new_pub
        else:
            raise TypeError("Cant add pubkey and %s" % pubkey2.__class__)

    def __neg__(self):
        serialized = self.serialize()
        first_byte, remainder = serialized[:1], serialized[1:]
        # flip odd/even byte
        first_byte = {b"\x03": b"\x02", b"\x02": b"\x03"}[first_byte]
        return GroupElement(first_byte + remainder)

    def __sub__(self, pubkey2):
        if isinstance(pubkey2, GroupElement):
            return self + (-pubkey2)
        else:
            raise TypeError("Can't subtract element and %s" % pubkey2.__class__)

    def __mul__(self, scalar):
        if isinstance(scalar, Scalar):
            try:
                result = self.tweak_mul(scalar.to_bytes())
            except Exception as e:
                raise InvalidPoint(f"scalar multiplication failed: {e}") from e
            return GroupElement(result.serialize(True))
        else:
            raise TypeError(f"Can't multiply GroupElement with {scalar.__class__}")

    __rmul__ = __mul__

    def __eq__(self, el2):
        if isinstance(el2, GroupElement):
            return self.serialize(True) == el2.serialize(True)
        return NotImplemented

    def __hash__(self):
        return hash(self.serialize(True))

    def __repr__(self):
        return f"GroupElement({self.to_hex()})"

    def to_hex(self) -> str:
        return self.serialize(True).hex()

# Generator
G = GroupElement(G_BYTES)

def add(P: GroupElement, Q: GroupElement) -> GroupElement:
    return P + Q

def subtract(P: GroupElement, Q: GroupElement) -> GroupElement:
    return P + (-Q)

def multiply(P: GroupElement, scalar: Scalar) -> GroupElement:
    return P * scalar

def to_compressed_bytes(P: GroupElement) -> bytes:
    return P.serialize(True)

def from_compressed_bytes(data: bytes) -> GroupElement:
    """Parse exactly 33 bytes with an 0x02/0x03 prefix into a point."""
    if not isinstance(data, bytes) or len(data) != 33 or data[0] not in (2, 3):
        raise InvalidPoint("expected a 33-byte compressed point")
    return GroupElement(data)
