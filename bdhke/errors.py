"""
Exception hierarchy for the BDHKE core.

Three families, so callers can tell "retry with different inputs" apart
from "treat as fatal":

- EncodingError: malformed hex / base64 / CBOR / JSON input.
- CryptoError: invalid points or scalars, hash-to-curve exhaustion and
  failed verifications. Terminal for the operation that raised them.
- ProtocolError: unknown denomination or keyset, insufficient balance and
  similar domain conditions the caller can recover from.
"""


class CashuError(Exception):
    """Base exception for all BDHKE core failures."""
    pass


# Encoding

class EncodingError(CashuError):
    pass


class InvalidTokenFormat(EncodingError):
    pass


class SerializationError(EncodingError):
    pass


class InvalidKeyset(EncodingError):
    pass


# Cryptographic

class CryptoError(CashuError):
    pass


class InvalidPoint(CryptoError):
    pass


class InvalidScalar(CryptoError):
    pass


class HashToCurveFailed(CryptoError):
    pass


class VerificationFailed(CryptoError):
    pass


class DLEQVerificationFailed(VerificationFailed):
    pass


# Protocol / domain

class ProtocolError(CashuError):
    pass


class UnknownDenomination(ProtocolError):

    def __init__(self, amount: int, keyset_id: str | None = None):
        self.amount = amount
        self.keyset_id = keyset_id
        where = f" in keyset {keyset_id}" if keyset_id else ""
        super().__init__(f"No key for amount {amount}{where}")


class UnknownKeyset(ProtocolError):

    def __init__(self, keyset_id: str):
        self.keyset_id = keyset_id
        super().__init__(f"Unknown keyset id: {keyset_id}")


class InsufficientBalance(ProtocolError):

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient balance: required {required}, available {available}")


class InvalidAmount(ProtocolError):
    pass


class ProofNotFound(ProtocolError):
    pass


class UnknownMint(ProtocolError):
    pass
