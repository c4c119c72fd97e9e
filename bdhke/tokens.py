"""
Token wire encodings.

    cashu:?  cashu  <marker>  <base64url, no padding>

marker "A" (V1): JSON of {"token": [{"mint", "proofs"}], "unit", "memo"}
marker "B" (V2): CBOR of the same content under abbreviated keys:

    {"t": [{"m": mint, "p": [{"a": amount, "i": id, "s": secret,
                              "c": C bytes, "d"?: {"e", "s", "r"?}}]}],
     "u"?: unit, "d"?: memo}

Decoding dispatches on the marker only; it never tries both decoders.
"""

import base64
import binascii
import json
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import cbor2

from .errors import InvalidTokenFormat, SerializationError
from .models import DLEQProof, Proof, Token, TokenEntry, optional_text, require_text

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "cashu"
URI_PREFIX = "cashu:"

class TokenVersion(str, Enum):
    V1 = "A"
    V2 = "B"

    @property
    def description(self) -> str:
        return {
            TokenVersion.V1: "V1 (JSON base64)",
            TokenVersion.V2: "V2 (CBOR binary)",
        }[self]

def _b64_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")

def _b64_decode(data: str) -> bytes:
    # accept both the url-safe and the standard alphabet, reject anything else
    normalized = data.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidTokenFormat(f"invalid base64 payload: {e}") from e

def _hex_to_bytes(value: str, field: str) -> bytes:
    # only lowercase hex survives the trip through raw bytes unchanged
    try:
        raw = bytes.fromhex(value)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"{field} is not hex: {e}") from e
    if raw.hex() != value:
        raise SerializationError(f"{field} is not lowercase hex")
    return raw

def _require_bytes(value: Any, field: str) -> str:
    if not isinstance(value, bytes):
        raise InvalidTokenFormat(f"{field} must be a byte string")
    return value.hex()

# V1

def serialize_token_v1(token: Token, include_uri: bool = False) -> str:
    try:
        payload = json.dumps(token.to_dict(), separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"token is not JSON serializable: {e}") from e
    encoded = TOKEN_PREFIX + TokenVersion.V1.value + _b64_encode(payload)
    return URI_PREFIX + encoded if include_uri else encoded

def _decode_v1(payload: str) -> Token:
    raw = _b64_decode(payload)
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidTokenFormat(f"invalid JSON payload: {e}") from e
    if not isinstance(data, dict):
        raise InvalidTokenFormat("token payload must be a JSON object")
    return Token.from_dict(data)

# V2

def _proof_to_compact(proof: Proof) -> Dict[str, Any]:
    p: Dict[str, Any] = {
        "a": proof.amount,
        "i": proof.id,
        "s": proof.secret,
        "c": _hex_to_bytes(proof.C, "C"),
    }
    if proof.dleq is not None:
        d = {
            "e": _hex_to_bytes(proof.dleq.e, "dleq.e"),
            "s": _hex_to_bytes(proof.dleq.s, "dleq.s"),
        }
        if proof.dleq.r is not None:
            d["r"] = _hex_to_bytes(proof.dleq.r, "dleq.r")
        p["d"] = d
    return p

def _proof_from_compact(p: Dict[str, Any]) -> Proof:
    amount = p["a"]
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidTokenFormat("amount must be an integer")
    dleq = None
    if "d" in p:
        d = p["d"]
        dleq = DLEQProof(
            e=_require_bytes(d["e"], "dleq.e"),
            s=_require_bytes(d["s"], "dleq.s"),
            r=_require_bytes(d["r"], "dleq.r") if "r" in d else None,
        )
    return Proof(
        amount=amount,
        id=require_text(p, "i"),
        secret=require_text(p, "s"),
        C=_require_bytes(p["c"], "C"),
        dleq=dleq,
    )

def serialize_token_v2(token: Token, include_uri: bool = False) -> str:
    compact: Dict[str, Any] = {
        "t": [
            {"m": entry.mint, "p": [_proof_to_compact(p) for p in entry.proofs]}
            for entry in token.token
        ],
    }
    if token.unit is not None:
        compact["u"] = token.unit
    if token.memo is not None:
        compact["d"] = token.memo
    try:
        payload = cbor2.dumps(compact)
    except cbor2.CBOREncodeError as e:
        raise SerializationError(f"token is not CBOR serializable: {e}") from e
    encoded = TOKEN_PREFIX + TokenVersion.V2.value + _b64_encode(payload)
    return URI_PREFIX + encoded if include_uri else encoded

def _decode_v2(payload: str) -> Token:
    raw = _b64_decode(payload)
    try:
        data = cbor2.loads(raw)
    except cbor2.CBORDecodeError as e:
        raise InvalidTokenFormat(f"invalid CBOR payload: {e}") from e
    try:
        return Token(
            token=[
                TokenEntry(
                    mint=require_text(entry, "m"),
                    proofs=[_proof_from_compact(p) for p in entry["p"]],
                )
                for entry in data["t"]
            ],
            unit=optional_text(data, "u"),
            memo=optional_text(data, "d"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise InvalidTokenFormat(f"malformed compact token: {e}") from e

_DECODERS = {
    TokenVersion.V1: _decode_v1,
    TokenVersion.V2: _decode_v2,
}

# Generic

def serialize_token(
    token: Token,
    version: TokenVersion = TokenVersion.V1,
    include_uri: bool = False,
) -> str:
    version = TokenVersion(version)
    if version is TokenVersion.V2:
        return serialize_token_v2(token, include_uri=include_uri)
    return serialize_token_v1(token, include_uri=include_uri)

def token_version(encoded: str) -> TokenVersion:
    """Read the version marker of an encoded token, without decoding it."""
    if not isinstance(encoded, str):
        raise InvalidTokenFormat("token must be a string")
    encoded = encoded.strip()
    if encoded.startswith(URI_PREFIX):
        encoded = encoded[len(URI_PREFIX):]
    if not encoded.startswith(TOKEN_PREFIX) or len(encoded) <= len(TOKEN_PREFIX):
        raise InvalidTokenFormat("missing token prefix")
    marker = encoded[len(TOKEN_PREFIX)]
    try:
        return TokenVersion(marker)
    except ValueError:
        raise InvalidTokenFormat(f"unknown token version marker {marker!r}") from None

def deserialize_token(encoded: str) -> Token:
    version = token_version(encoded)
    encoded = encoded.strip()
    if encoded.startswith(URI_PREFIX):
        encoded = encoded[len(URI_PREFIX):]
    payload = encoded[len(TOKEN_PREFIX) + 1:]
    if not payload:
        raise InvalidTokenFormat("empty token payload")
    token = _DECODERS[version](payload)
    logger.debug(f"Decoded {version.description} token with {len(token.proofs)} proofs")
    return token

# Helpers

def _is_hex(value: str) -> bool:
    try:
        bytes.fromhex(value)
    except (ValueError, TypeError):
        return False
    return True

def validate_token(token: Token) -> bool:
    """
    Structural checks only; signatures are checked by the mint.

    At least one entry, at least one proof per entry, positive amounts,
    non-empty id and secret, and a non-empty hex C on every proof.
    """
    if not token.token:
        return False
    for entry in token.token:
        if not entry.proofs:
            return False
        for proof in entry.proofs:
            if not isinstance(proof.amount, int) or proof.amount <= 0:
                return False
            if not proof.id or not proof.secret or not proof.C:
                return False
            if not _is_hex(proof.C):
                return False
    return True

def create_token(
    proofs: Iterable[Proof],
    mint_url: str,
    unit: Optional[str] = None,
    memo: Optional[str] = None,
) -> Token:
    return Token(token=[TokenEntry(mint=mint_url, proofs=list(proofs))], unit=unit, memo=memo)

def extract_proofs(token: Token) -> List[Proof]:
    return token.proofs

def token_amount(token: Token) -> int:
    return token.amount
