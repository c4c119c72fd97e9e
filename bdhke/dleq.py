"""
Discrete-log equality proofs for blind signatures.

Mint (after signing C_ = k*B_):
p = random nonce
R1 = p*G
R2 = p*B_
e = hash(R1, R2, K, C_)
s = p + e*k
return e, s

Holder (verifying C_ before unblinding):
R1 = s*G - e*K
R2 = s*B_ - e*C_
e == hash(R1, R2, K, C_)

Anyone holding a Proof with (e, s, r):
Y = hash_to_curve(x)
C_ = C + r*K
B_ = Y + r*G
and run the holder check.
"""

import hashlib
import logging
from typing import Optional, Tuple

from .errors import CryptoError, DLEQVerificationFailed
from .generators import hash_to_curve_secret
from .models import DLEQProof, Proof
from .secp import G, GroupElement, Scalar

logger = logging.getLogger(__name__)

def hash_e(*points: GroupElement) -> bytes:
    e_ = ""
    for P in points:
        e_ += P.serialize(compressed=False).hex()
    return hashlib.sha256(e_.encode("utf-8")).digest()

def prove_dleq(
    k: Scalar,
    B_: GroupElement,
    C_: Optional[GroupElement] = None,
    p: Optional[Scalar] = None,
) -> Tuple[Scalar, Scalar]:
    """
    Produce (e, s) proving log_G(K) == log_B_(C_) for K = k*G.

    Parameters:
        k (Scalar): The mint's private key for the amount.
        B_ (GroupElement): The blinded message that was signed.
        C_ (Optional[GroupElement]): The blind signature; recomputed if omitted.
        p (Optional[Scalar]): Nonce, only fixed in tests.

    Returns:
        Tuple[Scalar, Scalar]: the challenge e and the response s.
    """
    if p is None:
        p = Scalar()
    if C_ is None:
        C_ = k * B_
    K = k * G
    R1 = p * G
    R2 = p * B_
    e = Scalar(hash_e(R1, R2, K, C_))
    s = p + e * k
    return e, s

def verify_dleq(
    B_: GroupElement,
    C_: GroupElement,
    e: Scalar,
    s: Scalar,
    K: GroupElement,
) -> bool:
    try:
        R1 = s * G - e * K
        R2 = s * B_ - e * C_
    except CryptoError as exc:
        logger.debug(f"DLEQ reconstruction failed: {exc}")
        return False
    return e.to_bytes() == hash_e(R1, R2, K, C_)

def verify_signature_dleq(
    dleq: DLEQProof,
    B_: GroupElement,
    C_: GroupElement,
    K: GroupElement,
) -> bool:
    """Holder-side check on a BlindSignature's hex-encoded DLEQ proof."""
    try:
        e = Scalar.from_hex(dleq.e)
        s = Scalar.from_hex(dleq.s)
    except CryptoError:
        return False
    return verify_dleq(B_, C_, e, s, K)

def verify_proof_dleq(proof: Proof, K: GroupElement) -> bool:
    """
    Third-party check of a Proof's DLEQ data, without the mint.

    Returns False when the proof carries no DLEQ or no blinding factor.
    """
    if proof.dleq is None or proof.dleq.r is None:
        return False
    try:
        r = Scalar.from_hex(proof.dleq.r)
        C = GroupElement.from_hex(proof.C)
        Y = hash_to_curve_secret(proof.secret)
        C_ = C + r * K
        B_ = Y + r * G
    except CryptoError as exc:
        logger.debug(f"DLEQ reconstruction failed: {exc}")
        return False
    return verify_signature_dleq(proof.dleq, B_, C_, K)

def ensure_dleq(
    dleq: DLEQProof,
    B_: GroupElement,
    C_: GroupElement,
    K: GroupElement,
) -> None:
    if not verify_signature_dleq(dleq, B_, C_, K):
        logger.warning("Rejected blind signature with invalid DLEQ proof")
        raise DLEQVerificationFailed("DLEQ proof does not match mint key")
