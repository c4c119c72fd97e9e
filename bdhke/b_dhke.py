"""
Blind Diffie-Hellman key exchange.

Mint:
K = k*G
return K

Holder:
Y = hash_to_curve(x)
r = random blinding factor
B_ = Y + r*G
return B_

Mint:
C_ = k*B_
  (= k*Y + k*r*G)
return C_

Holder:
C = C_ - r*K
 (= C_ - k*r*G)
 (= k*Y)
return C, x

Mint:
Y = hash_to_curve(x)
C == k*Y
If true, C must have originated from the mint
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .dleq import ensure_dleq
from .errors import VerificationFailed
from .generators import hash_to_curve_secret
from .models import BlindedMessage, BlindSignature, DLEQProof, Proof
from .secp import G, GroupElement, Scalar

logger = logging.getLogger(__name__)

@dataclass(repr=False)
class BlindingContext:
    """
    What the holder keeps between blinding and unblinding.

    Must not outlive the round trip: `r` reveals the link between B_ and x.
    """
    secret: str
    r: Scalar
    Y: GroupElement
    B_: GroupElement
    amount: int
    keyset_id: str

    def __repr__(self):
        return f"BlindingContext(amount={self.amount}, keyset_id={self.keyset_id!r})"

def step1_holder(
    secret: str,
    blinding_factor: Optional[Scalar] = None,
) -> Tuple[GroupElement, Scalar, GroupElement]:
    Y = hash_to_curve_secret(secret)
    r = blinding_factor if blinding_factor is not None else Scalar()
    B_ = Y + r * G
    return B_, r, Y

def step2_mint(B_: GroupElement, k: Scalar) -> GroupElement:
    return k * B_

def step3_holder(C_: GroupElement, r: Scalar, K: GroupElement) -> GroupElement:
    return C_ - r * K

def verify_signature(k: Scalar, C: GroupElement, secret: str) -> bool:
    Y = hash_to_curve_secret(secret)
    return C.serialize(True) == (k * Y).serialize(True)

def blind(
    secret: str,
    amount: int,
    keyset_id: str,
    blinding_factor: Optional[Scalar] = None,
) -> Tuple[BlindedMessage, BlindingContext]:
    """
    Blind `secret` for a signature on `amount` from keyset `keyset_id`.

    Returns:
        Tuple[BlindedMessage, BlindingContext]: the message to send to the
        mint and the context needed to unblind its answer.
    """
    B_, r, Y = step1_holder(secret, blinding_factor)
    logger.debug(f"Blinded message for amount {amount} in keyset {keyset_id}")
    message = BlindedMessage(amount=amount, id=keyset_id, B_=B_.to_hex())
    context = BlindingContext(
        secret=secret, r=r, Y=Y, B_=B_, amount=amount, keyset_id=keyset_id
    )
    return message, context

def unblind(
    signature: BlindSignature,
    context: BlindingContext,
    K: GroupElement,
    include_dleq: bool = False,
    verify_dleq: bool = True,
) -> Proof:
    """
    Turn the mint's blind signature into a Proof.

    Raises VerificationFailed if the signature answers a different
    message, InvalidPoint if C_ does not decode, DLEQVerificationFailed if the
    signature carries a DLEQ proof that does not check out against K. No
    Proof is built unless every step succeeds.

    Parameters:
        signature (BlindSignature): The mint's answer to `context`'s message.
        context (BlindingContext): Retained from `blind`.
        K (GroupElement): Mint public key for `signature.amount`.
        include_dleq (bool): Keep (e, s, r) on the Proof for offline checks.
        verify_dleq (bool): Check the signature's DLEQ proof, if any.
    """
    if signature.amount != context.amount or signature.id != context.keyset_id:
        raise VerificationFailed(
            "blind signature does not answer this blinded message "
            f"(amount {signature.amount}/{context.amount}, "
            f"keyset {signature.id}/{context.keyset_id})"
        )
    C_ = GroupElement.from_hex(signature.C_)
    if signature.dleq is not None and verify_dleq:
        ensure_dleq(signature.dleq, context.B_, C_, K)
    C = step3_holder(C_, context.r, K)

    dleq = None
    if include_dleq and signature.dleq is not None:
        dleq = DLEQProof(e=signature.dleq.e, s=signature.dleq.s, r=context.r.to_hex())

    return Proof(
        amount=signature.amount,
        id=signature.id,
        secret=context.secret,
        C=C.to_hex(),
        dleq=dleq,
    )
