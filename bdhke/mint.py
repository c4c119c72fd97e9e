import logging
import threading
from typing import Dict, Iterable, List, Optional

from .b_dhke import step2_mint, verify_signature
from .dleq import prove_dleq
from .errors import CashuError, UnknownKeyset, VerificationFailed
from .keyset import DEFAULT_MAX_ORDER, Keyset, MintKeyset
from .models import BlindedMessage, BlindSignature, DLEQProof, Proof
from .secp import GroupElement

logger = logging.getLogger(__name__)

class Mint:
    """
    The signing role of the protocol.

    Holds an append-only table of keysets. Adding a keyset is serialized
    behind a lock; signing and verification only read immutable key pairs.
    """

    def __init__(self, keysets: Optional[Iterable[MintKeyset]] = None):
        self._lock = threading.Lock()
        self._keysets: Dict[str, MintKeyset] = {}
        self._active: Optional[str] = None
        for keyset in keysets or []:
            self.add_keyset(keyset)

    @classmethod
    def generate(cls, unit: str = "sat", max_order: int = DEFAULT_MAX_ORDER) -> "Mint":
        return cls([MintKeyset.generate(unit=unit, max_order=max_order)])

    def add_keyset(self, keyset: MintKeyset) -> None:
        """Publish `keyset`; the most recently added one becomes active."""
        with self._lock:
            if keyset.id in self._keysets:
                logger.debug(f"Keyset {keyset.id} already loaded")
            else:
                # copy-on-write: readers keep whatever table they grabbed
                keysets = dict(self._keysets)
                keysets[keyset.id] = keyset
                self._keysets = keysets
            self._active = keyset.id
        logger.info(f"Keyset {keyset.id} active")

    def get_keyset(self, keyset_id: str) -> MintKeyset:
        try:
            return self._keysets[keyset_id]
        except KeyError:
            raise UnknownKeyset(keyset_id) from None

    @property
    def active_keyset(self) -> MintKeyset:
        if self._active is None:
            raise UnknownKeyset("<none>")
        return self._keysets[self._active]

    @property
    def keysets(self) -> List[Keyset]:
        """Public keys of every loaded keyset."""
        return [keyset.public_keyset for keyset in self._keysets.values()]

    def sign(
        self,
        blinded_message: BlindedMessage,
        amount: Optional[int] = None,
        keyset_id: Optional[str] = None,
    ) -> BlindSignature:
        """
        Sign B_ with the key for `amount` in keyset `keyset_id`.

        Both default to the values declared on the message. Raises
        UnknownKeyset / UnknownDenomination for missing keys and
        InvalidPoint if B_ does not decode. Never touches key state.
        """
        amount = blinded_message.amount if amount is None else amount
        keyset_id = blinded_message.id if keyset_id is None else keyset_id

        k, _ = self.get_keyset(keyset_id).keypair(amount)
        B_ = GroupElement.from_hex(blinded_message.B_)
        C_ = step2_mint(B_, k)
        e, s = prove_dleq(k, B_, C_)
        logger.debug(f"Signed blinded message for amount {amount} in keyset {keyset_id}")
        return BlindSignature(
            amount=amount,
            id=keyset_id,
            C_=C_.to_hex(),
            dleq=DLEQProof(e=e.to_hex(), s=s.to_hex()),
        )

    def sign_outputs(self, outputs: Iterable[BlindedMessage]) -> List[BlindSignature]:
        # validate everything first so a bad output yields no signatures at all
        outputs = list(outputs)
        for output in outputs:
            self.get_keyset(output.id).keypair(output.amount)
        return [self.sign(output) for output in outputs]

    def verify(self, secret: str, signature: str, keyset_id: str, amount: int) -> bool:
        """
        Check C == k*hash_to_curve(secret).

        Fails closed: an unknown keyset or amount, a C that does not decode
        or a mismatch all return False.
        """
        try:
            k, _ = self.get_keyset(keyset_id).keypair(amount)
            C = GroupElement.from_hex(signature)
            valid = verify_signature(k, C, secret)
        except CashuError as e:
            logger.warning(f"Verification failed for keyset {keyset_id}: {e}")
            return False
        if not valid:
            logger.warning(f"Signature mismatch for amount {amount} in keyset {keyset_id}")
        return valid

    def verify_proof(self, proof: Proof) -> bool:
        return self.verify(proof.secret, proof.C, proof.id, proof.amount)

    def verify_proofs(self, proofs: Iterable[Proof]) -> None:
        """Raise VerificationFailed on the first invalid proof."""
        for proof in proofs:
            if not self.verify_proof(proof):
                raise VerificationFailed(f"invalid proof for amount {proof.amount}")
