import logging
import secrets
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .b_dhke import BlindingContext, blind, unblind
from .errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidKeyset,
    InvalidTokenFormat,
    ProofNotFound,
    UnknownDenomination,
    UnknownKeyset,
    UnknownMint,
)
from .keyset import Keyset, split_amount
from .models import BlindedMessage, BlindSignature, Proof, Token
from .tokens import create_token, validate_token

logger = logging.getLogger(__name__)

def select_proofs(inventory: Iterable[Proof], target: int) -> List[Proof]:
    """
    Pick proofs summing to at least `target`, largest first.

    This is greedy, not an exact subset sum: the selection may overshoot
    and the excess is expected to come back as change in a later swap.
    Raises InsufficientBalance(required, available) and selects nothing
    if the whole inventory is not enough.

    Parameters:
        inventory (Iterable[Proof]): Proofs available to spend.
        target (int): Amount to cover.

    Returns:
        List[Proof]: The selected proofs, in descending amount order.
    """
    if not isinstance(target, int) or isinstance(target, bool) or target <= 0:
        raise InvalidAmount(f"target must be a positive integer, got {target!r}")
    proofs = sorted(inventory, key=lambda p: p.amount, reverse=True)
    available = sum(p.amount for p in proofs)
    if available < target:
        raise InsufficientBalance(target, available)

    selected: List[Proof] = []
    total = 0
    for proof in proofs:
        if total >= target:
            break
        selected.append(proof)
        total += proof.amount
    return selected

class ProofInventory:
    """
    The holder's unspent proofs, keyed by secret.

    All mutations go through one lock, so two concurrent spends can never
    both take the same proof.
    """

    def __init__(self, proofs: Optional[Iterable[Proof]] = None):
        self._lock = threading.Lock()
        self._proofs: Dict[str, Proof] = {}
        if proofs:
            self.add(proofs)

    def add(self, proofs: Iterable[Proof]) -> None:
        with self._lock:
            for proof in proofs:
                self._proofs[proof.secret] = proof

    def remove(self, proofs: Iterable[Proof]) -> None:
        """
        Remove all of `proofs` or none of them.

        Raises ProofNotFound if any proof is already gone. A proof listed
        twice is removed once.
        """
        proofs = list(proofs)
        with self._lock:
            for proof in proofs:
                if self._proofs.get(proof.secret) != proof:
                    raise ProofNotFound(f"proof for amount {proof.amount} is not in the inventory")
            for secret in {proof.secret for proof in proofs}:
                del self._proofs[secret]

    def select_and_remove(self, amount: int, keyset_id: Optional[str] = None) -> List[Proof]:
        with self._lock:
            candidates = [
                p for p in self._proofs.values()
                if keyset_id is None or p.id == keyset_id
            ]
            selected = select_proofs(candidates, amount)
            for proof in selected:
                del self._proofs[proof.secret]
        logger.debug(f"Took {len(selected)} proofs to cover {amount}")
        return selected

    @property
    def proofs(self) -> List[Proof]:
        with self._lock:
            return list(self._proofs.values())

    @property
    def balance(self) -> int:
        with self._lock:
            return sum(p.amount for p in self._proofs.values())

    def __len__(self):
        with self._lock:
            return len(self._proofs)

    def __contains__(self, proof: Proof) -> bool:
        with self._lock:
            return self._proofs.get(proof.secret) == proof

class Wallet:
    """
    The holder's side of issuance and transfer, without any transport.

    Outputs are blinded against one mint keyset; the caller ferries the
    blinded messages to the mint and the blind signatures back.
    """

    def __init__(
        self,
        keyset: Keyset,
        mint_url: str,
        inventory: Optional[ProofInventory] = None,
        include_dleq: bool = False,
    ):
        if not keyset.validate():
            raise InvalidKeyset(f"keyset {keyset.id} failed validation")
        self.keyset = keyset
        self.mint_url = mint_url
        self.inventory = inventory if inventory is not None else ProofInventory()
        self.include_dleq = include_dleq

    @staticmethod
    def generate_secret() -> str:
        return secrets.token_hex(32)

    @property
    def balance(self) -> int:
        return self.inventory.balance

    def create_outputs(
        self,
        amount: int,
        secret_values: Optional[Sequence[str]] = None,
    ) -> Tuple[List[BlindedMessage], List[BlindingContext]]:
        amounts = split_amount(amount)
        for a in amounts:
            if self.keyset.lookup(a) is None:
                raise UnknownDenomination(a, self.keyset.id)
        if secret_values is None:
            secret_values = [self.generate_secret() for _ in amounts]
        elif len(secret_values) != len(amounts):
            raise InvalidAmount(f"{len(amounts)} secrets needed for amount {amount}")

        outputs, contexts = [], []
        for a, secret in zip(amounts, secret_values):
            output, context = blind(secret, a, self.keyset.id)
            outputs.append(output)
            contexts.append(context)
        return outputs, contexts

    def receive_signatures(
        self,
        signatures: Sequence[BlindSignature],
        contexts: Sequence[BlindingContext],
    ) -> List[Proof]:
        """
        Unblind the mint's answers and store the resulting proofs.

        All signatures are unblinded before anything is stored, so a bad
        signature leaves the inventory untouched.
        """
        if len(signatures) != len(contexts):
            raise InvalidAmount(
                f"got {len(signatures)} signatures for {len(contexts)} outputs"
            )
        proofs = [
            unblind(sig, ctx, self.keyset.public_key(sig.amount), include_dleq=self.include_dleq)
            for sig, ctx in zip(signatures, contexts)
        ]
        self.inventory.add(proofs)
        logger.info(f"Received {sum(p.amount for p in proofs)} in {len(proofs)} proofs")
        return proofs

    def send(self, amount: int, memo: Optional[str] = None) -> Token:
        proofs = self.inventory.select_and_remove(amount, keyset_id=self.keyset.id)
        return create_token(proofs, self.mint_url, unit=self.keyset.unit, memo=memo)

    def receive(self, token: Token) -> List[Proof]:
        if not validate_token(token):
            raise InvalidTokenFormat("token failed structural validation")
        for entry in token.token:
            if entry.mint != self.mint_url:
                raise UnknownMint(f"token entry for {entry.mint}, wallet is for {self.mint_url}")
        proofs = token.proofs
        # the inventory only holds proofs of this wallet's keyset
        for proof in proofs:
            if proof.id != self.keyset.id:
                raise UnknownKeyset(proof.id)
            if self.keyset.lookup(proof.amount) is None:
                raise UnknownDenomination(proof.amount, self.keyset.id)
        self.inventory.add(proofs)
        return proofs
