from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from .errors import InvalidTokenFormat

def require_text(d: Dict[str, Any], key: str) -> str:
    value = d[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value

def optional_text(d: Dict[str, Any], key: str) -> Optional[str]:
    value = d.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value

@dataclass(frozen=True)
class DLEQProof:
    """
    Proof that the same mint key `k` links K = k*G and C_ = k*B_.

    `r` (the blinding factor) is only present on a Proof, where it lets a
    third party reconstruct B_ and C_ from the unblinded values.
    """
    e: str
    s: str
    r: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        d = {"e": self.e, "s": self.s}
        if self.r is not None:
            d["r"] = self.r
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DLEQProof":
        try:
            return cls(e=require_text(d, "e"), s=require_text(d, "s"), r=optional_text(d, "r"))
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidTokenFormat(f"malformed dleq: {e}") from e

@dataclass(frozen=True)
class BlindedMessage:
    amount: int
    id: str
    B_: str

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "id": self.id, "B_": self.B_}

@dataclass(frozen=True)
class BlindSignature:
    amount: int
    id: str
    C_: str
    dleq: Optional[DLEQProof] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"amount": self.amount, "id": self.id, "C_": self.C_}
        if self.dleq is not None:
            d["dleq"] = self.dleq.to_dict()
        return d

@dataclass(frozen=True)
class Proof:
    """
    An unblinded signature: a bearer credential worth `amount`.

    Attributes:
        amount (int): Denomination.
        id (str): Id of the keyset that issued it.
        secret (str): The holder's secret x.
        C (str): Hex of the compressed point C = k*hash_to_curve(x).
        dleq (Optional[DLEQProof]): Offline validation data, if kept.
    """
    amount: int
    id: str
    secret: str
    C: str
    dleq: Optional[DLEQProof] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "amount": self.amount,
            "id": self.id,
            "secret": self.secret,
            "C": self.C,
        }
        if self.dleq is not None:
            d["dleq"] = self.dleq.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Proof":
        try:
            dleq = d.get("dleq")
            amount = d["amount"]
            if not isinstance(amount, int) or isinstance(amount, bool):
                raise TypeError("amount must be an integer")
            return cls(
                amount=amount,
                id=require_text(d, "id"),
                secret=require_text(d, "secret"),
                C=require_text(d, "C"),
                dleq=DLEQProof.from_dict(dleq) if dleq is not None else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidTokenFormat(f"malformed proof: {e}") from e

@dataclass
class TokenEntry:
    mint: str
    proofs: List[Proof] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"mint": self.mint, "proofs": [p.to_dict() for p in self.proofs]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TokenEntry":
        try:
            return cls(
                mint=require_text(d, "mint"),
                proofs=[Proof.from_dict(p) for p in d["proofs"]],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidTokenFormat(f"malformed token entry: {e}") from e

@dataclass
class Token:
    """Transport envelope grouping proofs by issuing mint."""
    token: List[TokenEntry] = field(default_factory=list)
    unit: Optional[str] = None
    memo: Optional[str] = None

    @property
    def proofs(self) -> List[Proof]:
        return [p for entry in self.token for p in entry.proofs]

    @property
    def amount(self) -> int:
        return sum(p.amount for p in self.proofs)

    @property
    def mints(self) -> List[str]:
        return [entry.mint for entry in self.token]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"token": [entry.to_dict() for entry in self.token]}
        if self.unit is not None:
            d["unit"] = self.unit
        if self.memo is not None:
            d["memo"] = self.memo
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Token":
        try:
            return cls(
                token=[TokenEntry.from_dict(entry) for entry in d["token"]],
                unit=optional_text(d, "unit"),
                memo=optional_text(d, "memo"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidTokenFormat(f"malformed token: {e}") from e
