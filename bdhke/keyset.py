import hashlib
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Any

from .errors import CryptoError, InvalidAmount, InvalidKeyset, UnknownDenomination
from .secp import G, GroupElement, Scalar

logger = logging.getLogger(__name__)

KEYSET_ID_VERSION = "00"
KEYSET_ID_LENGTH = 16

# Number of power-of-two denominations a mint issues by default
DEFAULT_MAX_ORDER = 64

def derive_keyset_id(keys: Mapping[int, str]) -> str:
    """
    Derive the keyset id from its public keys.

    1. sort public keys by amount, ascending
    2. concatenate the 33-byte compressed keys
    3. SHA256 the concatenation
    4. keep the first 14 hex characters, prefixed with the version byte
    """
    try:
        sorted_keys = [bytes.fromhex(keys[amount]) for amount in sorted(keys)]
    except (ValueError, TypeError) as e:
        raise InvalidKeyset(f"public key is not valid hex: {e}") from e
    digest = hashlib.sha256(b"".join(sorted_keys)).hexdigest()
    return KEYSET_ID_VERSION + digest[:KEYSET_ID_LENGTH - len(KEYSET_ID_VERSION)]

def is_valid_keyset_id(keyset_id: str) -> bool:
    if not isinstance(keyset_id, str) or len(keyset_id) != KEYSET_ID_LENGTH:
        return False
    try:
        bytes.fromhex(keyset_id)
    except ValueError:
        return False
    return keyset_id.startswith(KEYSET_ID_VERSION)

def split_amount(amount: int) -> List[int]:
    """Decompose `amount` into ascending powers of two, e.g. 13 -> [1, 4, 8]."""
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")
    return [1 << i for i in range(amount.bit_length()) if amount >> i & 1]

@dataclass(frozen=True)
class Keyset:
    """
    A mint's published public keys, one per amount.

    Immutable once built; a new set of keys makes a new Keyset.

    Attributes:
        id (str): Keyset id, see `derive_keyset_id`.
        unit (str): Unit of account, e.g. "sat".
        keys (Mapping[int, str]): amount -> hex compressed public key.
    """
    id: str
    unit: str
    keys: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))

    def __hash__(self):
        # the id is derived from the keys
        return hash((self.id, self.unit))

    @classmethod
    def from_keys(cls, keys: Mapping[int, str], unit: str = "sat") -> "Keyset":
        return cls(id=derive_keyset_id(keys), unit=unit, keys=keys)

    def lookup(self, amount: int) -> Optional[GroupElement]:
        key = self.keys.get(amount)
        if key is None:
            return None
        return GroupElement.from_hex(key)

    def public_key(self, amount: int) -> GroupElement:
        K = self.lookup(amount)
        if K is None:
            raise UnknownDenomination(amount, self.id)
        return K

    def supported_amounts(self) -> List[int]:
        return sorted(self.keys)

    def validate(self) -> bool:
        """
        True iff the whole keyset is well formed.

        Every key must decode to a compressed curve point and the id must
        match the keys; one bad key rejects the keyset.
        """
        if not self.unit or not self.keys or not is_valid_keyset_id(self.id):
            return False
        for amount, key in self.keys.items():
            if not isinstance(amount, int) or amount <= 0:
                return False
            try:
                GroupElement.from_hex(key)
            except CryptoError:
                logger.debug(f"Keyset {self.id} has a malformed key for amount {amount}")
                return False
        try:
            return derive_keyset_id(self.keys) == self.id
        except InvalidKeyset:
            return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "unit": self.unit,
            "keys": {str(amount): self.keys[amount] for amount in sorted(self.keys)},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Keyset":
        try:
            keys = {int(amount): str(key) for amount, key in d["keys"].items()}
            return cls(id=str(d["id"]), unit=str(d["unit"]), keys=keys)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidKeyset(f"malformed keyset: {e}") from e

class MintKeyset:
    """
    The mint's side of a keyset: a private scalar per amount.

    Key pairs are computed once at construction and never change, so the
    table can be read from any number of threads without locking.
    """

    def __init__(self, private_keys: Mapping[int, Scalar], unit: str = "sat"):
        if not private_keys:
            raise InvalidKeyset("a keyset needs at least one key")
        self.unit = unit
        self._keypairs: Mapping[int, Tuple[Scalar, GroupElement]] = MappingProxyType({
            amount: (k, k * G) for amount, k in private_keys.items()
        })
        self.public_keyset = Keyset.from_keys(
            {amount: K.to_hex() for amount, (_, K) in self._keypairs.items()},
            unit=unit,
        )

    @classmethod
    def generate(cls, unit: str = "sat", max_order: int = DEFAULT_MAX_ORDER) -> "MintKeyset":
        if max_order <= 0:
            raise InvalidKeyset("max_order must be positive")
        keyset = cls({1 << i: Scalar() for i in range(max_order)}, unit=unit)
        logger.info(f"Generated keyset {keyset.id} ({unit}, {max_order} amounts)")
        return keyset

    @classmethod
    def from_hex(cls, private_keys: Mapping[int, str], unit: str = "sat") -> "MintKeyset":
        return cls(
            {int(amount): Scalar.from_hex(k) for amount, k in private_keys.items()},
            unit=unit,
        )

    @property
    def id(self) -> str:
        return self.public_keyset.id

    def amounts(self) -> List[int]:
        return sorted(self._keypairs)

    def keypair(self, amount: int) -> Tuple[Scalar, GroupElement]:
        try:
            return self._keypairs[amount]
        except KeyError:
            raise UnknownDenomination(amount, self.id) from None

    def __repr__(self):
        return f"MintKeyset(id={self.id!r}, unit={self.unit!r}, amounts={len(self._keypairs)})"
