from bdhke.wallet import *
from bdhke.errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidKeyset,
    InvalidTokenFormat,
    ProofNotFound,
    UnknownDenomination,
    UnknownKeyset,
    UnknownMint,
    VerificationFailed,
)
from bdhke.keyset import Keyset
from bdhke.mint import Mint
from bdhke.models import Proof, Token, TokenEntry
from bdhke.tokens import deserialize_token, serialize_token, TokenVersion
import threading
import pytest

MINT_URL = "https://mint.example.com"
C_HEX = "02a9acc1e48c25eeeb9289b5031cc57da9fe72f3fe2861d264bdc074209b107ba2"

def make_proof(amount, secret=None, keyset_id="009a1f293253e41e"):
    return Proof(amount=amount, id=keyset_id, secret=secret or f"secret-{amount}", C=C_HEX)

@pytest.fixture
def mint():
    return Mint.generate(max_order=8)

@pytest.fixture
def wallet(mint):
    return Wallet(mint.active_keyset.public_keyset, MINT_URL)

def mint_into(wallet, mint, amount):
    outputs, contexts = wallet.create_outputs(amount)
    return wallet.receive_signatures(mint.sign_outputs(outputs), contexts)

def test_select_largest_first():
    inventory = [make_proof(a) for a in (5, 50, 10, 20)]
    selected = select_proofs(inventory, 30)
    assert [p.amount for p in selected] == [50]

def test_select_accumulates():
    inventory = [make_proof(a) for a in (5, 20, 10)]
    selected = select_proofs(inventory, 30)
    assert [p.amount for p in selected] == [20, 10]

def test_select_overshoots():
    inventory = [make_proof(a) for a in (8, 4, 1)]
    selected = select_proofs(inventory, 5)
    assert [p.amount for p in selected] == [8]
    assert sum(p.amount for p in selected) >= 5

def test_select_insufficient():
    inventory = [make_proof(a) for a in (5, 10)]
    with pytest.raises(InsufficientBalance) as excinfo:
        select_proofs(inventory, 30)
    assert excinfo.value.required == 30
    assert excinfo.value.available == 15

    with pytest.raises(InsufficientBalance):
        select_proofs([], 1)

def test_select_invalid_target():
    with pytest.raises(InvalidAmount):
        select_proofs([make_proof(1)], 0)
    with pytest.raises(InvalidAmount):
        select_proofs([make_proof(1)], -3)

def test_inventory_remove_is_all_or_nothing():
    a, b, c = make_proof(1), make_proof(2), make_proof(4)
    inventory = ProofInventory([a, b])
    with pytest.raises(ProofNotFound):
        inventory.remove([a, c])
    assert a in inventory
    assert len(inventory) == 2

    inventory.remove([a])
    assert a not in inventory
    assert inventory.balance == 2

def test_inventory_select_and_remove_by_keyset():
    inventory = ProofInventory([
        make_proof(8, "a", keyset_id="00aaaaaaaaaaaaaa"),
        make_proof(2, "b", keyset_id="00bbbbbbbbbbbbbb"),
    ])
    with pytest.raises(InsufficientBalance):
        inventory.select_and_remove(4, keyset_id="00bbbbbbbbbbbbbb")
    assert inventory.balance == 10

    taken = inventory.select_and_remove(4)
    assert [p.secret for p in taken] == ["a"]
    assert inventory.balance == 2

def test_concurrent_spends_never_share_proofs():
    inventory = ProofInventory([make_proof(1, f"s{i}") for i in range(200)])
    taken = []
    lock = threading.Lock()

    def spend():
        for _ in range(20):
            proofs = inventory.select_and_remove(1)
            with lock:
                taken.extend(proofs)

    threads = [threading.Thread(target=spend) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    secrets = [p.secret for p in taken]
    assert len(secrets) == 200
    assert len(set(secrets)) == 200
    assert inventory.balance == 0

def test_full_flow(mint, wallet):
    proofs = mint_into(wallet, mint, 13)
    assert [p.amount for p in proofs] == [1, 4, 8]
    assert wallet.balance == 13
    mint.verify_proofs(proofs)

    token = wallet.send(5, memo="lunch")
    assert [p.amount for p in token.proofs] == [8]
    assert token.mints == [MINT_URL]
    assert token.unit == "sat"
    assert wallet.balance == 5

    receiver = Wallet(mint.active_keyset.public_keyset, MINT_URL)
    for version in TokenVersion:
        decoded = deserialize_token(serialize_token(token, version))
        assert decoded == token
    received = receiver.receive(deserialize_token(serialize_token(token)))
    assert receiver.balance == 8
    mint.verify_proofs(received)

def test_send_more_than_balance(mint, wallet):
    mint_into(wallet, mint, 3)
    with pytest.raises(InsufficientBalance):
        wallet.send(4)
    assert wallet.balance == 3

def test_create_outputs(wallet):
    outputs, contexts = wallet.create_outputs(6, secret_values=["a", "b"])
    assert [o.amount for o in outputs] == [2, 4]
    assert [c.secret for c in contexts] == ["a", "b"]
    assert all(o.id == wallet.keyset.id for o in outputs)

    with pytest.raises(InvalidAmount):
        wallet.create_outputs(6, secret_values=["a"])
    with pytest.raises(UnknownDenomination):
        wallet.create_outputs(256)
    with pytest.raises(InvalidAmount):
        wallet.create_outputs(0)

def test_receive_signatures_is_atomic(mint, wallet):
    outputs, contexts = wallet.create_outputs(3)
    signatures = mint.sign_outputs(outputs)
    with pytest.raises(InvalidAmount):
        wallet.receive_signatures(signatures[:1], contexts)
    with pytest.raises(VerificationFailed):
        wallet.receive_signatures(list(reversed(signatures)), contexts)
    assert wallet.balance == 0

def test_include_dleq(mint):
    wallet = Wallet(mint.active_keyset.public_keyset, MINT_URL, include_dleq=True)
    proofs = mint_into(wallet, mint, 2)
    assert proofs[0].dleq is not None
    assert proofs[0].dleq.r is not None

def test_receive_rejects_other_mint(wallet):
    token = Token(token=[TokenEntry(mint="https://elsewhere.example.com", proofs=[make_proof(1)])])
    with pytest.raises(UnknownMint):
        wallet.receive(token)
    assert wallet.balance == 0

def test_receive_rejects_malformed(wallet):
    with pytest.raises(InvalidTokenFormat):
        wallet.receive(Token(token=[TokenEntry(mint=MINT_URL)]))

def test_wallet_rejects_invalid_keyset(mint):
    keyset = mint.active_keyset.public_keyset
    tampered = Keyset(id="00ffffffffffffff", unit=keyset.unit, keys=keyset.keys)
    with pytest.raises(InvalidKeyset):
        Wallet(tampered, MINT_URL)

def test_generate_secret():
    secret = Wallet.generate_secret()
    assert len(secret) == 64
    assert secret != Wallet.generate_secret()

def test_inventory_remove_repeated_proof():
    a, b = make_proof(1, "a"), make_proof(2, "b")
    inventory = ProofInventory([a, b])
    inventory.remove([a, a])
    assert a not in inventory
    assert inventory.balance == 2

    with pytest.raises(ProofNotFound):
        inventory.remove([b, b, a])
    assert b in inventory
    assert inventory.balance == 2

def test_select_rejects_bool_target():
    with pytest.raises(InvalidAmount):
        select_proofs([make_proof(1)], True)

def test_receive_rejects_foreign_keyset(mint, wallet):
    own = mint_into(wallet, mint, 8)
    foreign = make_proof(2, "foreign", keyset_id="00ffffffffffffff")
    token = Token(token=[TokenEntry(mint=MINT_URL, proofs=own + [foreign])])

    receiver = Wallet(mint.active_keyset.public_keyset, MINT_URL)
    with pytest.raises(UnknownKeyset):
        receiver.receive(token)
    assert receiver.balance == 0

def test_receive_rejects_unknown_amount(mint, wallet):
    odd = make_proof(3, "odd", keyset_id=wallet.keyset.id)
    with pytest.raises(UnknownDenomination):
        wallet.receive(Token(token=[TokenEntry(mint=MINT_URL, proofs=[odd])]))
    assert wallet.balance == 0

def test_received_balance_is_spendable(mint, wallet):
    mint_into(wallet, mint, 10)
    receiver = Wallet(mint.active_keyset.public_keyset, MINT_URL)
    receiver.receive(wallet.send(10))
    assert receiver.balance == 10
    token = receiver.send(receiver.balance)
    assert token.amount == 10
    assert receiver.balance == 0
