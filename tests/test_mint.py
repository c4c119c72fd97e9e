from bdhke.mint import *
from bdhke.b_dhke import blind, unblind
from bdhke.errors import InvalidPoint, UnknownDenomination, UnknownKeyset, VerificationFailed
from bdhke.keyset import MintKeyset
from bdhke.models import BlindedMessage
from dataclasses import replace
import threading
import pytest

@pytest.fixture
def mint():
    return Mint.generate(max_order=4)

def issue(mint, secret, amount):
    keyset = mint.active_keyset
    message, context = blind(secret, amount, keyset.id)
    signature = mint.sign(message)
    return unblind(signature, context, keyset.keypair(amount)[1])

def test_sign_attaches_dleq(mint):
    message, _ = blind("secret", 2, mint.active_keyset.id)
    signature = mint.sign(message)
    assert signature.amount == 2
    assert signature.id == mint.active_keyset.id
    assert len(signature.C_) == 66
    assert signature.dleq is not None
    assert signature.dleq.r is None

def test_sign_unknown_amount(mint):
    message, _ = blind("secret", 16, mint.active_keyset.id)
    with pytest.raises(UnknownDenomination):
        mint.sign(message)

def test_sign_unknown_keyset(mint):
    message, _ = blind("secret", 1, "00ffffffffffffff")
    with pytest.raises(UnknownKeyset):
        mint.sign(message)

def test_sign_invalid_point(mint):
    message = BlindedMessage(amount=1, id=mint.active_keyset.id, B_="02" + "ff" * 32)
    with pytest.raises(InvalidPoint):
        mint.sign(message)

def test_sign_overrides(mint):
    message, _ = blind("secret", 1, mint.active_keyset.id)
    signature = mint.sign(message, amount=8)
    assert signature.amount == 8

def test_sign_outputs_is_all_or_nothing(mint):
    keyset_id = mint.active_keyset.id
    good, _ = blind("good", 1, keyset_id)
    bad, _ = blind("bad", 3, keyset_id)
    with pytest.raises(UnknownDenomination):
        mint.sign_outputs([good, bad])
    assert len(mint.sign_outputs([good, good])) == 2

def test_verify_fails_closed(mint):
    proof = issue(mint, "secret", 4)
    assert mint.verify(proof.secret, proof.C, proof.id, proof.amount)
    assert not mint.verify(proof.secret, proof.C, "00ffffffffffffff", proof.amount)
    assert not mint.verify(proof.secret, proof.C, proof.id, 3)
    assert not mint.verify(proof.secret, "zz", proof.id, proof.amount)
    assert not mint.verify(proof.secret, "02" + "ff" * 32, proof.id, proof.amount)

def test_verify_proofs(mint):
    proofs = [issue(mint, f"secret {i}", 1 << i) for i in range(4)]
    mint.verify_proofs(proofs)

    proofs[2] = replace(proofs[2], secret="stolen")
    with pytest.raises(VerificationFailed):
        mint.verify_proofs(proofs)

def test_add_keyset(mint):
    first = mint.active_keyset
    second = MintKeyset.generate(max_order=2)
    mint.add_keyset(second)
    assert mint.active_keyset is second
    assert {k.id for k in mint.keysets} == {first.id, second.id}

    # old keyset still verifies
    proof = issue(Mint([first]), "old", 1)
    assert mint.verify_proof(proof)

    mint.add_keyset(first)
    assert len(mint.keysets) == 2
    assert mint.active_keyset is first

def test_empty_mint():
    mint = Mint()
    assert mint.keysets == []
    with pytest.raises(UnknownKeyset):
        mint.active_keyset
    with pytest.raises(UnknownKeyset):
        mint.get_keyset("00ffffffffffffff")

def test_concurrent_sign_while_adding_keysets(mint):
    first = mint.active_keyset
    added = [MintKeyset.generate(max_order=2) for _ in range(10)]
    proofs = []
    errors = []
    lock = threading.Lock()

    def sign(n):
        try:
            for i in range(10):
                message, context = blind(f"secret {n}-{i}", 1, first.id)
                signature = mint.sign(message)
                proof = unblind(signature, context, first.keypair(1)[1])
                assert mint.verify_proof(proof)
                with lock:
                    proofs.append(proof)
        except Exception as e:
            with lock:
                errors.append(e)

    def rotate():
        for keyset in added:
            mint.add_keyset(keyset)

    threads = [threading.Thread(target=sign, args=(n,)) for n in range(8)]
    threads.append(threading.Thread(target=rotate))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(proofs) == 80
    assert len({p.secret for p in proofs}) == 80
    mint.verify_proofs(proofs)
    assert {k.id for k in mint.keysets} == {first.id} | {k.id for k in added}
    assert mint.active_keyset is added[-1]
