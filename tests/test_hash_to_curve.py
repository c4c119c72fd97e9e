from bdhke.generators import *
import os

def test_hash_to_curve():
    result = hash_to_curve(
        bytes.fromhex("0000000000000000000000000000000000000000000000000000000000000000")
    )
    assert result.to_hex() == "024cce997d3b518f739663b757deaec95bcd9473c30a14ac2fd04023a739d1a725"

    result = hash_to_curve(
        bytes.fromhex("0000000000000000000000000000000000000000000000000000000000000001")
    )
    assert result.to_hex() == "022e7158e11c9506f1aa4248bf531298daa7febd6194f003edcd9b93ade6253acf"

def test_hash_to_curve_iteration():
    result = hash_to_curve(
        bytes.fromhex("0000000000000000000000000000000000000000000000000000000000000002")
    )
    assert result.to_hex() == "026cdbe15362df59cd1dd3c9c11de8aedac2106eca69236ecd9fbe117af897be4f"

def test_deterministic():
    for _ in range(20):
        secret = os.urandom(32)
        assert hash_to_curve(secret).serialize(True) == hash_to_curve(secret).serialize(True)

def test_distinct_secrets_give_distinct_points():
    points = {hash_to_curve(os.urandom(32)).to_hex() for _ in range(200)}
    assert len(points) == 200

def test_even_prefix():
    for _ in range(20):
        assert hash_to_curve(os.urandom(16)).serialize(True)[:1] == EVEN_PREFIX

def test_text_secret_is_hashed_as_utf8():
    secret = "407915bc212be61a77e3e6d2aeb4c727980bda51cd06a6afc29e2861768a7837"
    assert hash_to_curve_secret(secret) == hash_to_curve(secret.encode("utf-8"))

def test_domain_separator():
    assert DOMAIN_SEPARATOR == b"Secp256k1_HashToCurve_Cashu_"
