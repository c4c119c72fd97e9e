import timeit
import random
from bdhke.secp import Scalar, GroupElement
from bdhke.generators import hash_to_curve
from bdhke.b_dhke import blind, unblind
from bdhke.dleq import verify_dleq
from bdhke.keyset import MintKeyset
from bdhke.mint import Mint
from bdhke.tokens import TokenVersion, create_token, deserialize_token, serialize_token

secret_bytes = random.randbytes(32)
secret = secret_bytes.hex()
point = hash_to_curve(secret_bytes)
scalar = Scalar(random.randbytes(32))
point_bytes = point.serialize(True)

mint = Mint([MintKeyset.generate(max_order=8)])
keyset = mint.active_keyset
_, K = keyset.keypair(8)

message, context = blind(secret, 8, keyset.id)
signature = mint.sign(message)
proof = unblind(signature, context, K)
C_ = GroupElement.from_hex(signature.C_)
e = Scalar.from_hex(signature.dleq.e)
s = Scalar.from_hex(signature.dleq.s)

token = create_token([proof] * 8, "https://mint.example.com", unit="sat")
token_v1 = serialize_token(token, TokenVersion.V1)
token_v2 = serialize_token(token, TokenVersion.V2)

def bench_h2c():
    _ = hash_to_curve(secret_bytes)

def bench_mul():
    _ = scalar * point

def bench_group_element_init():
    _ = GroupElement(point_bytes)

def bench_blind():
    _ = blind(secret, 8, keyset.id)

def bench_sign():
    _ = mint.sign(message)

def bench_unblind():
    _ = unblind(signature, context, K)

def bench_verify():
    _ = mint.verify_proof(proof)

def bench_dleq():
    _ = verify_dleq(context.B_, C_, e, s, K)

def bench_serialize_v1():
    _ = serialize_token(token, TokenVersion.V1)

def bench_serialize_v2():
    _ = serialize_token(token, TokenVersion.V2)

def bench_deserialize_v1():
    _ = deserialize_token(token_v1)

def bench_deserialize_v2():
    _ = deserialize_token(token_v2)

h2c_time = timeit.timeit("bench_h2c()", globals=globals(), number=10000)
mul_time = timeit.timeit("bench_mul()", globals=globals(), number=10000)
group_element_init_time = timeit.timeit("bench_group_element_init()", globals=globals(), number=10000)

blind_time = timeit.timeit("bench_blind()", globals=globals(), number=1000)
sign_time = timeit.timeit("bench_sign()", globals=globals(), number=1000)
unblind_time = timeit.timeit("bench_unblind()", globals=globals(), number=1000)
verify_time = timeit.timeit("bench_verify()", globals=globals(), number=1000)
dleq_time = timeit.timeit("bench_dleq()", globals=globals(), number=1000)

serialize_v1_time = timeit.timeit("bench_serialize_v1()", globals=globals(), number=1000)
serialize_v2_time = timeit.timeit("bench_serialize_v2()", globals=globals(), number=1000)
deserialize_v1_time = timeit.timeit("bench_deserialize_v1()", globals=globals(), number=1000)
deserialize_v2_time = timeit.timeit("bench_deserialize_v2()", globals=globals(), number=1000)

print("10000 iterations")
print(f"HashToCurve time: {h2c_time:.9f} seconds")
print(f"Scalar-Point multiplication time: {mul_time:.9f} seconds")
print(f"GroupElement instantiation time: {group_element_init_time:.9f} seconds")
print("=======================================")
print("1000 iterations")
print(f"Blind time: {blind_time:.9f} seconds")
print(f"Sign (with DLEQ) time: {sign_time:.9f} seconds")
print(f"Unblind (with DLEQ check) time: {unblind_time:.9f} seconds")
print(f"Verify time: {verify_time:.9f} seconds")
print(f"DLEQ verification time: {dleq_time:.9f} seconds")
print("=======================================")
print(f"8-proof token, V1 {len(token_v1)} chars, V2 {len(token_v2)} chars")
print(f"Serialize V1 time: {serialize_v1_time:.9f} seconds")
print(f"Serialize V2 time: {serialize_v2_time:.9f} seconds")
print(f"Deserialize V1 time: {deserialize_v1_time:.9f} seconds")
print(f"Deserialize V2 time: {deserialize_v2_time:.9f} seconds")
