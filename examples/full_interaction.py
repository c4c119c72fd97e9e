from bdhke.config import Settings, configure_logging
from bdhke.dleq import verify_proof_dleq
from bdhke.mint import Mint
from bdhke.tokens import deserialize_token, serialize_token
from bdhke.wallet import Wallet

settings = Settings.from_env()
assert not settings.validate(), settings.validate()
configure_logging(settings.log)

MINT_URL = "https://mint.example.com"

# Mint's keyset
mint = Mint.generate(unit=settings.unit, max_order=settings.max_order)
keyset = mint.active_keyset.public_keyset

# Alice and Bob trust the published keys
alice = Wallet(keyset, MINT_URL, include_dleq=True)
bob = Wallet(keyset, MINT_URL)

# Alice blinds secrets for 13 = 1 + 4 + 8
outputs, contexts = alice.create_outputs(13)

## SEND(outputs)

# Mint signs without learning the secrets
signatures = mint.sign_outputs(outputs)

## RECEIVE(signatures)

# Alice checks the DLEQ proofs and unblinds
proofs = alice.receive_signatures(signatures, contexts)
assert alice.balance == 13
mint.verify_proofs(proofs)

# Alice sends 5. The selector overshoots; the extra value is Bob's
token = alice.send(5, memo="Thank you.")
encoded = serialize_token(token, settings.version, include_uri=settings.include_uri)
print(f"Token ({settings.version.description}): {encoded}")

## SEND(encoded)

received = bob.receive(deserialize_token(encoded))

# Bob can check the mint's signature offline, without asking the mint
for proof in received:
    assert verify_proof_dleq(proof, keyset.public_key(proof.amount)), (
        "Couldn't verify DLEQ"
    )

# The mint accepts the proofs Bob redeems
mint.verify_proofs(received)

print(f"Alice balance: {alice.balance}")
print(f"Bob balance: {bob.balance}")
