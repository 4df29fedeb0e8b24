"""
Key handling, addresses and signatures for signed transactions.

Accounts are identified by a 20-byte address derived from the SHA-256 of the
DER-encoded public key. Transaction ids use Keccak-256.
"""
import hashlib
from typing import Union

from Crypto.Hash import keccak
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

ADDRESS_LENGTH = 20

_CURVE = ec.SECP256R1
_SIGNATURE_ALGORITHM = ec.ECDSA(hashes.SHA256())

PrivateKey = ec.EllipticCurvePrivateKey
PublicKey = ec.EllipticCurvePublicKey


def generate_hash(data: bytes) -> bytes:
    return keccak.new(data=data, digest_bits=256).digest()


def generate_key_pair() -> tuple[PrivateKey, PublicKey]:
    private_key = ec.generate_private_key(_CURVE())
    return private_key, private_key.public_key()


def serialize_public_key(public_key: PublicKey) -> str:
    """PEM (SubjectPublicKeyInfo) text for a public key."""
    pem = public_key.public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return pem.decode('ascii')


def deserialize_public_key(pem_data: str) -> PublicKey:
    return serialization.load_pem_public_key(pem_data.encode('ascii'))


def serialize_private_key(private_key: PrivateKey) -> str:
    """Unencrypted PKCS8 PEM. Keep it out of logs."""
    pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return pem.decode('ascii')


def load_private_key(pem_data: str) -> PrivateKey:
    return serialization.load_pem_private_key(pem_data.encode('ascii'), password=None)


def public_key_to_address(public_key: Union[str, PublicKey]) -> bytes:
    """Derives an account address from a public key or its PEM text."""
    if isinstance(public_key, str):
        public_key = deserialize_public_key(public_key)
    der = public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(der).digest()[:ADDRESS_LENGTH]


def sign(private_key: PrivateKey, data: bytes) -> bytes:
    return private_key.sign(data, _SIGNATURE_ALGORITHM)


def verify_signature(public_key_pem: str, signature: bytes, data: bytes) -> bool:
    """False for a bad signature or an unreadable key, never raises."""
    try:
        deserialize_public_key(public_key_pem).verify(signature, data, _SIGNATURE_ALGORITHM)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True
