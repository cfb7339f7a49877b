"""
EC P-384 key helpers.

Functions:
- generate_key() -> ec.EllipticCurvePrivateKey   (fresh key for every certificate)
- private_key_block(key) -> PemBlock              (PKCS#8 DER, "PRIVATE KEY")
- private_key_pem(key) -> bytes                   (the same key as PEM text)
- load_private_key(block) -> private key object   (decode a PKCS#8 block)
"""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from selfsigned.common.models import PemBlock
from selfsigned.crypto.errors import EncodingError, KeyGenerationError, ParentKeyDecodeError

CURVE = ec.SECP384R1
PRIVATE_KEY_LABEL = "PRIVATE KEY"


def generate_key() -> ec.EllipticCurvePrivateKey:
    try:
        return ec.generate_private_key(CURVE())
    except (OSError, ValueError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"failed to generate ECDSA key: {e}") from e


def _pkcs8(key, encoding) -> bytes:
    return key.private_bytes(
        encoding=encoding,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def private_key_block(key) -> PemBlock:
    try:
        der = _pkcs8(key, serialization.Encoding.DER)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"unable to marshal ECDSA private key: {e}") from e
    return PemBlock(type=PRIVATE_KEY_LABEL, der=der)


def private_key_pem(key) -> bytes:
    try:
        return _pkcs8(key, serialization.Encoding.PEM)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"failed to encode key data: {e}") from e


def load_private_key(block: PemBlock):
    if block.type != PRIVATE_KEY_LABEL:
        raise ParentKeyDecodeError(f"expected a {PRIVATE_KEY_LABEL} block, got {block.type!r}")
    try:
        return serialization.load_der_private_key(block.der, password=None)
    except (TypeError, ValueError, UnsupportedAlgorithm) as e:
        raise ParentKeyDecodeError(f"unable to parse parent private key: {e}") from e
