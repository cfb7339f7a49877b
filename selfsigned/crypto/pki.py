"""
PKI helpers: load certs/keys, check a certificate chain and utility
functions like fingerprint.

Functions:
- load_certificate(pem_or_record) -> cryptography.x509.Certificate
- load_private_key(pem_or_record) -> private key object
- cert_sha256_fingerprint_hex(cert) -> hex string of SHA256 over DER
- verify_issued_by(cert, issuer_cert) -> True/False
- validate_chain(cert, intermediates, root) -> (True, None) or (False, reason)
"""

from datetime import datetime, timezone
from typing import Sequence

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization

from selfsigned.common.models import CertificateRecord
from selfsigned.common.utils import sha256_hex


def load_certificate(pem_or_record) -> x509.Certificate:
    if isinstance(pem_or_record, CertificateRecord):
        return pem_or_record.certificate
    return x509.load_pem_x509_certificate(bytes(pem_or_record))


def load_private_key(pem_or_record, password=None):
    if isinstance(pem_or_record, CertificateRecord):
        pem_or_record = pem_or_record.private_bytes
    return serialization.load_pem_private_key(bytes(pem_or_record), password=password)


def cert_sha256_fingerprint_hex(cert: x509.Certificate) -> str:
    return sha256_hex(cert.public_bytes(serialization.Encoding.DER))


def _is_ca(cert: x509.Certificate) -> bool:
    try:
        bc = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return False
    return bc.ca


def verify_issued_by(cert: x509.Certificate, issuer_cert: x509.Certificate) -> bool:
    """
    Check that cert names issuer_cert as issuer and carries its signature.
    """
    try:
        cert.verify_directly_issued_by(issuer_cert)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False


def validate_chain(cert: x509.Certificate, intermediates: Sequence[x509.Certificate],
                   root: x509.Certificate, now: datetime = None):
    """
    Validate cert up to root through intermediates (nearest issuer first).

    Returns (True, None) on success, or (False, "reason") on failure.

    Checks performed:
    - Root is self-signed
    - Every link: issuer name and signature
    - Every issuer is a CA
    - Validity period of every certificate
    """
    now = now or datetime.now(timezone.utc)

    if not verify_issued_by(root, root):
        return False, "BAD_CERT: root is not self-signed"

    path = [cert] + list(intermediates) + [root]
    for child, issuer in zip(path, path[1:]):
        if not _is_ca(issuer):
            return False, f"BAD_CERT: issuer {issuer.subject.rfc4514_string()} is not a CA"
        if not verify_issued_by(child, issuer):
            return False, f"BAD_CERT: {child.subject.rfc4514_string()} not signed by {issuer.subject.rfc4514_string()}"

    for c in path:
        if c.not_valid_before_utc > now:
            return False, "BAD_CERT: certificate not yet valid"
        if c.not_valid_after_utc < now:
            return False, "BAD_CERT: certificate expired"

    return True, None
