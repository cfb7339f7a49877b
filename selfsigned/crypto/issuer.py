"""
The signing primitive shared by every role.

issue(template, parent=None) completes the template with a fresh serial
(CN becomes "<name> (<FINGERPRINT>)", subject serialNumber the decimal
serial), generates a new P-384 key and signs the certificate:

- without a parent the certificate is self-signed with its own key
- with a parent it is signed by the parent's private key and carries the
  parent's subject as issuer

The parent must be a CA. Its path length constraint is not checked here;
that is left to whoever verifies the chain.

Any failure raises a CertSignError subclass naming the stage that broke.
Nothing partial is ever returned.
"""

import logging
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import ExtendedKeyUsageOID

from selfsigned.common.models import (
    CertificateRecord,
    CertificateTemplate,
    ExtKeyUsageFlag,
    KeyUsageFlag,
    PemBlock,
)
from selfsigned.crypto import keys
from selfsigned.crypto.errors import CertSignError, EncodingError, SigningError
from selfsigned.crypto.serial import random_serial_number

logger = logging.getLogger(__name__)

CERTIFICATE_LABEL = "CERTIFICATE"
SIGNATURE_HASH = hashes.SHA384

_EKU_OIDS = {
    ExtKeyUsageFlag.SERVER_AUTH: ExtendedKeyUsageOID.SERVER_AUTH,
    ExtKeyUsageFlag.CLIENT_AUTH: ExtendedKeyUsageOID.CLIENT_AUTH,
}


def _key_usage(flags) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=KeyUsageFlag.DIGITAL_SIGNATURE in flags,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=KeyUsageFlag.KEY_CERT_SIGN in flags,
        crl_sign=KeyUsageFlag.CRL_SIGN in flags,
        encipher_only=False,
        decipher_only=False,
    )


def _complete(template: CertificateTemplate):
    serial, fingerprint = random_serial_number()
    subject = template.subject.model_copy(update={
        "common_name": f"{template.subject.common_name} ({fingerprint})",
        "serial_number": str(serial),
    })
    return template.model_copy(update={"subject": subject, "serial_number": serial}), fingerprint


def _sign(child: CertificateTemplate, key, signing_key, issuer_name: x509.Name,
          issuer_public_key=None) -> x509.Certificate:
    path_length = child.max_path_length if child.is_ca else None
    builder = (
        x509.CertificateBuilder()
        .subject_name(child.subject.to_x509())
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(child.serial_number)
        .not_valid_before(child.not_before)
        .not_valid_after(child.not_after)
        .add_extension(x509.BasicConstraints(ca=child.is_ca, path_length=path_length), critical=True)
        .add_extension(_key_usage(child.key_usage), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    if child.ext_key_usage:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([_EKU_OIDS[usage] for usage in child.ext_key_usage]),
            critical=False,
        )
    if child.dns_names or child.ip_addresses:
        san = [x509.DNSName(name) for name in child.dns_names]
        san += [x509.IPAddress(ip) for ip in child.ip_addresses]
        builder = builder.add_extension(x509.SubjectAlternativeName(san), critical=False)
    if issuer_public_key is not None:
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
            critical=False,
        )
    return builder.sign(private_key=signing_key, algorithm=SIGNATURE_HASH())


def _issue(template: CertificateTemplate, parent: Optional[CertificateRecord]) -> CertificateRecord:
    child, fingerprint = _complete(template)
    key = keys.generate_key()

    if parent is None:
        signing_key = key
        issuer_name = None
        issuer_public_key = None
    else:
        if not parent.is_ca:
            raise SigningError(f"signing certificate {parent.common_name!r} is not a CA")
        signing_key = keys.load_private_key(parent.private_block)
        try:
            parent_cert = parent.certificate
        except ValueError as e:
            raise SigningError(f"unable to parse signing certificate: {e}") from e
        issuer_name = parent_cert.subject
        issuer_public_key = parent_cert.public_key()

    try:
        if issuer_name is None:
            issuer_name = child.subject.to_x509()
        cert = _sign(child, key, signing_key, issuer_name, issuer_public_key)
    except (TypeError, ValueError) as e:
        raise SigningError(f"failed to create certificate: {e}") from e

    try:
        der = cert.public_bytes(serialization.Encoding.DER)
        public_bytes = cert.public_bytes(serialization.Encoding.PEM)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"failed to encode certificate: {e}") from e

    return CertificateRecord(
        template=child,
        serial_number=child.serial_number,
        fingerprint=fingerprint,
        public_block=PemBlock(type=CERTIFICATE_LABEL, der=der),
        private_block=keys.private_key_block(key),
        public_bytes=public_bytes,
        private_bytes=keys.private_key_pem(key),
    )


def issue(template: CertificateTemplate, parent: Optional[CertificateRecord] = None) -> CertificateRecord:
    try:
        record = _issue(template, parent)
    except CertSignError as e:
        logger.error("Could not issue %s certificate %r: %s",
                     template.role.value, template.subject.common_name, e)
        raise
    logger.debug("Issued %s certificate %r serial=%d",
                 record.template.role.value, record.common_name, record.serial_number)
    return record
