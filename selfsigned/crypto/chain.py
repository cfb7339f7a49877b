"""
Public entry points for building the chain one hop at a time:

    root = generate_root(fields)
    ca = generate_intermediate(fields, root)
    server = generate_server(fields, ca, ["myhost.local", "10.0.0.5"])
    tls_chain = full_chain_pem(server, ca, root)

Each call returns a complete CertificateRecord or raises a CertSignError.
"""

import logging
from typing import Iterable

from selfsigned.common.models import Chain, CertificateRecord, SubjectFields
from selfsigned.crypto import templates
from selfsigned.crypto.issuer import issue

logger = logging.getLogger(__name__)


def generate_root(fields: SubjectFields) -> CertificateRecord:
    record = issue(templates.build_root_template(fields))
    logger.info("Generated root CA: %s", record.common_name)
    return record


def generate_intermediate(fields: SubjectFields, root: CertificateRecord) -> CertificateRecord:
    record = issue(templates.build_intermediate_template(fields), root)
    logger.info("Generated intermediate CA: %s", record.common_name)
    return record


def generate_server(fields: SubjectFields, signer: CertificateRecord,
                    hosts: Iterable[str] = ()) -> CertificateRecord:
    record = issue(templates.build_server_template(fields, hosts), signer)
    logger.info("Generated server certificate: %s (signed by %s)", record.common_name, signer.common_name)
    return record


def generate_client(fields: SubjectFields, signer: CertificateRecord,
                    hosts: Iterable[str] = ()) -> CertificateRecord:
    record = issue(templates.build_client_template(fields, hosts), signer)
    logger.info("Generated client certificate: %s (signed by %s)", record.common_name, signer.common_name)
    return record


def generate_chain(fields: SubjectFields, hosts: Iterable[str] = ()) -> Chain:
    """Root, intermediate and a server leaf for `hosts`, in that order."""
    root = generate_root(fields)
    intermediate = generate_intermediate(fields, root)
    leaf = generate_server(fields, intermediate, hosts)
    return Chain(root=root, intermediate=intermediate, leaf=leaf)


def full_chain_pem(leaf: CertificateRecord, *issuers: CertificateRecord) -> bytes:
    """Leaf PEM followed by its issuers' PEM, leaf first, root last."""
    return b"".join([leaf.public_bytes] + [ca.public_bytes for ca in issuers])
