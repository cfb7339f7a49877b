"""
Certificate templates per role.

Every builder returns a new CertificateTemplate; nothing here is shared
between calls. Role policy:

    role          CA   pathlen  key usage                    ext key usage
    root          yes  none     digitalSignature,certSign,crlSign  -
    intermediate  yes  1        digitalSignature,certSign,crlSign  -
    server        no   -        digitalSignature             serverAuth
    client        no   -        digitalSignature             clientAuth

Validity is [now, now + 367 days], fixed when the template is built.
"""

from datetime import timedelta
from typing import Iterable, Sequence

from selfsigned.common.models import (
    CertificateTemplate,
    ExtKeyUsageFlag,
    KeyUsageFlag,
    Role,
    SubjectFields,
    SubjectName,
)
from selfsigned.common.utils import now_utc, split_hosts

VALIDITY = timedelta(days=367)
INTERMEDIATE_PATH_LENGTH = 1

CA_KEY_USAGE = (
    KeyUsageFlag.DIGITAL_SIGNATURE,
    KeyUsageFlag.KEY_CERT_SIGN,
    KeyUsageFlag.CRL_SIGN,
)
LEAF_KEY_USAGE = (KeyUsageFlag.DIGITAL_SIGNATURE,)

ROLE_SUFFIX = {
    Role.ROOT: " Root CA",
    Role.INTERMEDIATE: " Intermediate CA",
}


def _subject(role: Role, fields: SubjectFields) -> SubjectName:
    cn = fields.default_common_name() + ROLE_SUFFIX.get(role, "")
    return SubjectName(common_name=cn, organization=fields.organization)


def _ca_template(role: Role, fields: SubjectFields, path_length=None) -> CertificateTemplate:
    not_before = now_utc()
    return CertificateTemplate(
        role=role,
        subject=_subject(role, fields),
        not_before=not_before,
        not_after=not_before + VALIDITY,
        is_ca=True,
        max_path_length=path_length,
        key_usage=CA_KEY_USAGE,
    )


def _leaf_template(role: Role, fields: SubjectFields, usage: ExtKeyUsageFlag,
                   hosts: Iterable[str]) -> CertificateTemplate:
    ips, names = split_hosts(hosts)
    not_before = now_utc()
    return CertificateTemplate(
        role=role,
        subject=_subject(role, fields),
        not_before=not_before,
        not_after=not_before + VALIDITY,
        is_ca=False,
        key_usage=LEAF_KEY_USAGE,
        ext_key_usage=(usage,),
        dns_names=names,
        ip_addresses=ips,
    )


def build_root_template(fields: SubjectFields) -> CertificateTemplate:
    return _ca_template(Role.ROOT, fields)


def build_intermediate_template(fields: SubjectFields) -> CertificateTemplate:
    return _ca_template(Role.INTERMEDIATE, fields, path_length=INTERMEDIATE_PATH_LENGTH)


def build_server_template(fields: SubjectFields, hosts: Iterable[str] = ()) -> CertificateTemplate:
    return _leaf_template(Role.SERVER, fields, ExtKeyUsageFlag.SERVER_AUTH, hosts)


def build_client_template(fields: SubjectFields, hosts: Iterable[str] = ()) -> CertificateTemplate:
    return _leaf_template(Role.CLIENT, fields, ExtKeyUsageFlag.CLIENT_AUTH, hosts)


def build_template(role: Role, fields: SubjectFields, hosts: Sequence[str] = ()) -> CertificateTemplate:
    """Build the template for `role`. `hosts` only applies to leaf roles."""
    role = Role(role)
    if role is Role.ROOT:
        return build_root_template(fields)
    if role is Role.INTERMEDIATE:
        return build_intermediate_template(fields)
    if role is Role.SERVER:
        return build_server_template(fields, hosts)
    return build_client_template(fields, hosts)
