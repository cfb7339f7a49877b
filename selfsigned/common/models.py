# selfsigned/common/models.py
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, ConfigDict, IPvAnyAddress, field_validator, model_validator

# X.509 upper bounds (RFC 5280 ub-common-name, ub-organization-name)
MAX_COMMON_NAME = 64
MAX_ORGANIZATION = 64
# room for the longest role suffix (" Intermediate CA") and " (XXXX)"
COMMON_NAME_RESERVED = len(" Intermediate CA") + len(" (0000)")
MAX_BASE_COMMON_NAME = MAX_COMMON_NAME - COMMON_NAME_RESERVED


class Role(str, Enum):
    ROOT = "root"
    INTERMEDIATE = "intermediate"
    SERVER = "server"
    CLIENT = "client"


class KeyUsageFlag(str, Enum):
    DIGITAL_SIGNATURE = "digital_signature"
    KEY_CERT_SIGN = "key_cert_sign"
    CRL_SIGN = "crl_sign"


class ExtKeyUsageFlag(str, Enum):
    SERVER_AUTH = "server_auth"
    CLIENT_AUTH = "client_auth"


class SubjectFields(BaseModel):
    """
    Subject values supplied by the caller for one certificate.

    The effective common name (common_name, or the first organization) must
    leave room for the role and fingerprint suffixes within the 64 character
    X.509 limit, so it is capped at MAX_BASE_COMMON_NAME characters.
    """

    model_config = ConfigDict(frozen=True)

    common_name: str = ""
    organization: Tuple[str, ...] = ()

    @field_validator("organization")
    @classmethod
    def organization_bounds(cls, v):
        for org in v:
            if not 1 <= len(org) <= MAX_ORGANIZATION:
                raise ValueError(f"organization must be 1 to {MAX_ORGANIZATION} characters")
        return v

    @model_validator(mode="after")
    def needs_a_name(self):
        if not self.common_name and not self.organization:
            raise ValueError("either common_name or organization is required")
        if len(self.default_common_name()) > MAX_BASE_COMMON_NAME:
            raise ValueError(f"common name must be at most {MAX_BASE_COMMON_NAME} characters")
        return self

    def default_common_name(self) -> str:
        """CN as given, or the first organization when none was supplied."""
        return self.common_name or self.organization[0]


class SubjectName(BaseModel):
    model_config = ConfigDict(frozen=True)

    common_name: str
    organization: Tuple[str, ...] = ()
    serial_number: Optional[str] = None  # decimal string of the certificate serial

    def to_x509(self) -> x509.Name:
        attrs = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, org) for org in self.organization]
        if self.serial_number is not None:
            attrs.append(x509.NameAttribute(NameOID.SERIAL_NUMBER, self.serial_number))
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attrs)


class CertificateTemplate(BaseModel):
    """
    Unsigned certificate descriptor. Built fresh for every certificate and
    completed (serial, fingerprinted subject) by the issuer via model_copy.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    subject: SubjectName
    not_before: datetime
    not_after: datetime
    is_ca: bool
    max_path_length: Optional[int] = None  # None = unconstrained
    key_usage: Tuple[KeyUsageFlag, ...] = ()
    ext_key_usage: Tuple[ExtKeyUsageFlag, ...] = ()
    dns_names: Tuple[str, ...] = ()
    ip_addresses: Tuple[IPvAnyAddress, ...] = ()
    serial_number: Optional[int] = None


class PemBlock(BaseModel):
    """A DER payload and the PEM label it is wrapped with."""

    model_config = ConfigDict(frozen=True)

    type: str
    der: bytes


class CertificateRecord(BaseModel):
    """
    One issued certificate: the descriptor it was signed from, its serial and
    display fingerprint, and the certificate / private key as PEM blocks and
    as the exact PEM text handed to TLS setup or HTTP download.
    """

    model_config = ConfigDict(frozen=True)

    template: CertificateTemplate
    serial_number: int
    fingerprint: str
    public_block: PemBlock
    private_block: PemBlock
    public_bytes: bytes
    private_bytes: bytes

    @property
    def certificate(self) -> x509.Certificate:
        return x509.load_der_x509_certificate(self.public_block.der)

    @property
    def is_ca(self) -> bool:
        return self.template.is_ca

    @property
    def common_name(self) -> str:
        return self.template.subject.common_name


class Chain(BaseModel):
    model_config = ConfigDict(frozen=True)

    root: CertificateRecord
    intermediate: CertificateRecord
    leaf: CertificateRecord
