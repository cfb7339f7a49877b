import ipaddress
from datetime import timedelta

import pytest
from pydantic import ValidationError

from selfsigned.common.models import MAX_BASE_COMMON_NAME, ExtKeyUsageFlag, KeyUsageFlag, Role, SubjectFields
from selfsigned.common.utils import split_hosts
from selfsigned.crypto import templates


def test_root_template(fields):
    t = templates.build_root_template(fields)
    assert t.role is Role.ROOT
    assert t.is_ca is True
    assert t.max_path_length is None
    assert t.subject.common_name == "ACME Company Root CA"
    assert t.subject.organization == ("ACME Company",)
    assert t.key_usage == (KeyUsageFlag.DIGITAL_SIGNATURE, KeyUsageFlag.KEY_CERT_SIGN, KeyUsageFlag.CRL_SIGN)
    assert t.ext_key_usage == ()
    assert t.dns_names == () and t.ip_addresses == ()
    assert t.serial_number is None


def test_intermediate_template_has_path_length_one(fields):
    t = templates.build_intermediate_template(fields)
    assert t.is_ca is True
    assert t.max_path_length == 1
    assert t.subject.common_name == "ACME Company Intermediate CA"


def test_leaf_templates(fields):
    server = templates.build_server_template(fields, ["a.example"])
    client = templates.build_client_template(fields, ["b.example"])
    for t in (server, client):
        assert t.is_ca is False
        assert t.key_usage == (KeyUsageFlag.DIGITAL_SIGNATURE,)
        assert t.subject.common_name == "ACME Company"
    assert server.ext_key_usage == (ExtKeyUsageFlag.SERVER_AUTH,)
    assert client.ext_key_usage == (ExtKeyUsageFlag.CLIENT_AUTH,)


def test_explicit_common_name_is_kept():
    f = SubjectFields(common_name="Widgets", organization=["ACME Company"])
    assert templates.build_root_template(f).subject.common_name == "Widgets Root CA"
    assert templates.build_server_template(f).subject.common_name == "Widgets"


def test_subject_needs_a_name():
    with pytest.raises(ValidationError):
        SubjectFields()
    assert SubjectFields(common_name="only-cn").default_common_name() == "only-cn"


def test_validity_is_367_days(fields):
    t = templates.build_server_template(fields)
    assert t.not_after - t.not_before == timedelta(days=367)
    assert t.not_before.utcoffset() == timedelta(0)
    assert t.not_before.microsecond == 0


def test_hosts_are_split_in_order(fields):
    hosts = ["b.local", "10.0.0.5", "a.local", "::1", "192.168.1.1"]
    t = templates.build_server_template(fields, hosts)
    assert t.dns_names == ("b.local", "a.local")
    assert t.ip_addresses == (
        ipaddress.ip_address("10.0.0.5"),
        ipaddress.ip_address("::1"),
        ipaddress.ip_address("192.168.1.1"),
    )


def test_split_hosts_treats_scoped_ipv6_as_name():
    ips, names = split_hosts(["fe80::1%eth0", "999.1.1.1"])
    assert ips == []
    assert names == ["fe80::1%eth0", "999.1.1.1"]


def test_templates_are_fresh_per_call(fields):
    a = templates.build_server_template(fields, ["one.local"])
    b = templates.build_server_template(fields, ["two.local"])
    assert a.dns_names == ("one.local",)
    assert b.dns_names == ("two.local",)
    assert a is not b


def test_build_template_dispatch(fields):
    assert templates.build_template(Role.ROOT, fields).role is Role.ROOT
    assert templates.build_template("intermediate", fields).max_path_length == 1
    assert templates.build_template(Role.SERVER, fields, ["x.local"]).dns_names == ("x.local",)
    assert templates.build_template(Role.CLIENT, fields).ext_key_usage == (ExtKeyUsageFlag.CLIENT_AUTH,)


def test_longest_allowed_name_fits_every_role():
    f = SubjectFields(organization=["A" * MAX_BASE_COMMON_NAME])
    cn = templates.build_intermediate_template(f).subject.common_name
    assert len(cn) + len(" (ABCD)") == 64


@pytest.mark.parametrize("kwargs", [
    {"organization": ["A" * (MAX_BASE_COMMON_NAME + 1)]},
    {"organization": ["A" * 50]},
    {"common_name": "C" * (MAX_BASE_COMMON_NAME + 1), "organization": ["ACME Company"]},
    {"common_name": "short", "organization": ["O" * 65]},
    {"common_name": "short", "organization": [""]},
])
def test_subject_name_bounds(kwargs):
    with pytest.raises(ValidationError):
        SubjectFields(**kwargs)


def test_long_organization_with_short_common_name_is_accepted():
    f = SubjectFields(common_name="Widgets", organization=["O" * 64])
    assert templates.build_root_template(f).subject.organization == ("O" * 64,)


def test_templates_are_immutable(fields):
    t = templates.build_server_template(fields, ["a.local"])
    with pytest.raises(AttributeError):
        t.dns_names.append("b.local")
    with pytest.raises(ValidationError):
        t.is_ca = True
    assert isinstance(fields.organization, tuple)
