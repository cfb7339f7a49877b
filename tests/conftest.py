import pytest

from selfsigned.common.models import SubjectFields
from selfsigned.crypto import chain


@pytest.fixture(scope="session")
def fields():
    return SubjectFields(organization=["ACME Company"])


@pytest.fixture(scope="session")
def root(fields):
    return chain.generate_root(fields)


@pytest.fixture(scope="session")
def intermediate(fields, root):
    return chain.generate_intermediate(fields, root)


@pytest.fixture(scope="session")
def server(fields, intermediate):
    return chain.generate_server(fields, intermediate, ["10.0.0.5", "myhost.local"])


@pytest.fixture(scope="session")
def client(fields, intermediate):
    return chain.generate_client(fields, intermediate, ["laptop.local"])
