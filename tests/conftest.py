"""Shared fixtures.

RSA key generation dominates test time, so keys are generated once per
session and handed to the code under test explicitly.
"""

from datetime import timedelta

import pytest

from devca.ca.authority import Authority, CertOptions
from devca.ca.key_manager import PrivateKey


@pytest.fixture(scope="session")
def ca_key() -> PrivateKey:
    return PrivateKey.generate()


@pytest.fixture(scope="session")
def leaf_key() -> PrivateKey:
    return PrivateKey.generate()


@pytest.fixture(scope="session")
def other_key() -> PrivateKey:
    return PrivateKey.generate()


@pytest.fixture
def root_options() -> CertOptions:
    return CertOptions(valid_for=timedelta(hours=24), common_name="root")


@pytest.fixture
def leaf_options() -> CertOptions:
    return CertOptions(valid_for=timedelta(hours=1), common_name="leaf")


@pytest.fixture
def authority(ca_key, root_options) -> Authority:
    return Authority.create(root_options, ca_key)
