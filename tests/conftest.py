"""Shared fixtures for e2e-cluster tests"""

import logging

import pytest

from tests.common import FAKE_MYSQLCTL, FAKE_VTTABLET, make_binary, make_vttablet

logging.basicConfig(
    level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@pytest.fixture
def fake_vttablet_binary(tmp_path):
    return make_binary(tmp_path, 'vttablet', FAKE_VTTABLET)


@pytest.fixture
def fake_mysqlctl_binary(tmp_path):
    return make_binary(tmp_path, 'mysqlctl', FAKE_MYSQLCTL)


@pytest.fixture
def vttablet_factory(tmp_path, fake_vttablet_binary):
    """Build VttabletProcess handles backed by the fake binary; kills leftovers."""
    created = []

    def factory(extra_args=None, **vttablet_overrides):
        vttablet = make_vttablet(tmp_path, fake_vttablet_binary, extra_args, **vttablet_overrides)
        created.append(vttablet)
        return vttablet

    yield factory

    for vttablet in created:
        vttablet.stop(grace_period=1.0)
