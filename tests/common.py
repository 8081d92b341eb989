import os
import socket
import sys
import time

from e2e_cluster.config import Settings
from e2e_cluster.vttablet_process import vttablet_process_instance


FAKE_BINARIES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'fake_binaries')
FAKE_VTTABLET = os.path.join(FAKE_BINARIES_DIR, 'fake_vttablet.py')
FAKE_MYSQLCTL = os.path.join(FAKE_BINARIES_DIR, 'fake_mysqlctl.py')

TEST_CELL = 'zone1'
TEST_KEYSPACE = 'commerce'
TEST_SHARD = '0'
TEST_TABLET_UID = 100


def assert_wait(condition, max_wait_time=20.0, retry_interval=0.05):
    max_time = time.time() + max_wait_time
    while time.time() < max_time:
        if condition():
            return
        time.sleep(retry_interval)
    assert condition()


def get_free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def make_binary(directory, name, script):
    """Write an executable shell wrapper running ``script`` with this interpreter."""
    path = os.path.join(str(directory), name)
    with open(path, 'w') as f:
        f.write(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
    os.chmod(path, 0o755)
    return path


def make_settings(vtdataroot, binary, **vttablet_overrides):
    settings = Settings()
    settings.vtdataroot = str(vtdataroot)
    settings.vttablet.binary = binary
    settings.vttablet.ready_timeout = 20.0
    settings.vttablet.poll_interval = 0.1
    settings.vttablet.stop_grace_period = 5.0
    for key, value in vttablet_overrides.items():
        setattr(settings.vttablet, key, value)
    return settings


def make_vttablet(tmp_path, binary, extra_args=None, tablet_type='replica', **vttablet_overrides):
    settings = make_settings(tmp_path / 'vtdataroot', binary, **vttablet_overrides)
    os.makedirs(os.path.join(settings.vtdataroot, f'vt_{TEST_TABLET_UID:010d}'), exist_ok=True)
    return vttablet_process_instance(
        port=get_free_port(),
        grpc_port=get_free_port(),
        tablet_uid=TEST_TABLET_UID,
        cell=TEST_CELL,
        shard=TEST_SHARD,
        keyspace=TEST_KEYSPACE,
        vtctld_port=15999,
        tablet_type=tablet_type,
        topo_port=2379,
        hostname='127.0.0.1',
        tmp_directory=str(tmp_path),
        extra_args=extra_args,
        settings=settings,
    )
