"""Unit tests for vttablet command line construction"""

import os

import pytest

from e2e_cluster.config import Settings
from e2e_cluster.vttablet_process import vttablet_process_instance


def make_instance(tablet_type='replica', extra_args=None, settings=None):
    settings = settings or Settings()
    settings.vtdataroot = '/vt/vtdataroot'
    return vttablet_process_instance(
        port=15101,
        grpc_port=16101,
        tablet_uid=101,
        cell='zone1',
        shard='-80',
        keyspace='commerce',
        vtctld_port=15000,
        tablet_type=tablet_type,
        topo_port=2379,
        hostname='localhost',
        tmp_directory='/tmp/e2e',
        extra_args=extra_args,
        settings=settings,
    )


def flag_value(args, flag):
    return args[args.index(flag) + 1]


@pytest.mark.unit
def test_instance_path_layout():
    vttablet = make_instance()

    assert vttablet.tablet_path == 'zone1-0000000101'
    assert vttablet.verify_url == 'http://localhost:15101/debug/vars'
    assert vttablet.file_to_log_queries == '/tmp/e2e/vt_0000000101/querylog.txt'
    assert vttablet.directory == '/vt/vtdataroot/vt_0000000101'
    assert vttablet.pid_file == '/vt/vtdataroot/vt_0000000101/vttablet.pid'
    assert vttablet.file_backup_storage_root == '/vt/vtdataroot/backups'
    assert vttablet.vtctld_address == 'http://localhost:15000'
    assert vttablet.log_dir == '/tmp/e2e'
    assert vttablet.service_map == 'grpc-queryservice,grpc-tabletmanager,grpc-updatestream'
    assert vttablet.common_arg.topo_global_address == 'localhost:2379'


@pytest.mark.unit
@pytest.mark.parametrize(
    "requested,expected",
    [
        ("replica", "replica"),
        ("rdonly", "rdonly"),
        ("primary", "replica"),
    ],
)
def test_instance_tablet_type(requested, expected):
    assert make_instance(tablet_type=requested).tablet_type == expected


@pytest.mark.unit
def test_instance_supervision_defaults():
    vttablet = make_instance()

    assert vttablet.ready_timeout == 60.0
    assert vttablet.poll_interval == 0.3
    assert vttablet.stop_grace_period == 10.0
    assert vttablet.serving_state == 'NOT_SERVING'


@pytest.mark.unit
def test_fixed_flags():
    args = make_instance().build_args()

    assert args[:6] == [
        '-topo_implementation', 'etcd2',
        '-topo_global_server_address', 'localhost:2379',
        '-topo_global_root', '/vitess/global',
    ]
    assert flag_value(args, '-port') == '15101'
    assert flag_value(args, '-grpc_port') == '16101'
    assert flag_value(args, '-tablet-path') == 'zone1-0000000101'
    assert flag_value(args, '-init_shard') == '-80'
    assert flag_value(args, '-init_keyspace') == 'commerce'
    assert flag_value(args, '-init_tablet_type') == 'replica'
    assert flag_value(args, '-health_check_interval') == '5s'
    assert flag_value(args, '-backup_storage_implementation') == 'file'
    assert flag_value(args, '-vtctld_addr') == 'http://localhost:15000'
    for flag in ('-enable_semi_sync', '-enable_replication_reporter', '-restore_from_backup'):
        assert flag in args
    assert args[-2:] == ['-vtctld_addr', 'http://localhost:15000']


@pytest.mark.unit
def test_extra_args_are_appended_last():
    extra_args = ['-port', '19999', '-queryserver-config-pool-size', '4']
    vttablet = make_instance(extra_args=extra_args)

    args = vttablet.build_args()
    assert args[-len(extra_args):] == extra_args
    # the fixed -port comes first, the override last
    port_positions = [i for i, arg in enumerate(args) if arg == '-port']
    assert len(port_positions) == 2
    assert args[port_positions[-1] + 1] == '19999'


@pytest.mark.unit
def test_cmd_starts_with_binary():
    settings = Settings()
    settings.vttablet.binary = '/opt/vt/bin/vttablet'
    vttablet = make_instance(settings=settings)

    cmd = vttablet.build_cmd()
    assert cmd[0] == '/opt/vt/bin/vttablet'
    assert cmd[1:] == vttablet.build_args()


@pytest.mark.unit
def test_extra_args_are_copied():
    extra_args = ['-foo', 'bar']
    vttablet = make_instance(extra_args=extra_args)
    extra_args.append('-baz')

    assert vttablet.extra_args == ['-foo', 'bar']


@pytest.mark.unit
def test_directory_uses_vtdataroot_env(monkeypatch):
    monkeypatch.setenv('VTDATAROOT', '/data/vt')
    vttablet = vttablet_process_instance(
        15101, 16101, 7, 'zone2', '0', 'ks', 15000, 'replica', 2379, 'localhost', '/tmp/e2e',
    )

    assert vttablet.directory == os.path.join('/data/vt', 'vt_0000000007')
    assert vttablet.tablet_path == 'zone2-0000000007'
