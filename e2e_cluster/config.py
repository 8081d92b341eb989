"""
End-to-end cluster process configuration

Settings for the external processes a test cluster launches: the tablet
agent (vttablet) and the local MySQL control helper (mysqlctl).

Classes:
    TopoSettings: topology server connection shared by every tablet
    VttabletSettings: tablet binary, readiness polling and stop timings
    MysqlctlSettings: mysqlctl binary
    Settings: main configuration class, loaded from YAML

Environment variables override the file:
    VTDATAROOT, VTROOT, CLUSTER_HOSTNAME, VTTABLET_BINARY, MYSQLCTL_BINARY
"""

import os
from dataclasses import dataclass

import yaml


def stype(obj):
    return type(obj).__name__


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class TopoSettings:
    implementation: str = "etcd2"
    global_root: str = "/vitess/global"
    port: int = 2379

    def validate(self):
        if not isinstance(self.implementation, str) or not self.implementation:
            raise ValueError(
                f"topo implementation should be non-empty string and not {stype(self.implementation)}"
            )
        if not isinstance(self.global_root, str):
            raise ValueError(f"topo global_root should be string and not {stype(self.global_root)}")
        if not isinstance(self.port, int) or self.port <= 0:
            raise ValueError(f"topo port should be positive int and not {self.port!r}")


@dataclass
class VttabletSettings:
    """Tablet launch and supervision settings.

    Attributes:
        binary: vttablet executable name or path
        ready_timeout: seconds to wait for the expected tablet state (default: 60)
        poll_interval: seconds between status probes (default: 0.3)
        stop_grace_period: seconds between SIGTERM and SIGKILL (default: 10)
        probe_timeout: HTTP timeout of a single status probe (default: 1)
        serving_state: TabletStateName expected right after start
        health_check_interval: passed to the tablet, in seconds
        service_map: grpc services the tablet exposes
        backup_storage_implementation: backup engine name
    """
    binary: str = "vttablet"
    ready_timeout: float = 60.0
    poll_interval: float = 0.3
    stop_grace_period: float = 10.0
    probe_timeout: float = 1.0
    serving_state: str = "NOT_SERVING"
    health_check_interval: int = 5
    service_map: str = "grpc-queryservice,grpc-tabletmanager,grpc-updatestream"
    backup_storage_implementation: str = "file"

    def validate(self):
        if not isinstance(self.binary, str) or not self.binary:
            raise ValueError(f"vttablet binary should be non-empty string and not {stype(self.binary)}")

        for field_name in ('ready_timeout', 'poll_interval', 'stop_grace_period', 'probe_timeout'):
            value = getattr(self, field_name)
            if not is_number(value):
                raise ValueError(f"vttablet {field_name} should be a number and not {stype(value)}")
            if value <= 0:
                raise ValueError(f"vttablet {field_name} should be positive")

        if self.poll_interval > self.ready_timeout:
            raise ValueError("vttablet poll_interval should not exceed ready_timeout")

        if not isinstance(self.serving_state, str) or not self.serving_state:
            raise ValueError(
                f"vttablet serving_state should be non-empty string and not {stype(self.serving_state)}"
            )

        if not isinstance(self.health_check_interval, int) or self.health_check_interval <= 0:
            raise ValueError(
                f"vttablet health_check_interval should be positive int and not {self.health_check_interval!r}"
            )

        if not isinstance(self.service_map, str):
            raise ValueError(f"vttablet service_map should be string and not {stype(self.service_map)}")

        if not isinstance(self.backup_storage_implementation, str):
            raise ValueError(
                f"vttablet backup_storage_implementation should be string and not "
                f"{stype(self.backup_storage_implementation)}"
            )


@dataclass
class MysqlctlSettings:
    binary: str = "mysqlctl"

    def validate(self):
        if not isinstance(self.binary, str) or not self.binary:
            raise ValueError(f"mysqlctl binary should be non-empty string and not {stype(self.binary)}")


class Settings:
    DEFAULT_LOG_LEVEL = "info"
    DEFAULT_HOSTNAME = "localhost"

    def __init__(self):
        self.topo = TopoSettings()
        self.vttablet = VttabletSettings()
        self.mysqlctl = MysqlctlSettings()
        self.settings_file = ""
        self.log_level = Settings.DEFAULT_LOG_LEVEL
        self.hostname = Settings.DEFAULT_HOSTNAME
        self.vtdataroot = ""
        self.vtroot = ""
        self.apply_env_overrides()

    def load(self, settings_file):
        with open(settings_file, "r") as f:
            data = yaml.safe_load(f) or {}

        self.settings_file = settings_file
        self.topo = TopoSettings(**data.pop("topo", {}))
        self.vttablet = VttabletSettings(**data.pop("vttablet", {}))
        self.mysqlctl = MysqlctlSettings(**data.pop("mysqlctl", {}))
        self.log_level = data.pop("log_level", Settings.DEFAULT_LOG_LEVEL)
        self.hostname = data.pop("hostname", Settings.DEFAULT_HOSTNAME)
        self.vtdataroot = data.pop("vtdataroot", "")
        self.vtroot = data.pop("vtroot", "")

        if data:
            raise Exception(f"Unsupported config options: {list(data.keys())}")

        self.apply_env_overrides()
        self.validate()

    def apply_env_overrides(self):
        env = os.environ
        if env.get("VTDATAROOT"):
            self.vtdataroot = env["VTDATAROOT"]
        if env.get("VTROOT"):
            self.vtroot = env["VTROOT"]
        if env.get("CLUSTER_HOSTNAME"):
            self.hostname = env["CLUSTER_HOSTNAME"]
        if env.get("VTTABLET_BINARY"):
            self.vttablet.binary = env["VTTABLET_BINARY"]
        if env.get("MYSQLCTL_BINARY"):
            self.mysqlctl.binary = env["MYSQLCTL_BINARY"]

    def validate_log_level(self):
        if self.log_level not in ["critical", "error", "warning", "info", "debug"]:
            raise ValueError(f"wrong log level {self.log_level}")

    def validate(self):
        self.topo.validate()
        self.vttablet.validate()
        self.mysqlctl.validate()
        self.validate_log_level()
        if not isinstance(self.hostname, str) or not self.hostname:
            raise ValueError(f"hostname should be non-empty string and not {stype(self.hostname)}")
        if not isinstance(self.vtdataroot, str):
            raise ValueError(f"vtdataroot should be string and not {stype(self.vtdataroot)}")
        if not isinstance(self.vtroot, str):
            raise ValueError(f"vtroot should be string and not {stype(self.vtroot)}")
