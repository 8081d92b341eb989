import os
import time
from logging import getLogger

import requests

from .config import Settings
from .errors import MalformedResponse, PrematureExit, ReadinessTimeout
from .utils import ProcessRunner
from .vtctl_process import VtctlProcess, vtctl_process_instance


logger = getLogger(__name__)


TABLET_STATE_FIELD = 'TabletStateName'


class VttabletProcess(ProcessRunner):
    """Handle for a vttablet started by the test cluster.

    ``setup()`` launches the binary and blocks until its status page reports
    the expected ``TabletStateName``; ``tear_down()`` stops it with SIGTERM,
    escalating to SIGKILL after ``stop_grace_period``.
    """

    def __init__(
            self,
            tablet_uid,
            port,
            grpc_port,
            verify_url,
            common_arg: VtctlProcess,
            name='vttablet',
            binary='vttablet',
            file_to_log_queries='',
            tablet_path='',
            cell='',
            pid_file='',
            shard='',
            log_dir='',
            tablet_hostname='localhost',
            keyspace='',
            tablet_type='replica',
            health_check_interval=5,
            backup_storage_implementation='file',
            file_backup_storage_root='',
            service_map='',
            vtctld_address='',
            directory='',
            extra_args=None,
            env=None,
            ready_timeout=60.0,
            poll_interval=0.3,
            stop_grace_period=10.0,
            probe_timeout=1.0,
            serving_state='NOT_SERVING',
    ):
        super().__init__(name, env=env)
        self.binary = binary
        self.tablet_uid = tablet_uid
        self.port = port
        self.grpc_port = grpc_port
        self.verify_url = verify_url
        self.common_arg = common_arg
        self.file_to_log_queries = file_to_log_queries
        self.tablet_path = tablet_path
        self.cell = cell
        self.pid_file = pid_file
        self.shard = shard
        self.log_dir = log_dir
        self.tablet_hostname = tablet_hostname
        self.keyspace = keyspace
        self.tablet_type = tablet_type
        self.health_check_interval = health_check_interval
        self.backup_storage_implementation = backup_storage_implementation
        self.file_backup_storage_root = file_backup_storage_root
        self.service_map = service_map
        self.vtctld_address = vtctld_address
        self.directory = directory
        self.extra_args = list(extra_args or [])
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.stop_grace_period = stop_grace_period
        self.probe_timeout = probe_timeout
        self.serving_state = serving_state

    def build_args(self):
        # extra_args go last so they win for flags the binary parses last-wins
        args = self.common_arg.topo_args() + [
            "-log_queries_to_file", self.file_to_log_queries,
            "-tablet-path", self.tablet_path,
            "-port", str(self.port),
            "-grpc_port", str(self.grpc_port),
            "-pid_file", self.pid_file,
            "-init_shard", self.shard,
            "-log_dir", self.log_dir,
            "-tablet_hostname", self.tablet_hostname,
            "-init_keyspace", self.keyspace,
            "-init_tablet_type", self.tablet_type,
            "-health_check_interval", f"{self.health_check_interval}s",
            "-enable_semi_sync",
            "-enable_replication_reporter",
            "-backup_storage_implementation", self.backup_storage_implementation,
            "-file_backup_storage_root", self.file_backup_storage_root,
            "-restore_from_backup",
            "-service_map", self.service_map,
            "-vtctld_addr", self.vtctld_address,
        ]
        return args + self.extra_args

    def build_cmd(self):
        return [self.binary] + self.build_args()

    def setup(self, target_state=None):
        """Start vttablet and wait until it reports ``target_state``.

        Raises:
            LaunchFailure: the binary could not be executed
            PrematureExit: the process died before reaching the state
            ReadinessTimeout: ``ready_timeout`` elapsed; the process is left
                running if it is still alive
            MalformedResponse: the status page answered 200 with a body that
                is not a JSON object
        """
        target_state = target_state or self.serving_state
        self.run()

        deadline = time.monotonic() + self.ready_timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            # a probe never outlives the deadline
            if self.wait_for_status(target_state, timeout=min(self.probe_timeout, remaining)):
                logger.info(f"{self.name} {self.tablet_path} reached {target_state}")
                return
            remaining = deadline - time.monotonic()
            returncode = self._poll_exit(timeout=max(min(self.poll_interval, remaining), 0))
            if returncode is not None:
                raise PrematureExit(self.name, returncode)

        try:
            returncode = self.exit_code()
        except Exception as e:
            raise PrematureExit(self.name, None, cause=e) from e
        raise ReadinessTimeout(self.name, self.ready_timeout, returncode)

    def _poll_exit(self, timeout):
        # a failed wait on the child counts as losing it
        try:
            return self.wait_exit(timeout=timeout)
        except Exception as e:
            raise PrematureExit(self.name, None, cause=e) from e

    def get_tablet_status(self, timeout=None):
        """One probe of the status page; None when unreachable or not 200."""
        if timeout is None:
            timeout = self.probe_timeout
        try:
            resp = requests.get(self.verify_url, timeout=timeout)
        except requests.RequestException as e:
            logger.debug(f"{self.name} status probe failed: {e}")
            return None

        if resp.status_code != 200:
            logger.debug(f"{self.name} status probe returned {resp.status_code}")
            return None

        try:
            result = resp.json()
        except ValueError:
            raise MalformedResponse(self.name, self.verify_url, resp.text) from None
        if not isinstance(result, dict):
            raise MalformedResponse(self.name, self.verify_url, resp.text)
        return result.get(TABLET_STATE_FIELD)

    def wait_for_status(self, status, timeout=None):
        return self.get_tablet_status(timeout=timeout) == status

    def tear_down(self):
        if self.process is None:
            logger.info(f"No process found for vttablet {self.tablet_uid}")
            return None
        return self.stop(grace_period=self.stop_grace_period)


def vttablet_process_instance(
        port,
        grpc_port,
        tablet_uid,
        cell,
        shard,
        keyspace,
        vtctld_port,
        tablet_type,
        topo_port,
        hostname,
        tmp_directory,
        extra_args=None,
        settings: Settings = None,
):
    """Build a VttabletProcess with the cluster's path layout; it is not started."""
    settings = settings or Settings()
    tablet_settings = settings.vttablet
    tablet_dir = f"vt_{tablet_uid:010d}"

    vttablet = VttabletProcess(
        tablet_uid=tablet_uid,
        port=port,
        grpc_port=grpc_port,
        verify_url=f"http://{hostname}:{port}/debug/vars",
        common_arg=vtctl_process_instance(topo_port, hostname, settings.topo),
        binary=tablet_settings.binary,
        file_to_log_queries=os.path.join(tmp_directory, tablet_dir, "querylog.txt"),
        directory=os.path.join(settings.vtdataroot, tablet_dir),
        tablet_path=f"{cell}-{tablet_uid:010d}",
        cell=cell,
        service_map=tablet_settings.service_map,
        log_dir=tmp_directory,
        shard=shard,
        tablet_hostname=hostname,
        keyspace=keyspace,
        tablet_type="rdonly" if tablet_type == "rdonly" else "replica",
        health_check_interval=tablet_settings.health_check_interval,
        backup_storage_implementation=tablet_settings.backup_storage_implementation,
        file_backup_storage_root=os.path.join(settings.vtdataroot, "backups"),
        pid_file=os.path.join(settings.vtdataroot, tablet_dir, "vttablet.pid"),
        vtctld_address=f"http://{hostname}:{vtctld_port}",
        extra_args=extra_args,
        ready_timeout=tablet_settings.ready_timeout,
        poll_interval=tablet_settings.poll_interval,
        stop_grace_period=tablet_settings.stop_grace_period,
        probe_timeout=tablet_settings.probe_timeout,
        serving_state=tablet_settings.serving_state,
    )
    return vttablet
