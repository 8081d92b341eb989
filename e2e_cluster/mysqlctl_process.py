import os
import subprocess
from logging import getLogger

from .config import Settings
from .errors import CommandFailed, LaunchFailure


logger = getLogger(__name__)


class MysqlctlProcess:
    """One-shot mysqlctl commands for a tablet's local MySQL instance."""

    def __init__(self, tablet_uid, mysql_port, log_directory, init_db_file,
                 name='mysqlctl', binary='mysqlctl', env=None):
        self.name = name
        self.binary = binary
        self.log_directory = log_directory
        self.tablet_uid = tablet_uid
        self.mysql_port = mysql_port
        self.init_db_file = init_db_file
        self.env = env or {}

    def _subprocess_env(self):
        subprocess_env = os.environ.copy()
        subprocess_env.update(self.env)
        return subprocess_env

    def init_cmd(self):
        return [
            self.binary,
            "-log_dir", self.log_directory,
            "-tablet_uid", str(self.tablet_uid),
            "-mysql_port", str(self.mysql_port),
            "init",
            "-init_db_sql_file", self.init_db_file,
        ]

    def shutdown_cmd(self):
        return [
            self.binary,
            "-tablet_uid", str(self.tablet_uid),
            "shutdown",
        ]

    def _run(self, cmd):
        logger.info(' '.join(cmd))
        try:
            result = subprocess.run(cmd, env=self._subprocess_env())
        except OSError as e:
            logger.error(f"Failed to start process '{self.name}': {e}")
            raise LaunchFailure(self.name, e) from e
        if result.returncode != 0:
            raise CommandFailed(self.name, cmd, result.returncode)

    def init_db(self):
        self._run(self.init_cmd())

    def start(self):
        # same argv as init_db, no separate "start" sub-command is issued
        logger.warning(f"{self.name} start for tablet {self.tablet_uid} runs 'init', not 'start'")
        self._run(self.init_cmd())

    def stop(self):
        """Launch ``mysqlctl shutdown`` without waiting for it to finish."""
        cmd = self.shutdown_cmd()
        logger.info(' '.join(cmd))
        try:
            return subprocess.Popen(cmd, env=self._subprocess_env())
        except OSError as e:
            logger.error(f"Failed to start process '{self.name}': {e}")
            raise LaunchFailure(self.name, e) from e


def mysqlctl_process_instance(tablet_uid, mysql_port, tmp_directory, settings: Settings = None):
    settings = settings or Settings()
    return MysqlctlProcess(
        tablet_uid=tablet_uid,
        mysql_port=mysql_port,
        log_directory=tmp_directory,
        init_db_file=os.path.join(settings.vtroot, "config", "init_db.sql"),
        binary=settings.mysqlctl.binary,
    )
