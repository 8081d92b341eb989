import os
import signal
import subprocess
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from enum import Enum
from logging import getLogger

from .errors import LaunchFailure

logger = getLogger(__name__)


class GracefulKiller:
    kill_now = False

    def __init__(self):
        signal.signal(signal.SIGINT, self.exit_gracefully)
        signal.signal(signal.SIGTERM, self.exit_gracefully)

    def exit_gracefully(self, signum, frame):
        self.kill_now = True


class Status(Enum):
    NONE = 0
    STARTING = 1
    RUNNING = 2
    EXITED = 3


class ProcessRunner:
    """Owns one child process and publishes its exit exactly once.

    The child inherits the supervisor's stdout / stderr and environment
    (plus ``env`` overrides). A daemon thread blocks on ``Popen.wait()`` and
    is the only writer of ``exit_future``; every reader gets the cached
    result, so the exit can be observed from both the readiness loop and
    ``stop()`` without being consumed twice.
    """

    DEFAULT_STOP_GRACE_PERIOD = 10.0

    def __init__(self, name, cmd=None, env=None, cwd=None):
        self.name = name
        self.cmd = cmd or []
        self.env = env or {}
        self.cwd = cwd
        self.process = None
        self.status = Status.NONE
        self.exit_future = None
        self.exit_waiter_thread = None

    def build_cmd(self):
        return list(self.cmd)

    @property
    def pid(self):
        process = self.process
        return process.pid if process is not None else None

    def is_running(self):
        return self.status == Status.RUNNING

    def run(self):
        if self.process is not None:
            raise RuntimeError(
                f"process '{self.name}' is already running (pid {self.process.pid})"
            )

        cmd = self.build_cmd()
        subprocess_env = os.environ.copy()
        subprocess_env.update(self.env)

        logger.info(' '.join(cmd))
        self.status = Status.STARTING
        try:
            process = subprocess.Popen(cmd, env=subprocess_env, cwd=self.cwd)
        except OSError as e:
            self.status = Status.NONE
            logger.error(f"Failed to start process '{self.name}': {e}")
            raise LaunchFailure(self.name, e) from e

        exit_future = Future()
        self.process = process
        self.exit_future = exit_future
        self.status = Status.RUNNING
        logger.debug(f"Started process {process.pid}: {self.name}")

        self.exit_waiter_thread = threading.Thread(
            target=self._wait_and_publish,
            args=(process, exit_future),
            daemon=True,
            name=f"ExitWaiter-{process.pid}",
        )
        self.exit_waiter_thread.start()

    def _wait_and_publish(self, process, exit_future):
        try:
            returncode = process.wait()
        except Exception as e:
            logger.error(f"Waiting for process '{self.name}' ({process.pid}) failed: {e}")
            self._release(exit_future)
            exit_future.set_exception(e)
            return
        logger.info(f"process '{self.name}' ({process.pid}) exited with code {returncode}")
        self._release(exit_future)
        exit_future.set_result(returncode)

    def _release(self, exit_future):
        # a newer run() may already own the handle
        if self.exit_future is exit_future:
            self.status = Status.EXITED
            self.process = None

    def exit_code(self):
        """Return code of the last child, or None while it is still alive."""
        if self.exit_future is None or not self.exit_future.done():
            return None
        return self.exit_future.result()

    def wait_exit(self, timeout=None):
        """Block up to ``timeout`` seconds; None means the child is still alive."""
        if self.exit_future is None:
            return None
        try:
            return self.exit_future.result(timeout=timeout)
        except FutureTimeoutError:
            return None

    def stop(self, grace_period=None):
        """SIGTERM, then SIGKILL once ``grace_period`` expires.

        Returns the child's return code, or None when nothing was running.
        """
        if grace_period is None:
            grace_period = self.DEFAULT_STOP_GRACE_PERIOD

        process, exit_future = self.process, self.exit_future
        if process is None or exit_future is None:
            logger.debug(f"No process found for {self.name}")
            return None

        try:
            logger.info(f"stopping {self.name} (pid {process.pid})")
            process.send_signal(signal.SIGTERM)
            try:
                return exit_future.result(timeout=grace_period)
            except FutureTimeoutError:
                logger.warning(
                    f"Process {process.pid} did not respond to SIGTERM in {grace_period}s, using SIGKILL"
                )
                process.kill()
                return exit_future.result()
        finally:
            if self.exit_future is exit_future:
                self.process = None

    def wait_complete(self):
        if self.exit_future is None:
            return None
        return self.exit_future.result()
