class ClusterProcessError(Exception):
    """Base class for failures of a supervised cluster process."""

    def __init__(self, name, message, returncode=None):
        super().__init__(f"process '{name}' {message}")
        self.name = name
        self.returncode = returncode


class LaunchFailure(ClusterProcessError):
    def __init__(self, name, cause):
        super().__init__(name, f"could not be launched (err: {cause})")
        self.cause = cause


class PrematureExit(ClusterProcessError):
    def __init__(self, name, returncode, cause=None):
        if cause is None:
            details = f"exit code: {returncode}"
        else:
            details = f"err: {cause}"
        super().__init__(name, f"exited prematurely ({details})", returncode)
        self.cause = cause


class ReadinessTimeout(ClusterProcessError):
    """Readiness was not observed in time.

    The process may still be running; ``returncode`` is None in that case
    and the caller owns the cleanup.
    """

    def __init__(self, name, timeout, returncode=None):
        if returncode is None:
            details = 'process still running'
        else:
            details = f'exit code: {returncode}'
        super().__init__(name, f"timed out after {timeout}s ({details})", returncode)
        self.timeout = timeout


class MalformedResponse(ClusterProcessError):
    def __init__(self, name, url, body):
        super().__init__(name, f"returned a non-JSON-object status from {url}: {body[:200]!r}")
        self.url = url
        self.body = body


class CommandFailed(ClusterProcessError):
    def __init__(self, name, cmd, returncode):
        super().__init__(
            name, f"command '{' '.join(cmd)}' failed (exit code: {returncode})", returncode,
        )
        self.cmd = cmd
