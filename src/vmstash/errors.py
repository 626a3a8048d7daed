# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/errors.py

"""Exception types raised by vmstash."""


class VmstashError(Exception):
    """Base class for every failure vmstash reports to the user."""


class ConfigError(VmstashError):
    """Raised when the configuration file is missing or invalid."""


class EngineError(VmstashError):
    """Raised when a restic command fails."""
    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        msg = message
        if returncode is not None:
            msg += f" (rc={returncode})"
        if stderr:
            msg += f"\nSTDERR: {stderr[:500]}"  # Truncate to avoid huge messages
        super().__init__(msg)


class StreamError(EngineError):
    """Raised when a streaming backup fails to decode or exits non-zero."""
    def __init__(self, message: str, returncode: int | None = None, last_error: str | None = None):
        self.last_error = last_error
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message, returncode=returncode)


class SnapshotError(VmstashError):
    """Raised when an LVM snapshot cannot be created or removed."""
    def __init__(self, message: str, output: str = ""):
        self.output = output
        if output:
            message = f"{message}\n{output.strip()}"
        super().__init__(message)


class PreflightError(VmstashError):
    """Raised when sizes or free space cannot be queried."""


class BackupError(VmstashError):
    """A failure while backing up one disk or config of a machine."""
    def __init__(self, machine_id: int, target: str, operation: str, cause: Exception):
        self.machine_id = machine_id
        self.target = target
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed for machine {machine_id} ({target}): {cause}")


class NoBackupsFound(VmstashError):
    """Raised when the repository holds no tagged backup runs."""
    def __init__(self, message: str = "no backups found"):
        super().__init__(message)
