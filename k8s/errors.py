"""Exceptions raised by the Kubernetes fixture layer."""

from __future__ import annotations

from typing import Optional, Sequence


class NoClusterError(Exception):
    """Raised when no usable Kubernetes/OpenShift cluster is reachable."""


class KubeClusterError(Exception):
    """Raised when a cluster CLI command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            message
            or f"`{' '.join(self.command)}` exited with {returncode}: {stderr.strip()}"
        )
