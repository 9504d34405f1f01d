"""Thin wrappers around the ``kubectl`` and ``oc`` command line tools."""

from __future__ import annotations

import copy
import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from k8s.errors import KubeClusterError
from utils.polling import wait_for

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 120.0
DEFAULT_WAIT_TIMEOUT = 300.0
DEFAULT_WAIT_INTERVAL = 2.0

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class CmdResult:
    command: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class KubeCmdClient:
    """Run ``kubectl`` bound to one namespace.

    Instances are cheap; :meth:`namespace` and :meth:`client_with_admin` return
    re-configured copies instead of mutating the receiver.
    """

    CMD: str = "kubectl"
    ADMIN_USER: Optional[str] = None

    def __init__(
        self,
        namespace: Optional[str] = None,
        *,
        kubeconfig: Optional[str] = None,
        as_user: Optional[str] = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        runner: Runner = subprocess.run,
    ) -> None:
        self._namespace = namespace
        self._kubeconfig = kubeconfig
        self._as_user = as_user
        self._timeout = timeout
        self._runner = runner

    @property
    def current_namespace(self) -> Optional[str]:
        return self._namespace

    def namespace(self, namespace: Optional[str]) -> "KubeCmdClient":
        clone = copy.copy(self)
        clone._namespace = namespace
        return clone

    def client_with_admin(self) -> "KubeCmdClient":
        if self.ADMIN_USER is None:
            return self
        clone = copy.copy(self)
        clone._as_user = self.ADMIN_USER
        return clone

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------
    def _base_command(self, namespaced: bool) -> List[str]:
        command = [self.CMD]
        if self._kubeconfig:
            command += ["--kubeconfig", self._kubeconfig]
        if self._as_user:
            command += ["--as", self._as_user]
        if namespaced and self._namespace:
            command += ["--namespace", self._namespace]
        return command

    def exec(self, *args: str, namespaced: bool = True, check: bool = True) -> CmdResult:
        command = self._base_command(namespaced) + list(args)
        logger.debug("Run command", extra={"command": " ".join(command)})
        try:
            completed = self._runner(
                command, capture_output=True, text=True, timeout=self._timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise KubeClusterError(
                command, -1, message=f"`{' '.join(command)}` timed out after {self._timeout}s"
            ) from exc
        except OSError as exc:
            raise KubeClusterError(
                command, -1, message=f"`{self.CMD}` could not be executed: {exc}"
            ) from exc

        result = CmdResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if check and not result.ok:
            raise KubeClusterError(command, result.returncode, result.stdout, result.stderr)
        return result

    # ------------------------------------------------------------------
    # Resource operations
    # ------------------------------------------------------------------
    def default_namespace(self) -> str:
        result = self.exec(
            "config", "view", "--minify", "--output", "jsonpath={..namespace}",
            namespaced=False,
            check=False,
        )
        namespace = result.stdout.strip() if result.ok else ""
        return namespace or "default"

    def create(self, *files: str) -> CmdResult:
        return self._with_files("create", files)

    def apply(self, *files: str) -> CmdResult:
        return self._with_files("apply", files)

    def delete(self, *files: str) -> CmdResult:
        return self._with_files("delete", files, "--ignore-not-found")

    def _with_files(self, verb: str, files: Sequence[str], *extra: str) -> CmdResult:
        if not files:
            raise ValueError(f"{verb} requires at least one file")
        args: List[str] = [verb]
        for path in files:
            args += ["--filename", path]
        return self.exec(*args, *extra)

    def get(self, kind: str, name: str) -> Dict[str, Any]:
        result = self.exec("get", kind, name, "--output", "json")
        return json.loads(result.stdout)

    def exists(self, kind: str, name: str) -> bool:
        result = self.exec(
            "get", kind, name, "--ignore-not-found", "--output", "name",
            namespaced=not self._is_cluster_scoped(kind),
        )
        return bool(result.stdout.strip())

    def wait_for_resource_creation(
        self,
        kind: str,
        name: str,
        *,
        timeout: float = DEFAULT_WAIT_TIMEOUT,
        interval: float = DEFAULT_WAIT_INTERVAL,
    ) -> None:
        logger.info("Wait for %s %s to be created", kind, name)
        wait_for(
            lambda: self.exists(kind, name),
            timeout=timeout,
            interval=interval,
            description=f"{kind} {name} creation",
        )

    def wait_for_resource_deletion(
        self,
        kind: str,
        name: str,
        *,
        timeout: float = DEFAULT_WAIT_TIMEOUT,
        interval: float = DEFAULT_WAIT_INTERVAL,
    ) -> None:
        logger.info("Wait for %s %s to be deleted", kind, name)
        wait_for(
            lambda: not self.exists(kind, name),
            timeout=timeout,
            interval=interval,
            description=f"{kind} {name} deletion",
        )

    @staticmethod
    def _is_cluster_scoped(kind: str) -> bool:
        return kind.lower() in {
            "namespace",
            "namespaces",
            "ns",
            "node",
            "nodes",
            "clusterrole",
            "clusterrolebinding",
            "customresourcedefinition",
            "crd",
            "project",
        }


class OcCmdClient(KubeCmdClient):
    """``oc`` flavour used on OpenShift and Minishift clusters."""

    CMD = "oc"
    ADMIN_USER = "system:admin"

    def default_namespace(self) -> str:
        result = self.exec("project", "-q", namespaced=False, check=False)
        namespace = result.stdout.strip() if result.ok else ""
        return namespace or "myproject"
