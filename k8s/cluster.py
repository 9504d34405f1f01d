"""Discovery of the Kubernetes flavour the harness is pointed at."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable, Dict, List, Optional, Sequence, Type

from k8s.cmd_client import KubeCmdClient, OcCmdClient, Runner
from k8s.errors import NoClusterError
from k8s.kube_client import KubeClient

logger = logging.getLogger(__name__)

_PROBE_TIMEOUT = 30


class KubeCluster:
    """Base class for a reachable cluster of one flavour."""

    NAME: str = "kubernetes"
    CMD: str = "kubectl"
    CMD_CLIENT: Type[KubeCmdClient] = KubeCmdClient
    OLM_NAMESPACE: str = "operators"

    def __init__(
        self,
        *,
        kubeconfig: Optional[str] = None,
        runner: Runner = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.kubeconfig = kubeconfig
        self._runner = runner
        self._which = which

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kubeconfig={self.kubeconfig!r})"

    def _probe(self, command: Sequence[str]) -> subprocess.CompletedProcess:
        return self._runner(
            list(command), capture_output=True, text=True, timeout=_PROBE_TIMEOUT
        )

    def _cli_command(self, *args: str) -> List[str]:
        command = [self.CMD]
        if self.kubeconfig:
            command += ["--kubeconfig", self.kubeconfig]
        return command + list(args)

    def is_available(self) -> bool:
        return self._which(self.CMD) is not None

    def is_cluster_up(self) -> bool:
        try:
            return self._probe(self._cli_command("cluster-info")).returncode == 0
        except (subprocess.SubprocessError, OSError) as exc:
            logger.debug("Cluster probe for %s failed: %s", self.NAME, exc)
            return False

    def default_cmd_client(self) -> KubeCmdClient:
        return self.CMD_CLIENT(kubeconfig=self.kubeconfig, runner=self._runner)

    def default_client(self) -> KubeClient:
        return KubeClient.from_kubeconfig(self.kubeconfig)

    def default_olm_namespace(self) -> str:
        return self.OLM_NAMESPACE

    @staticmethod
    def bootstrap(
        *,
        kubeconfig: Optional[str] = None,
        test_cluster: Optional[str] = None,
        runner: Runner = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> "KubeCluster":
        """Return the first cluster flavour that is installed and running.

        ``test_cluster`` restricts the search to one flavour by name.
        """

        candidates: List[Type[KubeCluster]] = list(CLUSTER_TYPES.values())
        if test_cluster:
            try:
                candidates = [CLUSTER_TYPES[test_cluster.lower()]]
            except KeyError as exc:
                raise NoClusterError(
                    f"Unknown TEST_CLUSTER '{test_cluster}'; expected one of "
                    + ", ".join(sorted(CLUSTER_TYPES))
                ) from exc

        attempts: List[str] = []
        for cluster_type in candidates:
            cluster = cluster_type(kubeconfig=kubeconfig, runner=runner, which=which)
            if not cluster.is_available():
                attempts.append(f"{cluster.NAME}: {cluster.CMD} not installed")
                continue
            if not cluster.is_cluster_up():
                attempts.append(f"{cluster.NAME}: not running")
                continue
            logger.info("Using %s cluster", cluster.NAME)
            return cluster

        raise NoClusterError("No cluster found; " + "; ".join(attempts))


class Kubernetes(KubeCluster):
    pass


class OpenShift(KubeCluster):
    NAME = "openshift"
    CMD = "oc"
    CMD_CLIENT = OcCmdClient
    OLM_NAMESPACE = "openshift-marketplace"

    def is_cluster_up(self) -> bool:
        try:
            return self._probe(self._cli_command("whoami")).returncode == 0
        except (subprocess.SubprocessError, OSError) as exc:
            logger.debug("Cluster probe for %s failed: %s", self.NAME, exc)
            return False


class Minishift(OpenShift):
    NAME = "minishift"
    CMD = "minishift"

    def is_cluster_up(self) -> bool:
        try:
            result = self._probe([self.CMD, "status"])
        except (subprocess.SubprocessError, OSError) as exc:
            logger.debug("Cluster probe for %s failed: %s", self.NAME, exc)
            return False
        return result.returncode == 0 and "Running" in (result.stdout or "")


# Probe order: the most specific flavour first.
CLUSTER_TYPES: Dict[str, Type[KubeCluster]] = {
    "minishift": Minishift,
    "openshift": OpenShift,
    "kubernetes": Kubernetes,
}
