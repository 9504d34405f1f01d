"""Lifecycle management of namespaced cluster fixtures.

:class:`KubeClusterResource` is built once per test session and handed to the
fixtures that need it; there is no process-wide instance.

Example::

    resource = KubeClusterResource.bootstrap(settings)
    resource.create_namespace("mk-e2e-connectors")
    try:
        resource.create_custom_resources("fixtures/kafka-connector.yaml")
        ...
    finally:
        resource.delete_custom_resources()
        resource.delete_namespaces()
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from config.config import Settings
from k8s.cluster import KubeCluster, Minishift, OpenShift
from k8s.cmd_client import KubeCmdClient
from k8s.kube_client import KubeClient

logger = logging.getLogger(__name__)


class KubeClusterResource:
    def __init__(
        self,
        cluster: KubeCluster,
        cmd_client: KubeCmdClient,
        client: KubeClient,
        *,
        skip_teardown: bool = False,
        default_namespace: Optional[str] = None,
    ) -> None:
        self.cluster = cluster
        self._cmd_client = cmd_client
        self._client = client
        self.skip_teardown = skip_teardown

        namespace = default_namespace or cmd_client.default_namespace()
        self._namespace = namespace
        self.test_namespace = namespace
        self.bindings_namespaces: List[str] = []
        self._deployment_namespaces: List[str] = []
        self._deployment_resources: List[str] = []
        self._cluster_operator_configs: List[str] = []
        logger.info("Cluster default namespace is %s", namespace)

    @classmethod
    def bootstrap(cls, settings: Settings) -> "KubeClusterResource":
        """Discover the running cluster and build its clients.

        Raises :class:`k8s.errors.NoClusterError` when nothing is reachable.
        """

        cluster = KubeCluster.bootstrap(
            kubeconfig=settings.kubeconfig, test_cluster=settings.test_cluster
        )
        return cls(
            cluster,
            cluster.default_cmd_client(),
            cluster.default_client(),
            skip_teardown=settings.skip_teardown,
        )

    # ------------------------------------------------------------------
    # Namespace handling
    # ------------------------------------------------------------------
    @property
    def namespace(self) -> str:
        """Namespace currently used by the clients."""

        return self._namespace

    def set_namespace(self, future_namespace: str) -> str:
        """Switch the clients to ``future_namespace`` and return the previous one."""

        previous = self._namespace
        logger.info("Changing to %s namespace", future_namespace)
        self._namespace = future_namespace
        return previous

    def cmd_kube_client(self, in_namespace: Optional[str] = None) -> KubeCmdClient:
        return self._cmd_client.namespace(in_namespace or self._namespace)

    def kube_client(self, in_namespace: Optional[str] = None) -> KubeClient:
        return self._client.namespace(in_namespace or self._namespace)

    def create_namespaces(self, use_namespace: str, namespaces: Sequence[str]) -> None:
        """Create ``namespaces`` and switch the clients to ``use_namespace``.

        A namespace left behind by an earlier run is deleted and re-created
        unless teardown is skipped.
        """

        self.bindings_namespaces = list(namespaces)
        for namespace in namespaces:
            if self.kube_client().get_namespace(namespace) is not None and not self.skip_teardown:
                logger.warning("Namespace %s is already created, going to delete it", namespace)
                self.kube_client().delete_namespace(namespace)
                self.cmd_kube_client().wait_for_resource_deletion("Namespace", namespace)

            logger.info("Creating Namespace %s", namespace)
            self._deployment_namespaces.append(namespace)
            self.kube_client().create_namespace(namespace)
            self.cmd_kube_client().wait_for_resource_creation("Namespace", namespace)

        self.test_namespace = use_namespace
        logger.info("Using Namespace %s", use_namespace)
        self.set_namespace(use_namespace)

    def create_namespace(self, use_namespace: str) -> None:
        """Create one namespace; remove it with :meth:`delete_namespaces`."""

        self.create_namespaces(use_namespace, [use_namespace])

    def delete_namespaces(self) -> None:
        """Delete created namespaces in reverse creation order."""

        for namespace in reversed(self._deployment_namespaces):
            logger.info("Deleting Namespace %s", namespace)
            self.kube_client().delete_namespace(namespace)
            self.cmd_kube_client().wait_for_resource_deletion("Namespace", namespace)
        self._deployment_namespaces.clear()
        self.bindings_namespaces = []
        logger.info("Using Namespace %s", self.test_namespace)
        self.set_namespace(self.test_namespace)

    # ------------------------------------------------------------------
    # Custom resources
    # ------------------------------------------------------------------
    def create_custom_resources(self, *resources: str) -> None:
        """Create resources from YAML files; remove them with :meth:`delete_custom_resources`."""

        for resource in resources:
            logger.info("Creating resources %s in Namespace %s", resource, self._namespace)
            self._deployment_resources.append(resource)
            self.cmd_kube_client().client_with_admin().create(resource)

    def delete_custom_resources(self, *resources: str) -> None:
        """Delete ``resources``, or every tracked resource in reverse order."""

        if resources:
            for resource in resources:
                logger.info("Deleting resources %s", resource)
                self.cmd_kube_client().delete(resource)
                if resource in self._deployment_resources:
                    self._deployment_resources.remove(resource)
            return

        for resource in reversed(self._deployment_resources):
            logger.info("Deleting resources %s", resource)
            self.cmd_kube_client().delete(resource)
        self._deployment_resources.clear()

    def install_cluster_operator_files(self, *configs: str) -> None:
        for config in configs:
            logger.info("Applying configuration file %s", config)
            self._cluster_operator_configs.append(config)
            self.cmd_kube_client().client_with_admin().apply(config)

    def delete_cluster_operator_install_files(self) -> None:
        """Delete service accounts, roles and CRDs applied for an operator, newest first."""

        while self._cluster_operator_configs:
            config = self._cluster_operator_configs.pop()
            logger.info("Deleting configuration file %s", config)
            self.cmd_kube_client().client_with_admin().delete(config)

    @property
    def deployed_resources(self) -> List[str]:
        return list(self._deployment_resources)

    # ------------------------------------------------------------------
    # Cluster facts
    # ------------------------------------------------------------------
    def default_olm_namespace(self) -> str:
        return self.cluster.default_olm_namespace()

    def is_not_kubernetes(self) -> bool:
        return isinstance(self.cluster, (OpenShift, Minishift))
