"""Namespace-bound wrapper around the official Kubernetes Python client."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from k8s.errors import NoClusterError

logger = logging.getLogger(__name__)

TEST_NAMESPACE_LABELS: Dict[str, str] = {"app.kubernetes.io/managed-by": "mk-e2e"}


class KubeClient:
    def __init__(self, core_api: k8s_client.CoreV1Api, namespace: str = "default") -> None:
        self._core = core_api
        self._namespace = namespace

    @classmethod
    def from_kubeconfig(
        cls, kubeconfig: Optional[str] = None, namespace: str = "default"
    ) -> "KubeClient":
        """Load credentials from ``kubeconfig`` or, failing that, the pod's service account."""

        try:
            k8s_config.load_kube_config(config_file=kubeconfig)
        except (ConfigException, FileNotFoundError):
            try:
                k8s_config.load_incluster_config()
            except ConfigException as exc:
                raise NoClusterError(f"Unable to load Kubernetes configuration: {exc}") from exc
        return cls(k8s_client.CoreV1Api(), namespace)

    @property
    def current_namespace(self) -> str:
        return self._namespace

    def namespace(self, namespace: str) -> "KubeClient":
        return KubeClient(self._core, namespace)

    def get_namespace(self, name: str) -> Optional[k8s_client.V1Namespace]:
        try:
            return self._core.read_namespace(name)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise

    def namespace_exists(self, name: str) -> bool:
        return self.get_namespace(name) is not None

    def create_namespace(
        self, name: str, labels: Optional[Dict[str, str]] = None
    ) -> k8s_client.V1Namespace:
        body = k8s_client.V1Namespace(
            metadata=k8s_client.V1ObjectMeta(
                name=name, labels={**TEST_NAMESPACE_LABELS, **(labels or {})}
            )
        )
        return self._core.create_namespace(body=body)

    def delete_namespace(self, name: str) -> bool:
        """Request deletion; returns ``False`` when the namespace was already gone."""

        try:
            self._core.delete_namespace(name)
        except ApiException as exc:
            if exc.status == 404:
                logger.info("Namespace %s already deleted", name)
                return False
            raise
        return True

    def list_pods(self, label_selector: Optional[str] = None) -> List[k8s_client.V1Pod]:
        kwargs = {"label_selector": label_selector} if label_selector else {}
        pods = self._core.list_namespaced_pod(self._namespace, **kwargs)
        return list(pods.items)
