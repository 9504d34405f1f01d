"""Test configuration helpers and shared fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("SETTINGS_SKIP_DOTENV", "1")

from utils.async_http import AsyncHTTP  # noqa: E402
from utils.logging_setup import (  # noqa: E402
    configure_logging,
    reset_current_test,
    set_current_test,
)
from utils.retry import RetryPolicy  # noqa: E402

FAST_POLICY = RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2.0, max_delay=1.0)


@pytest.fixture(autouse=True)
def _bind_test_id(request):
    """Tag every log record emitted during a test with the test's node id."""

    configure_logging("DEBUG")
    token = set_current_test(request.node.nodeid)
    yield
    reset_current_test(token)


class SleepRecorder:
    """Async stand-in for :func:`asyncio.sleep` that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return FAST_POLICY


@pytest.fixture
def mock_http() -> Callable[..., AsyncHTTP]:
    """Build an :class:`AsyncHTTP` whose requests are answered by ``handler``."""

    def factory(handler, base_url: str = "https://api.test") -> AsyncHTTP:
        return AsyncHTTP(base_url=base_url, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture(scope="session")
def kube_cluster_resource():
    """Session-wide cluster fixture; skips when no cluster is reachable."""

    from config.config import settings
    from k8s.cluster_resource import KubeClusterResource
    from k8s.errors import NoClusterError

    try:
        return KubeClusterResource.bootstrap(settings)
    except NoClusterError as exc:
        pytest.skip(f"No Kubernetes cluster available: {exc}")
