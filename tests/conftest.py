"""Shared fixtures: targets, settings and a controllable deploy executor."""

from typing import List

import httpx
import pytest

from core.config import Settings
from helpers import ADMIN_TOKEN, RELEASE_SECRET, STAGING_SECRET, FakeExecutor
from models.targets import TargetConfig
from services.deployment import DeploymentManager
from services.targets import TargetRegistry


@pytest.fixture
def targets() -> List[TargetConfig]:
    return [
        TargetConfig(name="staging", secret=STAGING_SECRET, command=["/bin/true"]),
        TargetConfig(name="release", secret=RELEASE_SECRET, command=["/bin/true"]),
    ]


@pytest.fixture
def registry(targets) -> TargetRegistry:
    return TargetRegistry(targets)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        targets_file=str(tmp_path / "targets.yaml"),
        admin_token=ADMIN_TOKEN,
        deploy_timeout=30.0,
        shutdown_grace=1.0,
    )


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def manager(registry, fake_executor) -> DeploymentManager:
    return DeploymentManager(registry, fake_executor, history_size=5)


@pytest.fixture
async def client(settings, registry, manager):
    """ASGI client with the container wired to the test registry and manager."""
    from core.container import container
    from main import app

    with container.settings.override(settings), \
            container.target_registry.override(registry), \
            container.deployment_manager.override(manager):
        container.authenticator.reset()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://deploy.test") as c:
            yield c
        await manager.join()
    container.authenticator.reset()
