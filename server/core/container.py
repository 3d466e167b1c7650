"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from services.auth import Authenticator
from services.deployment import DeployExecutor, DeploymentManager
from services.targets import TargetRegistry


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Targets are read once; the registry is immutable afterwards
    target_registry = providers.Singleton(
        TargetRegistry.from_settings,
        settings=settings
    )

    authenticator = providers.Singleton(
        Authenticator,
        registry=target_registry
    )

    deploy_executor = providers.Singleton(
        DeployExecutor,
        settings=settings
    )

    deployment_manager = providers.Singleton(
        DeploymentManager,
        registry=target_registry,
        executor=deploy_executor,
        history_size=settings.provided.run_history_size
    )


# Global container instance
container = Container()
