"""
Container runtimes for the two deployment variants.

The docker variant creates one named container with `docker run`; the
compose variant writes a compose descriptor and drives it with
docker-compose. Queries by container name go through the docker CLI in
both cases.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .config_generator import (
    CONTAINER_CONFIG_PATH,
    CONTAINER_DATA_DIR,
    CONTAINER_META_DIR,
    SERVER_COMMAND,
    write_compose_file,
)
from .docker_cli import ComposeCLI, DockerCLI
from .settings import VARIANT_COMPOSE, ManagerSettings

logger = logging.getLogger(__name__)


class ContainerRuntime(ABC):
    """Lifecycle of the single Garage container."""

    supports_port_change = False

    def __init__(self, settings: ManagerSettings, docker: DockerCLI):
        self.settings = settings
        self.docker = docker

    @property
    def container_name(self) -> str:
        return self.settings.container_name

    def ensure_available(self) -> None:
        self.docker.ensure_available()

    def exists(self) -> bool:
        return self.docker.container_exists(self.container_name)

    def running(self) -> bool:
        return self.docker.container_running(self.container_name)

    def managed_files(self) -> List[str]:
        """Files on disk that belong to this deployment, besides the data dir."""
        return [self.settings.config_file]

    @abstractmethod
    def provision(self, image: str, ports: Sequence[str]) -> bool:
        """Create and start the container."""

    @abstractmethod
    def start(self) -> bool:
        """Start the stopped container."""

    @abstractmethod
    def stop(self) -> bool:
        """Stop the running container."""

    @abstractmethod
    def restart(self) -> bool:
        """Restart the container."""

    @abstractmethod
    def remove(self) -> bool:
        """Remove the container, keeping configuration and data."""


class DockerRunRuntime(ContainerRuntime):
    """A container created directly with `docker run`."""

    supports_port_change = True

    def volumes(self) -> List[str]:
        data_dir = os.path.abspath(self.settings.data_dir)
        return [
            f"{os.path.abspath(self.settings.config_file)}:{CONTAINER_CONFIG_PATH}",
            f"{data_dir}/meta:{CONTAINER_META_DIR}",
            f"{data_dir}/data:{CONTAINER_DATA_DIR}",
        ]

    def provision(self, image: str, ports: Sequence[str]) -> bool:
        return self.docker.run_container(
            name=self.container_name,
            image=image,
            ports=ports,
            volumes=self.volumes(),
            command=SERVER_COMMAND,
        )

    def start(self) -> bool:
        return self.docker.start(self.container_name)

    def stop(self) -> bool:
        return self.docker.stop(self.container_name)

    def restart(self) -> bool:
        return self.docker.restart(self.container_name)

    def remove(self) -> bool:
        return self.docker.remove(self.container_name)


class ComposeRuntime(ContainerRuntime):
    """A container described by a compose file with fixed ports."""

    def __init__(
        self,
        settings: ManagerSettings,
        docker: DockerCLI,
        compose: Optional[ComposeCLI] = None,
    ):
        super().__init__(settings, docker)
        self.compose = compose or ComposeCLI(settings.compose_file, sudo=settings.use_sudo)

    def ensure_available(self) -> None:
        super().ensure_available()
        self.compose.ensure_available()

    def managed_files(self) -> List[str]:
        return [self.settings.config_file, self.settings.compose_file]

    def provision(self, image: str, ports: Sequence[str]) -> bool:
        # Image and ports come from the compose descriptor
        write_compose_file(self.settings)
        return self.compose.up()

    def start(self) -> bool:
        return self.compose.start()

    def stop(self) -> bool:
        return self.compose.stop()

    def restart(self) -> bool:
        return self.compose.restart()

    def remove(self) -> bool:
        if not self.compose.down():
            # Descriptor may be gone; fall back to removing by name
            return self.docker.remove(self.container_name)
        return True


def build_runtime(settings: ManagerSettings, docker: Optional[DockerCLI] = None) -> ContainerRuntime:
    """Create the runtime for the configured variant."""
    docker = docker or DockerCLI(sudo=settings.use_sudo)
    if settings.variant == VARIANT_COMPOSE:
        return ComposeRuntime(settings, docker)
    return DockerRunRuntime(settings, docker)
