"""
Garage command execution inside the container.

Garage images differ in which shell they ship and where the garage binary
lives, so each command is tried against a fixed, ordered list of shells
and binary paths until one combination exits successfully.
"""

import logging
import shlex
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .docker_cli import DockerCLI

logger = logging.getLogger(__name__)

SHELLS = ["/bin/sh", "/bin/bash", "/bin/ash", "sh", "bash"]
GARAGE_PATHS = [
    "/usr/local/bin/garage",
    "/garage",
    "/usr/bin/garage",
    "/opt/garage/garage",
    "garage",
]

FAILURE_HINTS = [
    "Wrong Docker image (try dxflrs/garage:latest instead)",
    "Container not properly initialized",
    "Garage binary not found or not executable",
    "Missing shell in container",
]


@dataclass
class ExecResult:
    """Outcome of a garage command run through the executor."""

    success: bool
    output: str = ""
    shell: Optional[str] = None
    binary: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


class GarageExecutor:
    """Runs garage subcommands in a container whose layout is not known up front."""

    def __init__(
        self,
        docker: DockerCLI,
        container_name: str,
        shells: Sequence[str] = SHELLS,
        garage_paths: Sequence[str] = GARAGE_PATHS,
    ):
        """
        Initialize the executor.

        Args:
            docker: Docker CLI wrapper
            container_name: Name of the Garage container
            shells: Candidate shell interpreters, in the order to try them
            garage_paths: Candidate garage binary paths, in the order to try them
        """
        self.docker = docker
        self.container_name = container_name
        self.shells = list(shells)
        self.garage_paths = list(garage_paths)

    def find_shell(self) -> Optional[str]:
        """Return the first candidate shell that is executable in the container."""
        for shell in self.shells:
            if self.docker.exec_ok(self.container_name, ["test", "-x", shell]):
                return shell
        return None

    def _attempts(self, command: str, shell: Optional[str]) -> List[Tuple[str, List[str]]]:
        if shell:
            return [(path, [shell, "-c", f"{path} {command}"]) for path in self.garage_paths]
        args = shlex.split(command)
        return [(path, [path] + args) for path in self.garage_paths]

    def run(self, command: str, capture: bool = False) -> ExecResult:
        """
        Run `garage <command>` in the container.

        Args:
            command: Garage subcommand line, e.g. "bucket list"
            capture: Return stdout instead of printing it

        Returns:
            ExecResult; success is False when every combination failed
        """
        logger.info(f"Executing: garage {command}")

        shell = self.find_shell()
        if shell is None:
            logger.warning("No shell found, trying direct execution...")

        for binary, argv in self._attempts(command, shell):
            result = self.docker.exec(self.container_name, argv, capture=capture)
            if result.returncode == 0:
                logger.debug(f"garage {command} succeeded with shell={shell} binary={binary}")
                return ExecResult(
                    success=True,
                    output=(result.stdout or "") if capture else "",
                    shell=shell,
                    binary=binary,
                )

        logger.error("Failed to execute garage command. This might be due to:")
        for hint in FAILURE_HINTS:
            print(f"  - {hint}")
        return ExecResult(success=False, shell=shell)
