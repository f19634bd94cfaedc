"""
Docker and docker-compose command wrappers.

Thin subprocess wrappers around the docker CLI. Failures are reported
through exit status; only a missing binary raises.
"""

import logging
import shlex
import shutil
import subprocess
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class DockerNotFoundError(RuntimeError):
    """Raised when the docker binary is not available."""


class ComposeNotFoundError(RuntimeError):
    """Raised when neither docker-compose nor the compose plugin is available."""


def parse_ports(text: str) -> List[str]:
    """Split a mapping string such as '3910:3900 3911:3901' into a list."""
    return text.split()


def port_args(ports: Sequence[str]) -> List[str]:
    """Turn host:container mappings into docker run -p arguments."""
    args: List[str] = []
    for port in ports:
        args.extend(["-p", port])
    return args


def parse_port_mappings(output: str) -> Dict[int, int]:
    """
    Parse `docker port` output into a container port to host port map.

    Lines look like '3900/tcp -> 0.0.0.0:3910' or '3900/tcp -> [::]:3910'.
    The first binding of each container port wins.

    Args:
        output: Raw output of `docker port <container>`

    Returns:
        Mapping of container port to host port
    """
    mappings: Dict[int, int] = {}
    for line in output.splitlines():
        if "->" not in line:
            continue
        left, right = line.split("->", 1)
        try:
            container_port = int(left.strip().split("/")[0])
            host_port = int(right.strip().rsplit(":", 1)[1])
        except (ValueError, IndexError):
            logger.debug(f"Skipping unparsable port line: {line!r}")
            continue
        mappings.setdefault(container_port, host_port)
    return mappings


class DockerCLI:
    """Runs docker commands, optionally through sudo."""

    def __init__(self, sudo: bool = False, binary: str = "docker"):
        self.sudo = sudo
        self.binary = binary

    def _command(self, args: Sequence[str]) -> List[str]:
        prefix = ["sudo", self.binary] if self.sudo else [self.binary]
        return prefix + [str(arg) for arg in args]

    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        discard_errors: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a docker subcommand.

        Args:
            args: Arguments after the docker binary
            capture: Capture stdout/stderr instead of passing them through
            discard_errors: Send stderr to /dev/null

        Returns:
            The completed process
        """
        command = self._command(args)
        logger.debug(f"Running: {shlex.join(command)}")

        stdout = subprocess.PIPE if capture else None
        if discard_errors:
            stderr = subprocess.DEVNULL
        else:
            stderr = subprocess.PIPE if capture else None

        return subprocess.run(command, stdout=stdout, stderr=stderr, text=True, check=False)

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def ensure_available(self) -> None:
        if not self.available():
            raise DockerNotFoundError("Docker is not installed or not in PATH")
        if self.sudo and shutil.which("sudo") is None:
            raise DockerNotFoundError("sudo was requested but is not installed or not in PATH")

    def _container_names(self, include_stopped: bool) -> List[str]:
        args = ["ps", "--format", "{{.Names}}"]
        if include_stopped:
            args.insert(1, "-a")
        result = self.run(args)
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def container_exists(self, name: str) -> bool:
        return name in self._container_names(include_stopped=True)

    def container_running(self, name: str) -> bool:
        return name in self._container_names(include_stopped=False)

    def run_container(
        self,
        name: str,
        image: str,
        ports: Sequence[str],
        volumes: Sequence[str],
        command: Sequence[str],
    ) -> bool:
        """Create and start a detached container that restarts unless stopped."""
        args = ["run", "-d", "--name", name, "--restart", "unless-stopped"]
        args += port_args(ports)
        for volume in volumes:
            args += ["-v", volume]
        args.append(image)
        args += list(command)
        return self.run(args, capture=False).returncode == 0

    def start(self, name: str) -> bool:
        return self.run(["start", name], capture=False).returncode == 0

    def stop(self, name: str) -> bool:
        return self.run(["stop", name], capture=False).returncode == 0

    def restart(self, name: str) -> bool:
        return self.run(["restart", name], capture=False).returncode == 0

    def remove(self, name: str) -> bool:
        """Force-remove a container, running or not."""
        return self.run(["rm", "-f", name]).returncode == 0

    def logs(self, name: str, tail: Optional[int] = None) -> bool:
        args = ["logs"]
        if tail:
            args += ["--tail", str(tail)]
        args.append(name)
        return self.run(args, capture=False).returncode == 0

    def port(self, name: str) -> Optional[str]:
        """Return `docker port` output, or None if it failed."""
        result = self.run(["port", name], discard_errors=True)
        if result.returncode != 0:
            return None
        return result.stdout

    def inspect(self, name: str, fmt: str) -> Optional[str]:
        """Return one `docker inspect --format` value, or None if it failed."""
        result = self.run(["inspect", name, f"--format={fmt}"], discard_errors=True)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def exec(
        self,
        name: str,
        args: Sequence[str],
        capture: bool = False,
        interactive: bool = False,
        discard_errors: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a command inside a container."""
        exec_args = ["exec"]
        if interactive:
            exec_args.append("-it")
        exec_args.append(name)
        exec_args += list(args)
        return self.run(exec_args, capture=capture, discard_errors=discard_errors)

    def exec_ok(self, name: str, args: Sequence[str]) -> bool:
        """Run a command inside a container, discarding output, and report success."""
        return self.exec(name, args, capture=True).returncode == 0


class ComposeCLI:
    """Drives a compose file through docker-compose or the docker compose plugin."""

    CANDIDATES = (["docker-compose"], ["docker", "compose"])

    def __init__(
        self,
        compose_file: str,
        sudo: bool = False,
        binary: Optional[List[str]] = None,
    ):
        self.compose_file = compose_file
        self.sudo = sudo
        self._binary = binary

    @classmethod
    def resolve_binary(cls) -> List[str]:
        """
        Find a working compose command.

        Raises:
            ComposeNotFoundError: If no candidate answers `version`
        """
        for candidate in cls.CANDIDATES:
            if shutil.which(candidate[0]) is None:
                continue
            result = subprocess.run(
                [*candidate, "version"], capture_output=True, text=True, check=False
            )
            if result.returncode == 0:
                return list(candidate)
        raise ComposeNotFoundError(
            "docker-compose or the docker compose plugin is required but was not found"
        )

    def ensure_available(self) -> None:
        if self._binary is None:
            self._binary = self.resolve_binary()

    @property
    def binary(self) -> List[str]:
        self.ensure_available()
        return self._binary

    def run(self, args: Sequence[str]) -> bool:
        command = list(self.binary) + ["-f", self.compose_file] + list(args)
        if self.sudo:
            command.insert(0, "sudo")
        logger.debug(f"Running: {shlex.join(command)}")
        return subprocess.run(command, check=False).returncode == 0

    def up(self) -> bool:
        return self.run(["up", "-d"])

    def start(self) -> bool:
        return self.run(["start"])

    def stop(self) -> bool:
        return self.run(["stop"])

    def restart(self) -> bool:
        return self.run(["restart"])

    def down(self) -> bool:
        return self.run(["down"])
