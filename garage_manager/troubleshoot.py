"""
Troubleshooting report for the Garage container.

Collects container metadata, host file checks, in-container shell and
binary probes, and the admin API health into printable lines.
"""

import logging
import os
from typing import Callable, List, Optional

import requests

from .admin_client import GarageAdminClient
from .config_generator import read_admin_token
from .console import Colors, box, colored
from .docker_cli import DockerCLI, parse_port_mappings
from .settings import VARIANT_COMPOSE, ManagerSettings

logger = logging.getLogger(__name__)

PROBE_SHELLS = ["/bin/sh", "/bin/bash", "/bin/ash", "/usr/bin/sh"]
PROBE_BINARIES = [
    "/usr/local/bin/garage",
    "/usr/bin/garage",
    "/garage",
    "/opt/garage/garage",
]

ADMIN_PORT = 3903

OK = "✓"
MISSING = "✗"


def _mark(flag: bool) -> str:
    return OK if flag else MISSING


def _heading(text: str) -> str:
    return colored(text, Colors.CYAN)


class Troubleshooter:
    """Builds the troubleshooting report."""

    def __init__(
        self,
        docker: DockerCLI,
        settings: ManagerSettings,
        admin_client_factory: Callable[..., GarageAdminClient] = GarageAdminClient,
    ):
        self.docker = docker
        self.settings = settings
        self.admin_client_factory = admin_client_factory

    @property
    def name(self) -> str:
        return self.settings.container_name

    def _exec_output(self, args: List[str]) -> Optional[str]:
        result = self.docker.exec(self.name, args, capture=True)
        if result.returncode != 0:
            return None
        return (result.stdout or "").rstrip()

    def container_section(self, exists: bool, running: bool) -> List[str]:
        lines = [_heading("1. Container Information:")]
        if not exists:
            lines.append(f"Container exists: {MISSING}")
            return lines

        lines.append(f"Container exists: {OK}")
        lines.append(f"Container running: {_mark(running)}")
        for title, fmt, fallback in (
            ("Container Image:", "{{.Config.Image}}", "Unable to get image info"),
            ("Container Command:", "{{.Config.Cmd}}", "Unable to get command info"),
            (
                "Container Mounts:",
                "{{range .Mounts}}{{.Source}}:{{.Destination}} {{end}}",
                "Unable to get mount info",
            ),
        ):
            value = self.docker.inspect(self.name, fmt)
            lines += ["", _heading(title), value if value is not None else fallback]
        return lines

    def files_section(self) -> List[str]:
        config_file = self.settings.config_file
        data_dir = self.settings.data_dir
        lines = [
            _heading("2. File System Check:"),
            f"Config file ({config_file}): {_mark(os.path.isfile(config_file))}",
            f"Data directory ({data_dir}): {_mark(os.path.isdir(data_dir))}",
        ]
        if self.settings.variant == VARIANT_COMPOSE:
            compose_file = self.settings.compose_file
            lines.append(f"Compose file ({compose_file}): {_mark(os.path.isfile(compose_file))}")
        return lines

    def shells_section(self) -> List[str]:
        lines = [_heading("3. Available Shells in Container:")]
        for shell in PROBE_SHELLS:
            lines.append(f"{shell}: {_mark(self.docker.exec_ok(self.name, ['test', '-x', shell]))}")
        return lines

    def binaries_section(self) -> List[str]:
        lines = [_heading("4. Garage Binary Locations in Container:")]
        for path in PROBE_BINARIES:
            present = self.docker.exec_ok(self.name, ["test", "-f", path])
            lines.append(f"{path}: {_mark(present)}")
            if present:
                listing = self._exec_output(["ls", "-la", path])
                if listing:
                    lines.append(listing)
        return lines

    def processes_section(self) -> List[str]:
        lines = [_heading("5. Container Process List:")]
        output = self._exec_output(["ps", "aux"])
        if output is None:
            output = self._exec_output(["ps", "-ef"])
        lines.append(output if output is not None else "Unable to get process list (ps command not available)")
        return lines

    def root_section(self) -> List[str]:
        output = self._exec_output(["ls", "-la", "/"])
        return [
            _heading("6. Container Root Directory:"),
            output if output is not None else "Unable to list root directory",
        ]

    def admin_section(self) -> List[str]:
        lines = [_heading("7. Admin API:")]
        mappings = parse_port_mappings(self.docker.port(self.name) or "")
        host_port = mappings.get(ADMIN_PORT)
        if host_port is None:
            lines.append(f"Admin port {ADMIN_PORT} is not published")
            return lines

        endpoint = f"http://localhost:{host_port}"
        client = self.admin_client_factory(endpoint, read_admin_token(self.settings.config_file))
        try:
            health = client.health_check()
            lines.append(f"Health ({endpoint}): {OK} {health.get('message', '')}".rstrip())
        except requests.RequestException as e:
            lines.append(f"Health ({endpoint}): {MISSING} {e}")
            return lines

        if client.admin_token:
            try:
                cluster = client.get_cluster_health()
                lines.append(
                    f"Cluster status: {cluster.get('status', 'unknown')}, "
                    f"{cluster.get('connectedNodes', '?')}/{cluster.get('knownNodes', '?')} nodes connected"
                )
            except requests.RequestException as e:
                lines.append(f"Cluster health unavailable: {e}")
        return lines

    def build_report(self) -> List[str]:
        exists = self.docker.container_exists(self.name)
        running = exists and self.docker.container_running(self.name)

        lines = [box(["TROUBLESHOOTING"], Colors.BLUE), ""]
        lines += self.container_section(exists, running)
        lines.append("")
        lines += self.files_section()

        if running:
            for section in (
                self.shells_section,
                self.binaries_section,
                self.processes_section,
                self.root_section,
                self.admin_section,
            ):
                lines.append("")
                lines += section()

        return lines

    def run(self) -> None:
        print("\n".join(self.build_report()))
