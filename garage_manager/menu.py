"""
Interactive Garage server menu.

Each entry delegates to the container runtime, the docker CLI or the
garage CLI inside the container. Failures are logged and control returns
to the menu; nothing here is fatal.
"""

import logging
import os
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import yaml

from .cluster import GarageCluster, load_manifest
from .config_generator import write_garage_config
from .connectivity import S3ConnectivityCheck
from .console import Colors, Prompter, box, colored
from .docker_cli import DockerCLI, parse_port_mappings, parse_ports
from .executor import GarageExecutor
from .runtime import ContainerRuntime
from .settings import (
    ALTERNATIVE_PORTS,
    DEFAULT_IMAGE,
    DEFAULT_PORTS,
    VARIANT_DOCKER,
    ManagerSettings,
)
from .troubleshoot import Troubleshooter

logger = logging.getLogger(__name__)

INTERACTIVE_SHELLS = ["/bin/sh", "/bin/bash", "/bin/ash"]

# Container port -> label, in display order
ACCESS_ENDPOINTS = [
    (3900, "S3 API:    "),
    (3903, "Admin API: "),
    (3902, "Web API:   "),
    (3904, "K2V API:   "),
]
S3_PORT = 3900

MENU_WIDTH = 47


@dataclass
class MenuEntry:
    """One numbered menu entry."""

    key: str
    label: str
    handler: Callable[[], None]
    pause: bool = True


class GarageManagerMenu:
    """The interactive main menu."""

    def __init__(
        self,
        settings: ManagerSettings,
        runtime: ContainerRuntime,
        docker: Optional[DockerCLI] = None,
        prompter: Optional[Prompter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.runtime = runtime
        self.docker = docker or runtime.docker
        self.prompter = prompter or Prompter()
        self.sleep = sleep
        self.executor = GarageExecutor(self.docker, settings.container_name)
        self.cluster = GarageCluster(self.executor, settings, sleep=sleep)
        self.sections = self._build_sections()
        self.entries: Dict[str, MenuEntry] = {
            entry.key: entry for section in self.sections for entry in section
        }

    @property
    def container_name(self) -> str:
        return self.settings.container_name

    def _build_sections(self) -> List[List[MenuEntry]]:
        return [
            [
                MenuEntry("1", "Setup Garage Server", self.setup),
                MenuEntry("2", "Start Container", self.start_container),
                MenuEntry("3", "Stop Container", self.stop_container),
                MenuEntry("4", "Restart Container", self.restart_container),
                MenuEntry("5", "Show Status", self.show_status),
                MenuEntry("6", "View Logs", self.show_logs),
            ],
            [
                MenuEntry("7", "Create Bucket", self.create_bucket),
                MenuEntry("8", "Create Access Key", self.create_key),
                MenuEntry("9", "Allow Key to Access Bucket", self.allow_key),
                MenuEntry("10", "List Buckets", self.list_buckets),
                MenuEntry("11", "List Keys", self.list_keys),
                MenuEntry("12", "Show Key Information", self.key_info),
            ],
            [
                MenuEntry("13", "Change Port Mappings", self.change_ports),
                MenuEntry("14", "Open Container Shell", self.open_shell, pause=False),
                MenuEntry("15", "Remove Container Only", self.remove_container),
                MenuEntry("16", "Complete Cleanup (Remove All)", self.cleanup),
                MenuEntry("17", "Troubleshoot Container", self.troubleshoot),
            ],
            [
                MenuEntry("18", "Test S3 Connectivity", self.check_connectivity),
                MenuEntry("19", "Apply Bucket/Key Manifest", self.apply_manifest),
            ],
        ]

    # Rendering

    def show_banner(self) -> None:
        if sys.stdout.isatty():
            print("\033[2J\033[H", end="")
        print(box(["GARAGE S3 SERVER MANAGER"], Colors.BLUE))
        print(f"Variant: {self.settings.variant}    Container: {self.container_name}")
        print("")

    def _menu_row(self, text: str) -> str:
        return colored("│", Colors.PURPLE) + " " + text.ljust(MENU_WIDTH - 3) + colored("│", Colors.PURPLE)

    def render_menu(self) -> str:
        inner = MENU_WIDTH - 2
        rule = colored("├" + "─" * inner + "┤", Colors.PURPLE)
        rows = [
            colored("┌" + "─" * inner + "┐", Colors.PURPLE),
            colored("│" + "MAIN MENU".center(inner) + "│", Colors.PURPLE),
            rule,
        ]
        for section in self.sections:
            for entry in section:
                rows.append(self._menu_row(f"{entry.key + '.':<4}{entry.label}"))
            rows.append(rule)
        rows.append(self._menu_row(f"{'0.':<4}Exit"))
        rows.append(colored("└" + "─" * inner + "┘", Colors.PURPLE))
        return "\n".join(rows)

    def show_access_info(self) -> None:
        print("")
        print(box(["GARAGE S3 SERVER IS READY!"], Colors.GREEN))
        print("")
        print(colored("Access Information:", Colors.BLUE))
        mappings = parse_port_mappings(self.docker.port(self.container_name) or "")
        for container_port, label in ACCESS_ENDPOINTS:
            if container_port in mappings:
                print(f"{label}http://localhost:{mappings[container_port]}")

    # Helpers

    def require_running(self) -> bool:
        if not self.runtime.running():
            logger.error("Container is not running")
            return False
        return True

    def choose_image(self) -> str:
        choice = self.prompter.choose(
            "Choose Docker image:",
            [
                f"{DEFAULT_IMAGE} (recommended - has shell)",
                "dxflrs/garage:v2.0.0",
                "Custom image",
            ],
            "Enter choice (1-3): ",
        )
        if choice == "2":
            logger.warning("This image may have shell issues. Consider using 'latest' if problems occur.")
            return "dxflrs/garage:v2.0.0"
        if choice == "3":
            return self.prompter.ask("Enter custom image name: ") or DEFAULT_IMAGE
        return DEFAULT_IMAGE

    def choose_ports(self) -> List[str]:
        choice = self.prompter.choose(
            "Choose port configuration:",
            [
                "Default ports (3900-3904)",
                "Alternative ports (3910-3914)",
                "Custom ports",
            ],
            "Enter choice (1-3): ",
        )
        if choice == "2":
            return list(ALTERNATIVE_PORTS)
        if choice == "3":
            ports = parse_ports(
                self.prompter.ask(
                    "Enter port mappings (e.g., 3910:3900 3911:3901 3912:3902 3913:3903 3914:3904): "
                )
            )
            return ports or list(DEFAULT_PORTS)
        return list(DEFAULT_PORTS)

    # Lifecycle

    def setup(self) -> None:
        print(colored("Setting up Garage S3 Server...", Colors.CYAN))
        print("")

        if self.runtime.exists():
            logger.warning(f"Container {self.container_name} already exists.")
            if not self.prompter.confirm("Do you want to remove it and create a new one?"):
                logger.error("Setup cancelled")
                return
            self.runtime.remove()

        if self.settings.variant == VARIANT_DOCKER:
            image = self.choose_image()
            ports = self.choose_ports()
        else:
            image = self.settings.image
            ports = list(self.settings.ports)

        write_garage_config(self.settings.config_file, self.settings.data_dir)

        logger.info(f"Starting Garage container with image: {image}")
        logger.info(f"Port mappings: {' '.join(ports)}")

        if not self.runtime.provision(image, ports):
            logger.error(
                "Failed to start container. Check if ports are already in use or try a different image."
            )
            return

        logger.info("Container started successfully!")
        logger.info("Waiting for container to be ready...")
        self.sleep(self.settings.startup_wait)

        self.cluster.configure()
        self.show_access_info()

    def start_container(self) -> None:
        if self.runtime.running():
            logger.warning("Container is already running")
            return

        logger.info("Starting container...")
        if self.runtime.start():
            logger.info("Container started successfully!")
            self.sleep(self.settings.restart_wait)
            self.show_access_info()
        else:
            logger.error("Failed to start container")

    def stop_container(self) -> None:
        if not self.runtime.running():
            logger.warning("Container is not running")
            return

        logger.info("Stopping container...")
        if self.runtime.stop():
            logger.info("Container stopped successfully!")
        else:
            logger.error("Failed to stop container")

    def restart_container(self) -> None:
        logger.info("Restarting container...")
        if self.runtime.restart():
            logger.info("Container restarted successfully!")
            self.sleep(self.settings.restart_wait)
            self.show_access_info()
        else:
            logger.error("Failed to restart container")

    def show_status(self) -> None:
        print(colored("Container Status:", Colors.BLUE))
        if not self.runtime.running():
            print(colored("✗ Container is not running", Colors.RED))
            return

        print(colored("✓ Container is running", Colors.GREEN))
        print("")
        print(colored("Cluster Status:", Colors.BLUE))
        self.cluster.status()
        print("")
        print(colored("Port Mappings:", Colors.BLUE))
        print((self.docker.port(self.container_name) or "").rstrip())

    def show_logs(self) -> None:
        tail = self.settings.log_tail
        print(colored(f"Container Logs (last {tail} lines):", Colors.BLUE))
        self.docker.logs(self.container_name, tail=tail)
        print("")
        if self.prompter.confirm("Show all logs?"):
            self.docker.logs(self.container_name)

    # Buckets and keys

    def create_bucket(self) -> None:
        if not self.require_running():
            return
        self.cluster.create_bucket(self.prompter.ask("Enter bucket name: "))

    def create_key(self) -> None:
        if not self.require_running():
            return
        self.cluster.create_key(self.prompter.ask("Enter key name: "))

    def allow_key(self) -> None:
        if not self.require_running():
            return
        bucket = self.prompter.ask("Enter bucket name: ")
        key = self.prompter.ask("Enter key name: ")
        if not bucket or not key:
            logger.error("Both bucket name and key name are required")
            return
        self.cluster.allow_key(bucket, key)

    def list_buckets(self) -> None:
        if not self.require_running():
            return
        print(colored("All Buckets:", Colors.BLUE))
        self.cluster.list_buckets()

    def list_keys(self) -> None:
        if not self.require_running():
            return
        print(colored("All Keys:", Colors.BLUE))
        self.cluster.list_keys()

    def key_info(self) -> None:
        if not self.require_running():
            return
        key = self.prompter.ask("Enter key name: ")
        if not key:
            logger.error("Key name cannot be empty")
            return
        print(colored(f"Key Information for: {key}", Colors.BLUE))
        self.cluster.key_info(key)

    # Maintenance

    def change_ports(self) -> None:
        if not self.runtime.supports_port_change:
            logger.warning(
                f"Port mappings are fixed in {self.settings.compose_file}; "
                "edit that file and restart to change them."
            )
            return

        print(colored("Current port mappings:", Colors.YELLOW))
        exists = self.runtime.exists()
        if exists:
            print((self.docker.port(self.container_name) or "No port mappings found").rstrip())
        else:
            print("No container exists")
        print("")

        ports = parse_ports(
            self.prompter.ask(
                "Enter new port mappings (e.g., 3910:3900 3911:3901 3912:3902 3913:3903 3914:3904): "
            )
        )
        if not ports:
            logger.error("Port mappings cannot be empty")
            return

        logger.info(f"Changing port mappings to: {' '.join(ports)}")

        image = (exists and self.docker.inspect(self.container_name, "{{.Config.Image}}")) or DEFAULT_IMAGE
        if exists:
            self.runtime.remove()

        if self.runtime.provision(image, ports):
            logger.info("Container restarted with new ports!")
            self.sleep(self.settings.restart_wait)
            self.show_access_info()
        else:
            logger.error("Failed to restart container with new ports")

    def open_shell(self) -> None:
        if not self.require_running():
            self.prompter.pause()
            return

        logger.info("Opening shell in container... Type 'exit' to return to menu")
        for shell in INTERACTIVE_SHELLS:
            if self.docker.exec_ok(self.container_name, ["test", "-x", shell]):
                self.docker.exec(self.container_name, [shell], interactive=True, discard_errors=False)
                return

        logger.error("No interactive shell found in container")
        logger.info("Available files in container:")
        result = self.docker.exec(self.container_name, ["ls", "-la", "/"])
        if result.returncode != 0:
            print("Cannot list files")
        self.prompter.pause()

    def remove_container(self) -> None:
        print(
            box(
                [
                    "WARNING!",
                    "This will remove the container but keep",
                    "configuration and data files.",
                ],
                Colors.YELLOW,
            )
        )
        print("")
        if not self.prompter.confirm(f"Remove container '{self.container_name}'?"):
            logger.info("Operation cancelled")
            return

        if not self.runtime.exists():
            logger.warning("Container does not exist")
            return

        logger.info("Stopping and removing container...")
        if self.runtime.remove():
            logger.info("Container removed successfully!")
            logger.info("Data and configuration files are preserved.")
        else:
            logger.error("Failed to remove container")

    def cleanup(self) -> None:
        print(
            box(
                [
                    "WARNING!",
                    "This will remove the container and ALL",
                    "data permanently! This cannot be undone!",
                ],
                Colors.RED,
            )
        )
        print("")
        if self.prompter.ask("Are you absolutely sure? Type 'YES' to confirm: ") != "YES":
            logger.info("Cleanup cancelled")
            return

        logger.info("Stopping and removing container...")
        if self.runtime.exists():
            self.runtime.remove()

        failed = []

        logger.info("Removing data directories...")
        if os.path.isdir(self.settings.data_dir):
            try:
                shutil.rmtree(self.settings.data_dir)
            except OSError as e:
                logger.error(f"Could not remove {self.settings.data_dir}: {e}")
                failed.append(self.settings.data_dir)

        logger.info("Removing configuration file...")
        for path in self.runtime.managed_files():
            if not os.path.exists(path):
                continue
            try:
                os.remove(path)
            except OSError as e:
                logger.error(f"Could not remove {path}: {e}")
                failed.append(path)

        if failed:
            logger.error(f"Cleanup incomplete, remove manually: {' '.join(failed)}")
            return

        logger.info("Complete cleanup finished!")

    def troubleshoot(self) -> None:
        Troubleshooter(self.docker, self.settings).run()

    # Extras

    def check_connectivity(self) -> None:
        if not self.require_running():
            return

        mappings = parse_port_mappings(self.docker.port(self.container_name) or "")
        host_port = mappings.get(S3_PORT)
        if host_port is None:
            logger.error(f"S3 port {S3_PORT} is not published by the container")
            return

        access_key = self.prompter.ask("Enter access key ID: ")
        secret_key = self.prompter.ask("Enter secret access key: ")
        bucket = self.prompter.ask("Enter bucket name: ")
        if not (access_key and secret_key and bucket):
            logger.error("Access key ID, secret key and bucket name are all required")
            return

        endpoint = f"localhost:{host_port}"
        logger.info(f"Checking S3 connectivity to {endpoint}, bucket {bucket}")
        results = S3ConnectivityCheck(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            bucket=bucket,
        ).run_full_check()

        for name, value in results["checks"].items():
            if name.endswith("_error"):
                print(f"    {value}")
            else:
                print(f"  {'✓' if value else '✗'} {name}")

        if results["success"]:
            logger.info("S3 connectivity check passed")
        else:
            logger.error("S3 connectivity check failed")

    def apply_manifest(self) -> None:
        if not self.require_running():
            return

        path = self.prompter.ask("Enter manifest path (YAML or JSON): ")
        if not path or not os.path.isfile(path):
            logger.error(f"Manifest file not found: {path}")
            return

        try:
            manifest = load_manifest(path)
        except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Could not read manifest {path}: {e}")
            return

        result = self.cluster.apply_manifest(manifest)

        print("")
        print(colored("Manifest Summary:", Colors.BLUE))
        for key in result["keys"]:
            print(f"  {'✓' if key['created'] else '✗'} key {key['name']}")
        for bucket in result["buckets"]:
            print(f"  {'✓' if bucket['created'] else '✗'} bucket {bucket['name']}")
        for grant in result["grants"]:
            access = "+".join(p for p in ("read", "write") if grant[p])
            print(
                f"  {'✓' if grant['granted'] else '✗'} {grant['key']} -> {grant['bucket']} ({access})"
            )

        if result["success"]:
            logger.info("Manifest applied")
        else:
            logger.warning("Manifest applied with errors")

    # Main loop

    def run(self) -> int:
        """
        Show the menu until the user exits.

        Returns:
            Process exit code
        """
        last_key = max(self.entries, key=int)
        while True:
            try:
                self.show_banner()
                print(self.render_menu())
                print("")
                choice = self.prompter.ask(f"Enter your choice (0-{last_key}): ")

                if choice == "0":
                    print(colored("Thank you for using Garage S3 Server Manager!", Colors.GREEN))
                    return 0

                entry = self.entries.get(choice)
                if entry is None:
                    logger.error(f"Invalid choice. Please enter a number between 0-{last_key}.")
                    self.prompter.pause()
                    continue

                try:
                    entry.handler()
                except ValueError as e:
                    logger.error(str(e))
                except (OSError, subprocess.SubprocessError) as e:
                    logger.error(f"{entry.label} failed: {e}")

                if entry.pause:
                    self.prompter.pause()
            except (EOFError, KeyboardInterrupt):
                print("")
                return 0
