#!/usr/bin/env python3
"""
Main entry point for the Garage Manager interactive menu.

Settings come from a YAML/JSON file (--settings) or from GARAGE_MANAGER_*
environment variables; without either, the defaults manage a container
named 'garaged' with garage.toml and garage/ in the current directory.
Run without flags, it behaves exactly like the plain interactive menu.
"""

import argparse
import logging
import sys

import yaml

from garage_manager.console import setup_logging
from garage_manager.docker_cli import ComposeNotFoundError, DockerCLI, DockerNotFoundError
from garage_manager.menu import GarageManagerMenu
from garage_manager.runtime import build_runtime
from garage_manager.settings import (
    VARIANTS,
    load_settings_from_env,
    load_settings_from_file,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interactive manager for a single-node Garage S3 server"
    )
    parser.add_argument(
        "--settings",
        "-s",
        help="Path to a settings file (YAML or JSON)",
    )
    parser.add_argument(
        "--variant",
        choices=VARIANTS,
        help="Deploy with 'docker run' or with a compose file",
    )
    parser.add_argument(
        "--sudo",
        action="store_true",
        help="Run docker commands through sudo",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    overrides = {}
    if args.variant:
        overrides["variant"] = args.variant
    if args.sudo:
        overrides["use_sudo"] = True

    try:
        if args.settings:
            settings = load_settings_from_file(args.settings, overrides)
        else:
            settings = load_settings_from_env(overrides=overrides)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid settings: {e}")
        sys.exit(1)

    docker = DockerCLI(sudo=settings.use_sudo)
    runtime = build_runtime(settings, docker)

    try:
        runtime.ensure_available()
    except (DockerNotFoundError, ComposeNotFoundError) as e:
        logger.error(str(e))
        sys.exit(1)

    menu = GarageManagerMenu(settings, runtime, docker)
    sys.exit(menu.run())


if __name__ == "__main__":
    main()
