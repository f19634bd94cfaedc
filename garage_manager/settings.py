"""
Manager Settings

Loads the settings of the interactive manager (container name, file
locations, deployment variant, wait intervals) from a YAML/JSON file or
from environment variables.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

VARIANT_DOCKER = "docker"
VARIANT_COMPOSE = "compose"
VARIANTS = (VARIANT_DOCKER, VARIANT_COMPOSE)

DEFAULT_IMAGE = "dxflrs/garage:latest"
DEFAULT_PORTS = ["3900:3900", "3901:3901", "3902:3902", "3903:3903", "3904:3904"]
ALTERNATIVE_PORTS = ["3910:3900", "3911:3901", "3912:3902", "3913:3903", "3914:3904"]
COMPOSE_PORTS = ["39300:3900", "39301:3901", "39302:3902", "39303:3903", "39304:3904"]

ENV_PREFIX = "GARAGE_MANAGER_"


@dataclass
class ManagerSettings:
    """Settings for one managed Garage deployment."""

    variant: str = VARIANT_DOCKER
    container_name: str = "garaged"
    config_file: str = "garage.toml"
    data_dir: str = "garage"
    compose_file: str = "docker-compose.yml"
    compose_service: str = "garage"
    image: str = DEFAULT_IMAGE
    ports: List[str] = field(default_factory=lambda: list(DEFAULT_PORTS))
    use_sudo: bool = False
    startup_wait: float = 15.0
    restart_wait: float = 5.0
    node_id_retry_delay: float = 10.0
    layout_apply_delay: float = 2.0
    layout_zone: str = "dc1"
    layout_capacity: str = "1000"
    log_tail: int = 50

    def __post_init__(self):
        if self.variant not in VARIANTS:
            raise ValueError(
                f"Unknown variant '{self.variant}', expected one of: {', '.join(VARIANTS)}"
            )


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_ports(value: Any) -> List[str]:
    if isinstance(value, str):
        return value.split()
    return [str(port) for port in value]


def parse_settings(data: Dict[str, Any]) -> ManagerSettings:
    """
    Parse a settings dictionary into a ManagerSettings object.

    Keys may use snake_case or camelCase. Unknown keys are ignored with a
    warning. The compose variant gets its own defaults for the container
    name and ports unless they are given explicitly.

    Args:
        data: Settings dictionary

    Returns:
        ManagerSettings object
    """
    known = {f.name: f for f in fields(ManagerSettings)}
    camel = {name.replace("_", ""): name for name in known}

    kwargs: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = raw_key if raw_key in known else camel.get(raw_key.replace("_", "").lower())
        if key is None:
            logger.warning(f"Ignoring unknown setting: {raw_key}")
            continue
        kwargs[key] = value

    variant = kwargs.get("variant", VARIANT_DOCKER)
    if variant == VARIANT_COMPOSE:
        kwargs.setdefault("container_name", "garage")
        kwargs.setdefault("ports", list(COMPOSE_PORTS))

    if "ports" in kwargs:
        kwargs["ports"] = _as_ports(kwargs["ports"])
    if "use_sudo" in kwargs:
        kwargs["use_sudo"] = _as_bool(kwargs["use_sudo"])
    for name in ("startup_wait", "restart_wait", "node_id_retry_delay", "layout_apply_delay"):
        if name in kwargs:
            kwargs[name] = float(kwargs[name])
    if "log_tail" in kwargs:
        kwargs["log_tail"] = int(kwargs["log_tail"])
    if "layout_capacity" in kwargs:
        kwargs["layout_capacity"] = str(kwargs["layout_capacity"])

    return ManagerSettings(**kwargs)


def load_settings_from_file(
    settings_path: str, overrides: Optional[Dict[str, Any]] = None
) -> ManagerSettings:
    """
    Load manager settings from a YAML or JSON file.

    Args:
        settings_path: Path to the settings file
        overrides: Settings that take precedence over the file

    Returns:
        Parsed ManagerSettings object
    """
    with open(settings_path, "r") as f:
        if settings_path.endswith((".yml", ".yaml")):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)

    data.update(overrides or {})
    return parse_settings(data)


def load_settings_from_env(
    environ: Optional[Dict[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ManagerSettings:
    """
    Load manager settings from environment variables.

    Environment variables:
        GARAGE_MANAGER_CONFIG: JSON string with all settings
        GARAGE_MANAGER_<SETTING>: One setting each, e.g.
            GARAGE_MANAGER_VARIANT=compose, GARAGE_MANAGER_SUDO=true,
            GARAGE_MANAGER_PORTS="3910:3900 3911:3901"

    Returns:
        Parsed ManagerSettings object
    """
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    settings_json = environ.get(f"{ENV_PREFIX}CONFIG")
    if settings_json:
        data = json.loads(settings_json)
    else:
        for f in fields(ManagerSettings):
            value = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if value is not None:
                data[f.name] = value

        # Shorter alias
        if "use_sudo" not in data and f"{ENV_PREFIX}SUDO" in environ:
            data["use_sudo"] = environ[f"{ENV_PREFIX}SUDO"]

    data.update(overrides or {})

    return parse_settings(data)
