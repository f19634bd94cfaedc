"""
Garage configuration and compose descriptor generation.

Both files are created once, with freshly generated secrets, and never
rewritten afterwards. Removing them is left to the cleanup operation.
"""

import base64
import logging
import os
import secrets
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .settings import ManagerSettings

logger = logging.getLogger(__name__)

SECRET_BYTES = 32

CONTAINER_CONFIG_PATH = "/etc/garage.toml"
CONTAINER_META_DIR = "/var/lib/garage/meta"
CONTAINER_DATA_DIR = "/var/lib/garage/data"
SERVER_COMMAND = ["/usr/local/bin/garage", "server"]

GARAGE_CONFIG_TEMPLATE = """\
metadata_dir = "{meta_dir}"
data_dir = "{data_dir}"

db_engine = "sqlite"
replication_factor = 1

rpc_bind_addr = "[::]:3901"
rpc_public_addr = "127.0.0.1:3901"
rpc_secret = "{rpc_secret}"

[s3_api]
s3_region = "garage"
api_bind_addr = "[::]:3900"
root_domain = ".s3.garage.localhost"

[s3_web]
bind_addr = "[::]:3902"
root_domain = ".web.garage.localhost"
index = "index.html"

[k2v_api]
api_bind_addr = "[::]:3904"

[admin]
api_bind_addr = "[::]:3903"
admin_token = "{admin_token}"
metrics_token = "{metrics_token}"
"""


def generate_rpc_secret() -> str:
    """Return a new RPC secret: 32 random bytes, hex encoded."""
    return secrets.token_hex(SECRET_BYTES)


def generate_token() -> str:
    """Return a new admin/metrics token: 32 random bytes, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(SECRET_BYTES)).decode("ascii")


def render_garage_config(rpc_secret: str, admin_token: str, metrics_token: str) -> str:
    """
    Render the garage.toml document.

    Args:
        rpc_secret: Hex-encoded RPC secret shared by cluster nodes
        admin_token: Bearer token for the admin API
        metrics_token: Bearer token for the metrics endpoint

    Returns:
        The configuration file contents
    """
    return GARAGE_CONFIG_TEMPLATE.format(
        meta_dir=CONTAINER_META_DIR,
        data_dir=CONTAINER_DATA_DIR,
        rpc_secret=rpc_secret,
        admin_token=admin_token,
        metrics_token=metrics_token,
    )


def ensure_data_dirs(data_dir: str) -> None:
    """Create the meta and data directories that get bind-mounted."""
    for sub in ("meta", "data"):
        os.makedirs(os.path.join(data_dir, sub), exist_ok=True)


def write_garage_config(config_path: str, data_dir: str) -> bool:
    """
    Create the Garage configuration file if it does not exist yet.

    Args:
        config_path: Where to write garage.toml
        data_dir: Host directory holding the meta/ and data/ subdirectories

    Returns:
        True if a new file was written, False if one already existed
    """
    ensure_data_dirs(data_dir)

    if os.path.exists(config_path):
        logger.debug(f"Configuration file already exists: {config_path}")
        return False

    logger.info(f"Creating {os.path.basename(config_path)} configuration file...")
    contents = render_garage_config(
        rpc_secret=generate_rpc_secret(),
        admin_token=generate_token(),
        metrics_token=generate_token(),
    )
    with open(config_path, "w") as f:
        f.write(contents)

    logger.info(f"Configuration file created: {config_path}")
    return True


def read_admin_token(config_path: str) -> Optional[str]:
    """
    Read the admin token back from an existing garage.toml.

    Returns:
        The admin token, or None if the file or the field is missing
    """
    path = Path(config_path)
    if not path.is_file():
        return None

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.warning(f"Could not parse {config_path}: {e}")
            return None

    return data.get("admin", {}).get("admin_token")


def _bind_source(path: str, compose_dir: str) -> str:
    if os.path.isabs(path):
        return path
    relative = os.path.relpath(os.path.abspath(path), compose_dir)
    if relative.startswith(".."):
        return relative
    return f"./{relative}"


def render_compose(settings: ManagerSettings) -> Dict[str, Any]:
    """
    Build the compose descriptor for the Garage service.

    Compose resolves relative bind-mount sources against the compose file's
    directory, while the config file and data directory are created relative
    to the working directory, so relative paths are rewritten between the two.
    """
    compose_dir = os.path.dirname(os.path.abspath(settings.compose_file))
    data_dir = _bind_source(settings.data_dir.rstrip("/"), compose_dir)
    service = {
        "image": settings.image,
        "container_name": settings.container_name,
        "restart": "unless-stopped",
        "command": list(SERVER_COMMAND),
        "ports": list(settings.ports),
        "volumes": [
            f"{_bind_source(settings.config_file, compose_dir)}:{CONTAINER_CONFIG_PATH}",
            f"{data_dir}/meta:{CONTAINER_META_DIR}",
            f"{data_dir}/data:{CONTAINER_DATA_DIR}",
        ],
    }
    return {"services": {settings.compose_service: service}}


def write_compose_file(settings: ManagerSettings) -> bool:
    """
    Create the compose descriptor if it does not exist yet.

    Returns:
        True if a new file was written
    """
    if os.path.exists(settings.compose_file):
        logger.debug(f"Compose file already exists: {settings.compose_file}")
        return False

    logger.info(f"Creating compose file: {settings.compose_file}")
    with open(settings.compose_file, "w") as f:
        yaml.safe_dump(render_compose(settings), f, default_flow_style=False, sort_keys=False)
    return True
