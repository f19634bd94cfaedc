"""
Garage Cluster Administration

Single-node cluster bootstrap (node id, layout assign/apply) and bucket
and access key administration, all through the garage CLI inside the
container. Also applies a declarative manifest of buckets and keys.
"""

import json
import logging
import shlex
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import yaml

from .executor import ExecResult, GarageExecutor
from .settings import ManagerSettings

logger = logging.getLogger(__name__)


@dataclass
class BucketConfig:
    """A bucket to create, with the keys allowed on it."""

    name: str
    keys: List[str] = field(default_factory=list)
    permissions: Dict[str, Dict[str, bool]] = field(default_factory=dict)


@dataclass
class KeyConfig:
    """An access key to create."""

    name: str


@dataclass
class ClusterManifest:
    """Buckets and keys to provision."""

    buckets: List[BucketConfig] = field(default_factory=list)
    keys: List[KeyConfig] = field(default_factory=list)


def parse_manifest(data: Dict[str, Any]) -> ClusterManifest:
    """
    Parse a manifest dictionary into a ClusterManifest object.

    Buckets and keys may be given as plain names or as mappings:

        keys: [app-key]
        buckets:
          - name: app-data
            keys: [app-key]
            permissions:
              app-key: {read: true, write: false}

    Args:
        data: Manifest dictionary

    Returns:
        ClusterManifest object
    """
    keys = []
    for key_data in data.get("keys", []):
        if isinstance(key_data, str):
            keys.append(KeyConfig(name=key_data))
        else:
            keys.append(KeyConfig(name=key_data["name"]))

    buckets = []
    for bucket_data in data.get("buckets", []):
        if isinstance(bucket_data, str):
            buckets.append(BucketConfig(name=bucket_data))
        else:
            buckets.append(
                BucketConfig(
                    name=bucket_data["name"],
                    keys=bucket_data.get("keys", []),
                    permissions=bucket_data.get("permissions", {}),
                )
            )

    return ClusterManifest(buckets=buckets, keys=keys)


def load_manifest(manifest_path: str) -> ClusterManifest:
    """Load a manifest from a YAML or JSON file."""
    with open(manifest_path, "r") as f:
        if manifest_path.endswith((".yml", ".yaml")):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)

    return parse_manifest(data)


def _require(value: str, what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{what} cannot be empty")
    return value


class GarageCluster:
    """Administers the Garage node through the garage CLI."""

    def __init__(
        self,
        executor: GarageExecutor,
        settings: ManagerSettings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor
        self.settings = settings
        self.sleep = sleep

    def _run(self, *args: str, capture: bool = False) -> ExecResult:
        return self.executor.run(shlex.join(args), capture=capture)

    def _fetch_node_id(self) -> Optional[str]:
        result = self._run("node", "id", capture=True)
        if not result.success:
            return None
        lines = result.output.strip().splitlines()
        if not lines:
            return None
        return lines[0].strip() or None

    def get_node_id(self) -> Optional[str]:
        """
        Return this node's identifier, without the @address suffix.

        The garage daemon may still be starting, so an empty or failed
        answer is retried exactly once after node_id_retry_delay seconds.
        """
        node_id = self._fetch_node_id()
        if node_id is None:
            logger.error(
                f"Failed to get node ID - retrying in {self.settings.node_id_retry_delay:g} seconds..."
            )
            self.sleep(self.settings.node_id_retry_delay)
            node_id = self._fetch_node_id()

        if node_id is None:
            logger.error("Still unable to get node ID. The container may need more time to start.")
            logger.error("Try running 'Show Status' in a few minutes to check if it's ready.")
            return None

        return node_id.split("@", 1)[0]

    def configure(self) -> bool:
        """
        Assign this node to the layout and apply layout version 1.

        Returns:
            True if both layout steps succeeded
        """
        logger.info("Configuring Garage cluster...")

        node_id = self.get_node_id()
        if not node_id:
            return False

        logger.info(f"Node ID: {node_id}")

        assigned = self._run(
            "layout",
            "assign",
            node_id,
            "-z",
            self.settings.layout_zone,
            "-c",
            self.settings.layout_capacity,
        )
        if assigned:
            self.sleep(self.settings.layout_apply_delay)
            if self._run("layout", "apply", "--version", "1"):
                logger.info("Cluster configured successfully!")
                return True

        logger.error("Failed to configure cluster")
        return False

    def status(self) -> ExecResult:
        return self._run("status")

    def create_bucket(self, name: str) -> ExecResult:
        name = _require(name, "Bucket name")
        logger.info(f"Creating bucket: {name}")
        return self._run("bucket", "create", name)

    def list_buckets(self) -> ExecResult:
        return self._run("bucket", "list")

    def create_key(self, name: str) -> ExecResult:
        name = _require(name, "Key name")
        logger.info(f"Creating key: {name}")
        return self._run("key", "new", "--name", name)

    def list_keys(self) -> ExecResult:
        return self._run("key", "list")

    def key_info(self, name: str) -> ExecResult:
        name = _require(name, "Key name")
        return self._run("key", "info", name)

    def allow_key(
        self,
        bucket: str,
        key: str,
        read: bool = True,
        write: bool = True,
    ) -> ExecResult:
        """
        Grant an access key permissions on a bucket.

        Args:
            bucket: Bucket name
            key: Key name or id
            read: Grant read access
            write: Grant write access
        """
        bucket = _require(bucket, "Bucket name")
        key = _require(key, "Key name")
        if not (read or write):
            raise ValueError("At least one of read or write must be granted")

        logger.info(f"Allowing key '{key}' to access bucket '{bucket}'")
        args = ["bucket", "allow", bucket]
        if read:
            args.append("--read")
        if write:
            args.append("--write")
        args += ["--key", key]
        return self._run(*args)

    def apply_manifest(self, manifest: ClusterManifest) -> Dict[str, Any]:
        """
        Create the manifest's keys, then its buckets, then grant permissions.

        A failed step is reported and the remaining steps still run; garage
        refuses to create a bucket that already exists, so re-applying a
        manifest reports those buckets as failed.

        Returns:
            Dictionary with per-item results
        """
        result: Dict[str, Any] = {"keys": [], "buckets": [], "grants": [], "success": True}

        for key_config in manifest.keys:
            ok = self.create_key(key_config.name).success
            result["keys"].append({"name": key_config.name, "created": ok})
            result["success"] &= ok

        for bucket_config in manifest.buckets:
            ok = self.create_bucket(bucket_config.name).success
            result["buckets"].append({"name": bucket_config.name, "created": ok})
            result["success"] &= ok

            for key_name in bucket_config.keys:
                permissions = bucket_config.permissions.get(key_name, {"read": True, "write": True})
                read = bool(permissions.get("read", False))
                write = bool(permissions.get("write", False))
                if not (read or write):
                    logger.warning(f"No permissions to grant {key_name} on {bucket_config.name}")
                    continue
                ok = self.allow_key(bucket_config.name, key_name, read=read, write=write).success
                result["grants"].append(
                    {
                        "bucket": bucket_config.name,
                        "key": key_name,
                        "read": read,
                        "write": write,
                        "granted": ok,
                    }
                )
                result["success"] &= ok

        return result
