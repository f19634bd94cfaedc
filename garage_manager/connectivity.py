"""
S3 connectivity check against the managed Garage node.

Writes, reads, lists and deletes a throwaway object to confirm that an
access key can actually use a bucket through the S3 API.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CHECK_PAYLOAD = b"Hello from Garage Manager connectivity check!"


class BaseConnectivityCheck(ABC):
    """Base class for connectivity checks."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "garage",
        secure: bool = False,
    ):
        """
        Initialize connectivity check.

        Args:
            endpoint: S3 endpoint, with or without scheme (e.g. localhost:3900)
            access_key: Access key ID
            secret_key: Secret access key
            bucket: Bucket name to check
            region: Region name, matching s3_region in garage.toml
            secure: Use HTTPS
        """
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket
        self.region = region
        self.secure = secure
        self.client = None

    @abstractmethod
    def connect(self) -> bool:
        """Create the client."""

    @abstractmethod
    def bucket_exists(self) -> bool:
        """Check that the configured bucket is reachable."""

    @abstractmethod
    def put_object(self, key: str, data: bytes) -> bool:
        """Upload an object."""

    @abstractmethod
    def get_object(self, key: str) -> Optional[bytes]:
        """Download an object."""

    @abstractmethod
    def delete_object(self, key: str) -> bool:
        """Delete an object."""

    @abstractmethod
    def list_objects(self, prefix: str = "") -> List[str]:
        """List object keys."""

    def _step(self, results: Dict[str, Any], name: str, func, *args) -> Any:
        try:
            value = func(*args)
        except Exception as e:
            logger.debug(f"Connectivity step {name} failed: {e}")
            results["checks"][name] = False
            results["checks"][f"{name}_error"] = str(e)
            return None
        return value

    def run_full_check(self) -> Dict[str, Any]:
        """
        Run connect, bucket, put, get, list and delete in order.

        A failed connect stops the run; other failures are recorded and the
        remaining steps still run.

        Returns:
            Dictionary with per-step results and overall success
        """
        results: Dict[str, Any] = {
            "endpoint": self.endpoint,
            "bucket": self.bucket,
            "checks": {},
            "success": False,
        }
        checks = results["checks"]

        object_key = f"garage-manager-check-{uuid.uuid4()}.txt"

        connected = self._step(results, "connect", self.connect)
        if not connected:
            checks.setdefault("connect", False)
            return results
        checks["connect"] = True

        exists = self._step(results, "bucket_exists", self.bucket_exists)
        checks.setdefault("bucket_exists", bool(exists))

        put = self._step(results, "put_object", self.put_object, object_key, CHECK_PAYLOAD)
        checks.setdefault("put_object", bool(put))

        data = self._step(results, "get_object", self.get_object, object_key)
        checks.setdefault("get_object", data == CHECK_PAYLOAD)

        objects = self._step(results, "list_objects", self.list_objects)
        checks.setdefault("list_objects", isinstance(objects, list))

        deleted = self._step(results, "delete_object", self.delete_object, object_key)
        checks.setdefault("delete_object", bool(deleted))

        results["success"] = all(
            v for k, v in checks.items() if not k.endswith("_error")
        )
        return results


class S3ConnectivityCheck(BaseConnectivityCheck):
    """Connectivity check using the boto3 S3 client."""

    def connect(self) -> bool:
        import boto3
        from botocore.config import Config

        endpoint = self.endpoint
        if not endpoint.startswith(("http://", "https://")):
            protocol = "https" if self.secure else "http"
            endpoint = f"{protocol}://{endpoint}"

        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
        logger.debug(f"boto3 S3 client created for {endpoint}")
        return True

    def bucket_exists(self) -> bool:
        from botocore.exceptions import ClientError

        try:
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except ClientError:
            return False

    def put_object(self, key: str, data: bytes) -> bool:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType="text/plain",
        )
        return True

    def get_object(self, key: str) -> Optional[bytes]:
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read()

    def delete_object(self, key: str) -> bool:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        return True

    def list_objects(self, prefix: str = "") -> List[str]:
        response = self.client.list_objects_v2(Bucket=self.bucket, Prefix=prefix)
        return [obj["Key"] for obj in response.get("Contents", [])]
