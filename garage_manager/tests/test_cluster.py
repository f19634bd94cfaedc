"""
Tests for cluster administration.
"""

import json
from unittest.mock import MagicMock

import pytest
import yaml

from garage_manager.cluster import (
    BucketConfig,
    ClusterManifest,
    GarageCluster,
    KeyConfig,
    load_manifest,
    parse_manifest,
)
from garage_manager.executor import ExecResult, GarageExecutor


@pytest.fixture
def executor():
    executor = MagicMock(spec=GarageExecutor)
    executor.run.return_value = ExecResult(success=True)
    return executor


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def cluster(executor, settings, sleep):
    settings.node_id_retry_delay = 10
    settings.layout_apply_delay = 2
    return GarageCluster(executor, settings, sleep=sleep)


def commands(executor):
    return [c.args[0] for c in executor.run.call_args_list]


class TestNodeId:
    """Tests for node id retrieval."""

    def test_strips_address(self, cluster, executor, sleep):
        executor.run.return_value = ExecResult(success=True, output="563e1ac8@127.0.0.1:3901\n")

        assert cluster.get_node_id() == "563e1ac8"
        sleep.assert_not_called()
        executor.run.assert_called_once_with("node id", capture=True)

    def test_retries_exactly_once(self, cluster, executor, sleep):
        """Test the single fixed-delay retry."""
        executor.run.side_effect = [
            ExecResult(success=False),
            ExecResult(success=True, output="563e1ac8@127.0.0.1:3901\n"),
        ]

        assert cluster.get_node_id() == "563e1ac8"
        sleep.assert_called_once_with(10)
        assert executor.run.call_count == 2

    def test_gives_up_after_retry(self, cluster, executor, sleep):
        executor.run.return_value = ExecResult(success=True, output="\n")

        assert cluster.get_node_id() is None
        assert executor.run.call_count == 2
        sleep.assert_called_once_with(10)


class TestConfigure:
    """Tests for layout configuration."""

    def test_assign_then_apply(self, cluster, executor, sleep):
        executor.run.side_effect = [
            ExecResult(success=True, output="563e1ac8@127.0.0.1:3901\n"),
            ExecResult(success=True),
            ExecResult(success=True),
        ]

        assert cluster.configure() is True
        assert commands(executor) == [
            "node id",
            "layout assign 563e1ac8 -z dc1 -c 1000",
            "layout apply --version 1",
        ]
        sleep.assert_called_once_with(2)

    def test_assign_failure_skips_apply(self, cluster, executor):
        executor.run.side_effect = [
            ExecResult(success=True, output="563e1ac8\n"),
            ExecResult(success=False),
        ]

        assert cluster.configure() is False
        assert executor.run.call_count == 2

    def test_no_node_id(self, cluster, executor):
        executor.run.return_value = ExecResult(success=False)

        assert cluster.configure() is False
        assert commands(executor) == ["node id", "node id"]


class TestBucketsAndKeys:
    """Tests for bucket and key commands."""

    def test_create_bucket(self, cluster, executor):
        cluster.create_bucket("photos")
        assert commands(executor) == ["bucket create photos"]

    def test_names_are_quoted(self, cluster, executor):
        """Test that user input cannot inject shell syntax."""
        cluster.create_key("my key; rm -rf /")
        assert commands(executor) == ["key new --name 'my key; rm -rf /'"]

    def test_empty_name_rejected(self, cluster, executor):
        with pytest.raises(ValueError, match="Bucket name cannot be empty"):
            cluster.create_bucket("   ")
        executor.run.assert_not_called()

    def test_allow_key(self, cluster, executor):
        cluster.allow_key("photos", "app-key")
        assert commands(executor) == ["bucket allow photos --read --write --key app-key"]

    def test_allow_key_read_only(self, cluster, executor):
        cluster.allow_key("photos", "reader", write=False)
        assert commands(executor) == ["bucket allow photos --read --key reader"]

    def test_allow_key_requires_a_permission(self, cluster):
        with pytest.raises(ValueError):
            cluster.allow_key("photos", "app-key", read=False, write=False)

    def test_listing_commands(self, cluster, executor):
        cluster.status()
        cluster.list_buckets()
        cluster.list_keys()
        cluster.key_info("app-key")

        assert commands(executor) == ["status", "bucket list", "key list", "key info app-key"]


class TestManifest:
    """Tests for manifest parsing and application."""

    def test_parse_manifest(self, sample_manifest):
        manifest = parse_manifest(sample_manifest)

        assert [k.name for k in manifest.keys] == ["app-key", "backup-key"]
        assert [b.name for b in manifest.buckets] == ["app-data", "backups", "scratch"]
        assert manifest.buckets[1].permissions["backup-key"] == {"read": True, "write": False}
        assert manifest.buckets[2].keys == []

    def test_load_manifest_yaml_and_json(self, tmp_path, sample_manifest):
        yaml_path = tmp_path / "manifest.yaml"
        yaml_path.write_text(yaml.dump(sample_manifest))
        json_path = tmp_path / "manifest.json"
        json_path.write_text(json.dumps(sample_manifest))

        assert load_manifest(str(yaml_path)) == load_manifest(str(json_path))

    def test_apply_order(self, cluster, executor, sample_manifest):
        """Test that keys come first, then each bucket followed by its grants."""
        result = cluster.apply_manifest(parse_manifest(sample_manifest))

        assert result["success"] is True
        assert commands(executor) == [
            "key new --name app-key",
            "key new --name backup-key",
            "bucket create app-data",
            "bucket allow app-data --read --write --key app-key",
            "bucket create backups",
            "bucket allow backups --read --key backup-key",
            "bucket create scratch",
        ]

    def test_default_permissions(self, cluster, executor):
        manifest = ClusterManifest(buckets=[BucketConfig(name="b", keys=["k"])])

        result = cluster.apply_manifest(manifest)

        assert result["grants"] == [
            {"bucket": "b", "key": "k", "read": True, "write": True, "granted": True}
        ]

    def test_failures_are_reported_and_do_not_stop(self, cluster, executor):
        executor.run.side_effect = [ExecResult(success=False), ExecResult(success=True)]
        manifest = ClusterManifest(keys=[KeyConfig(name="k")], buckets=[BucketConfig(name="b")])

        result = cluster.apply_manifest(manifest)

        assert result["success"] is False
        assert result["keys"] == [{"name": "k", "created": False}]
        assert result["buckets"] == [{"name": "b", "created": True}]
