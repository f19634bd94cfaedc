"""
Tests for the shell/binary probing executor.
"""

from unittest.mock import MagicMock

import pytest

from garage_manager.docker_cli import DockerCLI
from garage_manager.executor import GARAGE_PATHS, SHELLS, GarageExecutor


class FakeContainer:
    """
    Simulates a container with one available shell and one working binary.

    Records every exec so tests can check the probing order.
    """

    def __init__(self, shell=None, binary=None, output=""):
        self.shell = shell
        self.binary = binary
        self.output = output
        self.execs = []

    def exec_ok(self, name, args):
        self.execs.append(list(args))
        return args[:2] == ["test", "-x"] and args[2] == self.shell

    def exec(self, name, args, capture=False, **kwargs):
        self.execs.append(list(args))
        if self.shell is not None and args[:2] == [self.shell, "-c"]:
            ok = args[2].split(" ", 1)[0] == self.binary
        else:
            ok = args[0] == self.binary
        result = MagicMock()
        result.returncode = 0 if ok else 1
        result.stdout = self.output if (ok and capture) else None
        return result

    def docker(self):
        docker = MagicMock(spec=DockerCLI)
        docker.exec_ok.side_effect = self.exec_ok
        docker.exec.side_effect = self.exec
        return docker


class TestShellDiscovery:
    """Tests for finding a shell in the container."""

    def test_first_available_shell_wins(self):
        container = FakeContainer(shell="/bin/bash")
        executor = GarageExecutor(container.docker(), "garaged")

        assert executor.find_shell() == "/bin/bash"
        assert container.execs == [["test", "-x", "/bin/sh"], ["test", "-x", "/bin/bash"]]

    def test_no_shell(self):
        container = FakeContainer(shell=None)
        executor = GarageExecutor(container.docker(), "garaged")

        assert executor.find_shell() is None
        assert len(container.execs) == len(SHELLS)


class TestProbing:
    """Tests for the ordered shell/path search."""

    @pytest.mark.parametrize("index", range(len(GARAGE_PATHS)))
    def test_stops_at_first_working_binary(self, index):
        """Test that paths are tried in order and the search stops at the first success."""
        binary = GARAGE_PATHS[index]
        container = FakeContainer(shell="/bin/sh", binary=binary)
        executor = GarageExecutor(container.docker(), "garaged")

        result = executor.run("bucket list")

        assert result.success is True
        assert result.shell == "/bin/sh"
        assert result.binary == binary

        attempts = [args for args in container.execs if args[0] != "test"]
        assert attempts == [["/bin/sh", "-c", f"{path} bucket list"] for path in GARAGE_PATHS[: index + 1]]

    def test_direct_execution_without_shell(self):
        """Test that commands run without a shell wrapper when no shell exists."""
        container = FakeContainer(shell=None, binary="/garage")
        executor = GarageExecutor(container.docker(), "garaged")

        result = executor.run("key info 'my key'")

        assert result.success is True
        assert result.shell is None
        attempts = [args for args in container.execs if args[0] != "test"]
        assert attempts == [
            ["/usr/local/bin/garage", "key", "info", "my key"],
            ["/garage", "key", "info", "my key"],
        ]

    def test_all_combinations_fail(self, capsys):
        """Test that a total failure is reported with guidance and no retry."""
        container = FakeContainer(shell="/bin/sh", binary="/nowhere/garage")
        executor = GarageExecutor(container.docker(), "garaged")

        result = executor.run("status")

        assert result.success is False
        assert not result
        attempts = [args for args in container.execs if args[0] != "test"]
        assert len(attempts) == len(GARAGE_PATHS)
        out = capsys.readouterr().out
        assert "Wrong Docker image" in out
        assert "Missing shell in container" in out

    def test_capture_returns_output(self):
        container = FakeContainer(shell="/bin/sh", binary="/usr/local/bin/garage", output="abc@127.0.0.1:3901\n")
        executor = GarageExecutor(container.docker(), "garaged")

        result = executor.run("node id", capture=True)

        assert result.output == "abc@127.0.0.1:3901\n"

    def test_custom_candidate_lists(self):
        """Test that the candidate lists can be narrowed."""
        container = FakeContainer(shell="/bin/ash", binary="garage")
        executor = GarageExecutor(
            container.docker(), "garaged", shells=["/bin/ash"], garage_paths=["garage"]
        )

        assert executor.run("status").success is True
        assert container.execs == [["test", "-x", "/bin/ash"], ["/bin/ash", "-c", "garage status"]]
