"""
Pytest fixtures for Garage Manager tests.
"""

import subprocess
from unittest.mock import MagicMock

import pytest

from garage_manager.console import Prompter
from garage_manager.docker_cli import DockerCLI
from garage_manager.settings import ManagerSettings


def _completed(returncode=0, stdout="", stderr=""):
    """Build a CompletedProcess like subprocess.run returns."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class ScriptedPrompter(Prompter):
    """Prompter that answers from a list and records the questions."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.questions = []
        super().__init__(input_func=self._next)

    def _next(self, _prompt):
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def ask(self, question):
        self.questions.append(question)
        return super().ask(question)

    def pause(self):
        pass


@pytest.fixture
def settings(tmp_path):
    """Settings with all files under a temporary directory and no waits."""
    return ManagerSettings(
        config_file=str(tmp_path / "garage.toml"),
        data_dir=str(tmp_path / "garage"),
        compose_file=str(tmp_path / "docker-compose.yml"),
        startup_wait=0,
        restart_wait=0,
        node_id_retry_delay=0,
        layout_apply_delay=0,
    )


@pytest.fixture
def mock_docker():
    """A DockerCLI double where every call succeeds with empty output."""
    docker = MagicMock(spec=DockerCLI)
    docker.exec.return_value = _completed()
    docker.exec_ok.return_value = True
    docker.port.return_value = "3900/tcp -> 0.0.0.0:3900\n3903/tcp -> 0.0.0.0:3903\n"
    docker.inspect.return_value = "dxflrs/garage:latest"
    docker.container_exists.return_value = True
    docker.container_running.return_value = True
    return docker


@pytest.fixture
def completed():
    """Factory for CompletedProcess results."""
    return _completed


@pytest.fixture
def prompter_factory():
    return ScriptedPrompter


@pytest.fixture
def sample_manifest():
    """Sample bucket/key manifest."""
    return {
        "keys": ["app-key", {"name": "backup-key"}],
        "buckets": [
            {
                "name": "app-data",
                "keys": ["app-key"],
                "permissions": {"app-key": {"read": True, "write": True}},
            },
            {
                "name": "backups",
                "keys": ["backup-key"],
                "permissions": {"backup-key": {"read": True, "write": False}},
            },
            "scratch",
        ],
    }
