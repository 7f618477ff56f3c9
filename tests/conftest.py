import subprocess

import pytest

from rci.MANAGERS.health_monitor import HealthMonitor, RetryBudget
from rci.MANAGERS.service_orchestrator import ProvisioningOrchestrator
from rci.UTILS.console import Console


class FakeRunner:
    """Records compose/docker calls instead of running them."""

    def __init__(self, running=("roo-qdrant", "roo-ollama"), fail=()):
        self.running = set(running)
        self.fail = set(fail)
        self.calls = []
        self.compose_display = "docker compose"

    def _maybe_fail(self, name, cmd):
        self.calls.append(name)
        if name in self.fail:
            raise subprocess.CalledProcessError(1, cmd)

    def pull_images(self):
        self._maybe_fail("pull", ["docker", "compose", "pull"])

    def up_detached(self):
        self._maybe_fail("up", ["docker", "compose", "up", "-d"])

    def exec_in(self, container, command):
        self.calls.append(("exec", container, tuple(command)))
        if "exec" in self.fail:
            raise subprocess.CalledProcessError(1, ["docker", "exec", container] + list(command))

    def running_containers(self):
        self._maybe_fail("ps", ["docker", "ps"])
        return set(self.running)


class FakeProbe:
    """Answers readiness checks from a per-URL script of results."""

    def __init__(self, script=None, models=("nomic-embed-text:latest",)):
        self.script = script or {}
        self.models = list(models)
        self.requests = []

    def is_reachable(self, url):
        self.requests.append(url)
        results = self.script.get(url)
        if results is None:
            return True
        if callable(results):
            return results()
        return results.pop(0) if results else False

    def get_json(self, url):
        self.requests.append(url)
        return {"models": [{"name": name} for name in self.models]}


class FakeChecker:
    """Prerequisite checker that hands back a prepared runner."""

    def __init__(self, runner, error=None):
        self.runner = runner
        self.error = error
        self.checked = False

    def check(self, project_dir=".", compose_file=None, env_file=None):
        self.checked = True
        if self.error:
            raise self.error
        return self.runner


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def make_orchestrator(tmp_path, sleeps):
    """Builds an orchestrator over tmp_path with fakes for every external call."""

    def build(runner=None, probe=None, checker_error=None, budget=None, environ=None):
        runner = runner or FakeRunner()
        probe = probe or FakeProbe()
        console = Console(color=False)
        monitor = HealthMonitor(probe=probe, budget=budget or RetryBudget(), sleep=sleeps, console=console)
        orchestrator = ProvisioningOrchestrator(
            project_dir=str(tmp_path),
            console=console,
            checker=FakeChecker(runner, error=checker_error),
            monitor=monitor,
            runner=runner,
            environ=environ if environ is not None else {},
        )
        return orchestrator

    return build
