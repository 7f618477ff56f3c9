"""
Host checks performed before anything is mutated.
"""
import shutil
import subprocess
from typing import Callable, List, Optional

import psutil

from ..errors import PrerequisiteMissing
from ..RUNNERS.compose_runner import ComposeRunner
from ..UTILS.console import Console

GIB = 1024 ** 3
# Below this much RAM the larger embedding models do not fit next to Qdrant
RECOMMENDED_MEMORY_GIB = 16


class PrerequisiteChecker:
    """
    Verifies docker, its compose tooling and the daemon, and advises on host memory.
    """
    def __init__(self,
                 console: Optional[Console] = None,
                 which: Callable[[str], Optional[str]] = shutil.which,
                 check_daemon: bool = True,
                 memory_threshold_gib: int = RECOMMENDED_MEMORY_GIB):
        """
        :param console: Output for status lines.
        :param which: Executable lookup, shutil.which by default.
        :param check_daemon: Also require `docker info` to succeed.
        :param memory_threshold_gib: Advisory threshold for total host memory.
        """
        self.console = console or Console()
        self.which = which
        self.check_daemon = check_daemon
        self.memory_threshold_gib = memory_threshold_gib

    def check(self, project_dir: str = ".",
              compose_file: Optional[str] = None,
              env_file: Optional[str] = None) -> ComposeRunner:
        """
        Runs every check and resolves the compose command.

        :return: A runner bound to the resolved compose command.
        :raises PrerequisiteMissing: If docker, compose or the daemon is unavailable.
        """
        if not self.which("docker"):
            raise PrerequisiteMissing("Docker is not installed. Please install Docker first.")

        compose_cmd = self.resolve_compose_command()

        if self.check_daemon and not self._succeeds(["docker", "info"]):
            raise PrerequisiteMissing("Docker daemon is not reachable. Please start Docker and retry.")

        self.check_memory()

        return ComposeRunner(compose_cmd, project_dir=project_dir,
                             compose_file=compose_file, env_file=env_file)

    def resolve_compose_command(self) -> List[str]:
        """
        Picks the standalone docker-compose binary if present, else the compose plugin.

        :raises PrerequisiteMissing: If neither is available.
        """
        if self.which("docker-compose"):
            return ["docker-compose"]
        if self._succeeds(["docker", "compose", "version"]):
            return ["docker", "compose"]
        raise PrerequisiteMissing("Docker Compose is not installed. Please install Docker Compose first.")

    def check_memory(self) -> Optional[int]:
        """
        Emits an advisory when total host memory is below the threshold.

        :return: Total memory in whole GiB, or None if it cannot be determined.
        """
        try:
            total_gib = psutil.virtual_memory().total // GIB
        except (OSError, RuntimeError):
            return None
        if total_gib < self.memory_threshold_gib:
            self.console.warning(
                f"System has less than {self.memory_threshold_gib}GB RAM. "
                "Consider using nomic-embed-text model."
            )
        return total_gib

    def _succeeds(self, command: List[str]) -> bool:
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0
