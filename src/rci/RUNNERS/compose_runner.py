# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Execution of docker and compose commands against the project stack.
"""
import subprocess
from typing import List, Optional, Set


class ComposeRunner:
    """
    Runs the container tooling for one project directory.
    The compose command is resolved once, before the runner is built, and
    reused for every call.
    """
    def __init__(self,
                 compose_cmd: List[str],
                 project_dir: str = ".",
                 compose_file: Optional[str] = None,
                 env_file: Optional[str] = None,
                 docker_cmd: str = "docker"):
        """
        Initializes the runner.

        Args:
            compose_cmd (List[str]): Either ["docker-compose"] or ["docker", "compose"].
            project_dir (str): Directory holding the manifest; commands run from here.
            compose_file (Optional[str]): Manifest path, relative to project_dir.
            env_file (Optional[str]): Env file for interpolation, relative to project_dir.
            docker_cmd (str): Docker CLI executable.
        """
        self.compose_cmd = list(compose_cmd)
        self.project_dir = project_dir
        self.compose_file = compose_file
        self.env_file = env_file
        self.docker_cmd = docker_cmd

    @property
    def compose_display(self) -> str:
        """The compose command as a user would type it."""
        return " ".join(self.compose_cmd)

    def compose(self, *args: str) -> List[str]:
        """
        Builds a compose command line.

        Returns:
            List[str]: Command and arguments.
        """
        command = list(self.compose_cmd)
        if self.compose_file:
            command += ["-f", self.compose_file]
        if self.env_file:
            command += ["--env-file", self.env_file]
        return command + list(args)

    def pull_images(self):
        """
        Pulls the latest images for every declared service.

        Raises:
            subprocess.CalledProcessError: If the compose tool exits non-zero.
            OSError: If the compose tool cannot be executed.
        """
        self._run(self.compose("pull"))

    def up_detached(self):
        """
        Starts every declared service in detached mode.

        Raises:
            subprocess.CalledProcessError: If the compose tool exits non-zero.
            OSError: If the compose tool cannot be executed.
        """
        self._run(self.compose("up", "-d"))

    def exec_in(self, container: str, command: List[str]):
        """
        Runs a command inside a running container, streaming its output.

        Args:
            container (str): Container name.
            command (List[str]): Command and arguments, never passed through a shell.

        Raises:
            subprocess.CalledProcessError: If the command exits non-zero.
            OSError: If docker cannot be executed.
        """
        self._run([self.docker_cmd, "exec", container] + list(command))

    def running_containers(self) -> Set[str]:
        """
        Lists the names of running containers.

        Returns:
            Set[str]: Container names reported by `docker ps`.

        Raises:
            subprocess.CalledProcessError: If docker exits non-zero.
            OSError: If docker cannot be executed.
        """
        result = self._run([self.docker_cmd, "ps", "--format", "{{.Names}}"], capture=True)
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def _run(self, command: List[str], capture: bool = False) -> subprocess.CompletedProcess:
        """
        Runs a command from the project directory and checks its exit status.
        """
        return subprocess.run(
            command,
            cwd=self.project_dir,
            capture_output=capture,
            text=True,
            check=True,
            # Arguments come from configuration, never hand them to a shell (CWE-78)
            shell=False,
        )
