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
Provisioning of the indexing stack: prerequisites, configuration, storage,
startup, readiness, model pull, verification and the closing summary.
"""
import http.client
import os
import subprocess
from typing import List, Mapping, Optional
from urllib.error import URLError

import yaml
from jinja2 import Template

from ..errors import (
    ConfigError,
    ContainerNotRunning,
    ModelMissing,
    ModelPullFailure,
    SetupError,
    StartFailure,
    VerificationMismatch,
)
from ..MODELS.compose_stack import ComposeStack
from ..MODELS.service_handle import MODEL_SERVICE, ServiceHandle, declare_services, find_service
from ..MODELS.setup_config import SetupConfig
from ..MODELS.setup_result import SetupResult
from ..PARSERS.compose_parser import ComposeParser
from ..RUNNERS.compose_runner import ComposeRunner
from ..UTILS.console import Console
from .environment_manager import EnvironmentManager
from .health_monitor import HealthMonitor, model_available
from .prerequisites import PrerequisiteChecker
from .run_lock import RunLock
from .volume_manager import VolumeManager

STATUS_TEMPLATE = """
Services:
{% for svc in services %}  • {{ svc.display_name }}: {{ svc.base_url }}
{% endfor %}
Data directories:
  • Qdrant: {{ config.qdrant_storage_path }}
  • Ollama: {{ config.ollama_models_path }}

Embedding model: {{ config.embedding_model }}

To stop services: {{ compose }} down
To view logs: {{ compose }} logs -f
To restart: {{ compose }} restart
"""


class ProvisioningOrchestrator:
    """
    Brings the Qdrant + Ollama stack from not running to verified ready.
    A single sequential run per invocation; stages never run concurrently.
    """
    def __init__(self,
                 project_dir: str = ".",
                 env_file: str = ".env",
                 compose_file: str = "docker-compose.yml",
                 template_file: str = ".env.example",
                 console: Optional[Console] = None,
                 checker: Optional[PrerequisiteChecker] = None,
                 monitor: Optional[HealthMonitor] = None,
                 runner: Optional[ComposeRunner] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Initializes the orchestrator.

        :param project_dir: Directory holding the manifest, the .env file and relative storage paths.
        :param env_file: Configuration file name.
        :param compose_file: Compose manifest name.
        :param template_file: Template copied to env_file when it is absent.
        :param console: Output for status lines.
        :param checker: Prerequisite checker; it also resolves the compose command.
        :param monitor: Readiness poller.
        :param runner: Runner for the verify and pull-model modes, which skip the prerequisite check.
        :param environ: Process environment overriding the .env file, os.environ if omitted.
        """
        self.project_dir = project_dir
        self.env_file = env_file
        self.compose_file = compose_file
        self.console = console or Console()
        self.checker = checker or PrerequisiteChecker(console=self.console)
        self.monitor = monitor or HealthMonitor(console=self.console)
        self.runner = runner
        self.environ = os.environ if environ is None else environ

        self.env_manager = EnvironmentManager(project_dir, env_file, template_file)
        self.volume_manager = VolumeManager(project_dir)

    # Operations

    def run_full_setup(self) -> SetupResult:
        """
        Runs every stage in order.

        Stages up to readiness abort the run on failure, leaving already started
        containers running. A failed model pull still ends in a usable stack
        and yields DEGRADED; verification problems are only reported.

        :return: The run outcome.
        """
        self.console.echo("=== Roo Code Indexing Docker Setup ===")
        self.console.echo()
        try:
            with RunLock(self.project_dir):
                runner = self.check_prerequisites()
                self.ensure_config_file()
                config = self.load_config()
                services = self.declare_services(config)
                self.ensure_storage_directories(config)
                self.start_services(runner)
                self.wait_for_services(services)

                try:
                    self.pull_embedding_model(config, services, runner)
                except ModelPullFailure as e:
                    self._report_pull_failure(e)
                    self.console.warning("Setup completed but failed to pull embedding model. "
                                         "You can pull it manually later.")
                    self.show_status(config, services, runner)
                    return SetupResult.DEGRADED

                try:
                    self.verify_setup(config, services, runner)
                except VerificationMismatch as e:
                    self.console.warning(str(e))
                    self.console.warning("Setup completed but verification had issues. Please check the logs.")
                self.show_status(config, services, runner)
                return SetupResult.SUCCESS
        except SetupError as e:
            self.console.error(str(e))
            return e.result

    def verify_only(self) -> SetupResult:
        """
        Verifies an already running stack without starting or changing anything.

        :return: SUCCESS, or the failure that was found.
        """
        try:
            config = self.load_config()
            services = self.declare_services(config)
            self.verify_setup(config, services, self._standalone_runner())
        except ModelMissing as e:
            self.console.warning(str(e))
            return e.result
        except SetupError as e:
            self.console.error(str(e))
            return e.result
        return SetupResult.SUCCESS

    def pull_model_only(self) -> SetupResult:
        """
        Pulls the configured model into an already running model service.

        :return: SUCCESS, or the failure that was found.
        """
        try:
            config = self.load_config()
            services = self.declare_services(config)
            self.pull_embedding_model(config, services, self._standalone_runner())
        except ModelPullFailure as e:
            self._report_pull_failure(e)
            return e.result
        except SetupError as e:
            self.console.error(str(e))
            return e.result
        return SetupResult.SUCCESS

    # Stages

    def check_prerequisites(self) -> ComposeRunner:
        """
        Stage 1: host tooling. The compose command is resolved here, once.

        :raises PrerequisiteMissing: If docker, compose or the daemon is unavailable.
        """
        self.console.status("Checking system requirements...")
        runner = self.checker.check(self.project_dir, compose_file=self._compose_arg(),
                                    env_file=self._env_arg())
        self.console.success("System requirements check passed")
        return runner

    def ensure_config_file(self) -> bool:
        """
        Stage 2: create the .env file from its template unless it exists.

        :return: True if the file was created.
        """
        if self.env_manager.ensure_env_file():
            self.console.success(f"{self.env_file} file created from template. "
                                 "Please review and modify as needed.")
            self.console.warning(f"You may want to edit {self.env_file} to choose your preferred embedding model.")
            return True
        self.console.status(f"{self.env_file} file already exists, skipping creation.")
        return False

    def load_config(self) -> SetupConfig:
        """
        Loads the run configuration. Called once per operation; the result is
        passed to every later stage.

        :raises ConfigError: If a value is invalid.
        """
        return self.env_manager.load_config(self.environ)

    def declare_services(self, config: SetupConfig) -> List[ServiceHandle]:
        """
        Declares the two services, honouring container names from the manifest.

        :raises ConfigError: If the manifest exists but cannot be parsed.
        """
        return declare_services(config, self._load_stack(config))

    def ensure_storage_directories(self, config: SetupConfig) -> List[str]:
        """
        Stage 3: create the storage directories.

        :raises ConfigError: If a directory cannot be created.
        """
        self.console.status("Creating data directories...")
        paths = self.volume_manager.ensure_directories(config)
        configured = self.volume_manager.storage_paths(config)
        self.console.success(f"Data directories created: {', '.join(configured.values())}")
        return paths

    def start_services(self, runner: ComposeRunner):
        """
        Stage 4: pull the latest images, then start the stack detached.

        :raises StartFailure: If either compose call fails.
        """
        self.console.status("Starting Docker services...")

        self.console.status("Pulling Docker images...")
        try:
            runner.pull_images()
        except (subprocess.CalledProcessError, OSError) as e:
            raise StartFailure(f"Failed to pull Docker images: {e}") from e

        self.console.status("Starting services in detached mode...")
        try:
            runner.up_detached()
        except (subprocess.CalledProcessError, OSError) as e:
            raise StartFailure(f"Failed to start services: {e}") from e

        self.console.success("Services started successfully")

    def wait_for_services(self, services: List[ServiceHandle]):
        """
        Stage 5: poll each service's readiness endpoint, storage service first.

        :raises ReadinessTimeout: If a service never answers; later services are not polled.
        """
        self.console.status("Waiting for services to become healthy...")
        self.monitor.wait_for_services(services)

    def pull_embedding_model(self, config: SetupConfig, services: List[ServiceHandle],
                             runner: ComposeRunner):
        """
        Stage 6: download the configured model inside the model service container.

        :raises ModelPullFailure: If the pull command fails.
        """
        model = config.embedding_model
        container = find_service(services, MODEL_SERVICE).container_name

        self.console.status(f"Pulling embedding model: {model}")
        self.console.warning("This may take several minutes depending on your internet connection...")
        try:
            runner.exec_in(container, ["ollama", "pull", model])
        except subprocess.CalledProcessError as e:
            raise ModelPullFailure(model, f"exit code {e.returncode}") from e
        except OSError as e:
            raise ModelPullFailure(model, str(e)) from e
        self.console.success(f"Embedding model {model} pulled successfully")

    def verify_setup(self, config: SetupConfig, services: List[ServiceHandle],
                     runner: ComposeRunner):
        """
        Stage 7: both containers running and the model present in the inventory.

        :raises ContainerNotRunning: If a container is not running.
        :raises ModelMissing: If the model is not in the inventory.
        :raises VerificationMismatch: If the inventory cannot be read.
        """
        self.console.status("Verifying setup...")
        try:
            running = runner.running_containers()
        except (subprocess.CalledProcessError, OSError) as e:
            raise VerificationMismatch(f"Cannot list running containers: {e}") from e

        for service in services:
            if service.container_name not in running:
                raise ContainerNotRunning(service.display_name, service.container_name)

        model_service = find_service(services, MODEL_SERVICE)
        try:
            names = self.monitor.list_models(model_service)
        except (URLError, OSError, http.client.HTTPException, ValueError) as e:
            raise VerificationMismatch(f"Cannot list models in {model_service.display_name}: {e}") from e

        if not model_available(config.embedding_model, names):
            raise ModelMissing(config.embedding_model, model_service.display_name)

        self.console.success("Setup verification completed successfully")

    def show_status(self, config: SetupConfig, services: List[ServiceHandle],
                    runner: ComposeRunner):
        """
        Stage 8: endpoints, storage paths and management hints.
        """
        self.console.echo()
        self.console.success("=== Roo Code Indexing Setup Complete ===")
        summary = Template(STATUS_TEMPLATE).render(
            services=services,
            config=config,
            compose=runner.compose_display,
        )
        self.console.echo(summary)

    # Helpers

    def _load_stack(self, config: SetupConfig) -> ComposeStack:
        path = os.path.join(self.project_dir, self.compose_file)
        if not os.path.exists(path):
            return ComposeStack()
        context = dict(self.environ)
        context.update(config.as_environment())
        try:
            return ComposeParser(context).parse(path)
        except (OSError, yaml.YAMLError, ValueError, KeyError) as e:
            raise ConfigError(f"Cannot parse {self.compose_file}: {e}") from e

    def _standalone_runner(self) -> ComposeRunner:
        if self.runner is not None:
            return self.runner
        # Only docker subcommands (ps, exec) run outside a full setup
        return ComposeRunner(["docker", "compose"], project_dir=self.project_dir,
                             compose_file=self._compose_arg(), env_file=self._env_arg())

    def _compose_arg(self) -> Optional[str]:
        return None if self.compose_file == "docker-compose.yml" else self.compose_file

    def _env_arg(self) -> Optional[str]:
        return None if self.env_file == ".env" else self.env_file

    def _report_pull_failure(self, error: ModelPullFailure):
        self.console.error(str(error))
        self.console.error("Please check your internet connection and try again")
