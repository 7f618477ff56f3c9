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
Errors raised by the provisioning stages.

Every error maps onto a SetupResult so the CLI can turn it into an exit status
without inspecting messages.
"""
from typing import Optional

from .MODELS.setup_result import SetupResult


class SetupError(Exception):
    """Base class for all provisioning failures."""

    result = SetupResult.START_FAILURE


class PrerequisiteMissing(SetupError):
    """Docker, its compose tooling or the daemon is unavailable."""

    result = SetupResult.PREREQUISITE_MISSING


class ConfigError(SetupError):
    """The configuration file or a configured path cannot be used."""

    result = SetupResult.CONFIG_ERROR


class StartFailure(SetupError):
    """Pulling images or starting containers failed."""

    result = SetupResult.START_FAILURE


class ReadinessTimeout(SetupError):
    """A service did not answer within its retry budget."""

    result = SetupResult.READINESS_TIMEOUT

    def __init__(self, service: str, attempts: int, url: Optional[str] = None):
        self.service = service
        self.attempts = attempts
        self.url = url
        super().__init__(f"{service} failed to become healthy after {attempts} attempts")


class ModelPullFailure(SetupError):
    """Downloading the embedding model inside the model service failed."""

    result = SetupResult.MODEL_PULL_FAILURE

    def __init__(self, model: str, reason: str = ""):
        self.model = model
        self.reason = reason
        message = f"Failed to pull embedding model: {model}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class VerificationMismatch(SetupError):
    """A container is not running or the model is missing from the inventory."""

    result = SetupResult.VERIFICATION_MISMATCH


class ContainerNotRunning(VerificationMismatch):
    """A managed container is absent from the running containers."""

    def __init__(self, service: str, container: str):
        self.service = service
        self.container = container
        super().__init__(f"{service} container is not running ({container})")


class ModelMissing(VerificationMismatch):
    """The configured model is absent from the model service's inventory."""

    def __init__(self, model: str, service: str = "Ollama"):
        self.model = model
        super().__init__(f"Embedding model {model} not found in {service}")


class SetupInProgress(SetupError):
    """Another full setup run holds the project lock."""

    result = SetupResult.ALREADY_RUNNING

    def __init__(self, lock_path: str, pid: Optional[int] = None):
        self.lock_path = lock_path
        self.pid = pid
        holder = f" (pid {pid})" if pid else ""
        super().__init__(f"Another setup run is in progress{holder}; lock file: {lock_path}")
