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
Readiness polling for the managed services and the model inventory query,
both over plain HTTP.
"""
import http.client
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from ..errors import ReadinessTimeout
from ..MODELS.service_handle import ServiceHandle
from ..UTILS.console import Console

MAX_ATTEMPTS = 30
RETRY_DELAY = 2.0
REQUEST_TIMEOUT = 5.0


@dataclass(frozen=True)
class RetryBudget:
    """
    Bounded attempts at a fixed delay for a single readiness poll.
    Exhausting it is final for that poll; nothing retries at a higher level.
    """

    max_attempts: int = MAX_ATTEMPTS
    delay: float = RETRY_DELAY


class HttpProbe:
    """
    Minimal HTTP client for the services' readiness and listing endpoints.
    """

    def __init__(self, timeout: float = REQUEST_TIMEOUT):
        """
        Args:
            timeout: Per-request timeout in seconds.
        """
        self.timeout = timeout

    def is_reachable(self, url: str) -> bool:
        """
        Check whether a service answers on a URL.

        Any HTTP response counts, error statuses included; only a failure to
        get a response at all means the service is not up yet.

        Args:
            url: Endpoint to request.

        Returns:
            True if an HTTP response came back.
        """
        try:
            with urlopen(Request(url), timeout=self.timeout) as response:
                response.read()
            return True
        except HTTPError:
            return True
        except (URLError, OSError, http.client.HTTPException):
            return False

    def get_json(self, url: str) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            URLError, OSError, http.client.HTTPException: If the request fails.
            ValueError: If the body is not JSON.
        """
        request = Request(url, headers={"Accept": "application/json"})
        with urlopen(request, timeout=self.timeout) as response:
            return json.loads(response.read().decode())


class HealthMonitor:
    """
    Waits for services to become ready, one at a time and in declared order.
    """

    def __init__(
        self,
        probe: Optional[HttpProbe] = None,
        budget: Optional[RetryBudget] = None,
        sleep: Callable[[float], None] = time.sleep,
        console: Optional[Console] = None,
    ):
        """
        Initializes the health monitor.

        :param probe: HTTP probe used for each attempt.
        :param budget: Attempts and delay for each poll.
        :param sleep: Sleep function between attempts, replaceable in tests.
        :param console: Output for status lines.
        """
        self.probe = probe or HttpProbe()
        self.budget = budget or RetryBudget()
        self.sleep = sleep
        self.console = console or Console()

    def wait_until_ready(self, service: ServiceHandle) -> int:
        """
        Poll a service's readiness endpoint until it answers or the budget runs out.

        Args:
            service: Service to poll.

        Returns:
            The attempt number that succeeded.

        Raises:
            ReadinessTimeout: If every attempt failed.
        """
        attempts = 0

        def attempt() -> bool:
            nonlocal attempts
            attempts += 1
            return self.probe.is_reachable(service.readiness_url)

        retryer = Retrying(
            stop=stop_after_attempt(self.budget.max_attempts),
            wait=wait_fixed(self.budget.delay),
            retry=retry_if_result(lambda ready: not ready),
            sleep=self.sleep,
        )
        try:
            retryer(attempt)
        except RetryError as e:
            raise ReadinessTimeout(service.display_name, attempts, service.readiness_url) from e
        return attempts

    def wait_for_services(self, services: List[ServiceHandle]) -> None:
        """
        Wait for each service in order. The first timeout aborts, later
        services are never polled.

        Raises:
            ReadinessTimeout: If a service did not become ready.
        """
        for service in sorted(services, key=lambda s: s.order):
            self.console.status(f"Checking {service.display_name} health...")
            self.wait_until_ready(service)
            self.console.success(f"{service.display_name} is healthy")

    def list_models(self, service: ServiceHandle) -> List[str]:
        """
        Names of the models available locally in the model service.

        Raises:
            URLError, OSError, http.client.HTTPException, ValueError: If the
            inventory cannot be fetched or decoded.
        """
        data = self.probe.get_json(f"{service.base_url}/api/tags")
        models = (data.get("models") if isinstance(data, dict) else None) or []
        return [m.get("name", "") for m in models if isinstance(m, dict)]


def model_available(model: str, names: List[str]) -> bool:
    """
    Whether a model appears in an inventory.
    A name without a tag matches any tag of that model.

    Args:
        model: Configured model identifier, e.g. "nomic-embed-text".
        names: Inventory entries, e.g. ["nomic-embed-text:latest"].
    """
    for name in names:
        if name == model:
            return True
        if ":" not in model and name.split(":", 1)[0] == model:
            return True
    return False
