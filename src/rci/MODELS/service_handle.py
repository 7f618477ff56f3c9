"""
Models for the two managed services and their readiness endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from .compose_stack import ComposeStack
from .setup_config import SetupConfig

STORAGE_SERVICE = "qdrant"
MODEL_SERVICE = "ollama"

DEFAULT_HOST = "localhost"


class ServiceHandle(BaseModel):
    """
    Identifies one managed service. Declared statically, never created or
    destroyed at runtime; the container runtime owns its lifecycle.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    container_name: str
    port: int
    readiness_path: str
    order: int
    host: str = DEFAULT_HOST

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def readiness_url(self) -> str:
        return f"{self.base_url}{self.readiness_path}"


def declare_services(config: SetupConfig,
                     stack: Optional[ComposeStack] = None,
                     host: str = DEFAULT_HOST) -> List[ServiceHandle]:
    """
    Declares the storage and model services in startup order.

    :param config: Run configuration, supplies the published ports.
    :param stack: Parsed Compose manifest; container names declared there win.
    :param host: Host the published ports are reachable on.
    :return: Handles sorted by startup order, storage service first.
    """
    stack = stack or ComposeStack()
    handles = [
        ServiceHandle(
            name=STORAGE_SERVICE,
            display_name="Qdrant",
            container_name=stack.container_name(STORAGE_SERVICE) or "roo-qdrant",
            port=config.qdrant_port,
            readiness_path="/readyz",
            order=0,
            host=host,
        ),
        ServiceHandle(
            name=MODEL_SERVICE,
            display_name="Ollama",
            container_name=stack.container_name(MODEL_SERVICE) or "roo-ollama",
            port=config.ollama_port,
            readiness_path="/api/tags",
            order=1,
            host=host,
        ),
    ]
    return sorted(handles, key=lambda h: h.order)


def find_service(services: List[ServiceHandle], name: str) -> ServiceHandle:
    """
    Looks up a declared service by name.

    :raises KeyError: If no service with that name is declared.
    """
    for handle in services:
        if handle.name == name:
            return handle
    raise KeyError(f"Service {name} is not declared")
