"""
Models for the parts of the Compose manifest the provisioner cares about.
"""
from typing import Dict, Optional
from pydantic import BaseModel


class ComposeService(BaseModel):
    """
    A single service from docker-compose.yml.
    """
    name: str
    container_name: Optional[str] = None


class ComposeStack(BaseModel):
    """
    The parsed manifest, keyed by service name.
    """
    services: Dict[str, ComposeService] = {}

    def container_name(self, service: str) -> Optional[str]:
        """
        Container name declared for a service, if any.
        """
        svc = self.services.get(service)
        return svc.container_name if svc else None
