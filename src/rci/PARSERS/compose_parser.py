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
Parsers for Docker Compose YAML files.
"""
import yaml
from typing import Dict, Any, Mapping, Optional
from ..MODELS.compose_stack import ComposeStack, ComposeService
from ..UTILS.string_interpolation import EnvironmentInterpolator
import os

class ComposeParser:
    """
    Parser for docker-compose.yml files.
    Only reads the manifest; the compose tool itself remains the authority
    when the stack is started.
    """
    def __init__(self, context: Optional[Mapping[str, str]] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: A mapping of variables for interpolation. Defaults to os.environ.
        """
        self.context = dict(os.environ) if context is None else dict(context)

    def parse(self, compose_path: str) -> ComposeStack:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed manifest.
        """
        with open(compose_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> ComposeStack:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed manifest.
        :raises ValueError: If the document or a service is not a mapping.
        :raises yaml.YAMLError: If the document is not valid YAML.
        """
        # Interpolate variables before parsing YAML, unset ones become empty like in Compose
        content = EnvironmentInterpolator(self.context).interpolate(content)

        data = yaml.safe_load(content)
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Compose file must contain a mapping at the top level")

        services = data.get('services') or {}
        if not isinstance(services, dict):
            raise ValueError("'services' must be a mapping")

        return ComposeStack(services={
            name: self._parse_service(str(name), spec or {}) for name, spec in services.items()
        })

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> ComposeService:
        """
        Parses a single service definition from a compose file.
        Everything besides the container name is left to the compose tool.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ComposeService instance.
        """
        if not isinstance(spec, dict):
            raise ValueError(f"Service '{name}' must be a mapping")
        container_name = spec.get('container_name')
        return ComposeService(
            name=name,
            container_name=None if container_name is None else str(container_name),
        )
