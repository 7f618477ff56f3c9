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
Unit tests for the run configuration model.
"""
import pytest
from pydantic import ValidationError

from rci.errors import ConfigError
from rci.MODELS.setup_config import SetupConfig
from rci.MODELS.service_handle import declare_services, find_service
from rci.MODELS.compose_stack import ComposeStack, ComposeService


class TestSetupConfig:
    """Tests for SetupConfig."""

    def test_defaults(self):
        """All keys have defaults."""
        config = SetupConfig.from_sources()
        assert config.embedding_model == "nomic-embed-text"
        assert config.qdrant_port == 6333
        assert config.qdrant_grpc_port == 6334
        assert config.qdrant_storage_path == "./data/qdrant"
        assert config.qdrant_memory_limit == "4G"
        assert config.qdrant_memory_reservation == "2G"
        assert config.ollama_port == 11434
        assert config.ollama_models_path == "./data/ollama"
        assert config.ollama_memory_limit == "24G"
        assert config.ollama_memory_reservation == "16G"

    def test_file_values_override_defaults(self):
        """Values from the .env file replace defaults."""
        config = SetupConfig.from_sources({"EMBEDDING_MODEL": "mxbai-embed-large", "QDRANT_PORT": "7333"})
        assert config.embedding_model == "mxbai-embed-large"
        assert config.qdrant_port == 7333

    def test_environment_overrides_file(self):
        """The process environment wins over the file."""
        config = SetupConfig.from_sources({"OLLAMA_PORT": "12000"}, {"OLLAMA_PORT": "13000"})
        assert config.ollama_port == 13000

    def test_empty_value_counts_as_unset(self):
        """Empty values fall back like ${VAR:-default}."""
        config = SetupConfig.from_sources({"EMBEDDING_MODEL": "", "QDRANT_PORT": "  "})
        assert config.embedding_model == "nomic-embed-text"
        assert config.qdrant_port == 6333

    def test_unrelated_keys_ignored(self):
        """Keys outside the configuration surface are ignored."""
        config = SetupConfig.from_sources({"PATH": "/usr/bin"}, {"HOME": "/root"})
        assert config == SetupConfig()

    @pytest.mark.parametrize("key,value", [
        ("QDRANT_PORT", "not-a-port"),
        ("OLLAMA_PORT", "70000"),
        ("QDRANT_GRPC_PORT", "0"),
        ("QDRANT_MEMORY_LIMIT", "lots"),
        ("OLLAMA_MEMORY_RESERVATION", "16 GB"),
    ])
    def test_invalid_values_raise_config_error(self, key, value):
        """Malformed ports and memory sizes are rejected eagerly."""
        with pytest.raises(ConfigError, match=key):
            SetupConfig.from_sources({key: value})

    @pytest.mark.parametrize("value", ["4G", "512m", "1.5g", "2048", "1gb"])
    def test_memory_notation_accepted(self, value):
        """Compose byte notation is accepted."""
        assert SetupConfig.from_sources({"QDRANT_MEMORY_LIMIT": value}).qdrant_memory_limit == value

    def test_frozen(self):
        """The configuration cannot change during a run."""
        config = SetupConfig()
        with pytest.raises(ValidationError):
            config.qdrant_port = 1

    def test_as_environment(self):
        """Rendering back to KEY=value form."""
        env = SetupConfig(qdrant_port=7000).as_environment()
        assert env["QDRANT_PORT"] == "7000"
        assert env["EMBEDDING_MODEL"] == "nomic-embed-text"


class TestServiceHandles:
    """Tests for the declared services."""

    def test_declared_in_order(self):
        """Storage service first, model service second."""
        services = declare_services(SetupConfig())
        assert [s.name for s in services] == ["qdrant", "ollama"]
        assert services[0].readiness_url == "http://localhost:6333/readyz"
        assert services[1].readiness_url == "http://localhost:11434/api/tags"
        assert services[0].container_name == "roo-qdrant"
        assert services[1].container_name == "roo-ollama"

    def test_ports_follow_configuration(self):
        """Readiness URLs use the configured ports."""
        services = declare_services(SetupConfig(qdrant_port=7333, ollama_port=12434))
        assert find_service(services, "qdrant").base_url == "http://localhost:7333"
        assert find_service(services, "ollama").base_url == "http://localhost:12434"

    def test_container_names_from_manifest(self):
        """container_name in the manifest wins over the built-in names."""
        stack = ComposeStack(services={"ollama": ComposeService(name="ollama", container_name="my-ollama")})
        services = declare_services(SetupConfig(), stack)
        assert find_service(services, "ollama").container_name == "my-ollama"
        assert find_service(services, "qdrant").container_name == "roo-qdrant"

    def test_unknown_service(self):
        """Looking up an undeclared service fails."""
        with pytest.raises(KeyError):
            find_service(declare_services(SetupConfig()), "redis")
