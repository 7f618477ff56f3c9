"""
Models for the stack configuration read from the .env file.
"""
from typing import Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigError

# Compose byte notation: 4G, 512m, 1.5gb, 2048
MEMORY_PATTERN = r"^\d+(\.\d+)?[bkmgBKMG]?[bB]?$"

# Configuration key -> SetupConfig field
ENV_KEYS: Dict[str, str] = {
    "EMBEDDING_MODEL": "embedding_model",
    "QDRANT_PORT": "qdrant_port",
    "QDRANT_GRPC_PORT": "qdrant_grpc_port",
    "QDRANT_STORAGE_PATH": "qdrant_storage_path",
    "QDRANT_MEMORY_LIMIT": "qdrant_memory_limit",
    "QDRANT_MEMORY_RESERVATION": "qdrant_memory_reservation",
    "QDRANT_LOG_LEVEL": "qdrant_log_level",
    "OLLAMA_PORT": "ollama_port",
    "OLLAMA_MODELS_PATH": "ollama_models_path",
    "OLLAMA_MEMORY_LIMIT": "ollama_memory_limit",
    "OLLAMA_MEMORY_RESERVATION": "ollama_memory_reservation",
}


class SetupConfig(BaseModel):
    """
    Immutable configuration for one orchestrator run.
    Every field has a default so an absent .env still yields a usable stack.
    """
    model_config = ConfigDict(frozen=True)

    embedding_model: str = Field("nomic-embed-text", min_length=1)

    # Storage service (Qdrant)
    qdrant_port: int = Field(6333, ge=1, le=65535)
    qdrant_grpc_port: int = Field(6334, ge=1, le=65535)
    qdrant_storage_path: str = Field("./data/qdrant", min_length=1)
    qdrant_memory_limit: str = Field("4G", pattern=MEMORY_PATTERN)
    qdrant_memory_reservation: str = Field("2G", pattern=MEMORY_PATTERN)
    qdrant_log_level: str = "INFO"

    # Model service (Ollama)
    ollama_port: int = Field(11434, ge=1, le=65535)
    ollama_models_path: str = Field("./data/ollama", min_length=1)
    ollama_memory_limit: str = Field("24G", pattern=MEMORY_PATTERN)
    ollama_memory_reservation: str = Field("16G", pattern=MEMORY_PATTERN)

    @classmethod
    def from_sources(cls,
                     file_values: Optional[Mapping[str, Optional[str]]] = None,
                     environ: Optional[Mapping[str, str]] = None) -> "SetupConfig":
        """
        Builds a configuration from the .env values and the process environment.

        The process environment wins over the file, the file wins over the
        defaults. Empty values count as unset, like ${VAR:-default} in Compose.

        :param file_values: Values parsed from the .env file.
        :param environ: Process environment, usually os.environ.
        :return: Validated configuration.
        :raises ConfigError: If a value fails validation.
        """
        data = {}
        for source in (file_values or {}, environ or {}):
            for key, field_name in ENV_KEYS.items():
                value = source.get(key)
                if value is not None and value.strip():
                    data[field_name] = value.strip()

        try:
            return cls(**data)
        except ValidationError as e:
            problems = []
            for err in e.errors():
                field_name = err["loc"][0] if err["loc"] else "?"
                key = next((k for k, f in ENV_KEYS.items() if f == field_name), field_name)
                problems.append(f"{key}={data.get(field_name)!r}: {err['msg']}")
            raise ConfigError("Invalid configuration: " + "; ".join(problems)) from e

    def as_environment(self) -> Dict[str, str]:
        """
        Renders the configuration back into KEY=value form, for interpolating
        the Compose manifest.
        """
        return {key: str(getattr(self, field_name)) for key, field_name in ENV_KEYS.items()}
