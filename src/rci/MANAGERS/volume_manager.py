"""
Volume management for the stack, creating the bind-mounted storage directories.
"""
import os
from typing import Dict, List

from ..errors import ConfigError
from ..MODELS.setup_config import SetupConfig


class VolumeManager:
    """
    Prepares the host directories the Compose manifest binds into the containers.
    """
    def __init__(self, base_dir: str = ".", mode: int = 0o755):
        """
        Initializes the volume manager.

        :param base_dir: The base directory for resolving relative paths.
        :param mode: Permissions applied to each storage directory.
        """
        self.base_dir = os.path.abspath(base_dir)
        self.mode = mode

    def storage_paths(self, config: SetupConfig) -> Dict[str, str]:
        """
        Configured storage paths, as written in the configuration.

        :return: Service name mapped to its storage path.
        """
        return {
            "qdrant": config.qdrant_storage_path,
            "ollama": config.ollama_models_path,
        }

    def ensure_directories(self, config: SetupConfig) -> List[str]:
        """
        Creates every storage directory, parents included. Safe to re-run.

        :param config: Run configuration.
        :return: The absolute paths of the directories.
        :raises ConfigError: If a path exists but is not a directory, or cannot be created.
        """
        created = []
        for name, path in self.storage_paths(config).items():
            resolved = self.resolve(path)
            if os.path.exists(resolved) and not os.path.isdir(resolved):
                raise ConfigError(f"Storage path for {name} is not a directory: {resolved}")
            try:
                os.makedirs(resolved, exist_ok=True)
                os.chmod(resolved, self.mode)
            except OSError as e:
                raise ConfigError(f"Cannot create storage directory {resolved}: {e}") from e
            created.append(resolved)
        return created

    def resolve(self, path: str) -> str:
        """
        Resolves a storage path relative to the project directory, like Compose does.

        :param path: The configured path.
        :return: The absolute path.
        """
        path = os.path.expanduser(path)
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.abspath(os.path.join(self.base_dir, path))
