"""
Managers for the .env configuration file: provisioning it from a template
and loading it once per run.
"""
import os
import shutil
from typing import Mapping, Optional

from jinja2 import Template

from ..errors import ConfigError
from ..MODELS.setup_config import SetupConfig
from ..PARSERS.env_parser import EnvParser

ENV_TEMPLATE = """\
# Roo Code Indexing stack configuration
# Values set in the process environment take precedence over this file.

# Embedding model pulled into Ollama.
# nomic-embed-text is the smallest; mxbai-embed-large needs more memory.
EMBEDDING_MODEL={{ config.embedding_model }}

# Qdrant (vector database)
QDRANT_PORT={{ config.qdrant_port }}
QDRANT_GRPC_PORT={{ config.qdrant_grpc_port }}
QDRANT_STORAGE_PATH={{ config.qdrant_storage_path }}
QDRANT_MEMORY_LIMIT={{ config.qdrant_memory_limit }}
QDRANT_MEMORY_RESERVATION={{ config.qdrant_memory_reservation }}
QDRANT_LOG_LEVEL={{ config.qdrant_log_level }}

# Ollama (embedding runtime)
OLLAMA_PORT={{ config.ollama_port }}
OLLAMA_MODELS_PATH={{ config.ollama_models_path }}
OLLAMA_MEMORY_LIMIT={{ config.ollama_memory_limit }}
OLLAMA_MEMORY_RESERVATION={{ config.ollama_memory_reservation }}
"""


class EnvironmentManager:
    """
    Owns the .env file of a project directory.
    """
    def __init__(self,
                 base_dir: str = ".",
                 env_file: str = ".env",
                 template_file: str = ".env.example"):
        """
        Initializes the environment manager.

        :param base_dir: The base directory for resolving relative paths to .env files.
        :param env_file: Name of the configuration file.
        :param template_file: Name of the template copied when the configuration file is absent.
        """
        self.base_dir = base_dir
        self.env_path = os.path.join(base_dir, env_file)
        self.template_path = os.path.join(base_dir, template_file)
        self.parser = EnvParser()

    def ensure_env_file(self) -> bool:
        """
        Creates the configuration file from the template if it does not exist.
        An existing file is never touched.

        :return: True if the file was created, False if it already existed.
        :raises ConfigError: If the file cannot be written.
        """
        if os.path.exists(self.env_path):
            return False
        try:
            if os.path.exists(self.template_path):
                shutil.copyfile(self.template_path, self.env_path)
            else:
                with open(self.env_path, 'x', encoding='utf-8') as f:
                    f.write(self.render_template())
        except FileExistsError:
            # Created between the check and the write; still not ours to overwrite
            return False
        except OSError as e:
            raise ConfigError(f"Cannot create {self.env_path}: {e}") from e
        return True

    def render_template(self, config: Optional[SetupConfig] = None) -> str:
        """
        Renders the built-in configuration template.

        :param config: Values to render, the defaults if omitted.
        :return: The .env file content.
        """
        return Template(ENV_TEMPLATE, keep_trailing_newline=True).render(config=config or SetupConfig())

    def load_config(self, environ: Optional[Mapping[str, str]] = None) -> SetupConfig:
        """
        Loads the configuration once: process environment over .env over defaults.

        :param environ: Process environment, os.environ if omitted.
        :return: The immutable run configuration.
        :raises ConfigError: If the file cannot be read or a value is invalid.
        """
        file_values = {}
        if os.path.exists(self.env_path):
            try:
                file_values = self.parser.parse(self.env_path)
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigError(f"Cannot read {self.env_path}: {e}") from e
        return SetupConfig.from_sources(file_values, os.environ if environ is None else environ)
