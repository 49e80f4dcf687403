"""Settings for the decompilation client."""

from dataclasses import dataclass
import json


MIN_NUM_CTX = 1024
MAX_NUM_CTX = 131072


@dataclass
class DecompileSettings:
    """
    Ollama connection and retry settings.

    Attributes:
        host: Base URL of the Ollama server
        model: Model used for generation
        timeout: Overall per-attempt timeout in seconds
        retries: Retries after the first attempt
        num_ctx: Context window in tokens requested from the model
        connect_timeout: Connection timeout in seconds
        first_byte_timeout: Longest wait for response data in seconds
        max_wall_time: Total seconds after which no further retry is started
    """
    host: str = "http://localhost:11434"
    model: str = "llama31-abliterated-q8:latest"
    timeout: int = 300
    retries: int = 3
    num_ctx: int = 65536
    connect_timeout: float = 5
    first_byte_timeout: float = 30
    max_wall_time: float = 600

    def validate(self) -> None:
        """
        Check that all settings are usable.

        Raises:
            ValueError: If any value is out of range
        """
        if not self.host:
            raise ValueError("host must not be empty")

        if not self.model:
            raise ValueError("model must not be empty")

        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")

        if not MIN_NUM_CTX <= self.num_ctx <= MAX_NUM_CTX:
            raise ValueError(f"num_ctx must be between {MIN_NUM_CTX} and {MAX_NUM_CTX}, got {self.num_ctx}")

        if self.connect_timeout <= 0 or self.first_byte_timeout <= 0 or self.max_wall_time <= 0:
            raise ValueError("connect_timeout, first_byte_timeout and max_wall_time must be positive")

    @property
    def generate_url(self) -> str:
        return self.host.rstrip("/") + "/api/generate"

    @classmethod
    def load(cls, path: str) -> "DecompileSettings":
        """
        Load settings from a JSON file.

        Keys missing from the file keep their default values.

        Args:
            path: Path to the settings file

        Returns:
            DecompileSettings object with loaded values

        Raises:
            json.JSONDecodeError: If file contains invalid JSON
            ValueError: If a loaded value is out of range
        """
        # Start with default settings
        settings = cls()

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

            settings.host = str(data.get("host", settings.host))
            settings.model = str(data.get("model", settings.model))
            settings.timeout = int(data.get("timeout", settings.timeout))
            settings.retries = int(data.get("retries", settings.retries))
            settings.num_ctx = int(data.get("num_ctx", settings.num_ctx))
            settings.connect_timeout = float(data.get("connect_timeout", settings.connect_timeout))
            settings.first_byte_timeout = float(data.get("first_byte_timeout", settings.first_byte_timeout))
            settings.max_wall_time = float(data.get("max_wall_time", settings.max_wall_time))

        settings.validate()
        return settings
