import os
from pathlib import Path
from typing import Optional
from dataclasses import asdict, dataclass, field
import json
from dotenv import find_dotenv, load_dotenv

from core.chunk_types import ChunkingConfig
from utils.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "CHUNKWISE_"


@dataclass
class Config:
    """Configuration for chunkwise."""

    # Logging configuration
    log_level: str = "INFO"

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from file, then apply environment overrides."""
        load_dotenv(find_dotenv(usecwd=True))
        config = cls()

        if config_path and Path(config_path).exists():
            try:
                with open(config_path, "r") as f:
                    data = json.load(f)
                for key, value in data.items():
                    if key == "chunking" and isinstance(value, dict):
                        for option, option_value in value.items():
                            if hasattr(config.chunking, option):
                                setattr(config.chunking, option, option_value)
                    elif hasattr(config, key):
                        setattr(config, key, value)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load config file: {e}")

        log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL")
        if log_level:
            config.log_level = log_level

        for option in ("max_chunk_size", "min_chunk_size"):
            value = os.getenv(f"{ENV_PREFIX}{option.upper()}")
            if not value:
                continue
            try:
                setattr(config.chunking, option, int(value))
            except ValueError:
                logger.warning(f"Ignoring {ENV_PREFIX}{option.upper()}={value!r}: not an integer")

        if isinstance(config.chunking.container_types, list):
            config.chunking.container_types = tuple(config.chunking.container_types)

        return config

    def save(self, config_path: str):
        """Save configuration to file."""
        with open(config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        chunking = asdict(self.chunking)
        chunking["container_types"] = list(self.chunking.container_types)
        return {
            "log_level": self.log_level,
            "chunking": chunking,
        }
