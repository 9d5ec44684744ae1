"""
Configuration settings for the agent fitness engine
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:6129"
DEFAULT_PACK_ROOT = str(Path.cwd() / "mind" / "workspace")
DEFAULT_LIFECYCLE_PATH = "/api/v1/agent/lifecycle/run"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class FitnessConfig:
    """Explicit configuration handed to every component that talks to the outside world"""

    # Live API under test
    api_base_url: str = field(default_factory=lambda: os.getenv("AGENT_API_BASE_URL", DEFAULT_API_BASE_URL))
    api_token: Optional[str] = field(default_factory=lambda: os.getenv("AGENT_API_TOKEN") or None)
    http_timeout: float = field(default_factory=lambda: float(os.getenv("AGENT_HTTP_TIMEOUT", "30")))

    # Pack sources and report output
    pack_root: str = field(default_factory=lambda: os.getenv("AGENT_PACK_ROOT", DEFAULT_PACK_ROOT))

    # External lifecycle runner endpoint
    lifecycle_path: str = field(default_factory=lambda: os.getenv("AGENT_LIFECYCLE_PATH", DEFAULT_LIFECYCLE_PATH))

    # Process
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8080")))

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.api_base_url.startswith(("http://", "https://")):
            errors.append(f"AGENT_API_BASE_URL must be an http(s) URL, got {self.api_base_url!r}")

        if self.http_timeout <= 0:
            errors.append("AGENT_HTTP_TIMEOUT must be positive")

        if not self.pack_root:
            errors.append("AGENT_PACK_ROOT is required")

        if not self.lifecycle_path.startswith("/"):
            errors.append("AGENT_LIFECYCLE_PATH must start with '/'")

        if self.log_level not in LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        return errors


def get_config() -> FitnessConfig:
    """Get validated fitness configuration"""
    config = FitnessConfig()
    errors = config.validate()

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")

    return config


def configure_logging(config: FitnessConfig) -> None:
    """Configure root logging once at process start"""
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    logger.info(f"Agent API: {config.api_base_url}")
    logger.info(f"Pack root: {config.pack_root}")
