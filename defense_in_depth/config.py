import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_DATA_DIR = Path(__file__).parent / "data"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    """
    Runtime settings read from the environment (and a .env file, if present).
    """
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    data_dir: Path = DEFAULT_DATA_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_host=os.getenv("API_HOST", "127.0.0.1"),
            api_port=int(os.getenv("API_PORT", 8000)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
            data_dir=Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))),
        )


def configure_logging(level: str = "INFO"):
    """Configure root logging for the API server and the command-line runner."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


settings = Settings.from_env()
