"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Optional

from dotenv import load_dotenv, find_dotenv


@dataclass
class Config:
    """
    sendfile configuration.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (SENDFILE_*)
    3. Config file (JSON)
    4. Default values
    """
    # Network
    host: str = '0.0.0.0'
    port: int = 0  # 0 = let the OS pick
    backlog: int = 10

    # Storage
    output_dir: Path = field(default_factory=lambda: Path('.'))

    # Limits
    max_frame_size: int = 8 * 1024 ** 3  # 8 GiB
    chunk_size: int = 64 * 1024  # 64KB

    # Timeouts (seconds, None = wait forever)
    connect_timeout: Optional[float] = 10.0
    io_timeout: Optional[float] = None

    # Logging
    log_level: str = 'WARNING'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        # Network
        config.host = os.getenv('SENDFILE_HOST', config.host)
        config.port = int(os.getenv('SENDFILE_PORT', config.port))
        config.backlog = int(os.getenv('SENDFILE_BACKLOG', config.backlog))

        # Storage
        output_dir = os.getenv('SENDFILE_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)

        # Limits
        config.max_frame_size = int(
            os.getenv('SENDFILE_MAX_FRAME_SIZE', config.max_frame_size)
        )
        config.chunk_size = int(os.getenv('SENDFILE_CHUNK_SIZE', config.chunk_size))

        # Timeouts
        config.connect_timeout = _optional_float(
            os.getenv('SENDFILE_CONNECT_TIMEOUT'), config.connect_timeout
        )
        config.io_timeout = _optional_float(
            os.getenv('SENDFILE_IO_TIMEOUT'), config.io_timeout
        )

        # Logging
        config.log_level = os.getenv('SENDFILE_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Network
        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)
        config.backlog = data.get('backlog', config.backlog)

        # Storage
        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])

        # Limits
        config.max_frame_size = data.get('max_frame_size', config.max_frame_size)
        config.chunk_size = data.get('chunk_size', config.chunk_size)

        # Timeouts
        config.connect_timeout = data.get('connect_timeout', config.connect_timeout)
        config.io_timeout = data.get('io_timeout', config.io_timeout)

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'backlog': self.backlog,
            'output_dir': str(self.output_dir),
            'max_frame_size': self.max_frame_size,
            'chunk_size': self.chunk_size,
            'connect_timeout': self.connect_timeout,
            'io_timeout': self.io_timeout,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def _optional_float(value: Optional[str], default: Optional[float]) -> Optional[float]:
    """Parse a timeout from the environment; 'none' or '' disables it."""
    if value is None:
        return default
    if value.strip().lower() in ('', 'none', 'off'):
        return None
    return float(value)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables
    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for f in fields(Config):
        env_val = getattr(env_config, f.name)
        if env_val != getattr(defaults, f.name):
            setattr(config, f.name, env_val)

    return config
