"""
Configuration management for GroupTherapy Radio
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class ServerConfig:
    """Configuration for the FastAPI backend."""

    host: str = "0.0.0.0"
    port: int = 5000
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )


@dataclass
class RadioConfig:
    """Configuration for the radio broadcast."""

    station_name: str = "GroupTherapy Radio"
    default_stream_url: str = "https://stream.zeno.fm/yn65fsaurfhvv"
    keepalive_interval_seconds: float = 30.0
    # Listener count is a display estimate: min + random(0, spread)
    listener_count_min: int = 100
    listener_count_spread: int = 50
    channel_queue_size: int = 100


@dataclass
class AuthConfig:
    """Configuration for admin authentication."""

    session_ttl_hours: int = 24
    max_login_attempts: int = 5
    attempt_window_minutes: int = 15
    lockout_minutes: int = 15
    bcrypt_rounds: int = 10


@dataclass
class ClientConfig:
    """Configuration for the listener client."""

    server_url: str = "http://localhost:5000"
    poll_interval_seconds: float = 10.0
    reconnect_delay_seconds: float = 5.0
    drift_tolerance_seconds: float = 2.0
    progress_interval_seconds: float = 1.0
    volume: float = 0.7
    mpv_socket_path: Optional[str] = None

    def validate(self) -> None:
        """Validate client configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"Invalid volume: {self.volume}. Expected 0.0-1.0")
        for name in (
            "poll_interval_seconds",
            "reconnect_delay_seconds",
            "progress_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/grouptherapy/grouptherapy.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = True  # Also output to stderr


@dataclass
class Config:
    """Main configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    radio: RadioConfig = field(default_factory=RadioConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "grouptherapy"
    return Path.home() / ".config" / "grouptherapy"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/grouptherapy (or ~/.config/grouptherapy)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "grouptherapy"
    return Path.home() / ".local" / "share" / "grouptherapy"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# GroupTherapy Radio Configuration

[server]
host = "0.0.0.0"
port = 5000

# Origins allowed by CORS (ALLOWED_ORIGINS env var overrides, comma separated)
allowed_origins = ["http://localhost:5173"]

[radio]
station_name = "GroupTherapy Radio"

# Stream played whenever nothing is scheduled
default_stream_url = "https://stream.zeno.fm/yn65fsaurfhvv"

# Seconds between keepalive comments on the push channel
keepalive_interval_seconds = 30

[auth]
session_ttl_hours = 24
max_login_attempts = 5
attempt_window_minutes = 15
lockout_minutes = 15

[client]
server_url = "http://localhost:5000"
poll_interval_seconds = 10
reconnect_delay_seconds = 5
drift_tolerance_seconds = 2
volume = 0.7
# mpv_socket_path = "/tmp/grouptherapy-mpv"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# log_file = "/path/to/grouptherapy.log"
max_file_size_mb = 10
backup_count = 5
console_output = true
""".strip()


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per key."""
    config = Config()

    if "server" in toml_data:
        server_data = toml_data["server"]
        config.server = ServerConfig(
            host=server_data.get("host", config.server.host),
            port=server_data.get("port", config.server.port),
            allowed_origins=server_data.get(
                "allowed_origins", config.server.allowed_origins
            ),
        )

    if "radio" in toml_data:
        radio_data = toml_data["radio"]
        config.radio = RadioConfig(
            station_name=radio_data.get("station_name", config.radio.station_name),
            default_stream_url=radio_data.get(
                "default_stream_url", config.radio.default_stream_url
            ),
            keepalive_interval_seconds=radio_data.get(
                "keepalive_interval_seconds", config.radio.keepalive_interval_seconds
            ),
            listener_count_min=radio_data.get(
                "listener_count_min", config.radio.listener_count_min
            ),
            listener_count_spread=radio_data.get(
                "listener_count_spread", config.radio.listener_count_spread
            ),
            channel_queue_size=radio_data.get(
                "channel_queue_size", config.radio.channel_queue_size
            ),
        )

    if "auth" in toml_data:
        auth_data = toml_data["auth"]
        config.auth = AuthConfig(
            session_ttl_hours=auth_data.get(
                "session_ttl_hours", config.auth.session_ttl_hours
            ),
            max_login_attempts=auth_data.get(
                "max_login_attempts", config.auth.max_login_attempts
            ),
            attempt_window_minutes=auth_data.get(
                "attempt_window_minutes", config.auth.attempt_window_minutes
            ),
            lockout_minutes=auth_data.get("lockout_minutes", config.auth.lockout_minutes),
            bcrypt_rounds=auth_data.get("bcrypt_rounds", config.auth.bcrypt_rounds),
        )

    if "client" in toml_data:
        client_data = toml_data["client"]
        config.client = ClientConfig(
            server_url=client_data.get("server_url", config.client.server_url),
            poll_interval_seconds=client_data.get(
                "poll_interval_seconds", config.client.poll_interval_seconds
            ),
            reconnect_delay_seconds=client_data.get(
                "reconnect_delay_seconds", config.client.reconnect_delay_seconds
            ),
            drift_tolerance_seconds=client_data.get(
                "drift_tolerance_seconds", config.client.drift_tolerance_seconds
            ),
            progress_interval_seconds=client_data.get(
                "progress_interval_seconds", config.client.progress_interval_seconds
            ),
            volume=client_data.get("volume", config.client.volume),
            mpv_socket_path=client_data.get("mpv_socket_path"),
        )
        config.client.validate()

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides on top of TOML values."""
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
    if allowed_origins_env:
        config.server.allowed_origins = [
            origin.strip() for origin in allowed_origins_env.split(",") if origin.strip()
        ]

    stream_url = os.getenv("RADIO_STREAM_URL")
    if stream_url:
        config.radio.default_stream_url = stream_url

    server_url = os.getenv("GROUPTHERAPY_SERVER_URL")
    if server_url:
        config.client.server_url = server_url

    return config


def load_config() -> Config:
    """Load configuration from file or fall back to defaults.

    Environment variables override TOML values:
    - ALLOWED_ORIGINS
    - RADIO_STREAM_URL
    - GROUPTHERAPY_SERVER_URL
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()
    if not config_path.exists():
        return _apply_env_overrides(Config())

    with open(config_path, "rb") as f:
        toml_data = tomllib.load(f)

    return _apply_env_overrides(_parse_config(toml_data))


def write_default_config() -> Path:
    """Write the default config file to the XDG config dir if missing."""
    config_path = get_config_dir() / "config.toml"
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
    return config_path
