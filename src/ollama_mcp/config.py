"""
Configuration management for ollama-mcp.

Provides type-safe configuration loading from YAML/TOML files and environment variables.
"""
import os
import tomllib
from pathlib import Path
from typing import List, Optional, Union
from enum import Enum

from pydantic import BaseModel, Field
import yaml


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class PullCompletionPolicy(str, Enum):
    """What a model pull does when the stream ends without a success frame."""
    SUCCEED = "succeed"
    FAIL = "fail"


class OllamaConfig(BaseModel):
    """Model-serving daemon configuration."""
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    model: str = Field(default="tinyllama", description="Default model")
    timeout: int = Field(default=300, description="Request timeout in seconds")
    pull_policy: PullCompletionPolicy = Field(
        default=PullCompletionPolicy.SUCCEED,
        description="Outcome of a pull whose stream ends without a success frame"
    )
    default_temperature: float = Field(default=0.7, description="Temperature used by tool calls")
    default_max_tokens: int = Field(default=500, description="num_predict used by tool calls")


class MCPConfig(BaseModel):
    """Envelope endpoint configuration."""
    base_url: str = Field(default="http://localhost:3000", description="Envelope server base URL")
    api_key: str = Field(default="default-key", description="Static bearer token")
    timeout: int = Field(default=30, description="Request timeout in seconds")


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, description="Bind port")
    require_auth: bool = Field(default=False, description="Reject envelopes without the bearer token")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    format: str = Field(default="human", description="Log format: human, json")
    file: Optional[str] = Field(default=None, description="Log file path")
    max_size: int = Field(default=10_000_000, description="Max log file size in bytes")
    backup_count: int = Field(default=5, description="Number of backup files to keep")


class Config(BaseModel):
    """Main configuration model."""
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    mcp: MCPConfig = Field(default_factory=MCPConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the per-user configuration directory."""
    if config_home := os.getenv("XDG_CONFIG_HOME"):
        return Path(config_home) / "ollama-mcp"
    return Path.home() / ".config" / "ollama-mcp"


def get_config_paths() -> List[Path]:
    """Get possible configuration file paths in order of preference."""
    paths = []

    # Current directory
    for ext in ['yaml', 'yml', 'toml']:
        paths.append(Path(f"ollama-mcp.{ext}"))
        paths.append(Path(f"config.{ext}"))

    config_dir = get_config_dir()
    for ext in ['yaml', 'yml', 'toml']:
        paths.append(config_dir / f"config.{ext}")

    # System config directory
    for ext in ['yaml', 'yml', 'toml']:
        paths.append(Path(f"/etc/ollama-mcp/config.{ext}"))

    return paths


def _read_config_file(config_path: Path) -> dict:
    """Parse a YAML or TOML configuration file."""
    if config_path.suffix in ['.yaml', '.yml']:
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'rb') as f:
        return tomllib.load(f)


def _env_overrides() -> dict:
    """Collect configuration overrides from environment variables."""
    env_overrides: dict = {}

    # Ollama settings
    if ollama_url := os.getenv("OLLAMA_BASE_URL"):
        env_overrides.setdefault("ollama", {})["base_url"] = ollama_url
    if ollama_model := os.getenv("OLLAMA_DEFAULT_MODEL"):
        env_overrides.setdefault("ollama", {})["model"] = ollama_model
    if pull_policy := os.getenv("OLLAMA_MCP_PULL_POLICY"):
        try:
            env_overrides.setdefault("ollama", {})["pull_policy"] = PullCompletionPolicy(pull_policy.lower())
        except ValueError:
            print(f"Warning: Invalid pull policy in OLLAMA_MCP_PULL_POLICY: {pull_policy}")
            print("Using default pull policy instead.")

    # Envelope settings
    if mcp_url := os.getenv("MCP_BASE_URL"):
        env_overrides.setdefault("mcp", {})["base_url"] = mcp_url
    if mcp_key := os.getenv("MCP_API_KEY"):
        env_overrides.setdefault("mcp", {})["api_key"] = mcp_key

    # Server settings
    if host := os.getenv("OLLAMA_MCP_HOST"):
        env_overrides.setdefault("server", {})["host"] = host
    if port := os.getenv("OLLAMA_MCP_PORT"):
        try:
            env_overrides.setdefault("server", {})["port"] = int(port)
        except ValueError:
            print(f"Warning: Invalid port number in OLLAMA_MCP_PORT: {port}")
            print("Using default port instead.")
    if require_auth := os.getenv("OLLAMA_MCP_REQUIRE_AUTH"):
        env_overrides.setdefault("server", {})["require_auth"] = require_auth.lower() in ("1", "true", "yes", "on")

    # Logging settings
    if log_level := os.getenv("OLLAMA_MCP_LOG_LEVEL"):
        env_overrides.setdefault("logging", {})["level"] = log_level.upper()
    if log_file := os.getenv("OLLAMA_MCP_LOG_FILE"):
        env_overrides.setdefault("logging", {})["file"] = log_file

    return env_overrides


def _merge(base: dict, overrides: dict) -> dict:
    """Merge section dictionaries one level deep."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Load configuration from files and environment variables."""
    config_data: dict = {}

    candidates = [Path(path)] if path else get_config_paths()
    for config_path in candidates:
        if not config_path.exists():
            if path:
                print(f"Warning: Config file {config_path} not found")
            continue
        try:
            config_data = _read_config_file(config_path)
            break
        except yaml.YAMLError as e:
            print(f"Warning: Invalid YAML syntax in {config_path}: {e}")
            print("Using default configuration instead.")
        except tomllib.TOMLDecodeError as e:
            print(f"Warning: Invalid TOML syntax in {config_path}: {e}")
            print("Using default configuration instead.")
        except PermissionError:
            print(f"Warning: No permission to read config file {config_path}")

    # Merge configurations: defaults < file < environment
    final_config = _merge(config_data, _env_overrides())

    try:
        return Config(**final_config)
    except Exception as e:
        print(f"Error: Invalid configuration data: {e}")
        print("Using default configuration. Please check your config file and environment variables.")
        return Config()


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Save configuration to file."""
    if path is None:
        config_dir = get_config_dir()
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / "config.yaml"

    config_dict = config.model_dump(mode="json")

    with open(path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
    return path


# Configuration cached for the CLI entry point only; clients take explicit sections.
_config: Optional[Config] = None


def get_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Get the CLI's configuration instance."""
    global _config
    if _config is None:
        _config = load_config(path)
    return _config


def reload_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Reload configuration from files."""
    global _config
    _config = load_config(path)
    return _config
