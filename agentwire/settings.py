"""TOML configuration loader.

Loads client defaults from defaults.toml shipped with the package and
layers AGENTWIRE_* environment variables on top.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from agentwire.schemas.config import (
    AgentEndpointConfig,
    ClientConfig,
    TranscriptionConfig,
)

# Default config directory relative to the agentwire package
CONFIG_DIR = Path(__file__).parent / "config"
DEFAULTS_FILE = CONFIG_DIR / "defaults.toml"

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "AGENTWIRE_AGENT_URL": ("agent", "base_url"),
    "AGENTWIRE_USER_ID": ("agent", "user_id"),
    "AGENTWIRE_TRANSCRIBE_URL": ("transcription", "url"),
    "AGENTWIRE_STT_MODEL": ("transcription", "model"),
    "AGENTWIRE_API_TOKEN": ("transcription", "api_token"),
}


def load_client_config(
    config_path: Path | None = None,
    *,
    use_env: bool = True,
) -> ClientConfig:
    """Load the client configuration from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to agentwire/config/defaults.toml.
        use_env: Apply AGENTWIRE_* environment overrides.

    Returns:
        ClientConfig with values from the TOML file and environment.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a section is not a table.
    """
    path = config_path or DEFAULTS_FILE
    if not path.exists():
        raise FileNotFoundError(f"Client config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    sections: dict[str, dict] = {}
    for name in ("agent", "transcription"):
        section = raw.get(name, {})
        if not isinstance(section, dict):
            raise ValueError(f"[{name}] in {path} must be a table")
        sections[name] = dict(section)

    if use_env:
        for env_var, (section, field) in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                sections[section][field] = value

    return ClientConfig(
        agent=AgentEndpointConfig(**sections["agent"]),
        transcription=TranscriptionConfig(**sections["transcription"]),
    )
