"""Credential files for the agentwire client.

The caller id and the speech-service token are read from, in order of
precedence: the process environment, ~/.agentwire/keys.env (written by
`agentwire config set-user`), and a project-level .env. Values already
present in the environment are never replaced.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Per-user agentwire directory
AGENTWIRE_HOME = Path.home() / ".agentwire"
KEYS_FILE = AGENTWIRE_HOME / "keys.env"

# (env_var, description) for every credential agentwire understands
CREDENTIALS = [
    ("AGENTWIRE_USER_ID", "Caller identifier sent with chat and transcription requests"),
    ("AGENTWIRE_API_TOKEN", "Bearer token for the transcription service"),
]


def _parse_env_lines(text: str) -> dict[str, str]:
    """KEY=VALUE pairs from env-file text; comments and junk lines are skipped."""
    pairs: dict[str, str] = {}
    for raw in text.splitlines():
        entry = raw.strip()
        if entry.startswith("#") or "=" not in entry:
            continue
        name, _, value = entry.partition("=")
        name = name.strip()
        if name:
            pairs[name] = value.strip().strip("'\"")
    return pairs


def _apply_env_file(path: Path) -> None:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug("Skipping unreadable env file %s: %s", path, e)
        return
    for name, value in _parse_env_lines(text).items():
        if os.environ.get(name):
            continue
        os.environ[name] = value
        logger.debug("Set %s from %s", name, path)


def load_keys_env(keys_file: Path | None = None) -> None:
    """Populate os.environ from the user keys file, then ./.env.

    The first source that defines a variable wins; the live environment
    always takes precedence over both files.
    """
    for candidate in (keys_file or KEYS_FILE, Path.cwd() / ".env"):
        if candidate.is_file():
            _apply_env_file(candidate)


def save_keys(keys: dict[str, str], keys_file: Path | None = None) -> Path:
    """Write non-empty credentials to the user keys file (mode 600).

    Returns the path written.
    """
    target = keys_file or KEYS_FILE
    target.parent.mkdir(parents=True, exist_ok=True)

    body = ["# agentwire credentials", "# Written by `agentwire config set-user`", ""]
    body.extend(f"{name}={value}" for name, value in keys.items() if value)
    target.write_text("\n".join(body) + "\n", encoding="utf-8")

    try:
        target.chmod(0o600)
    except OSError:
        logger.debug("Could not restrict permissions on %s", target)
    return target


def clear_keys(keys_file: Path | None = None) -> bool:
    """Delete the user keys file. Returns False when there was none."""
    target = keys_file or KEYS_FILE
    if not target.is_file():
        return False
    target.unlink()
    return True


def get_configured_keys() -> dict[str, str]:
    """Current value (possibly empty) of each known credential."""
    load_keys_env()
    return {name: os.environ.get(name, "") for name, _ in CREDENTIALS}
