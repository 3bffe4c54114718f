"""
Environment validation helper for the PowerWatch bot.

Usage:
    python3 scripts/validate_env.py

It loads the root .env (if present) and compares it against the variables the
bot refuses to start without. The script fails fast with a non-zero exit code
when critical values are missing, placeholders, or not numeric where an id is
expected.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List, Tuple

from dotenv import dotenv_values

ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT / ".env"
EXAMPLE_PATH = ROOT / ".env.example"

# (primary name, accepted aliases, must be numeric)
REQUIRED_KEYS: List[Tuple[str, Tuple[str, ...], bool]] = [
    ("DISCORD_TOKEN", ("BOT_TOKEN",), False),
    ("REPORT_CHANNEL_ID", ("CHAT_ID_TO_REPORT",), True),
    ("ADMIN_USER_ID", (), True),
]

PLACEHOLDER_VALUES = {
    "",
    "changeme",
    "your_discord_bot_token",
}


def load_env() -> Dict[str, str]:
    """Merge values from .env.example, .env and the current environment."""
    env: Dict[str, str] = {}
    for path in (EXAMPLE_PATH, ENV_PATH):
        if path.exists():
            env.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    env.update({k: v for k, v in os.environ.items() if isinstance(v, str)})
    return env


def lookup(env: Dict[str, str], key: str, aliases: Tuple[str, ...]) -> str:
    for name in (key, *aliases):
        value = env.get(name, "").strip()
        if value:
            return value
    return ""


def main() -> int:
    env = load_env()
    problems: List[str] = []

    for key, aliases, numeric in REQUIRED_KEYS:
        value = lookup(env, key, aliases)
        if not value:
            problems.append(f"{key}: missing")
        elif value in PLACEHOLDER_VALUES:
            problems.append(f"{key}: placeholder value")
        elif numeric and not value.isdigit():
            problems.append(f"{key}: expected a numeric Discord id, got {value!r}")

    if not lookup(env, "REDIS_ADDRESS", ("REDIS_URL", "REDIS_HOST")):
        print("Note: no Redis address configured; falling back to config.yml / 127.0.0.1:6379.")

    if not problems:
        print("Environment looks good. All required values are populated.")
        return 0

    print("Environment validation failed.\n")
    for problem in problems:
        print(f"  - {problem}")
    print("\nHint: copy .env.example to .env and fill in every value.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
