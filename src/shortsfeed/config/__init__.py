"""Settings and bundled configuration files."""

from pathlib import Path

CONFIG_ROOT = Path(__file__).resolve().parent
RATE_LIMITS_PATH = CONFIG_ROOT / "rate_limits.yaml"

__all__ = ["CONFIG_ROOT", "RATE_LIMITS_PATH"]
