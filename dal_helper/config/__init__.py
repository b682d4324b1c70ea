"""
Expose the configuration type and its loader.

Example:

    from dal_helper.config import load_config
    config = load_config()
    config.validate()
"""

from .env import Config, load_config, DEFAULT_MARKERS, STRICT_MARKERS  # noqa: F401
