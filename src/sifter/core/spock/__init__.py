"""Configuration manager."""

from sifter.core.spock.spock import ConfigManager, Spock

__all__ = ["ConfigManager", "Spock"]
