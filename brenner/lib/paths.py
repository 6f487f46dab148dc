from pathlib import Path


def dot_brenner() -> Path:
    return Path.home() / ".brenner"


def config_file() -> Path:
    """Return config file path in .brenner/"""
    return dot_brenner() / "config.yaml"
