"""Directory backends that receive a resolved resource graph."""

from .base import DirectoryBackend
from .graph import GraphDirectory
from .infrahub import InfrahubDirectory


def get_backend(name: str) -> DirectoryBackend:
    """Build the backend named by ``DIRECTORY_BACKEND`` with settings from the environment."""
    if name == "graph":
        return GraphDirectory()
    if name == "infrahub":
        return InfrahubDirectory()
    raise ValueError(f"Unknown directory backend: {name}")


__all__ = ["DirectoryBackend", "GraphDirectory", "InfrahubDirectory", "get_backend"]
