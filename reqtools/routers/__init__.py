# Routers package for reqtools

from . import echo, files

__all__ = [
    "echo",
    "files",
]
