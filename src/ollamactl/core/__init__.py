"""
Core module for ollamactl

Contains configuration, the API client, model data and the log follower.
"""

from .config import Config
from .logs import LogFileError, LogFileNotFound, LogFollower, follow, tail
from .models import CreateRequest, ModelDescription, RunOptions, new_create_request
from .ollama_client import OllamaClient, OllamaError, UnauthorizedError

__all__ = [
    "Config",
    "CreateRequest",
    "LogFileError",
    "LogFileNotFound",
    "LogFollower",
    "ModelDescription",
    "OllamaClient",
    "OllamaError",
    "RunOptions",
    "UnauthorizedError",
    "follow",
    "new_create_request",
    "tail",
]
