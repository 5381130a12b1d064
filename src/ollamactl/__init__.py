"""
ollamactl - command line companion for a local Ollama server

Renders model reports and tails the server logs.
"""

__version__ = "0.3.0"

from .core.config import Config
from .core.logs import follow, tail
from .core.ollama_client import OllamaClient
from .ui.formatting import render

__all__ = [
    "Config",
    "OllamaClient",
    "follow",
    "render",
    "tail",
]
