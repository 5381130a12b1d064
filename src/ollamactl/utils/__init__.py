"""
Utils module for ollamactl

Contains formatting helpers and logging setup.
"""

from .helpers import (
    format_decimal,
    format_float,
    human_bytes,
    human_number,
    human_time,
    parse_timestamp,
)
from .logging import setup_logging

__all__ = [
    "format_decimal",
    "format_float",
    "human_bytes",
    "human_number",
    "human_time",
    "parse_timestamp",
    "setup_logging",
]
