"""
UI module for ollamactl

Contains the plain-text table and report renderers.
"""

from .formatting import RenderError, ReportRenderer, render, render_model_list
from .tables import align_rows

__all__ = [
    "RenderError",
    "ReportRenderer",
    "align_rows",
    "render",
    "render_model_list",
]
