"""CLI utility functions"""

from .output import format_pipeline_result, format_manifest

__all__ = [
    "format_pipeline_result",
    "format_manifest",
]
