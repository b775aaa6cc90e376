"""
Dayline Blocks Module

Groups hourly summaries into contiguous location blocks and aggregates
per-app usage inside each block.
"""

from dayline.blocks.app_usage import aggregate_app_usage
from dayline.blocks.builder import build_location_blocks, is_meaningful_label


__all__ = [
    "aggregate_app_usage",
    "build_location_blocks",
    "is_meaningful_label",
]
