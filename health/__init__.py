from .commands import (
    build_final_reorganize_command,
    build_maintenance_command,
    build_reorganize_command,
    quote_identifier,
    render_script,
)
from .executor import ReorganizeExecutor
from .fragmentation import fragmentation_percent, percent_full, summarize_by_index
from .service import ColumnStoreHealthService

__all__ = [
    "build_final_reorganize_command",
    "build_maintenance_command",
    "build_reorganize_command",
    "quote_identifier",
    "render_script",
    "ReorganizeExecutor",
    "fragmentation_percent",
    "percent_full",
    "summarize_by_index",
    "ColumnStoreHealthService",
]
