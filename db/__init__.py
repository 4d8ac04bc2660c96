from .models import (
    Action,
    CatalogSnapshot,
    ExecutionResult,
    FragmentationRow,
    IndexDescriptor,
    IndexFragmentationSummary,
    MaintenanceCommand,
    RowGroupDescriptor,
)
from .provider import InMemoryMetadataProvider, MetadataProvider, capture_snapshot, export_snapshot

__all__ = [
    "Action",
    "CatalogSnapshot",
    "ExecutionResult",
    "FragmentationRow",
    "IndexDescriptor",
    "IndexFragmentationSummary",
    "MaintenanceCommand",
    "RowGroupDescriptor",
    "InMemoryMetadataProvider",
    "MetadataProvider",
    "capture_snapshot",
    "export_snapshot",
]
