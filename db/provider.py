"""
Metadata Provider Interface

Defines the interface for reading column-store index and row-group metadata.
This allows the health service to run against a live SQL Server catalog or
against fixture data and exported snapshots without any code changes.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger
from pydantic import ValidationError

from errors import SnapshotError

from .models import CatalogSnapshot, IndexDescriptor, RowGroupDescriptor


class MetadataProvider(ABC):
    """
    Abstract read-only view of the database catalog.

    Current implementations: SqlServerCatalogDAO (live catalog over pyodbc)
    and InMemoryMetadataProvider (fixtures and JSON snapshots).
    """

    @abstractmethod
    def list_columnstore_indexes(self,
                                 schema_name: Optional[str] = None,
                                 table_name: Optional[str] = None) -> List[IndexDescriptor]:
        """
        List clustered and non-clustered column-store indexes.

        Args:
            schema_name: Exact schema name to match, or None for all schemas
            table_name: Exact table name to match, or None for all tables

        Returns:
            List of IndexDescriptor objects matching both filters
        """
        pass

    @abstractmethod
    def list_row_groups(self, index: IndexDescriptor) -> List[RowGroupDescriptor]:
        """
        List the row-groups that belong to an index.

        Args:
            index: Index whose (object_id, index_id) identifies the row-groups

        Returns:
            List of RowGroupDescriptor objects
        """
        pass


def matches_filters(index: IndexDescriptor,
                    schema_name: Optional[str],
                    table_name: Optional[str]) -> bool:
    """Exact, conjunctive match where an absent filter matches everything"""
    if schema_name is not None and index.schema_name != schema_name:
        return False
    if table_name is not None and index.table_name != table_name:
        return False
    return True


class InMemoryMetadataProvider(MetadataProvider):
    """
    Fixture-backed implementation of MetadataProvider.

    Row-groups are only reachable through an index, so row-groups whose index
    is missing from the fixture never appear in any result.
    """

    def __init__(self,
                 indexes: Iterable[IndexDescriptor] = (),
                 row_groups: Iterable[RowGroupDescriptor] = (),
                 source: Optional[str] = None) -> None:
        self.indexes = list(indexes)
        self.row_groups = list(row_groups)
        self.source = source or "memory"

    def list_columnstore_indexes(self,
                                 schema_name: Optional[str] = None,
                                 table_name: Optional[str] = None) -> List[IndexDescriptor]:
        return [
            index for index in self.indexes
            if index.is_columnstore and matches_filters(index, schema_name, table_name)
        ]

    def list_row_groups(self, index: IndexDescriptor) -> List[RowGroupDescriptor]:
        return [rg for rg in self.row_groups if rg.index_key == index.key]

    @classmethod
    def from_snapshot(cls, path: Union[str, Path]) -> "InMemoryMetadataProvider":
        """Load a provider from a JSON catalog snapshot"""
        snapshot_path = Path(path)
        if not snapshot_path.exists():
            raise SnapshotError(f"Snapshot file not found: {snapshot_path}")

        try:
            snapshot = CatalogSnapshot.model_validate_json(snapshot_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot {snapshot_path}: {e}") from e
        except ValidationError as e:
            raise SnapshotError(f"Invalid snapshot {snapshot_path}: {e}") from e

        logger.info(
            f"Loaded snapshot {snapshot_path}: {len(snapshot.indexes)} indexes, "
            f"{len(snapshot.row_groups)} row groups"
        )
        return cls(snapshot.indexes, snapshot.row_groups, source=str(snapshot_path))


def capture_snapshot(provider: MetadataProvider,
                     schema_name: Optional[str] = None,
                     table_name: Optional[str] = None,
                     source: Optional[str] = None) -> CatalogSnapshot:
    """Read every matching column-store index and its row-groups into a snapshot"""
    indexes = provider.list_columnstore_indexes(schema_name, table_name)
    row_groups: List[RowGroupDescriptor] = []
    for index in indexes:
        row_groups.extend(provider.list_row_groups(index))

    return CatalogSnapshot(
        captured_at=datetime.now(),
        source=source,
        indexes=indexes,
        row_groups=row_groups,
    )


def export_snapshot(provider: MetadataProvider,
                    path: Union[str, Path],
                    schema_name: Optional[str] = None,
                    table_name: Optional[str] = None,
                    source: Optional[str] = None) -> CatalogSnapshot:
    """Capture a snapshot and write it to disk as JSON"""
    snapshot = capture_snapshot(provider, schema_name, table_name, source)
    snapshot_path = Path(path)

    try:
        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        with open(snapshot_path, "w", encoding="utf-8") as f:
            json.dump(snapshot.model_dump(mode="json"), f, indent=2)
    except OSError as e:
        raise SnapshotError(f"Cannot write snapshot {snapshot_path}: {e}") from e

    logger.info(f"Snapshot written: {snapshot_path}")
    return snapshot
