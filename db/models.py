from datetime import datetime
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

CLUSTERED_COLUMNSTORE = "CLUSTERED COLUMNSTORE"
NONCLUSTERED_COLUMNSTORE = "NONCLUSTERED COLUMNSTORE"
COLUMNSTORE_TYPES = (CLUSTERED_COLUMNSTORE, NONCLUSTERED_COLUMNSTORE)


class Action(IntEnum):
    """Invocation action code"""
    REPORT = 0
    REPORT_FRAGMENTED = 1
    GENERATE_COMMANDS = 2


class IndexDescriptor(BaseModel):
    """A column-store index as described by sys.indexes"""
    object_id: int
    schema_name: str
    table_name: str
    index_name: str
    index_id: int
    type_desc: str

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> tuple:
        return (self.object_id, self.index_id)

    @property
    def is_columnstore(self) -> bool:
        return self.type_desc.upper() in COLUMNSTORE_TYPES


class RowGroupDescriptor(BaseModel):
    """A row-group as described by sys.column_store_row_groups"""
    object_id: int
    index_id: int
    row_group_id: int
    state_desc: str
    total_rows: int = Field(..., ge=0)
    deleted_rows: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def index_key(self) -> tuple:
        return (self.object_id, self.index_id)


class FragmentationRow(BaseModel):
    """One (index, row-group) row of a fragmentation report"""
    object_id: int = Field(..., alias="ObjectId")
    schema_name: str = Field(..., alias="SchemaName")
    table_name: str = Field(..., alias="TableName")
    index_name: str = Field(..., alias="IndexName")
    index_id: int = Field(..., alias="IndexId")
    type_desc: str = Field(..., alias="TypeDesc")
    row_group_id: int = Field(..., alias="RowGroupId")
    state_desc: str = Field(..., alias="StateDesc")
    total_rows: int = Field(..., alias="TotalRows")
    deleted_rows: int = Field(..., alias="DeletedRows")
    fragmentation_percent: float = Field(..., alias="FragmentationPercent")
    percent_full: float = Field(..., alias="PercentFull")

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        """Convert to a dictionary keyed by output column name"""
        return self.model_dump(by_alias=True)


class MaintenanceCommand(BaseModel):
    """Generated reorganize commands for one column-store index"""
    schema_name: str = Field(..., alias="SchemaName")
    table_name: str = Field(..., alias="TableName")
    index_name: str = Field(..., alias="IndexName")
    reorganize_command: str = Field(..., alias="ReorganizeCommand")
    final_reorganize_command: str = Field(..., alias="FinalReorganizeCommand")

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        """Convert to a dictionary keyed by output column name"""
        return self.model_dump(by_alias=True)


class IndexFragmentationSummary(BaseModel):
    """Per-index aggregate of a fragmentation report"""
    schema_name: str = Field(..., alias="SchemaName")
    table_name: str = Field(..., alias="TableName")
    index_name: str = Field(..., alias="IndexName")
    type_desc: str = Field(..., alias="TypeDesc")
    row_group_count: int = Field(..., alias="RowGroupCount")
    fragmented_row_groups: int = Field(..., alias="FragmentedRowGroups")
    total_rows: int = Field(..., alias="TotalRows")
    deleted_rows: int = Field(..., alias="DeletedRows")
    fragmentation_percent: float = Field(..., alias="FragmentationPercent")

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        """Convert to a dictionary keyed by output column name"""
        return self.model_dump(by_alias=True)


class ExecutionResult(BaseModel):
    """Outcome of one planned or executed reorganize statement"""
    schema_name: str
    table_name: str
    index_name: str
    step: str
    command: str
    status: str
    error: Optional[str] = None
    duration_ms: Optional[float] = None


class CatalogSnapshot(BaseModel):
    """Serialisable copy of the catalog metadata used for offline analysis"""
    captured_at: Optional[datetime] = None
    source: Optional[str] = None
    indexes: List[IndexDescriptor] = Field(default_factory=list)
    row_groups: List[RowGroupDescriptor] = Field(default_factory=list)
