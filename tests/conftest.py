import json
import os

os.environ.setdefault("CSI_HEALTH_TEST_MODE", "true")

import pytest  # noqa: E402

from db.models import IndexDescriptor, RowGroupDescriptor  # noqa: E402
from db.provider import InMemoryMetadataProvider  # noqa: E402


def sample_indexes():
    return [
        IndexDescriptor(object_id=1001, schema_name="dbo", table_name="FactSales",
                        index_name="CCI_Sales", index_id=1, type_desc="CLUSTERED COLUMNSTORE"),
        # Rowstore index on the same table, never part of any result
        IndexDescriptor(object_id=1001, schema_name="dbo", table_name="FactSales",
                        index_name="IX_FactSales_Date", index_id=2, type_desc="NONCLUSTERED"),
        IndexDescriptor(object_id=1002, schema_name="dbo", table_name="Fact",
                        index_name="CCI_Fact", index_id=1, type_desc="CLUSTERED COLUMNSTORE"),
        IndexDescriptor(object_id=2001, schema_name="sales", table_name="Orders",
                        index_name="NCCI_Orders", index_id=3, type_desc="NONCLUSTERED COLUMNSTORE"),
        IndexDescriptor(object_id=3001, schema_name="stage", table_name="Empty",
                        index_name="CCI_Empty", index_id=1, type_desc="CLUSTERED COLUMNSTORE"),
    ]


def sample_row_groups():
    return [
        RowGroupDescriptor(object_id=1001, index_id=1, row_group_id=1, state_desc="COMPRESSED",
                           total_rows=500, deleted_rows=0),
        RowGroupDescriptor(object_id=1001, index_id=1, row_group_id=0, state_desc="COMPRESSED",
                           total_rows=1000, deleted_rows=250),
        RowGroupDescriptor(object_id=1002, index_id=1, row_group_id=0, state_desc="OPEN",
                           total_rows=0, deleted_rows=None),
        RowGroupDescriptor(object_id=1002, index_id=1, row_group_id=1, state_desc="COMPRESSED",
                           total_rows=3, deleted_rows=1),
        RowGroupDescriptor(object_id=1002, index_id=1, row_group_id=2, state_desc="CLOSED",
                           total_rows=1048576, deleted_rows=None),
        RowGroupDescriptor(object_id=2001, index_id=3, row_group_id=0, state_desc="COMPRESSED",
                           total_rows=200, deleted_rows=200),
        # Belongs to no known index
        RowGroupDescriptor(object_id=9999, index_id=1, row_group_id=0, state_desc="COMPRESSED",
                           total_rows=10, deleted_rows=5),
    ]


@pytest.fixture
def provider():
    """In-memory catalog with three schemas and a mix of index types."""
    return InMemoryMetadataProvider(sample_indexes(), sample_row_groups())


@pytest.fixture
def snapshot_file(tmp_path):
    """The sample catalog written as a JSON snapshot."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "source": "fixture",
        "indexes": [index.model_dump() for index in sample_indexes()],
        "row_groups": [rg.model_dump() for rg in sample_row_groups()],
    }), encoding="utf-8")
    return path
