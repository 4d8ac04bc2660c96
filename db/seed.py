from datetime import datetime
from typing import List, Tuple

from loguru import logger

from .models import CatalogSnapshot, IndexDescriptor, RowGroupDescriptor

# Compressed row-groups hold at most this many rows
MAX_ROW_GROUP_ROWS = 1048576


def _row_groups(index: IndexDescriptor, layout: List[Tuple[str, int, int]]) -> List[RowGroupDescriptor]:
    return [
        RowGroupDescriptor(
            object_id=index.object_id,
            index_id=index.index_id,
            row_group_id=row_group_id,
            state_desc=state,
            total_rows=total,
            deleted_rows=deleted,
        )
        for row_group_id, (state, total, deleted) in enumerate(layout)
    ]


def build_sample_snapshot() -> CatalogSnapshot:
    """Build a small data-warehouse catalog with healthy and fragmented column-store indexes"""
    logger.info("Building sample catalog snapshot...")

    fact_sales = IndexDescriptor(
        object_id=245575913, schema_name="dbo", table_name="FactSales",
        index_name="CCI_FactSales", index_id=1, type_desc="CLUSTERED COLUMNSTORE",
    )
    fact_credit = IndexDescriptor(
        object_id=309576141, schema_name="DataWarehouse", table_name="FactCreditRatingModel",
        index_name="CCI_FactCreditRatingModel", index_id=1, type_desc="CLUSTERED COLUMNSTORE",
    )
    orders = IndexDescriptor(
        object_id=373576369, schema_name="sales", table_name="Orders",
        index_name="NCCI_Orders_Analytics", index_id=4, type_desc="NONCLUSTERED COLUMNSTORE",
    )
    staging = IndexDescriptor(
        object_id=437576597, schema_name="stage", table_name="LoadBuffer",
        index_name="CCI_LoadBuffer", index_id=1, type_desc="CLUSTERED COLUMNSTORE",
    )

    row_groups = (
        # Heavy update traffic: several compressed row-groups carry deleted rows
        _row_groups(fact_sales, [
            ("COMPRESSED", MAX_ROW_GROUP_ROWS, 262144),
            ("COMPRESSED", MAX_ROW_GROUP_ROWS, 524288),
            ("COMPRESSED", MAX_ROW_GROUP_ROWS, 0),
            ("CLOSED", MAX_ROW_GROUP_ROWS, None),
            ("OPEN", 48211, None),
        ])
        # Append-only model history, healthy
        + _row_groups(fact_credit, [
            ("COMPRESSED", MAX_ROW_GROUP_ROWS, 0),
            ("COMPRESSED", 731422, 0),
        ])
        # Operational analytics index, trickle deletes
        + _row_groups(orders, [
            ("COMPRESSED", 880000, 1200),
            ("COMPRESSED", 412000, 0),
            ("OPEN", 0, None),
        ])
    )

    # stage.LoadBuffer was just truncated and has no row-groups
    snapshot = CatalogSnapshot(
        captured_at=datetime.now(),
        source="sample",
        indexes=[fact_sales, fact_credit, orders, staging],
        row_groups=row_groups,
    )

    logger.info(f"Sample catalog: {len(snapshot.indexes)} indexes, {len(snapshot.row_groups)} row groups")
    return snapshot
