"""
Row-group fragmentation metrics and report assembly.

Percentages follow SQL Server's DECIMAL(5, 2) cast: two decimal places,
rounded half away from zero, and 0 for empty row-groups.
"""

from decimal import ROUND_HALF_UP, Decimal
from itertools import groupby
from typing import Iterable, List, Optional

from db.models import FragmentationRow, IndexDescriptor, IndexFragmentationSummary, RowGroupDescriptor

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal(100)


def _percent(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal(0)
    return (HUNDRED * Decimal(part) / Decimal(whole)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def fragmentation_percent(total_rows: int, deleted_rows: Optional[int]) -> float:
    """Share of deleted rows, 0 when the row-group is empty"""
    return float(_percent(deleted_rows or 0, total_rows))


def percent_full(total_rows: int, deleted_rows: Optional[int]) -> float:
    """Share of live rows, 0 when the row-group is empty"""
    if total_rows == 0:
        return 0.0
    return float(HUNDRED - _percent(deleted_rows or 0, total_rows))


def build_report_row(index: IndexDescriptor, row_group: RowGroupDescriptor) -> FragmentationRow:
    return FragmentationRow(
        object_id=index.object_id,
        schema_name=index.schema_name,
        table_name=index.table_name,
        index_name=index.index_name,
        index_id=index.index_id,
        type_desc=index.type_desc,
        row_group_id=row_group.row_group_id,
        state_desc=row_group.state_desc,
        total_rows=row_group.total_rows,
        deleted_rows=row_group.deleted_rows or 0,
        fragmentation_percent=fragmentation_percent(row_group.total_rows, row_group.deleted_rows),
        percent_full=percent_full(row_group.total_rows, row_group.deleted_rows),
    )


def build_report_rows(index: IndexDescriptor,
                      row_groups: Iterable[RowGroupDescriptor],
                      only_fragmented: bool = False,
                      min_fragmentation: float = 0.0) -> List[FragmentationRow]:
    """
    Build report rows for one index.

    Row-groups that belong to a different index are skipped. With
    only_fragmented, a row is kept when it has at least one deleted row and
    its fragmentation reaches min_fragmentation.
    """
    rows = []
    for row_group in row_groups:
        if row_group.index_key != index.key:
            continue

        row = build_report_row(index, row_group)
        if only_fragmented:
            if row.deleted_rows <= 0:
                continue
            if row.fragmentation_percent < min_fragmentation:
                continue
        rows.append(row)

    return rows


def report_sort_key(row: FragmentationRow) -> tuple:
    return (row.schema_name, row.table_name, row.index_name, row.row_group_id)


def sort_report_rows(rows: Iterable[FragmentationRow]) -> List[FragmentationRow]:
    """Order by schema, table, index name and row-group id"""
    return sorted(rows, key=report_sort_key)


def summarize_by_index(rows: Iterable[FragmentationRow]) -> List[IndexFragmentationSummary]:
    """Aggregate report rows into one summary per index"""
    ordered = sorted(rows, key=lambda r: (r.schema_name, r.table_name, r.index_name, r.object_id, r.index_id))

    summaries = []
    for _, group in groupby(ordered, key=lambda r: (r.schema_name, r.table_name, r.index_name, r.object_id, r.index_id)):
        group_rows = list(group)
        first = group_rows[0]
        total_rows = sum(r.total_rows for r in group_rows)
        deleted_rows = sum(r.deleted_rows for r in group_rows)

        summaries.append(IndexFragmentationSummary(
            schema_name=first.schema_name,
            table_name=first.table_name,
            index_name=first.index_name,
            type_desc=first.type_desc,
            row_group_count=len(group_rows),
            fragmented_row_groups=sum(1 for r in group_rows if r.deleted_rows > 0),
            total_rows=total_rows,
            deleted_rows=deleted_rows,
            fragmentation_percent=fragmentation_percent(total_rows, deleted_rows),
        ))

    return summaries
