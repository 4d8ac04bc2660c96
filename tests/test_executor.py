"""Tests for executing generated reorganize commands."""

import pytest

from db.models import IndexDescriptor
from errors import ColumnStoreHealthError
from health.commands import build_maintenance_command
from health.executor import (
    STATUS_FAILED,
    STATUS_PLANNED,
    STATUS_SKIPPED,
    STATUS_SUCCEEDED,
    ReorganizeExecutor,
    count_failures,
)


def make_commands():
    return [
        build_maintenance_command(IndexDescriptor(
            object_id=1, schema_name="dbo", table_name="Fact",
            index_name="CCI_Fact", index_id=1, type_desc="CLUSTERED COLUMNSTORE")),
        build_maintenance_command(IndexDescriptor(
            object_id=2, schema_name="sales", table_name="Orders",
            index_name="NCCI_Orders", index_id=3, type_desc="NONCLUSTERED COLUMNSTORE")),
    ]


class RecordingTarget:
    def __init__(self, fail_on=None):
        self.executed = []
        self.fail_on = fail_on

    def __call__(self, sql):
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError("Lock request time out period exceeded")
        self.executed.append(sql)


class TestReorganizeExecutor:
    def test_dry_run_executes_nothing(self):
        target = RecordingTarget()

        results = ReorganizeExecutor(target).run(make_commands())

        assert target.executed == []
        assert [r.status for r in results] == [STATUS_PLANNED] * 4
        assert [r.step for r in results] == ["compress", "final", "compress", "final"]

    def test_dry_run_without_target(self):
        results = ReorganizeExecutor().run(make_commands(), dry_run=True)

        assert len(results) == 4

    def test_apply_without_target_is_rejected(self):
        with pytest.raises(ColumnStoreHealthError):
            ReorganizeExecutor().run(make_commands(), dry_run=False)

    def test_apply_runs_compress_then_final(self):
        target = RecordingTarget()

        results = ReorganizeExecutor(target).run(make_commands(), dry_run=False)

        assert target.executed == [
            "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);",
            "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE;",
            "ALTER INDEX [NCCI_Orders] ON [sales].[Orders] REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);",
            "ALTER INDEX [NCCI_Orders] ON [sales].[Orders] REORGANIZE;",
        ]
        assert all(r.status == STATUS_SUCCEEDED for r in results)
        assert all(r.duration_ms is not None for r in results)
        assert count_failures(results) == 0

    def test_failed_compress_skips_final_and_continues(self):
        target = RecordingTarget(fail_on="[CCI_Fact]")

        results = ReorganizeExecutor(target).run(make_commands(), dry_run=False)

        assert [(r.index_name, r.step, r.status) for r in results] == [
            ("CCI_Fact", "compress", STATUS_FAILED),
            ("CCI_Fact", "final", STATUS_SKIPPED),
            ("NCCI_Orders", "compress", STATUS_SUCCEEDED),
            ("NCCI_Orders", "final", STATUS_SUCCEEDED),
        ]
        assert "Lock request" in results[0].error
        assert count_failures(results) == 1
        assert len(target.executed) == 2
