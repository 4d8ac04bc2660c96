"""Tests for the sample catalog and the snapshot seeding CLI."""

import json

from typer.testing import CliRunner

from cli.db_seed import app
from db.provider import InMemoryMetadataProvider
from db.seed import MAX_ROW_GROUP_ROWS, build_sample_snapshot
from health.service import ColumnStoreHealthService


class TestSampleSnapshot:
    def test_every_row_group_has_an_index(self):
        snapshot = build_sample_snapshot()
        keys = {index.key for index in snapshot.indexes}

        assert all(rg.index_key in keys for rg in snapshot.row_groups)
        assert all(rg.total_rows <= MAX_ROW_GROUP_ROWS for rg in snapshot.row_groups)

    def test_sample_has_fragmented_and_clean_indexes(self):
        snapshot = build_sample_snapshot()
        service = ColumnStoreHealthService(InMemoryMetadataProvider(snapshot.indexes, snapshot.row_groups))

        fragmented = {s.index_name for s in service.index_summaries(only_fragmented=True)}
        commands = service.maintenance_commands()

        assert fragmented == {"CCI_FactSales", "NCCI_Orders_Analytics"}
        assert len(commands) == 4


class TestSeedCLI:
    def test_create_and_show(self, tmp_path):
        runner = CliRunner()
        output = tmp_path / "sample.json"

        result = runner.invoke(app, ["create", "--output", str(output)])
        assert result.exit_code == 0
        assert len(json.loads(output.read_text(encoding="utf-8"))["indexes"]) == 4

        result = runner.invoke(app, ["show", str(output)])
        assert result.exit_code == 0
        assert "Snapshot: sample.json" in result.stdout

    def test_create_refuses_to_overwrite(self, tmp_path):
        runner = CliRunner()
        output = tmp_path / "sample.json"
        output.write_text("{}", encoding="utf-8")

        result = runner.invoke(app, ["create", "--output", str(output)])

        assert result.exit_code == 1
        assert output.read_text(encoding="utf-8") == "{}"

    def test_show_missing_snapshot(self, tmp_path):
        result = CliRunner().invoke(app, ["show", str(tmp_path / "missing.json")])

        assert result.exit_code == 1
