"""Tests for the in-memory metadata provider and catalog snapshots."""

import json

import pytest

from db.provider import InMemoryMetadataProvider, capture_snapshot, export_snapshot
from errors import SnapshotError


class TestInMemoryProvider:
    def test_lists_only_columnstore_indexes(self, provider):
        indexes = provider.list_columnstore_indexes()

        assert {i.type_desc for i in indexes} == {"CLUSTERED COLUMNSTORE", "NONCLUSTERED COLUMNSTORE"}
        assert len(indexes) == 4

    def test_filters(self, provider):
        assert [i.index_name for i in provider.list_columnstore_indexes(schema_name="sales")] == ["NCCI_Orders"]
        assert [i.index_name for i in provider.list_columnstore_indexes(table_name="Fact")] == ["CCI_Fact"]
        assert provider.list_columnstore_indexes(schema_name="sales", table_name="Fact") == []

    def test_row_groups_belong_to_index(self, provider):
        index = provider.list_columnstore_indexes(table_name="FactSales")[0]

        row_groups = provider.list_row_groups(index)

        assert sorted(rg.row_group_id for rg in row_groups) == [0, 1]
        assert all(rg.index_key == index.key for rg in row_groups)

    def test_index_without_row_groups(self, provider):
        index = provider.list_columnstore_indexes(schema_name="stage")[0]

        assert provider.list_row_groups(index) == []


class TestSnapshots:
    def test_load_snapshot(self, snapshot_file):
        loaded = InMemoryMetadataProvider.from_snapshot(snapshot_file)

        assert loaded.source == str(snapshot_file)
        assert len(loaded.list_columnstore_indexes()) == 4

    def test_missing_snapshot(self, tmp_path):
        with pytest.raises(SnapshotError, match="not found"):
            InMemoryMetadataProvider.from_snapshot(tmp_path / "missing.json")

    def test_invalid_snapshot(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotError, match="Invalid snapshot"):
            InMemoryMetadataProvider.from_snapshot(path)

    def test_snapshot_path_is_directory(self, tmp_path):
        with pytest.raises(SnapshotError, match="Cannot read snapshot"):
            InMemoryMetadataProvider.from_snapshot(tmp_path)

    def test_snapshot_not_utf8(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(SnapshotError, match="Cannot read snapshot"):
            InMemoryMetadataProvider.from_snapshot(path)

    def test_snapshot_with_bad_row_counts(self, tmp_path):
        path = tmp_path / "negative.json"
        path.write_text(json.dumps({
            "indexes": [],
            "row_groups": [{"object_id": 1, "index_id": 1, "row_group_id": 0,
                            "state_desc": "OPEN", "total_rows": -1, "deleted_rows": None}],
        }), encoding="utf-8")

        with pytest.raises(SnapshotError):
            InMemoryMetadataProvider.from_snapshot(path)

    def test_capture_drops_orphans_and_rowstore(self, provider):
        snapshot = capture_snapshot(provider, source="fixture")

        assert len(snapshot.indexes) == 4
        assert len(snapshot.row_groups) == 6
        assert snapshot.source == "fixture"
        assert snapshot.captured_at is not None

    def test_export_and_reload(self, provider, tmp_path):
        path = tmp_path / "out" / "dbo.json"

        export_snapshot(provider, path, schema_name="dbo")
        reloaded = InMemoryMetadataProvider.from_snapshot(path)

        assert [i.index_name for i in reloaded.list_columnstore_indexes()] == ["CCI_Sales", "CCI_Fact"]
        assert len(reloaded.row_groups) == 5
