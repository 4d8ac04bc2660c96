"""Tests for reorganize command generation."""

import pytest

from db.models import IndexDescriptor
from health.commands import (
    build_final_reorganize_command,
    build_maintenance_command,
    build_reorganize_command,
    quote_identifier,
    render_script,
    sort_commands,
)


class TestQuoteIdentifier:
    @pytest.mark.parametrize("name,expected", [
        ("dbo", "[dbo]"),
        ("Order Details", "[Order Details]"),
        ("select", "[select]"),
        ("weird]name", "[weird]]name]"),
        ("[already]", "[[already]]]"),
        ("", "[]"),
    ])
    def test_quote(self, name, expected):
        assert quote_identifier(name) == expected


class TestCommandText:
    def test_compress_all_row_groups_command(self):
        assert build_reorganize_command("dbo", "Fact", "CCI_Fact") == (
            "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);"
        )

    def test_final_reorganize_command(self):
        assert build_final_reorganize_command("dbo", "Fact", "CCI_Fact") == (
            "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE;"
        )

    def test_embedded_brackets_are_escaped(self):
        command = build_final_reorganize_command("my]schema", "Fact]", "CCI]")

        assert command == "ALTER INDEX [CCI]]] ON [my]]schema].[Fact]]] REORGANIZE;"

    def test_build_maintenance_command_from_index(self):
        index = IndexDescriptor(object_id=1, schema_name="dbo", table_name="Fact",
                                index_name="CCI_Fact", index_id=1, type_desc="CLUSTERED COLUMNSTORE")

        command = build_maintenance_command(index)

        assert command.to_dict() == {
            "SchemaName": "dbo",
            "TableName": "Fact",
            "IndexName": "CCI_Fact",
            "ReorganizeCommand": "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);",
            "FinalReorganizeCommand": "ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE;",
        }


class TestScript:
    def _commands(self):
        indexes = [
            IndexDescriptor(object_id=2, schema_name="sales", table_name="Orders",
                            index_name="NCCI_Orders", index_id=3, type_desc="NONCLUSTERED COLUMNSTORE"),
            IndexDescriptor(object_id=1, schema_name="dbo", table_name="Fact",
                            index_name="CCI_Fact", index_id=1, type_desc="CLUSTERED COLUMNSTORE"),
        ]
        return sort_commands(build_maintenance_command(index) for index in indexes)

    def test_sort_commands(self):
        assert [c.index_name for c in self._commands()] == ["CCI_Fact", "NCCI_Orders"]

    def test_script_runs_compress_pass_before_final_pass(self):
        script = render_script(self._commands())
        lines = script.splitlines()

        compress = lines.index("ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);")
        final = lines.index("ALTER INDEX [CCI_Fact] ON [dbo].[Fact] REORGANIZE;")
        assert compress < final
        assert lines[compress + 1] == "GO"
        assert lines[final + 1] == "GO"
        assert lines.count("GO") == 4

    def test_line_breaks_in_names_stay_inside_comment(self):
        index = IndexDescriptor(object_id=1, schema_name="dbo", table_name="Fact\r",
                                index_name="CCI\nDROP TABLE dbo.Fact;", index_id=1,
                                type_desc="CLUSTERED COLUMNSTORE")

        lines = render_script([build_maintenance_command(index)]).splitlines()

        assert lines[0] == "-- dbo.Fact\\r: CCI\\nDROP TABLE dbo.Fact;"
        assert "DROP TABLE dbo.Fact;" not in lines
        assert lines[1] == "ALTER INDEX [CCI"

    def test_empty_script(self):
        assert render_script([]) == ""
