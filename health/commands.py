"""
ALTER INDEX ... REORGANIZE command text for column-store maintenance.

The compress pass (COMPRESS_ALL_ROW_GROUPS = ON) moves open and closed
delta row-groups into compressed storage; the final plain REORGANIZE then
merges compressed row-groups and removes deleted rows.
"""

from typing import Iterable, List

from db.models import IndexDescriptor, MaintenanceCommand

BATCH_SEPARATOR = "GO"


def quote_identifier(name: str) -> str:
    """Bracket-quote a T-SQL identifier, doubling any embedded closing bracket"""
    return "[" + name.replace("]", "]]") + "]"


def _index_target(schema_name: str, table_name: str, index_name: str) -> str:
    return (
        f"ALTER INDEX {quote_identifier(index_name)} "
        f"ON {quote_identifier(schema_name)}.{quote_identifier(table_name)}"
    )


def build_reorganize_command(schema_name: str, table_name: str, index_name: str) -> str:
    return _index_target(schema_name, table_name, index_name) + " REORGANIZE WITH (COMPRESS_ALL_ROW_GROUPS = ON);"


def build_final_reorganize_command(schema_name: str, table_name: str, index_name: str) -> str:
    return _index_target(schema_name, table_name, index_name) + " REORGANIZE;"


def build_maintenance_command(index: IndexDescriptor) -> MaintenanceCommand:
    return MaintenanceCommand(
        schema_name=index.schema_name,
        table_name=index.table_name,
        index_name=index.index_name,
        reorganize_command=build_reorganize_command(index.schema_name, index.table_name, index.index_name),
        final_reorganize_command=build_final_reorganize_command(index.schema_name, index.table_name, index.index_name),
    )


def command_sort_key(command: MaintenanceCommand) -> tuple:
    return (command.schema_name, command.table_name, command.index_name)


def sort_commands(commands: Iterable[MaintenanceCommand]) -> List[MaintenanceCommand]:
    return sorted(commands, key=command_sort_key)


def _comment_text(name: str) -> str:
    # A line comment ends at the first line break
    return name.replace("\r", "\\r").replace("\n", "\\n")


def render_script(commands: Iterable[MaintenanceCommand]) -> str:
    """Render commands as a T-SQL script, compress pass before final pass for each index"""
    lines = []
    for command in commands:
        target = f"{command.schema_name}.{command.table_name}: {command.index_name}"
        lines.append(f"-- {_comment_text(target)}")
        lines.append(command.reorganize_command)
        lines.append(BATCH_SEPARATOR)
        lines.append(command.final_reorganize_command)
        lines.append(BATCH_SEPARATOR)
        lines.append("")

    return "\n".join(lines)
