from typing import List, Optional, Union

from loguru import logger

from db.models import Action, FragmentationRow, IndexFragmentationSummary, MaintenanceCommand
from db.provider import MetadataProvider
from errors import UnsupportedActionError

from .commands import build_maintenance_command, sort_commands
from .fragmentation import build_report_rows, sort_report_rows, summarize_by_index


def parse_action(value: Union[Action, int]) -> Action:
    """Convert an action code, rejecting anything outside 0, 1, 2"""
    try:
        return Action(value)
    except ValueError:
        raise UnsupportedActionError(value) from None


class ColumnStoreHealthService:
    """Fragmentation reports and maintenance commands over a metadata provider"""

    def __init__(self, provider: MetadataProvider) -> None:
        self.provider = provider

    def fragmentation_report(self,
                             schema_name: Optional[str] = None,
                             table_name: Optional[str] = None,
                             only_fragmented: bool = False,
                             min_fragmentation: float = 0.0) -> List[FragmentationRow]:
        """One row per (index, row-group) for every matching column-store index"""
        indexes = self.provider.list_columnstore_indexes(schema_name, table_name)

        rows: List[FragmentationRow] = []
        for index in indexes:
            row_groups = self.provider.list_row_groups(index)
            rows.extend(build_report_rows(index, row_groups, only_fragmented, min_fragmentation))

        logger.info(
            f"Fragmentation report: {len(indexes)} indexes, {len(rows)} row groups "
            f"(schema={schema_name}, table={table_name}, only_fragmented={only_fragmented})"
        )
        return sort_report_rows(rows)

    def index_summaries(self,
                        schema_name: Optional[str] = None,
                        table_name: Optional[str] = None,
                        only_fragmented: bool = False,
                        min_fragmentation: float = 0.0) -> List[IndexFragmentationSummary]:
        rows = self.fragmentation_report(schema_name, table_name, only_fragmented, min_fragmentation)
        return summarize_by_index(rows)

    def maintenance_commands(self,
                             schema_name: Optional[str] = None,
                             table_name: Optional[str] = None) -> List[MaintenanceCommand]:
        """Reorganize commands for every matching column-store index, fragmented or not"""
        indexes = self.provider.list_columnstore_indexes(schema_name, table_name)
        commands = sort_commands(build_maintenance_command(index) for index in indexes)

        logger.info(f"Generated reorganize commands for {len(commands)} indexes")
        return commands

    def run(self,
            action: Union[Action, int],
            schema_name: Optional[str] = None,
            table_name: Optional[str] = None) -> Union[List[FragmentationRow], List[MaintenanceCommand]]:
        """Dispatch an action code: 0 report, 1 fragmented-only report, 2 generate commands"""
        action = parse_action(action)

        if action == Action.REPORT:
            return self.fragmentation_report(schema_name, table_name)
        if action == Action.REPORT_FRAGMENTED:
            return self.fragmentation_report(schema_name, table_name, only_fragmented=True)
        return self.maintenance_commands(schema_name, table_name)
