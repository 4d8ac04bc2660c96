"""
Runs generated reorganize commands against a live database.

Each index is handled independently: the compress pass runs first and the
final pass only runs once the compress pass has succeeded. A failing index
is recorded and the remaining indexes are still processed.
"""

import time
from typing import Callable, Iterable, List, Optional

from loguru import logger

from db.models import ExecutionResult, MaintenanceCommand
from errors import ColumnStoreHealthError

COMPRESS_STEP = "compress"
FINAL_STEP = "final"

STATUS_PLANNED = "planned"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


class ReorganizeExecutor:
    def __init__(self, execute: Optional[Callable[[str], None]] = None) -> None:
        self.execute = execute

    def _result(self, command: MaintenanceCommand, step: str, sql: str, status: str, **extra) -> ExecutionResult:
        return ExecutionResult(
            schema_name=command.schema_name,
            table_name=command.table_name,
            index_name=command.index_name,
            step=step,
            command=sql,
            status=status,
            **extra,
        )

    def _run_step(self, command: MaintenanceCommand, step: str, sql: str) -> ExecutionResult:
        logger.info(f"Executing: {sql}")
        start = time.monotonic()
        try:
            self.execute(sql)
        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(f"Reorganize {step} pass failed for {command.schema_name}.{command.table_name} ({command.index_name}): {e}")
            return self._result(command, step, sql, STATUS_FAILED, error=str(e), duration_ms=duration_ms)

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(f"Completed {step} pass for {command.index_name} in {duration_ms:.0f} ms")
        return self._result(command, step, sql, STATUS_SUCCEEDED, duration_ms=duration_ms)

    def run(self, commands: Iterable[MaintenanceCommand], dry_run: bool = True) -> List[ExecutionResult]:
        if not dry_run and self.execute is None:
            raise ColumnStoreHealthError("Cannot apply reorganize commands without a live database connection")

        results: List[ExecutionResult] = []

        for command in commands:
            if dry_run:
                results.append(self._result(command, COMPRESS_STEP, command.reorganize_command, STATUS_PLANNED))
                results.append(self._result(command, FINAL_STEP, command.final_reorganize_command, STATUS_PLANNED))
                continue

            compress = self._run_step(command, COMPRESS_STEP, command.reorganize_command)
            results.append(compress)

            if compress.status == STATUS_SUCCEEDED:
                results.append(self._run_step(command, FINAL_STEP, command.final_reorganize_command))
            else:
                results.append(self._result(
                    command, FINAL_STEP, command.final_reorganize_command, STATUS_SKIPPED,
                    error="compress pass failed",
                ))

        return results


def count_failures(results: Iterable[ExecutionResult]) -> int:
    return sum(1 for r in results if r.status == STATUS_FAILED)
