from typing import Any, Dict, List, Optional

import pyodbc
from loguru import logger

from errors import CatalogAccessError

from .models import IndexDescriptor, RowGroupDescriptor
from .provider import MetadataProvider

INDEX_QUERY = """
    SELECT
        [i].[object_id] AS object_id,
        OBJECT_SCHEMA_NAME([i].[object_id]) AS schema_name,
        OBJECT_NAME([i].[object_id]) AS table_name,
        [i].[name] AS index_name,
        [i].[index_id] AS index_id,
        [i].[type_desc] AS type_desc
    FROM [sys].[indexes] AS [i]
    WHERE [i].[type_desc] IN ('CLUSTERED COLUMNSTORE', 'NONCLUSTERED COLUMNSTORE')
"""

ROW_GROUP_QUERY = """
    SELECT
        [rg].[object_id] AS object_id,
        [rg].[index_id] AS index_id,
        [rg].[row_group_id] AS row_group_id,
        [rg].[state_desc] AS state_desc,
        [rg].[total_rows] AS total_rows,
        [rg].[deleted_rows] AS deleted_rows
    FROM [sys].[column_store_row_groups] AS [rg]
    WHERE [rg].[object_id] = ? AND [rg].[index_id] = ?
    ORDER BY [rg].[row_group_id]
"""


class SqlServerCatalogDAO(MetadataProvider):
    """Reads column-store metadata from a live SQL Server catalog"""

    def __init__(self,
                 connection_string: str,
                 login_timeout: int = 15,
                 query_timeout: int = 0) -> None:
        self.connection_string = connection_string
        self.login_timeout = login_timeout
        self.query_timeout = query_timeout
        self.conn: Optional[pyodbc.Connection] = None

    def connect(self) -> None:
        """Open the connection in autocommit mode"""
        try:
            self.conn = pyodbc.connect(
                self.connection_string,
                timeout=self.login_timeout,
                autocommit=True,
            )
            self.conn.timeout = self.query_timeout
        except pyodbc.Error as e:
            logger.error(f"Cannot connect to SQL Server: {e}")
            raise CatalogAccessError(f"Cannot connect to SQL Server: {e}") from e

        logger.info("Connected to SQL Server catalog")

    def close(self) -> None:
        """Close the connection"""
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed")

    def __enter__(self) -> "SqlServerCatalogDAO":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _fetch_all(self, sql: str, params: List[Any]) -> List[Dict[str, Any]]:
        if self.conn is None:
            raise CatalogAccessError("Not connected; use the DAO as a context manager or call connect()")

        try:
            cursor = self.conn.cursor()
            try:
                cursor.execute(sql, params)
                columns = [column[0] for column in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()
        except pyodbc.Error as e:
            logger.error(f"Catalog query failed: {e}")
            raise CatalogAccessError(f"Catalog query failed: {e}") from e

    def list_columnstore_indexes(self,
                                 schema_name: Optional[str] = None,
                                 table_name: Optional[str] = None) -> List[IndexDescriptor]:
        sql = INDEX_QUERY
        params: List[Any] = []

        if schema_name is not None:
            sql += " AND OBJECT_SCHEMA_NAME([i].[object_id]) = ?"
            params.append(schema_name)

        if table_name is not None:
            sql += " AND OBJECT_NAME([i].[object_id]) = ?"
            params.append(table_name)

        rows = self._fetch_all(sql, params)
        indexes = [IndexDescriptor(**row) for row in rows]
        logger.debug(f"Found {len(indexes)} column-store indexes (schema={schema_name}, table={table_name})")
        return indexes

    def list_row_groups(self, index: IndexDescriptor) -> List[RowGroupDescriptor]:
        rows = self._fetch_all(ROW_GROUP_QUERY, [index.object_id, index.index_id])
        return [RowGroupDescriptor(**row) for row in rows]

    def execute_command(self, sql: str) -> None:
        """Execute a single DDL statement"""
        if self.conn is None:
            raise CatalogAccessError("Not connected; use the DAO as a context manager or call connect()")

        try:
            cursor = self.conn.cursor()
            try:
                cursor.execute(sql)
            finally:
                cursor.close()
        except pyodbc.Error as e:
            raise CatalogAccessError(str(e)) from e
