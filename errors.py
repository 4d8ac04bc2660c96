"""
Exception types shared by the catalog access layer, the health service and the CLI
"""


class ColumnStoreHealthError(Exception):
    """Base class for all column-store health errors"""


class UnsupportedActionError(ColumnStoreHealthError, ValueError):
    """Raised when an action code outside 0, 1, 2 is requested"""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(
            f"Unsupported action: {action!r}. "
            "Use 0 (report), 1 (fragmented only) or 2 (generate commands)"
        )


class CatalogAccessError(ColumnStoreHealthError):
    """Raised when the database catalog cannot be reached or queried"""


class SnapshotError(ColumnStoreHealthError):
    """Raised when a catalog snapshot cannot be read or written"""
