"""Exceptions raised across sheetmatch."""


class SheetMatchError(Exception):
    """Base error for the package."""


class ImportInputError(SheetMatchError):
    """Request is unusable: missing file, unsupported extension, empty table list."""


class WorkbookStructureError(SheetMatchError):
    """The uploaded file could not be turned into at least one usable sheet."""


class StorageError(SheetMatchError):
    """A stored file could not be read."""


class PersistenceError(SheetMatchError):
    """Deleting, inserting or upserting rows for one table failed."""

    def __init__(self, table_id: str, message: str):
        super().__init__(message)
        self.table_id = table_id
