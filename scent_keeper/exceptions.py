from typing import Optional


class BackupError(Exception):
    """Base class for every error raised by the backup pipelines."""


class ValidationError(BackupError):
    """The export input is unusable (no items, or a filename with a directory part)."""


class FormatError(BackupError):
    """A backup or inventory file is structurally invalid."""


class OperationError(BackupError):
    """
    An export or import failed as a whole.
    The lower-level exception is kept on `cause` and chained via `raise ... from`.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ExportError(OperationError):
    pass


class ImportFailedError(OperationError):
    pass
