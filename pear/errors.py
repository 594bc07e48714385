from __future__ import annotations

# Exit code used for every failure that is not the child's own exit status.
DEFAULT_ERROR_EXIT_CODE = 1


class PearError(Exception):
    """Base class for all errors that terminate a wrapper invocation."""


class ConfigError(PearError):
    def __init__(self, message: str, filename: str = "", line: int = 0, column: int = 0):
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.line = line
        self.column = column

    def __str__(self) -> str:
        where = self.filename or "<config>"
        if self.line:
            where = f"{where}:{self.line}"
            if self.column:
                where = f"{where}:{self.column}"
        return f"{where}: {self.message}"


class ResolutionError(PearError):
    pass


class LogWriteError(PearError):
    pass


class ExecError(PearError):
    pass
