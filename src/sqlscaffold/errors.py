"""Exceptions shared by the analysis pipeline."""


class InvalidArgument(ValueError):
    """Caller input error or statement-shape violation.

    Raised synchronously, before any degraded output is produced. The message
    names the offending argument.
    """


class ParameterTypeUnavailable(Exception):
    """Metadata source could not report the type of a single bind parameter.

    This is a per-item failure, callers are expected to degrade and continue.
    """

    def __init__(self, position: int, reason: str = ""):
        self.position = position
        self.reason = reason
        message = f"Type of parameter {position} is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MetadataSourceError(Exception):
    """Metadata source failed to answer a catalog request (unknown table, bad DDL)."""
