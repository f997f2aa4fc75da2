"""
Exception types shared by the record source, the derivers and the API layer.

Only two conditions ever travel upward: a record source that could not answer
(SourceUnavailableError) and the assembler's composite wrapper around it
(ReportSourceError). Malformed records are defaulted where they are read and
empty datasets are valid, zero-valued results.
"""

from typing import Optional


class SourceUnavailableError(Exception):
    """Raised when a RecordSource fetch or procedure call fails."""

    def __init__(self, entity: str, message: str):
        self.entity = entity
        self.message = message
        super().__init__(f"{entity}: {message}")


class ReportSourceError(Exception):
    """
    Composite error surfaced by the ReportAssembler.

    Identifies the first fetch that failed while building a report. The report
    is never returned partially populated when this is raised.
    """

    def __init__(self, kind: str, entity: str, cause: Optional[BaseException] = None):
        self.kind = kind
        self.entity = entity
        self.cause = cause
        detail = str(cause) if cause is not None else "source unavailable"
        super().__init__(f"Failed to build '{kind}' report: fetch '{entity}' failed ({detail})")
