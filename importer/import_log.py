"""
Import activity log.

Each section importer and resolver receives a ``LogContext`` instead of touching a
shared indentation counter. Nested work gets ``ctx.nested()``, which indents its
messages one step further and shares the same issue list, so every selection that
could not be imported is visible to the caller after the run.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class IssueKind(str, Enum):
    """Reasons a selection did not make it into the character."""

    UNRESOLVED_NAME = "unresolved_name"
    UNMATCHED_SLOT = "unmatched_slot"
    MALFORMED_SECTION = "malformed_section"
    AMBIGUOUS_FALLBACK = "ambiguous_fallback"


@dataclass
class ImportIssue:
    """One selection or section that did not import cleanly."""

    kind: IssueKind
    message: str
    name: Optional[str] = None

    def to_dict(self):
        return {"kind": self.kind.value, "message": self.message, "name": self.name}


class LogContext:
    """Indented logging plus the running list of import issues."""

    INDENT = "  "

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        depth: int = 0,
        issues: Optional[List[ImportIssue]] = None,
    ):
        self.logger = logger or logging.getLogger("importer")
        self.depth = depth
        self.issues = issues if issues is not None else []

    def nested(self) -> "LogContext":
        return LogContext(self.logger, self.depth + 1, self.issues)

    def _indent(self, message: str) -> str:
        return f"{self.INDENT * self.depth}{message}"

    def debug(self, message: str) -> None:
        self.logger.debug(self._indent(message))

    def info(self, message: str) -> None:
        self.logger.info(self._indent(message))

    def added(self, message: str) -> None:
        """Something was written into the character."""
        self.logger.info(self._indent(f"Adding {message}"))

    def error(self, message: str) -> None:
        self.logger.error(self._indent(message))

    def warn(self, kind: IssueKind, message: str, name: Optional[str] = None) -> None:
        self.logger.warning(self._indent(f"!!!! {message}"))
        self.issues.append(ImportIssue(kind=kind, message=message, name=name))
