"""Records flowing through scan, grouping and commit.

Occurrences and groups hold live document handles, so they are plain
dataclasses. The run-level report and the scan summary are Pydantic models
because hosts serialize them.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from externalizer.utils.documents import NodeHandle


class Dialect(str, Enum):
    """Source dialects the scanner understands."""

    JAVA = "java"
    KOTLIN = "kotlin"
    MARKUP = "xml"

    @property
    def is_code(self) -> bool:
        return self is not Dialect.MARKUP


@dataclass(frozen=True, eq=False)
class Occurrence:
    """One concrete literal usage site.

    Equality is identity: two records for the same text at different sites
    are different occurrences.
    """

    raw_text: str  # Source text of the replaced node
    text: str  # Normalized text (%k$s placeholders for arguments)
    path: str
    line: int
    dialect: Dialect
    handle: "NodeHandle"
    arguments: tuple[str, ...] = ()

    @property
    def file_name(self) -> str:
        return Path(self.path).name


@dataclass(eq=False)
class Group:
    """All occurrences sharing one normalized text; the unit of externalization."""

    text: str
    path: str  # First occurrence's file (informational)
    new_key: str
    old_key: str | None = None
    use_new_key: bool = True
    selected: bool = True
    occurrences: list[Occurrence] = field(default_factory=list)

    @property
    def effective_key(self) -> str:
        """Key that source rewriting references after the table sync."""
        if not self.use_new_key and self.old_key:
            return self.old_key
        return self.new_key


@dataclass
class ReplacementOutcome:
    """Result of rewriting a single occurrence."""

    occurrence: Occurrence
    handle: "NodeHandle | None" = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReplacementReport(BaseModel):
    """Run-level summary of a commit."""

    total_locations: int = Field(alias="totalLocations", description="Occurrences attempted")
    success_count: int = Field(alias="successCount", description="Occurrences rewritten")
    failed_count: int = Field(alias="failedCount", description="Occurrences that failed")
    errors: list[str] = Field(default_factory=list, description="Per-item diagnostics")

    model_config = {"populate_by_name": True}


class OccurrenceSummary(BaseModel):
    """Serializable view of one occurrence."""

    file: str
    line: int
    dialect: Dialect
    raw_text: str
    arguments: list[str] = Field(default_factory=list)


class GroupSummary(BaseModel):
    """Serializable view of one group, as listed by ``externalizer scan``."""

    text: str
    new_key: str
    old_key: str | None = None
    use_new_key: bool
    selected: bool
    occurrences: list[OccurrenceSummary]

    @classmethod
    def from_group(cls, group: Group) -> "GroupSummary":
        return cls(
            text=group.text,
            new_key=group.new_key,
            old_key=group.old_key,
            use_new_key=group.use_new_key,
            selected=group.selected,
            occurrences=[
                OccurrenceSummary(
                    file=occ.path,
                    line=occ.line,
                    dialect=occ.dialect,
                    raw_text=occ.raw_text,
                    arguments=list(occ.arguments),
                )
                for occ in group.occurrences
            ],
        )
