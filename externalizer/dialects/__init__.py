"""Per-dialect literal detection and replacement.

The registry is closed: one implementation per ``Dialect``.
"""

from pathlib import Path

from externalizer.dialects.base import CodeDialect, LiteralDialect
from externalizer.dialects.java import JavaDialect
from externalizer.dialects.kotlin import KotlinDialect
from externalizer.dialects.markup import MarkupDialect
from externalizer.models.records import Dialect
from externalizer.utils.syntax import dialect_for_path

DIALECTS: dict[Dialect, LiteralDialect] = {
    Dialect.JAVA: JavaDialect(),
    Dialect.KOTLIN: KotlinDialect(),
    Dialect.MARKUP: MarkupDialect(),
}


def dialect_for_file(path: Path | str) -> LiteralDialect | None:
    """Implementation handling a file, or None for unsupported extensions."""
    dialect = dialect_for_path(path)
    return DIALECTS[dialect] if dialect is not None else None


__all__ = [
    "DIALECTS",
    "CodeDialect",
    "JavaDialect",
    "KotlinDialect",
    "LiteralDialect",
    "MarkupDialect",
    "dialect_for_file",
]
