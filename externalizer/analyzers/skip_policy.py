"""Classifier deciding whether a literal is user-facing text.

``should_skip`` is pure and thread-safe. Rules run in order and the first
match wins; each rule is exposed as its own function so it can be tested in
isolation.
"""

import re
from dataclasses import dataclass
from pathlib import PurePath

# printf-style placeholder: % [index$] [flags] [width][.precision] conversion
PLACEHOLDER_PATTERN = re.compile(r"%(\d+\$)?[-#+ 0,(<]*[\d.]*[a-zA-Z]")

HEX_COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{8})$")

URI_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

ATTRIBUTE_PREFIX_PATTERN = re.compile(r"^(android|app|tools|xmlns):", re.IGNORECASE)

DEFAULT_TEST_DIRS = frozenset({"test", "androidTest"})

# Lowercased method names whose string arguments are keys, tags, paths or SQL
TECHNICAL_METHODS = frozenset({
    # Logging and debug output
    "d", "e", "i", "v", "w", "wtf", "log", "print", "println", "error", "tag",
    # Intent and Bundle extras
    "putextra", "getstringextra", "putstring", "getstring", "putlong", "putint",
    # SharedPreferences
    "getboolean", "getint", "getfloat", "edit",
    # View tags
    "settag", "gettag", "findviewwithtag",
    # Database and SQL
    "query", "insert", "update", "delete", "execsql", "columnindex",
    # Framework plumbing
    "action", "addcategory", "setpackage", "setclassname", "getsystemservice",
    # Compose test tags and semantics
    "testtag", "semantics",
})

# Receiver types whose calls never take user-facing text
TECHNICAL_RECEIVERS = frozenset({"Log", "android.util.Log", "Timber", "timber.log.Timber"})
TECHNICAL_RECEIVER_FRAGMENTS = ("android.util.Log", "timber.log.Timber", "BuildConfig")


@dataclass(frozen=True)
class SyntacticContext:
    """Where a candidate literal sits in its file."""

    path: str = ""
    in_annotation: bool = False
    call_name: str | None = None  # Method or function the literal is an argument of
    receiver: str | None = None  # Receiver expression of that call


def is_technical_content(text: str) -> bool:
    """True for text with no letters once placeholders are removed, colors, URIs."""
    without_placeholders = PLACEHOLDER_PATTERN.sub("", text)
    if not any(ch.isalpha() for ch in without_placeholders):
        return True
    if HEX_COLOR_PATTERN.match(text):
        return True
    if URI_SCHEME_PATTERN.match(text) or "://" in text:
        return True
    if ATTRIBUTE_PREFIX_PATTERN.match(text):
        return True
    return False


def is_folded_technical(text: str) -> bool:
    """Technical check for text with argument placeholders.

    Blank static text, URIs and attribute prefixes are technical; letters
    are not required.
    """
    static = PLACEHOLDER_PATTERN.sub("", text)
    if not static.strip():
        return True
    if URI_SCHEME_PATTERN.match(text) or "://" in text:
        return True
    return bool(ATTRIBUTE_PREFIX_PATTERN.match(text))


def is_in_test_dir(path: str, test_dirs: frozenset[str] = DEFAULT_TEST_DIRS) -> bool:
    """True when any directory segment of the path is a test source set."""
    if not path:
        return False
    return any(part in test_dirs for part in PurePath(path).parts[:-1])


def is_technical_call(call_name: str | None) -> bool:
    if not call_name:
        return False
    return call_name.lower() in TECHNICAL_METHODS


def is_technical_receiver(receiver: str | None) -> bool:
    if not receiver:
        return False
    receiver = receiver.strip()
    if receiver in TECHNICAL_RECEIVERS:
        return True
    return any(fragment in receiver for fragment in TECHNICAL_RECEIVER_FRAGMENTS)


def should_skip(
    text: str,
    context: SyntacticContext | None = None,
    test_dirs: frozenset[str] = DEFAULT_TEST_DIRS,
    has_arguments: bool = False,
) -> bool:
    """Decide whether a candidate literal should stay inline.

    Args:
        text: Normalized literal text (placeholders already substituted).
        context: Syntactic context of the literal, if known.
        test_dirs: Directory names marking test-only sources.
        has_arguments: True for folded templates and concatenations. Their
            static text only needs to be non-blank, since the arguments
            carry the words (``"66|%1$s"``).

    Returns:
        True if the literal is not user-facing text worth externalizing.
    """
    trimmed = text.strip()
    if len(trimmed) <= 1:
        return True
    if has_arguments:
        if is_folded_technical(trimmed):
            return True
    elif is_technical_content(trimmed):
        return True
    if context is None:
        return False
    if is_in_test_dir(context.path, test_dirs):
        return True
    if context.in_annotation:
        return True
    if is_technical_call(context.call_name):
        return True
    if is_technical_receiver(context.receiver):
        return True
    return False
