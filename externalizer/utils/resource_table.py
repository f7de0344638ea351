"""String-resource table (``res/values/strings.xml``) management.

The table is an Android resources document::

    <?xml version="1.0" encoding="utf-8"?>
    <resources>
        <string name="k3x_a9b2">Save</string>
    </resources>

Values are stored with Android's backslash escapes for quotes; lxml handles
``&``, ``<`` and ``>``. Upserts, renames and existence checks are idempotent.
"""

import re
import threading
from pathlib import Path

from lxml import etree

from externalizer.config import ExtractorConfig
from externalizer.errors import ResourceTableError
from externalizer.logging import logger
from externalizer.models.records import Group
from externalizer.utils.documents import Workspace

EMPTY_TABLE = '<?xml version="1.0" encoding="utf-8"?>\n<resources>\n</resources>\n'

_ESCAPE_MAP = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "'": "\\'", '"': '\\"'}
_UNESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPE_MAP = {"n": "\n", "t": "\t"}


def escape_resource_text(text: str) -> str:
    """Escape text for a ``<string>`` element body (before XML serialization)."""
    escaped = "".join(_ESCAPE_MAP.get(ch, ch) for ch in text)
    if escaped.startswith(("@", "?")):
        escaped = "\\" + escaped
    return escaped


def unescape_resource_text(text: str) -> str:
    return _UNESCAPE_PATTERN.sub(lambda m: _UNESCAPE_MAP.get(m.group(1), m.group(1)), text)


def _element_text(element: etree._Element) -> str:
    return "".join(element.itertext())


class ResourceTable:
    """The project's strings table, loaded lazily and written on ``save``.

    Read-only lookups never create the file; ``locate_or_create`` is only
    called by the commit phase.
    """

    def __init__(self, project_root: Path | str, config: ExtractorConfig | None = None):
        self.project_root = Path(project_root).resolve()
        self.config = config or ExtractorConfig()
        self._lock = threading.RLock()
        self._path: Path | None = None
        self._tree: etree._ElementTree | None = None
        self.modified = False

    @property
    def path(self) -> Path | None:
        return self._path

    # -------------------------------------------------------------------------
    # Location and loading
    # -------------------------------------------------------------------------

    def locate(self) -> Path | None:
        """Return the first existing table among the conventional paths."""
        for relative in self.config.table_paths:
            candidate = self.project_root / relative
            if candidate.is_file():
                return candidate
        return None

    def locate_or_create(self) -> Path:
        """Return the table path, creating an empty table at the default path.

        Raises:
            ResourceTableError: If no path is configured or creation fails.
        """
        with self._lock:
            if self._path is not None and self._path.is_file():
                return self._path
            found = self.locate()
            if found is not None:
                self._path = found
                return found
            if not self.config.table_paths:
                raise ResourceTableError("No string table path configured")
            target = self.project_root / self.config.table_paths[0]
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(EMPTY_TABLE, encoding="utf-8")
            except OSError as e:
                raise ResourceTableError(f"Cannot create string table {target}: {e}") from e
            logger.info("  Created string table %s", target)
            self._path = target
            self._tree = None
            return target

    def _load(self, create: bool) -> etree._ElementTree | None:
        with self._lock:
            if self._tree is not None:
                return self._tree
            path = self.locate_or_create() if create else (self._path or self.locate())
            if path is None:
                return None
            try:
                parser = etree.XMLParser(remove_blank_text=False)
                tree = etree.parse(str(path), parser)
            except (OSError, etree.XMLSyntaxError) as e:
                raise ResourceTableError(f"Cannot read string table {path}: {e}") from e
            if tree.getroot().tag != "resources":
                raise ResourceTableError(f"{path} has no <resources> root")
            self._path = path
            self._tree = tree
            return tree

    def _strings(self, create: bool = False) -> list[etree._Element]:
        tree = self._load(create)
        if tree is None:
            return []
        return [el for el in tree.getroot() if el.tag == self.config.table_name]

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def entries(self) -> dict[str, str]:
        """Key to (un-escaped, trimmed) text for every string entry."""
        with self._lock:
            return {
                el.get("name"): unescape_resource_text(_element_text(el)).strip()
                for el in self._strings()
                if el.get("name")
            }

    def keys(self) -> set[str]:
        return set(self.entries())

    def key_exists(self, key: str) -> bool:
        with self._lock:
            return any(el.get("name") == key for el in self._strings())

    def find_key_by_value(self, text: str) -> str | None:
        """First key whose text equals ``text`` (after trimming), else None."""
        wanted = text.strip()
        with self._lock:
            for el in self._strings():
                if unescape_resource_text(_element_text(el)).strip() == wanted:
                    return el.get("name")
        return None

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def upsert(self, key: str, text: str) -> bool:
        """Insert or update an entry. Returns True if the table changed."""
        with self._lock:
            tree = self._load(create=True)
            if tree is None:
                raise ResourceTableError("No string table to write to")
            root = tree.getroot()
            escaped = escape_resource_text(text)
            for el in self._strings():
                if el.get("name") == key:
                    if len(el) == 0 and el.text == escaped:
                        return False
                    for child in list(el):
                        el.remove(child)
                    el.text = escaped
                    self.modified = True
                    return True

            indent = "    "
            if len(root) > 0:
                match = re.match(r"\n([ \t]+)", root[0].tail or "")
                if match:
                    indent = match.group(1)
            if len(root) == 0:
                root.text = "\n" + indent
            else:
                root[-1].tail = "\n" + indent
            element = etree.SubElement(root, self.config.table_name, name=key)
            element.text = escaped
            element.tail = "\n"
            self.modified = True
            return True

    def rename(self, old_key: str, new_key: str) -> bool:
        """Rename an entry's key. Returns True if the table changed."""
        if old_key == new_key:
            return False
        with self._lock:
            strings = self._strings(create=True)
            if any(el.get("name") == new_key for el in strings):
                return False
            for el in strings:
                if el.get("name") == old_key:
                    el.set("name", new_key)
                    self.modified = True
                    return True
        return False

    def save(self) -> Path | None:
        """Write the table if modified.

        Raises:
            ResourceTableError: If the file cannot be written.
        """
        with self._lock:
            if self._tree is None or not self.modified:
                return self._path
            if self._path is None:
                raise ResourceTableError("String table has no path")
            try:
                xml_bytes = etree.tostring(self._tree, encoding="utf-8", xml_declaration=True)
                content = xml_bytes.decode("utf-8")
                content = re.sub(
                    r"<\?xml version=['\"]1\.0['\"] encoding=['\"]utf-8['\"]\?>",
                    '<?xml version="1.0" encoding="utf-8"?>',
                    content,
                    flags=re.IGNORECASE,
                )
                if not content.endswith("\n"):
                    content += "\n"
                self._path.write_text(content, encoding="utf-8")
            except OSError as e:
                raise ResourceTableError(f"Cannot write string table {self._path}: {e}") from e
            self.modified = False
            logger.info("  Wrote string table %s", self._path)
            return self._path

    def sync_groups(self, groups: list[Group], workspace: Workspace | None = None) -> None:
        """Bring the table in line with the selected groups, then save.

        Per selected group:

        - ``use_new_key`` off and an old key exists: keep the old key.
        - an old key exists and differs from the new key: rename it, including
          references in project sources when a workspace is given.
        - no old key: insert the new key with the group's text.

        Raises:
            ResourceTableError: If the table cannot be created, read or written.
        """
        with self._lock:
            self.locate_or_create()
            for group in groups:
                if not group.selected:
                    continue
                if not group.use_new_key and group.old_key:
                    continue
                if group.old_key:
                    if group.old_key != group.new_key and self.rename(group.old_key, group.new_key):
                        if workspace is not None:
                            rename_references(
                                workspace, group.old_key, group.new_key,
                                self.config.table_name, exclude=self._path,
                            )
                    continue
                self.upsert(group.new_key, group.text)
            self.save()


def rename_references(
    workspace: Workspace,
    old_key: str,
    new_key: str,
    table_name: str = "string",
    exclude: Path | None = None,
) -> int:
    """Rewrite ``R.<table>.old`` and ``@<table>/old`` references across the project.

    Returns:
        Number of references rewritten.
    """
    code_pattern = re.compile(rf"(?<![\w])R\.{re.escape(table_name)}\.{re.escape(old_key)}(?!\w)")
    markup_pattern = re.compile(rf"@{re.escape(table_name)}/{re.escape(old_key)}(?![\w.])")
    excluded = exclude.resolve() if exclude is not None else None
    count = 0
    for filepath in workspace.iter_source_files():
        if excluded is not None and filepath.resolve() == excluded:
            continue
        try:
            doc = workspace.document(filepath)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("  Cannot update references in %s: %s", filepath, e)
            continue
        with doc.lock:
            matches = [*code_pattern.finditer(doc.text), *markup_pattern.finditer(doc.text)]
            for match in sorted(matches, key=lambda m: m.start(), reverse=True):
                replacement = match.group(0)[: -len(old_key)] + new_key
                doc.replace(match.start(), match.end(), replacement)
                count += 1
    if count:
        logger.info("  Renamed %d reference(s) %s -> %s", count, old_key, new_key)
    return count
