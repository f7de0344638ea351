"""Shared machinery for dialect implementations.

``LiteralDialect`` is the capability every dialect provides:

- ``detect`` walks a document's syntax tree and returns its occurrences.
- ``build_expression`` synthesizes the replacement text for one occurrence.
- ``apply`` writes that text into the document and returns a handle to it.

``CodeDialect`` implements detection and application once for curly-brace
code; Java and Kotlin only describe their own node shapes.
"""

import re
from dataclasses import dataclass, field

from tree_sitter import Node

from externalizer.analyzers.skip_policy import SyntacticContext, should_skip
from externalizer.config import ExtractorConfig
from externalizer.errors import StaleHandleError, SynthesisError
from externalizer.models.records import Dialect, Occurrence
from externalizer.rewrite.imports import ReferenceShortener, ensure_import
from externalizer.utils.documents import NodeHandle, SourceDocument
from externalizer.utils.syntax import _ancestors, _line_number, _node_text, parse_source

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "0": "\0",
    '"': '"',
    "'": "'",
    "\\": "\\",
    "$": "$",
}
_ESCAPE_PATTERN = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)


def decode_escapes(text: str) -> str:
    """Decode backslash escapes of a static string fragment."""

    def _replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if len(token) == 5 and token.startswith("u"):
            return chr(int(token[1:], 16))
        return _ESCAPES.get(token, token)

    return _ESCAPE_PATTERN.sub(_replace, text)


def _source_between(first: Node, last: Node) -> str:
    """Source text from the start of one node to the end of a later one."""
    root = first
    while root.parent is not None:
        root = root.parent
    source = root.text or b""
    offset = root.start_byte
    return source[first.start_byte - offset:last.end_byte - offset].decode(
        "utf-8", errors="replace"
    )


def placeholder(index: int) -> str:
    """Positional format placeholder for the index-th argument (1-based)."""
    return f"%{index}$s"


@dataclass
class FoldedText:
    """Normalized text and arguments accumulated while folding segments."""

    parts: list[tuple[str, str]] = field(default_factory=list)  # ("text"|"expr", value)

    def add_text(self, value: str) -> None:
        if self.parts and self.parts[-1][0] == "text":
            self.parts[-1] = ("text", self.parts[-1][1] + value)
        else:
            self.parts.append(("text", value))

    def add_expression(self, source: str) -> None:
        self.parts.append(("expr", source.strip()))

    @property
    def arguments(self) -> tuple[str, ...]:
        return tuple(value for kind, value in self.parts if kind == "expr")

    @property
    def static_text(self) -> str:
        return "".join(value for kind, value in self.parts if kind == "text")

    @property
    def text(self) -> str:
        """Normalized text; literal percent signs are doubled when arguments exist."""
        has_arguments = any(kind == "expr" for kind, _ in self.parts)
        pieces: list[str] = []
        index = 0
        for kind, value in self.parts:
            if kind == "expr":
                index += 1
                pieces.append(placeholder(index))
            elif has_arguments:
                pieces.append(value.replace("%", "%%"))
            else:
                pieces.append(value)
        return "".join(pieces)


class LiteralDialect:
    """One source dialect: how to find literals and how to replace them."""

    dialect: Dialect
    requires_qualifier: bool = True

    def detect(
        self,
        doc: SourceDocument,
        config: ExtractorConfig,
        relative_path: str = "",
    ) -> list[Occurrence]:
        raise NotImplementedError

    def build_expression(
        self,
        doc: SourceDocument,
        node: Node,
        occurrence: Occurrence,
        qualifier: str | None,
        key: str,
        config: ExtractorConfig,
    ) -> str:
        raise NotImplementedError

    def apply(
        self,
        doc: SourceDocument,
        handle: NodeHandle,
        expression: str,
        qualifier: str | None,
        config: ExtractorConfig,
    ) -> NodeHandle:
        raise NotImplementedError

    def _occurrence(
        self,
        doc: SourceDocument,
        node: Node,
        text: str,
        arguments: tuple[str, ...] = (),
    ) -> Occurrence:
        return Occurrence(
            raw_text=_node_text(node),
            text=text,
            path=str(doc.path),
            line=_line_number(node),
            dialect=self.dialect,
            handle=doc.create_handle(node),
            arguments=arguments,
        )


class CodeDialect(LiteralDialect):
    """Detection and rewriting shared by the code dialects.

    Subclasses describe their grammar through the hooks below.
    """

    annotation_types: frozenset[str] = frozenset()
    parenthesized_types: frozenset[str] = frozenset({"parenthesized_expression"})
    import_terminator: str = ""
    probe_template: str = "{}"

    # -------------------------------------------------------------------------
    # Grammar hooks
    # -------------------------------------------------------------------------

    def is_string_literal(self, node: Node) -> bool:
        return node.type == "string_literal"

    def concat_operands(self, node: Node) -> list[Node] | None:
        """Flattened operands if the node is a ``+`` chain, else None."""
        raise NotImplementedError

    def literal_segments(self, node: Node) -> list[tuple[str, str]]:
        """Segments of a string literal as ("text", decoded) or ("expr", source)."""
        raise NotImplementedError

    def call_context(self, node: Node) -> tuple[str | None, str | None]:
        """(call name, receiver text) when the node is a direct call argument."""
        raise NotImplementedError

    def context_prefix(self, node: Node, config: ExtractorConfig) -> str:
        raise NotImplementedError

    def is_declarative(self, node: Node) -> bool:
        return False

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    def syntactic_context(self, node: Node, relative_path: str) -> SyntacticContext:
        in_annotation = any(parent.type in self.annotation_types for parent in _ancestors(node))
        call_name, receiver = self.call_context(node)
        return SyntacticContext(
            path=relative_path,
            in_annotation=in_annotation,
            call_name=call_name,
            receiver=receiver,
        )

    def _fold_literal(self, node: Node, folded: FoldedText) -> None:
        for kind, value in self.literal_segments(node):
            if kind == "text":
                folded.add_text(value)
            else:
                folded.add_expression(value)

    def fold_concatenation(self, operands: list[Node]) -> FoldedText:
        """Fold ``+`` operands into one text.

        Non-literal operands before the first literal are kept together as a
        single argument, so numeric prefixes such as ``a + b + "x"`` keep their
        evaluation order.
        """
        folded = FoldedText()
        leading: list[Node] = []
        seen_literal = False
        for operand in operands:
            if self.is_string_literal(operand):
                if leading:
                    folded.add_expression(_source_between(leading[0], leading[-1]))
                    leading = []
                seen_literal = True
                self._fold_literal(operand, folded)
            elif not seen_literal:
                leading.append(operand)
            else:
                folded.add_expression(_node_text(operand))
        return folded

    def detect(
        self,
        doc: SourceDocument,
        config: ExtractorConfig,
        relative_path: str = "",
    ) -> list[Occurrence]:
        """Walk the tree top-down and fold literals, templates and concatenations.

        Args:
            doc: Document to scan.
            config: Extractor settings (test directory names).
            relative_path: Project-relative path used by the skip policy.

        Returns:
            Occurrences in source order, at most one per syntax node.
        """
        test_dirs = frozenset(config.test_dirs)
        results: list[Occurrence] = []
        emitted: set[tuple[int, int]] = set()

        with doc.lock:
            tree = doc.tree()
            stack: list[Node] = [tree.root_node]
            while stack:
                node = stack.pop()
                folded: FoldedText | None = None

                operands = self.concat_operands(node)
                if operands is not None and any(self.is_string_literal(op) for op in operands):
                    folded = self.fold_concatenation(operands)
                elif self.is_string_literal(node):
                    folded = FoldedText()
                    self._fold_literal(node, folded)

                if folded is None:
                    stack.extend(reversed(node.children))
                    continue

                span = (node.start_byte, node.end_byte)
                if span in emitted:
                    continue
                text = folded.text
                arguments = folded.arguments
                context = self.syntactic_context(node, relative_path)
                if should_skip(text, context, test_dirs, has_arguments=bool(arguments)):
                    # Operands of a blank concatenation may hold text of their own
                    if operands is not None and not folded.static_text.strip():
                        stack.extend(reversed(node.children))
                    continue
                emitted.add(span)
                results.append(self._occurrence(doc, node, text, arguments))

        return results

    # -------------------------------------------------------------------------
    # Rewriting
    # -------------------------------------------------------------------------

    def build_expression(
        self,
        doc: SourceDocument,
        node: Node,
        occurrence: Occurrence,
        qualifier: str | None,
        key: str,
        config: ExtractorConfig,
    ) -> str:
        """Fully-qualified replacement call for a code occurrence.

        Raises:
            SynthesisError: If the qualifier is missing or the expression
                does not parse.
        """
        if not qualifier:
            raise SynthesisError("cannot resolve namespace")
        reference = f"{qualifier}.R.{config.table_name}.{key}"
        arguments = "".join(f", {arg}" for arg in occurrence.arguments)
        if self.is_declarative(node):
            expression = f"{config.declarative_accessor}({reference}{arguments})"
        else:
            prefix = self.context_prefix(node, config)
            expression = f"{prefix}{config.lookup_function}({reference}{arguments})"
        self.check_expression(expression)
        return expression

    def check_expression(self, expression: str) -> None:
        """Parse the expression on its own and reject it on syntax errors."""
        probe = self.probe_template.format(expression).encode("utf-8")
        tree = parse_source(self.dialect, probe)
        if tree.root_node.has_error:
            raise SynthesisError(f"invalid replacement expression: {expression}")

    def apply(
        self,
        doc: SourceDocument,
        handle: NodeHandle,
        expression: str,
        qualifier: str | None,
        config: ExtractorConfig,
    ) -> NodeHandle:
        """Replace the node, add imports, then shorten qualified names.

        Raises:
            StaleHandleError: If the handle no longer resolves.
        """
        with doc.lock:
            span = doc.resolve(handle)
            if span is None:
                raise StaleHandleError("invalid or stale element")
            new_handle = doc.replace(span[0], span[1], expression)

            names = [f"{qualifier}.R"] if qualifier else []
            if expression.startswith(config.declarative_accessor + "("):
                names.append(config.declarative_accessor)
            shortenable = [
                name for name in names if ensure_import(doc, name, self.import_terminator)
            ]
            return ReferenceShortener(doc).shorten(new_handle, shortenable)
