"""Kotlin dialect: plain literals, string templates and ``+`` concatenation.

Templates such as ``"66|${x}"`` fold into ``"66|%1$s"`` with argument
``x``. Static segments are recognized by node type; every other named child
of a string literal is an embedded expression. That keeps the walk working
across grammar releases that name interpolation nodes differently.
"""

from tree_sitter import Node

from externalizer.config import ExtractorConfig
from externalizer.dialects.base import CodeDialect, decode_escapes
from externalizer.dialects.context import is_declarative_context, resolve_context_prefix
from externalizer.models.records import Dialect
from externalizer.utils.syntax import _find_nodes, _get_child_by_type, _node_text

STATIC_SEGMENT_TYPES = frozenset({
    "string_content",
    "multiline_string_content",
    "escape_sequence",
    "character_escape_seq",
})

WRAPPED_INTERPOLATION_TYPES = frozenset({"interpolation", "line_string_expression"})


class KotlinDialect(CodeDialect):
    dialect = Dialect.KOTLIN
    annotation_types = frozenset({"annotation", "file_annotation"})
    probe_template = "val probe = {}\n"

    def concat_operands(self, node: Node) -> list[Node] | None:
        if not self._is_plus(node):
            return None
        operands: list[Node] = []
        for operand in (node.children[0], node.children[-1]):
            nested = self.concat_operands(operand) if self._is_plus(operand) else None
            operands.extend(nested if nested is not None else [operand])
        return operands

    @staticmethod
    def _is_plus(node: Node) -> bool:
        if node.type != "additive_expression" or len(node.children) != 3:
            return False
        return node.children[1].type == "+"

    def literal_segments(self, node: Node) -> list[tuple[str, str]]:
        raw = _node_text(node)
        is_raw_string = raw.startswith('"""')
        segments: list[tuple[str, str]] = []
        for child in node.children:
            if not child.is_named:
                continue
            if child.type in STATIC_SEGMENT_TYPES:
                text = _node_text(child)
                segments.append(("text", text if is_raw_string else decode_escapes(text)))
            elif child.type in WRAPPED_INTERPOLATION_TYPES:
                inner = [c for c in child.children if c.is_named]
                source = _node_text(inner[0]) if inner else _node_text(child).strip("${}")
                segments.append(("expr", source))
            else:
                segments.append(("expr", _node_text(child)))
        return segments

    def call_context(self, node: Node) -> tuple[str | None, str | None]:
        current = node
        parent = current.parent
        while parent is not None and parent.type in ("parenthesized_expression", "value_argument"):
            current, parent = parent, parent.parent
        if parent is None or parent.type != "value_arguments":
            return None, None
        suffix = parent.parent
        if suffix is None or suffix.type != "call_suffix":
            return None, None
        call = suffix.parent
        if call is None or call.type != "call_expression" or not call.children:
            return None, None

        callee = call.children[0]
        if callee.type == "simple_identifier":
            return _node_text(callee), None
        if callee.type == "navigation_expression":
            navigation = _get_child_by_type(callee, "navigation_suffix")
            identifiers = _find_nodes(navigation, {"simple_identifier"}) if navigation else []
            name = _node_text(identifiers[-1]) if identifiers else None
            receiver = _node_text(callee.children[0]) or None
            return name, receiver
        return None, None

    def is_declarative(self, node: Node) -> bool:
        return is_declarative_context(node)

    def context_prefix(self, node: Node, config: ExtractorConfig) -> str:
        return resolve_context_prefix(node, config.fallback_context_prefix)
