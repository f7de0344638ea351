"""Java dialect: plain literals and ``+`` concatenation.

Java has no string templates; ``"id=" + userId + "!"`` is a left-nested
``binary_expression`` chain that is flattened before folding.
"""

from tree_sitter import Node

from externalizer.config import ExtractorConfig
from externalizer.dialects.base import CodeDialect, decode_escapes
from externalizer.dialects.context import resolve_context_prefix
from externalizer.models.records import Dialect
from externalizer.utils.syntax import _get_child_by_field, _node_text


class JavaDialect(CodeDialect):
    dialect = Dialect.JAVA
    annotation_types = frozenset({
        "annotation",
        "marker_annotation",
        "annotation_argument_list",
        "element_value_pair",
    })
    import_terminator = ";"
    probe_template = "class Probe {{ Object probe = {}; }}"

    def concat_operands(self, node: Node) -> list[Node] | None:
        if not self._is_plus(node):
            return None
        operands: list[Node] = []
        for side in ("left", "right"):
            operand = _get_child_by_field(node, side)
            if operand is None:
                return None
            nested = self.concat_operands(operand) if self._is_plus(operand) else None
            operands.extend(nested if nested is not None else [operand])
        return operands

    @staticmethod
    def _is_plus(node: Node) -> bool:
        if node.type != "binary_expression":
            return False
        operator = _get_child_by_field(node, "operator")
        return operator is not None and operator.type == "+"

    def literal_segments(self, node: Node) -> list[tuple[str, str]]:
        raw = _node_text(node)
        if raw.startswith('"""') and raw.endswith('"""') and len(raw) >= 6:
            body = raw[3:-3]
            # Text blocks start after the line break that follows the opening delimiter
            if body.startswith("\n"):
                body = body[1:]
        elif len(raw) >= 2:
            body = raw[1:-1]
        else:
            body = ""
        return [("text", decode_escapes(body))]

    def call_context(self, node: Node) -> tuple[str | None, str | None]:
        current = node
        parent = current.parent
        while parent is not None and parent.type in self.parenthesized_types:
            current, parent = parent, parent.parent
        if parent is None or parent.type != "argument_list":
            return None, None
        call = parent.parent
        if call is None:
            return None, None
        if call.type == "method_invocation":
            name = _node_text(_get_child_by_field(call, "name")) or None
            receiver = _node_text(_get_child_by_field(call, "object")) or None
            return name, receiver
        if call.type == "object_creation_expression":
            type_text = _node_text(_get_child_by_field(call, "type"))
            simple = type_text.split("<", 1)[0].rpartition(".")[2]
            return simple or None, None
        return None, None

    def context_prefix(self, node: Node, config: ExtractorConfig) -> str:
        return resolve_context_prefix(node, config.fallback_context_prefix)
