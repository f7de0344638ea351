"""Heuristic chains used when synthesizing replacement calls.

Both chains are ordered strategy lists: each strategy inspects the syntax
tree and returns a result or None, and the first non-None result wins.

- Context prefix: which receiver the imperative lookup call needs
  (``context.``, nothing inside an Activity/Fragment, or a global fallback).
- Declarative detection (Kotlin): whether a literal sits in a ``@Composable``
  scope where ``stringResource`` must be used instead of ``getString``.
"""

import re
from collections.abc import Callable, Iterator

from tree_sitter import Node

from externalizer.utils.syntax import (
    _ancestors,
    _find_nodes,
    _get_child_by_field,
    _get_child_by_type,
    _node_text,
)

# =============================================================================
# Context prefix
# =============================================================================

TYPE_DECLARATIONS = frozenset({
    "class_declaration",
    "object_declaration",
    "enum_declaration",
    "record_declaration",
})

CONTEXT_MEMBER_MARKERS = ("context", "activity")
FRAMEWORK_COMPONENT_SUFFIXES = ("Activity", "Fragment")

SUPERTYPE_NODE_TYPES = frozenset({
    "superclass",
    "super_interfaces",
    "delegation_specifier",
    "delegation_specifiers",
})

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def enclosing_types(node: Node) -> Iterator[Node]:
    """Yield enclosing type declarations, innermost first."""
    for parent in _ancestors(node):
        if parent.type in TYPE_DECLARATIONS:
            yield parent


def type_name(type_node: Node) -> str:
    name = _get_child_by_field(type_node, "name")
    if name is None:
        name = _get_child_by_type(type_node, "type_identifier")
    if name is None:
        name = _get_child_by_type(type_node, "simple_identifier")
    return _node_text(name)


def supertype_names(type_node: Node) -> list[str]:
    """Simple names of declared supertypes (Java extends/implements, Kotlin delegation)."""
    names: list[str] = []
    for child in type_node.children:
        if child.type not in SUPERTYPE_NODE_TYPES:
            continue
        for identifier in _IDENTIFIER.findall(_node_text(child)):
            if identifier not in ("extends", "implements"):
                names.append(identifier)
    return names


def _class_body(type_node: Node) -> Node | None:
    body = _get_child_by_field(type_node, "body")
    if body is None:
        body = _get_child_by_type(type_node, "class_body")
    return body


def member_names(type_node: Node) -> list[str]:
    """Field and property names a method of the type can reference.

    Covers Java fields, Kotlin properties and Kotlin ``val``/``var``
    constructor parameters.
    """
    names: list[str] = []

    constructor = _get_child_by_type(type_node, "primary_constructor")
    if constructor is not None:
        for parameter in _find_nodes(constructor, {"class_parameter"}):
            if not any(_node_text(c) in ("val", "var") for c in parameter.children):
                continue
            identifier = _get_child_by_type(parameter, "simple_identifier")
            if identifier is not None:
                names.append(_node_text(identifier))

    body = _class_body(type_node)
    if body is None:
        return names
    for member in body.children:
        if member.type == "field_declaration":
            for declarator in member.children:
                if declarator.type == "variable_declarator":
                    names.append(_node_text(_get_child_by_field(declarator, "name")))
        elif member.type == "property_declaration":
            for declaration in _find_nodes(member, {"variable_declaration"}):
                identifier = _get_child_by_type(declaration, "simple_identifier")
                if identifier is not None:
                    names.append(_node_text(identifier))
    return [name for name in names if name]


def context_member_prefix(type_node: Node) -> str | None:
    for name in member_names(type_node):
        lowered = name.lower()
        if any(marker in lowered for marker in CONTEXT_MEMBER_MARKERS):
            return f"{name}."
    return None


def framework_component_prefix(type_node: Node) -> str | None:
    candidates = [type_name(type_node), *supertype_names(type_node)]
    if any(name.endswith(FRAMEWORK_COMPONENT_SUFFIXES) for name in candidates if name):
        return ""
    return None


ContextStrategy = Callable[[Node], str | None]

CONTEXT_PREFIX_STRATEGIES: tuple[ContextStrategy, ...] = (
    context_member_prefix,
    framework_component_prefix,
)


def resolve_context_prefix(node: Node, fallback: str) -> str:
    """Receiver prefix for an imperative lookup call at ``node``.

    Args:
        node: Node being replaced.
        fallback: Prefix used when no enclosing type provides a context.

    Returns:
        ``"name."`` for a context-like member, ``""`` inside an
        Activity/Fragment, otherwise ``fallback``.
    """
    for type_node in enclosing_types(node):
        for strategy in CONTEXT_PREFIX_STRATEGIES:
            prefix = strategy(type_node)
            if prefix is not None:
                return prefix
    return fallback


# =============================================================================
# Declarative (Compose) detection
# =============================================================================

COMPOSABLE_ANNOTATION = re.compile(r"@(?:[\w.]+\.)?Composable\b")

# Named lambda arguments that are plain callbacks, never composable content
NON_COMPOSABLE_PARAMETERS = frozenset({
    "onClick", "onLongClick", "onDoubleClick",
    "onValueChange", "onCheckedChange", "onDismissRequest",
    "key", "onGloballyPositioned", "onFocusChanged",
    "onSizeChanged", "onPlacementChanged",
    "onKeyEvent", "onPreviewKeyEvent",
})

# Calls whose trailing lambda is composable content
COMPOSABLE_TRAILING_CALLS = frozenset({
    "Box", "Column", "Row", "LazyColumn", "LazyRow", "LazyVerticalGrid",
    "Card", "Button", "IconButton", "TextField", "OutlinedTextField",
    "Scaffold", "Surface", "items", "item",
    "ModalBottomSheet", "DropdownMenu", "AlertDialog", "Center",
})

LAMBDA_TYPES = frozenset({"lambda_literal", "anonymous_function"})
FUNCTION_TYPES = frozenset({"function_declaration"})
ANNOTATED_LAMBDA_PARENTS = frozenset({"annotated_lambda", "annotated_expression", "prefix_expression"})


def has_composable_annotation(declaration: Node) -> bool:
    """True if a function declaration carries ``@Composable``."""
    modifiers = _get_child_by_type(declaration, "modifiers")
    if modifiers is not None:
        return bool(COMPOSABLE_ANNOTATION.search(_node_text(modifiers)))
    for child in declaration.children:
        if child.type == "annotation" and COMPOSABLE_ANNOTATION.search(_node_text(child)):
            return True
    return False


def _boundary(node: Node) -> Node | None:
    for parent in _ancestors(node):
        if parent.type in LAMBDA_TYPES or parent.type in FUNCTION_TYPES:
            return parent
    return None


class LambdaSite:
    """Where a lambda is passed: owning call, argument name and position."""

    def __init__(self, lambda_node: Node):
        self.lambda_node = lambda_node
        self.call: Node | None = None
        self.argument: Node | None = None
        self.argument_name: str | None = None
        self.trailing = False
        self.position = -1
        self._locate()

    def _locate(self) -> None:
        parent = self.lambda_node.parent
        if parent is not None and parent.type == "call_suffix":
            self.call = parent.parent
            self.trailing = True
            self.argument = self.lambda_node
            return
        if parent is not None and parent.type == "annotated_lambda":
            suffix = parent.parent
            if suffix is not None and suffix.type == "call_suffix":
                self.call = suffix.parent
                self.trailing = True
                self.argument = parent
            return

        # Lambda inside parentheses: value_argument > value_arguments > call_suffix
        argument = parent
        while argument is not None and argument.type != "value_argument":
            if argument.type not in ("parenthesized_expression", "annotated_lambda"):
                return
            argument = argument.parent
        if argument is None:
            return
        arguments = argument.parent
        if arguments is None or arguments.type != "value_arguments":
            return
        suffix = arguments.parent
        if suffix is None or suffix.type != "call_suffix":
            return
        self.call = suffix.parent
        self.argument = argument
        values = [c for c in arguments.children if c.type == "value_argument"]
        self.position = next(
            (i for i, c in enumerate(values) if c.start_byte == argument.start_byte), -1
        )
        self.argument_name = _argument_name(argument)
        if self.argument_name is None and values and values[-1].start_byte == argument.start_byte:
            has_trailing = _get_child_by_type(suffix, "annotated_lambda") is not None
            self.trailing = not has_trailing

    @property
    def callee_name(self) -> str:
        if self.call is None or not self.call.children:
            return ""
        callee = self.call.children[0]
        if callee.type == "navigation_expression":
            identifiers = _find_nodes(callee.children[-1], {"simple_identifier"})
            return _node_text(identifiers[-1]) if identifiers else ""
        return _node_text(callee)


def _argument_name(argument: Node) -> str | None:
    """Name of a named argument (``name = value``), else None."""
    children = argument.children
    for index, child in enumerate(children[:-1]):
        if child.type == "simple_identifier" and children[index + 1].type == "=":
            return _node_text(child)
    return None


def lambda_marker(lambda_node: Node, site: LambdaSite) -> bool | None:
    """Lambda itself annotated ``@Composable``."""
    parent = lambda_node.parent
    if parent is None or parent.type not in ANNOTATED_LAMBDA_PARENTS:
        return None
    for child in parent.children:
        if child.type == "annotation" and COMPOSABLE_ANNOTATION.search(_node_text(child)):
            return True
    return None


def resolved_parameter(lambda_node: Node, site: LambdaSite) -> bool | None:
    """Callee declared in the same file with a ``@Composable`` parameter type."""
    if site.call is None:
        return None
    name = site.callee_name
    if not name:
        return None
    root = lambda_node
    while root.parent is not None:
        root = root.parent
    for declaration in _find_nodes(root, FUNCTION_TYPES):
        if _node_text(_get_child_by_type(declaration, "simple_identifier")) != name:
            continue
        parameters_node = _get_child_by_type(declaration, "function_value_parameters")
        if parameters_node is None:
            continue
        parameters = [c for c in parameters_node.children if c.type == "parameter"]
        if not parameters:
            continue
        parameter: Node | None = None
        if site.argument_name is not None:
            parameter = next(
                (
                    p for p in parameters
                    if _node_text(_get_child_by_type(p, "simple_identifier")) == site.argument_name
                ),
                None,
            )
        elif site.trailing and site.position < 0:
            parameter = parameters[-1]
        elif 0 <= site.position < len(parameters):
            parameter = parameters[site.position]
        if parameter is not None and COMPOSABLE_ANNOTATION.search(_node_text(parameter)):
            return True
    return None


def named_argument_denylist(lambda_node: Node, site: LambdaSite) -> bool | None:
    if site.argument_name is not None and site.argument_name in NON_COMPOSABLE_PARAMETERS:
        return False
    return None


def trailing_allowlist(lambda_node: Node, site: LambdaSite) -> bool | None:
    if site.trailing and site.callee_name in COMPOSABLE_TRAILING_CALLS:
        return True
    return None


def outer_composable(lambda_node: Node, site: LambdaSite) -> bool | None:
    for parent in _ancestors(lambda_node):
        if parent.type in FUNCTION_TYPES:
            return True if has_composable_annotation(parent) else None
    return None


DeclarativeStrategy = Callable[[Node, LambdaSite], bool | None]

DECLARATIVE_STRATEGIES: tuple[DeclarativeStrategy, ...] = (
    lambda_marker,
    resolved_parameter,
    named_argument_denylist,
    trailing_allowlist,
    outer_composable,
)


def is_declarative_context(node: Node) -> bool:
    """Whether ``node`` is evaluated inside a composable scope.

    A named function boundary decides by its own annotation. A lambda
    boundary runs the strategy chain; the default is not composable. A
    lambda that is not a call argument is composable only when marked.
    """
    boundary = _boundary(node)
    if boundary is None:
        return False
    if boundary.type in FUNCTION_TYPES:
        return has_composable_annotation(boundary)
    site = LambdaSite(boundary)
    if site.call is None:
        return bool(lambda_marker(boundary, site))
    for strategy in DECLARATIVE_STRATEGIES:
        result = strategy(boundary, site)
        if result is not None:
            return result
    return False
