"""
Mapping-template expression tree and printer.

Resolver request/response templates are built as trees of frozen nodes and
printed to VTL text. Printing is order-preserving: a compound expression
prints its children exactly in the order given.

Example:
    print_template(
        compound(
            set_(ref("text"), ref("ctx.prev.result")),
            to_json(ref("text")),
        )
    )
    # #set( $text = $ctx.prev.result )
    # $util.toJson($text)
"""

import json
from dataclasses import dataclass
from typing import Any, Tuple, Union

INDENT = "  "


class Node:
    """Base class for template nodes."""


@dataclass(frozen=True)
class StringNode(Node):
    value: str


@dataclass(frozen=True)
class IntNode(Node):
    value: int


@dataclass(frozen=True)
class RawNode(Node):
    value: str


@dataclass(frozen=True)
class ReferenceNode(Node):
    value: str


@dataclass(frozen=True)
class QuietReferenceNode(Node):
    value: str


@dataclass(frozen=True)
class ObjectNode(Node):
    attributes: Tuple[Tuple[str, Node], ...]


@dataclass(frozen=True)
class SetNode(Node):
    key: ReferenceNode
    value: Node


@dataclass(frozen=True)
class IfNode(Node):
    predicate: Node
    then: Node


@dataclass(frozen=True)
class IfElseNode(Node):
    predicate: Node
    then: Node
    otherwise: Node


@dataclass(frozen=True)
class ForEachNode(Node):
    key: ReferenceNode
    collection: ReferenceNode
    expressions: Tuple[Node, ...]


@dataclass(frozen=True)
class CompoundExpressionNode(Node):
    expressions: Tuple[Node, ...]


@dataclass(frozen=True)
class ToJsonNode(Node):
    value: Node


@dataclass(frozen=True)
class CommentNode(Node):
    text: str


# Constructors


def str_(value: str) -> StringNode:
    return StringNode(value)


def int_(value: int) -> IntNode:
    return IntNode(value)


def raw(value: str) -> RawNode:
    return RawNode(value)


def ref(value: str) -> ReferenceNode:
    return ReferenceNode(value)


def qref(value: str) -> QuietReferenceNode:
    return QuietReferenceNode(value)


def obj(attributes: Union[dict, Tuple[Tuple[str, Node], ...]]) -> ObjectNode:
    items = attributes.items() if isinstance(attributes, dict) else attributes
    return ObjectNode(tuple(items))


def set_(key: ReferenceNode, value: Node) -> SetNode:
    return SetNode(key, value)


def iff(predicate: Node, then: Node) -> IfNode:
    return IfNode(predicate, then)


def if_else(predicate: Node, then: Node, otherwise: Node) -> IfElseNode:
    return IfElseNode(predicate, then, otherwise)


def for_each(key: ReferenceNode, collection: ReferenceNode, expressions: Any) -> ForEachNode:
    return ForEachNode(key, collection, tuple(expressions))


def compound(*expressions: Node) -> CompoundExpressionNode:
    return CompoundExpressionNode(tuple(expressions))


def to_json(value: Node) -> ToJsonNode:
    return ToJsonNode(value)


def comment(text: str) -> CommentNode:
    return CommentNode(text)


# Printer


def _print_reference(value: str) -> str:
    return value if value.startswith("$") else f"${value}"


def _print_object(node: ObjectNode, indent: str) -> str:
    if not node.attributes:
        return "{}"
    inner = indent + INDENT
    lines = [f"{inner}{json.dumps(key)}: {_print(value, inner)}" for key, value in node.attributes]
    return "{\n" + ",\n".join(lines) + f"\n{indent}}}"


def _print_block(node: Node, indent: str) -> str:
    """Print a node nested one level inside a directive block."""
    inner = indent + INDENT
    return inner + _print(node, inner)


def _print(node: Node, indent: str) -> str:
    if isinstance(node, StringNode):
        return f'"{node.value}"'
    if isinstance(node, IntNode):
        return str(node.value)
    if isinstance(node, RawNode):
        return node.value
    if isinstance(node, ReferenceNode):
        return _print_reference(node.value)
    if isinstance(node, QuietReferenceNode):
        return f"$util.qr({node.value})"
    if isinstance(node, ObjectNode):
        return _print_object(node, indent)
    if isinstance(node, SetNode):
        return f"#set( {_print(node.key, indent)} = {_print(node.value, indent)} )"
    if isinstance(node, IfNode):
        return f"#if( {_print(node.predicate, indent)} )\n{_print_block(node.then, indent)}\n{indent}#end"
    if isinstance(node, IfElseNode):
        return (
            f"#if( {_print(node.predicate, indent)} )\n"
            f"{_print_block(node.then, indent)}\n"
            f"{indent}#else\n"
            f"{_print_block(node.otherwise, indent)}\n"
            f"{indent}#end"
        )
    if isinstance(node, ForEachNode):
        body = "\n".join(_print_block(expr, indent) for expr in node.expressions)
        return (
            f"#foreach( {_print(node.key, indent)} in {_print(node.collection, indent)} )\n"
            f"{body}\n"
            f"{indent}#end"
        )
    if isinstance(node, CompoundExpressionNode):
        return f"\n{indent}".join(_print(expr, indent) for expr in node.expressions)
    if isinstance(node, ToJsonNode):
        return f"$util.toJson({_print(node.value, indent)})"
    if isinstance(node, CommentNode):
        return f"## {node.text} **"
    raise TypeError(f"Unknown template node: {type(node).__name__}")


def print_template(node: Node) -> str:
    """Print a template tree to VTL text."""
    return _print(node, "")
