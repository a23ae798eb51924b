"""Test fixtures and helper functions for transformer tests."""

from typing import Any, Dict, List, Sequence

from predictions_transformer.directives import Directive, FieldDefinition

# Stack names look like amplify-<app>-<env>-<hash>
STACK_NAME = "amplify-photoapp-dev-a1b2c3"


def make_predictions_field(
    actions: Sequence[str],
    field_name: str = "translateImageText",
    type_name: str = "Query",
    **extra: Any,
) -> FieldDefinition:
    """Create a field carrying a @predictions directive."""
    arguments = (("actions", list(actions)),) + tuple(extra.items())
    return FieldDefinition(type_name, field_name, (Directive("predictions", arguments),))


def make_schema(fields: List[Dict[str, Any]], **extra: Any) -> Dict[str, Any]:
    """Create a parsed-schema document as read by the command line."""
    return {"fields": fields, **extra}


def predictions_field_dict(actions: Sequence[str], field_name: str = "translateImageText") -> Dict[str, Any]:
    """JSON form of a @predictions field."""
    return {
        "typeName": "Query",
        "fieldName": field_name,
        "directives": [{"name": "predictions", "arguments": {"actions": list(actions)}}],
    }
