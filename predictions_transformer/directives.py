"""
Directive configuration extraction.

Consumes already-parsed schema definitions (type/field plus directives with
ordered arguments) and normalizes the ``@predictions`` directive into a
DirectiveConfig. Parsing SDL text is left to the caller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .appsync.actions import ActionTemplateCatalog
from .auth import AdvancedSettings, AuthTypeMerger
from .errors import ConfigError

PREDICTIONS_DIRECTIVE = "predictions"


@dataclass(frozen=True)
class Directive:
    name: str
    arguments: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Directive":
        """Arguments may be an object or a list of [name, value] pairs in declared order."""
        name = data["name"]
        arguments = data.get("arguments") or ()
        if isinstance(arguments, Mapping):
            return cls(name=name, arguments=tuple(arguments.items()))
        if isinstance(arguments, (list, tuple)) and all(
            isinstance(pair, (list, tuple)) and len(pair) == 2 and isinstance(pair[0], str) for pair in arguments
        ):
            return cls(name=name, arguments=tuple((key, value) for key, value in arguments))
        raise ConfigError(f"Arguments of @{name} must be an object or a list of name/value pairs")

    def argument_map(self) -> Dict[str, Any]:
        return dict(self.arguments)


@dataclass(frozen=True)
class FieldDefinition:
    type_name: str
    field_name: str
    directives: Tuple[Directive, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldDefinition":
        """
        Load a field from its JSON form.

        Example:
            {"typeName": "Query", "fieldName": "translateImageText",
             "directives": [{"name": "predictions", "arguments": {"actions": ["identifyText"]}}]}
        """
        try:
            return cls(
                type_name=data["typeName"],
                field_name=data["fieldName"],
                directives=tuple(Directive.from_dict(d) for d in data.get("directives") or []),
            )
        except KeyError as e:
            raise ConfigError(f"Field definition missing {e.args[0]}") from None

    def directive(self, name: str) -> Optional[Directive]:
        for directive in self.directives:
            if directive.name == name:
                return directive
        return None


@dataclass(frozen=True)
class InputFieldDefinition:
    name: str
    type_name: str


@dataclass(frozen=True)
class InputTypeDefinition:
    name: str
    fields: Tuple[InputFieldDefinition, ...]

    def to_sdl(self) -> str:
        lines = [f"input {self.name} {{"]
        lines.extend(f"  {f.name}: {f.type_name}" for f in self.fields)
        lines.append("}")
        return "\n".join(lines)


@dataclass(frozen=True)
class SchemaFragment:
    """Input types a predictions field adds to the schema."""

    input_types: Tuple[InputTypeDefinition, ...] = field(default=())

    def to_sdl(self) -> str:
        return "\n\n".join(input_type.to_sdl() for input_type in self.input_types)


@dataclass(frozen=True)
class DirectiveConfig:
    type_name: str
    field_name: str
    actions: Tuple[str, ...]
    auth: Optional[AdvancedSettings] = None
    filter_schema: Optional[SchemaFragment] = None


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


class DirectiveConfigResolver:
    """
    Extracts normalized configuration from ``@predictions`` directives.

    Example:
        resolver = DirectiveConfigResolver(catalog)
        config = resolver.extract(field)
        config.actions  # ("identifyLabels", "translateText")
    """

    def __init__(self, catalog: ActionTemplateCatalog, auth_merger: Optional[AuthTypeMerger] = None):
        self.catalog = catalog
        self.auth_merger = auth_merger or AuthTypeMerger()

    def extract(self, field_definition: FieldDefinition) -> Optional[DirectiveConfig]:
        """Config for a field, or None if it carries no ``@predictions`` directive."""
        directive = field_definition.directive(PREDICTIONS_DIRECTIVE)
        if directive is None:
            return None
        return self.extract_arguments(field_definition.type_name, field_definition.field_name, directive.arguments)

    def extract_arguments(
        self,
        type_name: str,
        field_name: str,
        arguments: Sequence[Tuple[str, Any]],
    ) -> DirectiveConfig:
        """
        Normalize directive arguments.

        Actions are kept verbatim and in order; unknown or repeated actions
        are reported during synthesis, not here.

        Raises:
            ConfigError: If actions are missing, or an auth variant lacks
                mandatory settings
        """
        args = dict(arguments)
        actions = args.get("actions")
        if isinstance(actions, str):
            actions = [actions]
        if not actions:
            raise ConfigError("@predictions requires at least one action", type_name, field_name)
        if not all(isinstance(action, str) for action in actions):
            raise ConfigError("@predictions actions must be names", type_name, field_name)

        auth = None
        auth_settings = args.get("auth")
        if auth_settings is not None:
            try:
                auth = self.auth_merger.from_settings(auth_settings)
            except ConfigError as e:
                # Re-raise with the field that declared the settings
                raise ConfigError(e.message, type_name, field_name, e.variant) from e

        return DirectiveConfig(
            type_name=type_name,
            field_name=field_name,
            actions=tuple(actions),
            auth=auth,
            filter_schema=self.filter_schema(field_name, actions),
        )

    def filter_schema(self, field_name: str, actions: Sequence[str]) -> SchemaFragment:
        """
        Input types for a field: ``<Field>Input`` with one member per action.

        Arguments that can come from the previous action are optional unless
        the action runs first.
        """
        prefix = _capitalize(field_name)
        members: List[InputFieldDefinition] = []
        action_types: List[InputTypeDefinition] = []
        for index, action in enumerate(actions):
            if action not in self.catalog:
                continue
            entry = self.catalog.lookup(action)
            type_name = f"{prefix}{_capitalize(action)}Input"
            fields = tuple(
                InputFieldDefinition(
                    f.name,
                    f.type_name if f.from_previous and index > 0 else f"{f.type_name}!",
                )
                for f in entry.input_fields
            )
            action_types.append(InputTypeDefinition(type_name, fields))
            members.append(InputFieldDefinition(action, f"{type_name}!"))

        if not members:
            return SchemaFragment()
        return SchemaFragment((InputTypeDefinition(f"{prefix}Input", tuple(members)), *action_types))
