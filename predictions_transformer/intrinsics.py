"""
CloudFormation intrinsic function expressions.

Resource properties that vary per deployment are built from these small
frozen nodes instead of strings, so both branches of an environment
conditional survive into the emitted template. ``render`` turns a value tree
into template JSON; ``evaluate`` resolves it against concrete parameter and
condition values, which is how callers (and tests) inspect what a deployment
would actually see.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

# Parameter, condition and pseudo-parameter names shared across the template
ENV_PARAMETER = "env"
API_ID_PARAMETER = "AppSyncApiId"
DEPLOYMENT_BUCKET_PARAMETER = "S3DeploymentBucket"
DEPLOYMENT_ROOT_KEY_PARAMETER = "S3DeploymentRootKey"
HAS_ENVIRONMENT_CONDITION = "HasEnvironmentParameter"
STACK_NAME = "AWS::StackName"
REGION = "AWS::Region"
NO_ENVIRONMENT = "NONE"

_SUB_VARIABLE = re.compile(r"\$\{([^}!]+)\}")


class Expression:
    """Base class for intrinsic function nodes."""

    def to_cfn(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Ref(Expression):
    name: str

    def to_cfn(self) -> Any:
        return {"Ref": self.name}


@dataclass(frozen=True)
class GetAtt(Expression):
    logical_id: str
    attribute: str

    def to_cfn(self) -> Any:
        return {"Fn::GetAtt": [self.logical_id, self.attribute]}


@dataclass(frozen=True)
class Join(Expression):
    delimiter: str
    values: Tuple[Any, ...]

    def to_cfn(self) -> Any:
        return {"Fn::Join": [self.delimiter, [render(v) for v in self.values]]}


@dataclass(frozen=True)
class Split(Expression):
    delimiter: str
    source: Any

    def to_cfn(self) -> Any:
        return {"Fn::Split": [self.delimiter, render(self.source)]}


@dataclass(frozen=True)
class Select(Expression):
    index: int
    values: Any

    def to_cfn(self) -> Any:
        return {"Fn::Select": [self.index, render(self.values)]}


@dataclass(frozen=True)
class Sub(Expression):
    template: str
    variables: Tuple[Tuple[str, Any], ...] = field(default=())

    def to_cfn(self) -> Any:
        return {"Fn::Sub": [self.template, {k: render(v) for k, v in self.variables}]}


@dataclass(frozen=True)
class Conditional(Expression):
    """Two-branch value selected by a named template condition (``Fn::If``)."""

    condition: str
    if_true: Any
    if_false: Any

    def to_cfn(self) -> Any:
        return {"Fn::If": [self.condition, render(self.if_true), render(self.if_false)]}


def sub(template: str, **variables: Any) -> Sub:
    """Build a ``Fn::Sub`` with variables in sorted order."""
    return Sub(template, tuple(sorted(variables.items())))


def join(delimiter: str, values: Any) -> Join:
    return Join(delimiter, tuple(values))


def render(value: Any) -> Any:
    """Render a value tree (expressions, dicts, lists, scalars) to template JSON."""
    if isinstance(value, Expression):
        return value.to_cfn()
    if isinstance(value, Mapping):
        return {k: render(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [render(v) for v in value]
    return value


@dataclass(frozen=True)
class EvaluationContext:
    """Concrete parameter and condition values for ``evaluate``."""

    parameters: Mapping[str, Any] = field(default_factory=dict)
    conditions: Mapping[str, bool] = field(default_factory=dict)

    @classmethod
    def for_environment(cls, env_name: Optional[str], stack_name: Optional[str] = None) -> "EvaluationContext":
        """Context matching a deployment with or without an environment."""
        parameters: Dict[str, Any] = {ENV_PARAMETER: env_name or NO_ENVIRONMENT}
        if stack_name is not None:
            parameters[STACK_NAME] = stack_name
        return cls(parameters=parameters, conditions={HAS_ENVIRONMENT_CONDITION: env_name is not None})


def evaluate(value: Any, context: EvaluationContext) -> Any:
    """Resolve a value tree to plain values.

    References to parameters or conditions missing from the context raise
    KeyError; attributes of other resources (``GetAtt``) are left rendered.
    """
    if isinstance(value, Ref):
        return context.parameters[value.name]
    if isinstance(value, GetAtt):
        return value.to_cfn()
    if isinstance(value, Conditional):
        branch = value.if_true if context.conditions[value.condition] else value.if_false
        return evaluate(branch, context)
    if isinstance(value, Join):
        return value.delimiter.join(str(evaluate(v, context)) for v in value.values)
    if isinstance(value, Split):
        return str(evaluate(value.source, context)).split(value.delimiter)
    if isinstance(value, Select):
        return evaluate(value.values, context)[value.index]
    if isinstance(value, Sub):
        variables = {k: evaluate(v, context) for k, v in value.variables}

        def replace(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name in variables:
                return str(variables[name])
            if name in context.parameters:
                return str(context.parameters[name])
            return match.group(0)

        return _SUB_VARIABLE.sub(replace, value.template)
    if isinstance(value, Mapping):
        return {k: evaluate(v, context) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [evaluate(v, context) for v in value]
    return value
