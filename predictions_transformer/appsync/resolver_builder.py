"""
Resolver composition for predictions fields.

Assembles pipeline stages into one resolver, adding the shared pre-request
step (storage location and list flag in the stash) and the shared
post-response step that turns list results back into lists.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Sequence, Tuple

from ..errors import ConfigError
from ..helpers import ResourceIds
from ..intrinsics import API_ID_PARAMETER, GetAtt, Ref, join
from ..mapping_template import comment, compound, if_else, obj, print_template, qref, ref, set_, to_json
from ..resources import ResourceDefinition
from .functions import PipelineStage

# Labels come back as "a, b, c"; list results are split on commas and spaces
LIST_DELIMITER_PATTERN = "[ ,]+"


class ResolverKind(str, Enum):
    UNIT = "UNIT"
    PIPELINE = "PIPELINE"


def _pre_request_template() -> str:
    return print_template(compound(qref('$ctx.stash.put("isList", false)'), obj({})))


def _post_response_template() -> str:
    return print_template(
        compound(
            comment("If the result is a list return the result as a list"),
            if_else(
                ref('ctx.stash.get("isList")'),
                compound(
                    set_(ref("result"), ref(f'ctx.result.split("{LIST_DELIMITER_PATTERN}")')),
                    to_json(ref("result")),
                ),
                to_json(ref("ctx.result")),
            ),
        )
    )


@dataclass(frozen=True)
class ResolverArtifact:
    """Compiled resolver for one field."""

    type_name: str
    field_name: str
    kind: ResolverKind
    stages: Tuple[PipelineStage, ...]
    pre_request_template: Any
    post_response_template: str

    @property
    def logical_id(self) -> str:
        return ResourceIds.resolver(self.type_name, self.field_name)

    def to_resource(self) -> ResourceDefinition:
        """Resolver resource definition, depending on what it runs."""
        properties: Dict[str, Any] = {
            "ApiId": Ref(API_ID_PARAMETER),
            "TypeName": self.type_name,
            "FieldName": self.field_name,
            "Kind": self.kind.value,
        }
        if self.kind is ResolverKind.UNIT:
            stage = self.stages[0]
            properties["DataSourceName"] = stage.data_source.logical_id
            properties["RequestMappingTemplate"] = stage.action.request_template
            properties["ResponseMappingTemplate"] = stage.action.response_template
            depends_on = stage.depends_on
        else:
            functions = [stage.function.logical_id for stage in self.stages]
            properties["PipelineConfig"] = {"Functions": [GetAtt(f, "FunctionId") for f in functions]}
            properties["RequestMappingTemplate"] = self.pre_request_template
            properties["ResponseMappingTemplate"] = self.post_response_template
            depends_on = tuple(functions)

        return ResourceDefinition(
            logical_id=self.logical_id,
            resource_type="AWS::AppSync::Resolver",
            properties=properties,
            depends_on=depends_on,
        )

    def function_definitions(self) -> Tuple[ResourceDefinition, ...]:
        """Function configurations a pipeline resolver runs; a unit resolver runs none."""
        if self.kind is ResolverKind.UNIT:
            return ()
        return tuple(stage.function_definition for stage in self.stages if stage.function_definition is not None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typeName": self.type_name,
            "fieldName": self.field_name,
            "kind": self.kind.value,
            "stages": [
                {
                    "order": stage.order,
                    "action": stage.action.name,
                    "dataSource": stage.data_source.logical_id,
                    "function": stage.function.logical_id,
                }
                for stage in self.stages
            ],
        }


class ResolverComposer:
    """
    Builds resolver artifacts from ordered pipeline stages.

    Example:
        composer = ResolverComposer()
        artifact = composer.compose("Query", "translateImageText", stages, names.stash_storage(bucket))
    """

    def compose(
        self,
        type_name: str,
        field_name: str,
        stages: Sequence[PipelineStage],
        bucket_binding: Any,
    ) -> ResolverArtifact:
        """
        Compose one resolver.

        Args:
            type_name: GraphQL type name (e.g., "Query")
            field_name: GraphQL field name
            stages: Stages in declared order
            bucket_binding: Template line storing the bucket in the stash
                (see ResourceNameResolver.stash_storage)

        Returns:
            UNIT resolver for a single stage that needs no shared state,
            PIPELINE resolver otherwise

        Raises:
            ConfigError: If there are no stages or they are not in ascending order
        """
        stages = tuple(stages)
        if not stages:
            raise ConfigError("A resolver needs at least one action", type_name, field_name)
        for earlier, later in zip(stages, stages[1:]):
            if later.order <= earlier.order:
                raise ConfigError(
                    f"Pipeline stages out of order: {earlier.action.name} ({earlier.order}) "
                    f"before {later.action.name} ({later.order})",
                    type_name,
                    field_name,
                )

        if len(stages) == 1 and not stages[0].needs_shared_state:
            kind = ResolverKind.UNIT
        else:
            kind = ResolverKind.PIPELINE

        return ResolverArtifact(
            type_name=type_name,
            field_name=field_name,
            kind=kind,
            stages=stages,
            pre_request_template=join("\n", [bucket_binding, _pre_request_template()]),
            post_response_template=_post_response_template(),
        )
