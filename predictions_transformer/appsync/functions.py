"""
AppSync pipeline functions for predictions actions.

Binds a catalog entry to a concrete data source and produces one pipeline
stage together with the function configuration it runs. The configuration is
only registered when the resolver composing the stage runs a pipeline.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from ..errors import DependencyResolutionError
from ..helpers import ResourceIds
from ..intrinsics import API_ID_PARAMETER, Ref
from ..logging import StructuredLogger, get_logger
from ..resources import ResourceDefinition, ResourceRef, ResourceRegistry
from .actions import HTTP_VERSION, ActionDescriptor, ActionTemplateCatalog

if TYPE_CHECKING:
    from ..context import EnvContext


@dataclass(frozen=True)
class PipelineStage:
    """One function in a resolver pipeline, at its declared position."""

    order: int
    action: ActionDescriptor
    data_source: ResourceRef
    function: ResourceRef
    depends_on: Tuple[str, ...]
    needs_shared_state: bool = False
    function_definition: Optional[ResourceDefinition] = None


class PipelineFunctionSynthesizer:
    """
    Creates pipeline stages from catalog entries.

    Example:
        synthesizer = PipelineFunctionSynthesizer(catalog, registry)
        stage = synthesizer.synthesize("translateText", ResourceRef("TranslateDataSource"), env, order=1,
                                       previous="identifyLabels")
    """

    def __init__(
        self,
        catalog: ActionTemplateCatalog,
        registry: ResourceRegistry,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            catalog: Action template table
            registry: Resources defined so far in this compilation
            logger: Structured logger (defaults to a module logger)
        """
        self.catalog = catalog
        self.registry = registry
        self.logger = logger or get_logger(__name__)

    def synthesize(
        self,
        action: str,
        data_source: ResourceRef,
        env: "EnvContext",
        order: int = 0,
        previous: Optional[str] = None,
        type_name: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> PipelineStage:
        """
        Build the stage for ``action`` at position ``order``.

        Args:
            action: Action name
            data_source: Data source the function calls; must already be defined
            env: Environment of this compilation
            order: Position in the caller-declared action chain
            previous: Action of the preceding stage, if any
            type_name: GraphQL type requesting the action (for error reports)
            field_name: GraphQL field requesting the action (for error reports)

        Returns:
            The pipeline stage

        Raises:
            UnsupportedActionError: If the catalog has no entry for the action
            DependencyResolutionError: If the data source is undefined, or the
                previous action produces no result this action can consume
        """
        entry = self.catalog.lookup(action, type_name, field_name)
        function_id = ResourceIds.function(action)

        self.registry.require(data_source, function_id)

        if previous is not None and not self.catalog.can_follow(previous, action):
            requested_by = f"{type_name}.{field_name}" if type_name or field_name else function_id
            raise DependencyResolutionError(f"{previous} result", f"{requested_by} ({action})")

        descriptor = self.catalog.describe(action, type_name, field_name)
        depends_on = (ResourceIds.IAM_ROLE, data_source.logical_id)
        function_definition = ResourceDefinition(
            logical_id=function_id,
            resource_type="AWS::AppSync::FunctionConfiguration",
            properties={
                "ApiId": Ref(API_ID_PARAMETER),
                "Name": function_id,
                "DataSourceName": data_source.logical_id,
                "FunctionVersion": HTTP_VERSION,
                "RequestMappingTemplate": descriptor.request_template,
                "ResponseMappingTemplate": descriptor.response_template,
            },
            depends_on=depends_on,
        )

        self.logger.debug(
            "Synthesized pipeline stage",
            action=action,
            order=order,
            dataSource=data_source.logical_id,
            env=env.env_name,
        )

        return PipelineStage(
            order=order,
            action=descriptor,
            data_source=data_source,
            function=function_definition.ref,
            depends_on=depends_on,
            needs_shared_state=entry.needs_shared_state,
            function_definition=function_definition,
        )
