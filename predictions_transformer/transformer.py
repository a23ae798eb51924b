"""
Predictions schema compilation.

One call to ``PredictionsTransformer.compile`` turns the ``@predictions``
fields of a schema into a compiled document: template parameters and
conditions, every resource the resolvers need, the resolver artifacts
themselves, the merged authorization settings and the generated input types.
The compilation either returns a complete, validated document or raises.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .appsync.actions import ActionTemplateCatalog, ActionTemplateEntry, default_catalog
from .appsync.datasources import create_predictions_datasource
from .appsync.functions import PipelineFunctionSynthesizer, PipelineStage
from .appsync.resolver_builder import ResolverArtifact, ResolverComposer
from .auth import AdvancedSettings, AuthTypeMerger
from .context import EnvContext, SynthesisContext
from .directives import DirectiveConfig, DirectiveConfigResolver, FieldDefinition, SchemaFragment
from .errors import ConfigError, TransformerError
from .helpers import ResourceIds
from .iam_roles import ResourcePolicyAccumulator, create_lambda_role, create_predictions_role
from .intrinsics import (
    API_ID_PARAMETER,
    DEPLOYMENT_BUCKET_PARAMETER,
    DEPLOYMENT_ROOT_KEY_PARAMETER,
    ENV_PARAMETER,
    HAS_ENVIRONMENT_CONDITION,
    NO_ENVIRONMENT,
)
from .lambdas import create_predictions_lambda
from .resources import ResourceDefinition, ResourceRef
from .settings import TransformerSettings


@dataclass(frozen=True)
class CompiledDocument:
    parameters: Mapping[str, Any]
    conditions: Mapping[str, Any]
    resources: Mapping[str, ResourceDefinition]
    resolvers: Tuple[ResolverArtifact, ...] = ()
    advanced_settings: Optional[AdvancedSettings] = None
    schema_fragments: Tuple[SchemaFragment, ...] = field(default=())

    def schema_sdl(self) -> str:
        return "\n\n".join(fragment.to_sdl() for fragment in self.schema_fragments if fragment.input_types)

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "Parameters": dict(self.parameters),
            "Conditions": dict(self.conditions),
            "Resources": {logical_id: resource.to_dict() for logical_id, resource in self.resources.items()},
            "Resolvers": [resolver.to_dict() for resolver in self.resolvers],
        }
        if self.advanced_settings is not None:
            document["AdvancedSettings"] = self.advanced_settings.to_dict()
        schema = self.schema_sdl()
        if schema:
            document["Schema"] = schema
        return document

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _parameters(env: EnvContext) -> Dict[str, Any]:
    parameters: Dict[str, Any] = {
        API_ID_PARAMETER: {"Type": "String", "Description": "The id of the AppSync API associated with this project."},
        DEPLOYMENT_BUCKET_PARAMETER: {
            "Type": "String",
            "Description": "The S3 bucket containing all deployment assets.",
        },
        DEPLOYMENT_ROOT_KEY_PARAMETER: {
            "Type": "String",
            "Description": "An S3 key relative to the S3DeploymentBucket that points to the deployment root.",
        },
    }
    if env.env_configured:
        parameters[ENV_PARAMETER] = {"Type": "String", "Default": env.env_name}
    return parameters


def _conditions(env: EnvContext) -> Dict[str, Any]:
    if not env.env_configured:
        return {}
    return {HAS_ENVIRONMENT_CONDITION: {"Fn::Not": [{"Fn::Equals": [{"Ref": ENV_PARAMETER}, NO_ENVIRONMENT]}]}}


class PredictionsTransformer:
    """
    Compiles ``@predictions`` fields into resolvers and infrastructure.

    Example:
        transformer = PredictionsTransformer()
        document = transformer.compile(fields, storage_bucket="storage123", env_name="dev")
        print(document.to_json())
    """

    def __init__(
        self,
        catalog: Optional[ActionTemplateCatalog] = None,
        settings: Optional[TransformerSettings] = None,
    ):
        self.settings = settings or TransformerSettings.from_env()
        self.catalog = catalog or default_catalog(self.settings)
        self.auth_merger = AuthTypeMerger()
        self.directive_resolver = DirectiveConfigResolver(self.catalog, self.auth_merger)

    def compile(
        self,
        fields: Sequence[FieldDefinition],
        storage_bucket: Optional[str] = None,
        env_name: Optional[str] = None,
        stack_name: Optional[str] = None,
        auth: Union[AdvancedSettings, Mapping[str, Any], None] = None,
    ) -> CompiledDocument:
        """
        Compile one schema.

        Args:
            fields: Parsed field definitions, in schema order
            storage_bucket: Storage bucket name; may embed ``${env}``
            env_name: Environment name, or None when no environment is configured
            stack_name: Stack name token for the storage hash
            auth: API-level authorization settings

        Returns:
            The compiled document

        Raises:
            TransformerError: Any configuration, action, auth or dependency error
        """
        context = SynthesisContext(
            env=EnvContext(env_name=env_name, stack_name=stack_name),
            catalog=self.catalog,
            settings=self.settings,
        )
        logger = context.logger
        logger.info("Compiling predictions schema", fields=len(fields), env=env_name)

        try:
            document = self._compile(context, fields, storage_bucket, auth)
        except TransformerError as e:
            logger.error("Compilation failed", error=e.to_dict())
            raise

        logger.info(
            "Compiled predictions schema",
            resolvers=len(document.resolvers),
            resources=len(document.resources),
        )
        return document

    def _compile(
        self,
        context: SynthesisContext,
        fields: Sequence[FieldDefinition],
        storage_bucket: Optional[str],
        auth: Union[AdvancedSettings, Mapping[str, Any], None],
    ) -> CompiledDocument:
        configs = [config for config in (self.directive_resolver.extract(f) for f in fields) if config is not None]
        advanced_settings = self._merge_auth(auth, configs)

        resolvers: List[ResolverArtifact] = []
        if configs and not storage_bucket:
            raise ConfigError("@predictions requires a storage bucket")

        for config in configs:
            resolvers.append(self._compile_field(context, config, storage_bucket or ""))

        if resolvers:
            context.registry.define(create_predictions_role(context.names, context.policies, storage_bucket or ""))

        context.registry.validate()

        return CompiledDocument(
            parameters=_parameters(context.env),
            conditions=_conditions(context.env),
            resources=context.registry.definitions(),
            resolvers=tuple(resolvers),
            advanced_settings=advanced_settings,
            schema_fragments=tuple(config.filter_schema for config in configs if config.filter_schema is not None),
        )

    def _compile_field(
        self, context: SynthesisContext, config: DirectiveConfig, storage_bucket: str
    ) -> ResolverArtifact:
        synthesizer = PipelineFunctionSynthesizer(context.catalog, context.registry, context.logger)
        accumulator = ResourcePolicyAccumulator(context.catalog)

        stages: List[PipelineStage] = []
        previous: Optional[str] = None
        for order, action in enumerate(config.actions):
            if action in config.actions[:order]:
                raise ConfigError(f"Action {action} listed more than once", config.type_name, config.field_name)

            entry = context.catalog.lookup(action, config.type_name, config.field_name)
            data_source = self._define_data_source(context, entry, storage_bucket)
            stages.append(
                synthesizer.synthesize(
                    action,
                    data_source,
                    context.env,
                    order=order,
                    previous=previous,
                    type_name=config.type_name,
                    field_name=config.field_name,
                )
            )

            context.policies = accumulator.accumulate(context.policies, action)
            if entry.data_source.invokes_function:
                context.policies = accumulator.accumulate_function_invoke(
                    context.policies, ResourceRef(ResourceIds.LAMBDA_FUNCTION)
                )
            previous = action

        artifact = ResolverComposer().compose(
            config.type_name,
            config.field_name,
            stages,
            context.names.stash_storage(storage_bucket),
        )
        for function in artifact.function_definitions():
            context.registry.define(function)
        context.registry.define(artifact.to_resource())
        context.logger.info(
            "Composed resolver",
            typeName=config.type_name,
            fieldName=config.field_name,
            kind=artifact.kind.value,
            actions=list(config.actions),
        )
        return artifact

    def _define_data_source(
        self, context: SynthesisContext, entry: ActionTemplateEntry, storage_bucket: str
    ) -> ResourceRef:
        if entry.data_source.invokes_function:
            context.registry.define(create_lambda_role(context.names, storage_bucket))
            context.registry.define(create_predictions_lambda(context.names, context.settings))
        definition: ResourceDefinition = create_predictions_datasource(entry.data_source)
        return context.registry.define(definition)

    def _merge_auth(
        self,
        auth: Union[AdvancedSettings, Mapping[str, Any], None],
        configs: Sequence[DirectiveConfig],
    ) -> Optional[AdvancedSettings]:
        if auth is not None and not isinstance(auth, AdvancedSettings):
            auth = self.auth_merger.from_settings(auth)

        merged: Optional[AdvancedSettings] = auth
        for config in configs:
            if config.auth is None:
                continue
            if merged is not None and merged != config.auth:
                raise ConfigError(
                    "Conflicting authorization settings",
                    config.type_name,
                    config.field_name,
                    config.auth.auth.primary.auth_type.value,
                )
            merged = config.auth
        return merged
