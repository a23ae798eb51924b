"""CDK stack for a compiled predictions document.

Materializes every parameter, condition and resource of a compiled document
as typed L1 constructs, keeping the compiled logical IDs and dependency lists.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from aws_cdk import CfnCondition, CfnParameter, CfnResource, Fn, Stack, Token
from aws_cdk import aws_appsync as appsync
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from constructs import Construct

from .errors import ConfigError
from .intrinsics import ENV_PARAMETER, HAS_ENVIRONMENT_CONDITION, NO_ENVIRONMENT
from .transformer import CompiledDocument


def _string(value: Any) -> Any:
    """Plain strings pass through; rendered intrinsics become string tokens."""
    if value is None or isinstance(value, str):
        return value
    return Token.as_string(value)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


def _policy_document(document: Mapping[str, Any]) -> iam.PolicyDocument:
    statements = []
    for statement in document.get("Statement", []):
        principal = statement.get("Principal") or {}
        statements.append(
            iam.PolicyStatement(
                effect=iam.Effect.DENY if statement.get("Effect") == "Deny" else iam.Effect.ALLOW,
                actions=_as_list(statement.get("Action")),
                resources=[_string(resource) for resource in _as_list(statement.get("Resource"))] or None,
                principals=[iam.ServicePrincipal(service) for service in _as_list(principal.get("Service"))] or None,
            )
        )
    return iam.PolicyDocument(statements=statements)


class PredictionsStack(Stack):
    """Stack holding the predictions resolvers and their infrastructure."""

    def __init__(self, scope: Construct, construct_id: str, document: CompiledDocument, **kwargs: Any) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.cfn_parameters: Dict[str, CfnParameter] = {}
        for name, declaration in document.parameters.items():
            parameter = CfnParameter(
                self,
                name,
                type=declaration.get("Type", "String"),
                default=declaration.get("Default"),
                description=declaration.get("Description"),
            )
            parameter.override_logical_id(name)
            self.cfn_parameters[name] = parameter

        if HAS_ENVIRONMENT_CONDITION in document.conditions:
            condition = CfnCondition(
                self,
                HAS_ENVIRONMENT_CONDITION,
                expression=Fn.condition_not(
                    Fn.condition_equals(self.cfn_parameters[ENV_PARAMETER].value_as_string, NO_ENVIRONMENT)
                ),
            )
            condition.override_logical_id(HAS_ENVIRONMENT_CONDITION)

        builders: Dict[str, Callable[[str, Mapping[str, Any]], CfnResource]] = {
            "AWS::IAM::Role": self._role,
            "AWS::AppSync::DataSource": self._data_source,
            "AWS::AppSync::FunctionConfiguration": self._function_configuration,
            "AWS::AppSync::Resolver": self._resolver,
            "AWS::Lambda::Function": self._lambda_function,
        }

        self.cfn_resources: Dict[str, CfnResource] = {}
        for logical_id, definition in document.resources.items():
            builder = builders.get(definition.resource_type)
            if builder is None:
                raise ConfigError(f"No construct for resource type {definition.resource_type} ({logical_id})")
            resource = builder(logical_id, definition.to_dict()["Properties"])
            resource.override_logical_id(logical_id)
            self.cfn_resources[logical_id] = resource

        # Resources are created in sorted order, so wire dependencies afterwards
        for logical_id, definition in document.resources.items():
            for dependency in definition.depends_on:
                self.cfn_resources[logical_id].add_dependency(self.cfn_resources[dependency])

    def _role(self, logical_id: str, properties: Mapping[str, Any]) -> iam.CfnRole:
        return iam.CfnRole(
            self,
            logical_id,
            role_name=_string(properties.get("RoleName")),
            assume_role_policy_document=_policy_document(properties["AssumeRolePolicyDocument"]),
            policies=[
                iam.CfnRole.PolicyProperty(
                    policy_name=policy["PolicyName"],
                    policy_document=_policy_document(policy["PolicyDocument"]),
                )
                for policy in properties.get("Policies", [])
            ],
        )

    def _data_source(self, logical_id: str, properties: Mapping[str, Any]) -> appsync.CfnDataSource:
        http_config: Optional[appsync.CfnDataSource.HttpConfigProperty] = None
        lambda_config: Optional[appsync.CfnDataSource.LambdaConfigProperty] = None

        if "HttpConfig" in properties:
            http = properties["HttpConfig"]
            authorization = http.get("AuthorizationConfig") or {}
            iam_config = authorization.get("AwsIamConfig") or {}
            http_config = appsync.CfnDataSource.HttpConfigProperty(
                endpoint=_string(http["Endpoint"]),
                authorization_config=appsync.CfnDataSource.AuthorizationConfigProperty(
                    authorization_type=authorization.get("AuthorizationType", "AWS_IAM"),
                    aws_iam_config=appsync.CfnDataSource.AwsIamConfigProperty(
                        signing_region=_string(iam_config.get("SigningRegion")),
                        signing_service_name=iam_config.get("SigningServiceName"),
                    ),
                ),
            )
        if "LambdaConfig" in properties:
            lambda_config = appsync.CfnDataSource.LambdaConfigProperty(
                lambda_function_arn=_string(properties["LambdaConfig"]["LambdaFunctionArn"]),
            )

        return appsync.CfnDataSource(
            self,
            logical_id,
            api_id=_string(properties["ApiId"]),
            name=properties["Name"],
            type=properties["Type"],
            service_role_arn=_string(properties.get("ServiceRoleArn")),
            http_config=http_config,
            lambda_config=lambda_config,
        )

    def _function_configuration(
        self, logical_id: str, properties: Mapping[str, Any]
    ) -> appsync.CfnFunctionConfiguration:
        return appsync.CfnFunctionConfiguration(
            self,
            logical_id,
            api_id=_string(properties["ApiId"]),
            name=properties["Name"],
            data_source_name=properties["DataSourceName"],
            function_version=properties.get("FunctionVersion"),
            request_mapping_template=_string(properties.get("RequestMappingTemplate")),
            response_mapping_template=_string(properties.get("ResponseMappingTemplate")),
        )

    def _resolver(self, logical_id: str, properties: Mapping[str, Any]) -> appsync.CfnResolver:
        pipeline_config = None
        if "PipelineConfig" in properties:
            pipeline_config = appsync.CfnResolver.PipelineConfigProperty(
                functions=[_string(function) for function in properties["PipelineConfig"]["Functions"]],
            )

        return appsync.CfnResolver(
            self,
            logical_id,
            api_id=_string(properties["ApiId"]),
            type_name=properties["TypeName"],
            field_name=properties["FieldName"],
            kind=properties.get("Kind"),
            data_source_name=properties.get("DataSourceName"),
            pipeline_config=pipeline_config,
            request_mapping_template=_string(properties.get("RequestMappingTemplate")),
            response_mapping_template=_string(properties.get("ResponseMappingTemplate")),
        )

    def _lambda_function(self, logical_id: str, properties: Mapping[str, Any]) -> lambda_.CfnFunction:
        code = properties["Code"]
        return lambda_.CfnFunction(
            self,
            logical_id,
            code=lambda_.CfnFunction.CodeProperty(
                s3_bucket=_string(code.get("S3Bucket")),
                s3_key=_string(code.get("S3Key")),
            ),
            function_name=_string(properties.get("FunctionName")),
            handler=properties.get("Handler"),
            role=_string(properties["Role"]),
            runtime=properties.get("Runtime"),
        )
