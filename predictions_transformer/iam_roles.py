"""
IAM roles and policies for predictions resources.

Creates:
- Per-action service access policies, accumulated once per action
- The invoke policy for the predictions Lambda function
- AppSync service role used by the predictions data sources
- Lambda execution role for the text-to-speech function
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from .appsync.actions import ActionTemplateCatalog, PermissionStatement
from .helpers import ResourceIds, ResourceNameResolver
from .intrinsics import API_ID_PARAMETER, GetAtt, Ref
from .resources import ResourceDefinition, ResourceRef

POLICY_VERSION = "2012-10-17"


@dataclass(frozen=True)
class PolicyDocument:
    name: str
    statements: Tuple[PermissionStatement, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "PolicyName": self.name,
            "PolicyDocument": {
                "Version": POLICY_VERSION,
                "Statement": [statement.to_dict() for statement in self.statements],
            },
        }

    def references(self) -> Tuple[str, ...]:
        """Logical IDs of the resources this policy grants access to."""
        return tuple(
            statement.resource.logical_id for statement in self.statements if isinstance(statement.resource, GetAtt)
        )


def _assume_role_policy(service: str) -> Dict[str, Any]:
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": service},
                "Action": "sts:AssumeRole",
            }
        ],
    }


class ResourcePolicyAccumulator:
    """
    Merges the policies implied by referenced actions.

    Both methods return a new mapping and never modify their input.

    Example:
        accumulator = ResourcePolicyAccumulator(catalog)
        policies = accumulator.accumulate({}, "translateText")
        policies = accumulator.accumulate(policies, "translateText")  # unchanged
    """

    def __init__(self, catalog: ActionTemplateCatalog):
        self.catalog = catalog

    def accumulate(self, policies: Mapping[str, PolicyDocument], action: str) -> Dict[str, PolicyDocument]:
        """Add the ``<action>Access`` policy unless the action already has one."""
        if action in policies:
            return dict(policies)
        entry = self.catalog.lookup(action)
        if not entry.permissions:
            return dict(policies)
        merged = dict(policies)
        merged[action] = PolicyDocument(
            name=f"{action}Access",
            statements=(PermissionStatement(entry.permissions),),
        )
        return merged

    def accumulate_function_invoke(
        self, policies: Mapping[str, PolicyDocument], function: ResourceRef
    ) -> Dict[str, PolicyDocument]:
        """Add the function invoke policy, at most once per compilation."""
        key = ResourceIds.LAMBDA_INVOKE_POLICY
        if key in policies:
            return dict(policies)
        merged = dict(policies)
        merged[key] = PolicyDocument(
            name=key,
            statements=(
                PermissionStatement(("lambda:InvokeFunction",), resource=GetAtt(function.logical_id, "Arn")),
            ),
        )
        return merged


def _storage_policy(name: str, storage_arn: Any) -> PolicyDocument:
    return PolicyDocument(
        name=name,
        statements=(PermissionStatement(("s3:GetObject", "s3:PutObject"), resource=storage_arn),),
    )


def create_predictions_role(
    names: ResourceNameResolver,
    policies: Mapping[str, PolicyDocument],
    bucket_name: str,
) -> ResourceDefinition:
    """Create the AppSync service role for predictions data sources.

    Args:
        names: Name resolver for this compilation
        policies: Accumulated per-action policies, in accumulation order
        bucket_name: Storage bucket name (may contain ``${env}``)

    Returns:
        The role definition, depending on every resource its policies grant access to
    """
    storage = _storage_policy(ResourceIds.STORAGE_POLICY, names.resolve_storage_arn(bucket_name))
    depends_on: Dict[str, None] = {}
    for policy in policies.values():
        depends_on.update(dict.fromkeys(policy.references()))
    return ResourceDefinition(
        logical_id=ResourceIds.IAM_ROLE,
        resource_type="AWS::IAM::Role",
        properties={
            "RoleName": names.resolve_name([ResourceIds.IAM_ROLE, Ref(API_ID_PARAMETER)]),
            "AssumeRolePolicyDocument": _assume_role_policy("appsync.amazonaws.com"),
            "Policies": [storage.to_dict()] + [policy.to_dict() for policy in policies.values()],
        },
        depends_on=tuple(depends_on),
    )


def create_lambda_role(names: ResourceNameResolver, bucket_name: str) -> ResourceDefinition:
    """Create the execution role for the text-to-speech Lambda function.

    Args:
        names: Name resolver for this compilation
        bucket_name: Storage bucket name (may contain ``${env}``)

    Returns:
        The role definition
    """
    storage = _storage_policy("StorageAccess", names.resolve_storage_arn(bucket_name))
    polly = PolicyDocument(name="PollyAccess", statements=(PermissionStatement(("polly:SynthesizeSpeech",)),))
    return ResourceDefinition(
        logical_id=ResourceIds.LAMBDA_IAM_ROLE,
        resource_type="AWS::IAM::Role",
        properties={
            "RoleName": names.resolve_name([ResourceIds.LAMBDA_IAM_ROLE, Ref(API_ID_PARAMETER)]),
            "AssumeRolePolicyDocument": _assume_role_policy("lambda.amazonaws.com"),
            "Policies": [storage.to_dict(), polly.to_dict()],
        },
    )
