"""
Shared naming helpers for synthesized resources.

This module provides:
- Logical IDs and base names of the resources the transformer creates
- Environment-aware resource names (ResourceNameResolver)
- Storage ARN and stash expressions that respect the ``${env}`` placeholder
"""

import re
from typing import Any, Optional, Sequence

from .intrinsics import (
    ENV_PARAMETER,
    HAS_ENVIRONMENT_CONDITION,
    STACK_NAME,
    Conditional,
    Expression,
    Ref,
    Select,
    Split,
    join,
    sub,
)

ENV_REFERENCE = re.compile(r"(\$\{env\})")
ENV_SEGMENT = re.compile(r"-?\$\{env\}")

# Stack names look like amplify-<app>-<env>-<hash>; the 4th segment is the hash
STACK_HASH_INDEX = 3


class ResourceIds:
    """Logical IDs and base names of predictions resources."""

    IAM_ROLE = "predictionsIAMRole"
    LAMBDA_IAM_ROLE = "predictionsLambdaIAMRole"
    LAMBDA_FUNCTION = "predictionsLambda"
    LAMBDA_NAME = "predictionsLambda"
    LAMBDA_INVOKE_POLICY = "PredictionsLambdaAccess"
    STORAGE_POLICY = "PredictionsStorageAccess"

    @staticmethod
    def function(action: str) -> str:
        return f"{action}Function"

    @staticmethod
    def resolver(type_name: str, field_name: str) -> str:
        return f"{type_name}{field_name[:1].upper()}{field_name[1:]}Resolver"


def references_env(value: str) -> bool:
    """Whether a resource name embeds the ``${env}`` placeholder."""
    return ENV_REFERENCE.search(value) is not None


def remove_env_reference(value: str) -> str:
    """Strip the ``-${env}`` segment (or a bare ``${env}``) from a resource name."""
    return ENV_SEGMENT.sub("", value)


def s3_arn_key(name: str) -> str:
    return f"arn:aws:s3:::{name}/*"


def stash_storage_line(name: str) -> str:
    return f'$util.qr($ctx.stash.put("s3Bucket", "{name}"))'


class ResourceNameResolver:
    """
    Computes environment-aware names and storage ARNs.

    Example:
        names = ResourceNameResolver(env_configured=True)
        names.resolve_name(["predictionsIAMRole", Ref("AppSyncApiId")])
        # Fn::If HasEnvironmentParameter -> "predictionsIAMRole-<api>-<env>"
        #                                 else "predictionsIAMRole-<api>"
    """

    def __init__(self, env_configured: bool, stack_name: Optional[str] = None, delimiter: str = "-"):
        """
        Args:
            env_configured: Whether the compilation has an environment
            stack_name: Stack name token used to derive the storage hash. If
                None, the hash is derived from ``AWS::StackName`` at deploy time.
            delimiter: Separator used when joining name tokens
        """
        self.env_configured = env_configured
        self.stack_name = stack_name
        self.delimiter = delimiter

    def stack_hash(self) -> Any:
        """Short hash token for storage names."""
        if self.stack_name is not None:
            segments = self.stack_name.split("-")
            if len(segments) > STACK_HASH_INDEX:
                return segments[STACK_HASH_INDEX]
            return segments[-1]
        return Select(STACK_HASH_INDEX, Split("-", Ref(STACK_NAME)))

    def resolve_name(self, base_tokens: Sequence[Any]) -> Expression:
        """Join name tokens, appending the environment when one is configured."""
        tokens = list(base_tokens)
        if not self.env_configured:
            return join(self.delimiter, tokens)
        return Conditional(
            HAS_ENVIRONMENT_CONDITION,
            join(self.delimiter, tokens + [Ref(ENV_PARAMETER)]),
            join(self.delimiter, tokens),
        )

    def _substitute(self, template_for: Any, bucket_name: str) -> Expression:
        stripped = sub(template_for(remove_env_reference(bucket_name)), hash=self.stack_hash())
        if not (self.env_configured and references_env(bucket_name)):
            return stripped
        return Conditional(
            HAS_ENVIRONMENT_CONDITION,
            sub(template_for(bucket_name), hash=self.stack_hash(), env=Ref(ENV_PARAMETER)),
            stripped,
        )

    def resolve_storage_arn(self, bucket_name: str) -> Expression:
        """Object ARN for every key in the storage bucket."""
        return self._substitute(s3_arn_key, bucket_name)

    def stash_storage(self, bucket_name: str) -> Expression:
        """Template line that stores the bucket name in the request stash."""
        return self._substitute(stash_storage_line, bucket_name)
