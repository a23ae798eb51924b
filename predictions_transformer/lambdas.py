"""Lambda function definition for the text-to-speech action."""

from .helpers import ResourceIds, ResourceNameResolver
from .intrinsics import (
    API_ID_PARAMETER,
    DEPLOYMENT_BUCKET_PARAMETER,
    DEPLOYMENT_ROOT_KEY_PARAMETER,
    GetAtt,
    Ref,
    join,
)
from .resources import ResourceDefinition
from .settings import TransformerSettings


def create_predictions_lambda(names: ResourceNameResolver, settings: TransformerSettings) -> ResourceDefinition:
    """Create the predictions Lambda function.

    The deployment package itself is built and uploaded outside the
    transformer; the function only points at its expected S3 key.

    Args:
        names: Name resolver for this compilation
        settings: Runtime and handler settings

    Returns:
        The function definition, depending on its execution role
    """
    return ResourceDefinition(
        logical_id=ResourceIds.LAMBDA_FUNCTION,
        resource_type="AWS::Lambda::Function",
        properties={
            "Code": {
                "S3Bucket": Ref(DEPLOYMENT_BUCKET_PARAMETER),
                "S3Key": join(
                    "/",
                    [
                        Ref(DEPLOYMENT_ROOT_KEY_PARAMETER),
                        "functions",
                        join(".", [ResourceIds.LAMBDA_FUNCTION, "zip"]),
                    ],
                ),
            },
            "FunctionName": names.resolve_name([ResourceIds.LAMBDA_NAME, Ref(API_ID_PARAMETER)]),
            "Handler": settings.lambda_handler,
            "Role": GetAtt(ResourceIds.LAMBDA_IAM_ROLE, "Arn"),
            "Runtime": settings.lambda_runtime,
        },
        depends_on=(ResourceIds.LAMBDA_IAM_ROLE,),
    )
