"""AppSync data source descriptors for predictions actions."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..helpers import ResourceIds
from ..intrinsics import API_ID_PARAMETER, GetAtt, Ref, sub
from ..resources import ResourceDefinition


@dataclass(frozen=True)
class DataSourceConfig:
    """
    Where an action's requests are sent.

    HTTP data sources are signed with the predictions role for ``service``;
    Lambda data sources invoke the predictions function.
    """

    id: str
    service: Optional[str] = None
    invokes_function: bool = False

    @property
    def kind(self) -> str:
        return "AWS_LAMBDA" if self.invokes_function else "HTTP"

    def depends_on(self) -> Tuple[str, ...]:
        if self.invokes_function:
            return (ResourceIds.IAM_ROLE, ResourceIds.LAMBDA_FUNCTION)
        return (ResourceIds.IAM_ROLE,)


REKOGNITION = DataSourceConfig("RekognitionDataSource", service="rekognition")
TRANSLATE = DataSourceConfig("TranslateDataSource", service="translate")
LAMBDA = DataSourceConfig("LambdaDataSource", invokes_function=True)


def _http_config(service: str) -> Dict[str, Any]:
    return {
        "Endpoint": sub(f"https://{service}.${{AWS::Region}}.amazonaws.com"),
        "AuthorizationConfig": {
            "AuthorizationType": "AWS_IAM",
            "AwsIamConfig": {
                "SigningRegion": sub("${AWS::Region}"),
                "SigningServiceName": service,
            },
        },
    }


def create_predictions_datasource(config: DataSourceConfig) -> ResourceDefinition:
    """
    Create the data source definition for an action's backing service.

    Args:
        config: Data source configuration from the action catalog

    Returns:
        Data source definition depending on the predictions role (and the
        predictions function for Lambda data sources)
    """
    properties: Dict[str, Any] = {
        "ApiId": Ref(API_ID_PARAMETER),
        "Name": config.id,
        "Type": config.kind,
        "ServiceRoleArn": GetAtt(ResourceIds.IAM_ROLE, "Arn"),
    }
    if config.invokes_function:
        properties["LambdaConfig"] = {"LambdaFunctionArn": GetAtt(ResourceIds.LAMBDA_FUNCTION, "Arn")}
    else:
        properties["HttpConfig"] = _http_config(config.service or "")

    return ResourceDefinition(
        logical_id=config.id,
        resource_type="AWS::AppSync::DataSource",
        properties=properties,
        depends_on=config.depends_on(),
    )
