"""Tests for data source definitions."""

from predictions_transformer.appsync.datasources import (
    LAMBDA,
    REKOGNITION,
    TRANSLATE,
    create_predictions_datasource,
)
from predictions_transformer.intrinsics import EvaluationContext, evaluate


class TestCreatePredictionsDatasource:
    """Tests for create_predictions_datasource."""

    def test_http_data_source(self) -> None:
        """HTTP data sources are IAM-signed against the regional endpoint."""
        definition = create_predictions_datasource(TRANSLATE)

        assert definition.logical_id == "TranslateDataSource"
        assert definition.resource_type == "AWS::AppSync::DataSource"
        assert definition.depends_on == ("predictionsIAMRole",)
        properties = definition.to_dict()["Properties"]
        assert properties["Type"] == "HTTP"
        assert properties["ServiceRoleArn"] == {"Fn::GetAtt": ["predictionsIAMRole", "Arn"]}
        assert properties["HttpConfig"]["AuthorizationConfig"]["AwsIamConfig"]["SigningServiceName"] == "translate"

    def test_http_endpoint(self) -> None:
        """Endpoint uses the deployment region."""
        definition = create_predictions_datasource(REKOGNITION)

        endpoint = evaluate(
            definition.properties["HttpConfig"]["Endpoint"],
            EvaluationContext(parameters={"AWS::Region": "us-west-2"}),
        )
        assert endpoint == "https://rekognition.us-west-2.amazonaws.com"

    def test_lambda_data_source(self) -> None:
        """Lambda data sources invoke the predictions function."""
        definition = create_predictions_datasource(LAMBDA)

        assert definition.depends_on == ("predictionsIAMRole", "predictionsLambda")
        properties = definition.to_dict()["Properties"]
        assert properties["Type"] == "AWS_LAMBDA"
        assert properties["LambdaConfig"] == {"LambdaFunctionArn": {"Fn::GetAtt": ["predictionsLambda", "Arn"]}}
        assert "HttpConfig" not in properties

    def test_same_config_same_definition(self) -> None:
        """Shared data sources produce identical definitions."""
        assert create_predictions_datasource(REKOGNITION) == create_predictions_datasource(REKOGNITION)
