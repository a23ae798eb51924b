"""Tests for schema compilation."""

import json
from unittest.mock import patch

import pytest

from predictions_transformer.appsync.resolver_builder import ResolverKind
from predictions_transformer.auth import AuthType
from predictions_transformer.directives import FieldDefinition
from predictions_transformer.errors import (
    ConfigError,
    DependencyResolutionError,
    DuplicateAuthTypeError,
    TransformerError,
    UnsupportedActionError,
)
from predictions_transformer.intrinsics import Conditional, EvaluationContext, evaluate
from predictions_transformer.transformer import PredictionsTransformer

from tests.unit.fixtures import STACK_NAME


def _storage_arn(document):
    role = document.resources["predictionsIAMRole"]
    return role.properties["Policies"][0]["PolicyDocument"]["Statement"][0]["Resource"]


class TestCompileScenarios:
    """End-to-end compilation of predictions fields."""

    def test_labels_then_translate(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """identifyLabels then translateText compiles to two ordered stages."""
        document = transformer.compile(
            [predictions_field(["identifyLabels", "translateText"])],
            storage_bucket="storage123",
            stack_name=STACK_NAME,
        )

        (resolver,) = document.resolvers
        assert resolver.kind is ResolverKind.PIPELINE
        assert [stage.action.name for stage in resolver.stages] == ["identifyLabels", "translateText"]
        assert [stage.order for stage in resolver.stages] == [0, 1]
        assert "$ctx.prev.result" in resolver.stages[1].action.request_template
        assert evaluate(_storage_arn(document), EvaluationContext()) == "arn:aws:s3:::storage123/*"
        assert document.parameters.keys() == {"AppSyncApiId", "S3DeploymentBucket", "S3DeploymentRootKey"}
        assert document.conditions == {}

    def test_environment_bucket(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """An ${env} bucket keeps both branches, each evaluating correctly."""
        document = transformer.compile(
            [predictions_field(["identifyText", "translateText"])],
            storage_bucket="storage123-${env}",
            env_name="dev",
            stack_name=STACK_NAME,
        )

        arn = _storage_arn(document)
        assert isinstance(arn, Conditional)
        with_env = evaluate(arn, EvaluationContext.for_environment("dev", STACK_NAME))
        without_env = evaluate(arn, EvaluationContext.for_environment(None, STACK_NAME))
        assert "storage123-dev" in with_env
        assert without_env == "arn:aws:s3:::storage123/*"

        resolver = document.resources["QueryTranslateImageTextResolver"]
        request = evaluate(resolver.properties["RequestMappingTemplate"], EvaluationContext.for_environment("dev"))
        assert request.startswith('$util.qr($ctx.stash.put("s3Bucket", "storage123-dev"))')

        assert document.parameters["env"] == {"Type": "String", "Default": "dev"}
        assert "HasEnvironmentParameter" in document.conditions

    def test_unknown_action(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """An unknown action fails naming the action."""
        with pytest.raises(UnsupportedActionError) as exc_info:
            transformer.compile([predictions_field(["describeImage"])], storage_bucket="storage123")

        assert exc_info.value.action == "describeImage"
        assert "describeImage" in str(exc_info.value)


class TestCompileResources:
    """Tests for the resources a compilation defines."""

    def test_stage_count_matches_actions(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Each action becomes exactly one stage."""
        actions = ["identifyText", "translateText", "convertTextToSpeech"]

        document = transformer.compile([predictions_field(actions)], storage_bucket="storage123")

        assert [stage.action.name for stage in document.resolvers[0].stages] == actions

    def test_standalone_translate_is_unit(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """A lone translateText compiles to a unit resolver."""
        document = transformer.compile([predictions_field(["translateText"], "translate")], storage_bucket="b")

        assert document.resolvers[0].kind is ResolverKind.UNIT
        assert document.resources["QueryTranslateResolver"].properties["Kind"] == "UNIT"
        assert "translateTextFunction" not in document.resources

    def test_text_to_speech_defines_lambda(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """convertTextToSpeech brings in the function, its role and one invoke policy."""
        fields = [
            predictions_field(["convertTextToSpeech"], "speak"),
            predictions_field(["identifyText", "convertTextToSpeech"], "readAloud"),
        ]

        document = transformer.compile(fields, storage_bucket="storage123")

        assert {"predictionsLambda", "predictionsLambdaIAMRole", "LambdaDataSource"} <= document.resources.keys()
        policy_names = [p["PolicyName"] for p in document.resources["predictionsIAMRole"].properties["Policies"]]
        assert policy_names.count("PredictionsLambdaAccess") == 1
        assert document.resources["predictionsIAMRole"].depends_on == ("predictionsLambda",)
        assert policy_names == [
            "PredictionsStorageAccess",
            "convertTextToSpeechAccess",
            "PredictionsLambdaAccess",
            "identifyTextAccess",
        ]

    def test_shared_resources_defined_once(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Fields sharing actions share data sources and functions."""
        fields = [
            predictions_field(["identifyText"], "readText"),
            predictions_field(["identifyText", "translateText"], "translateImageText"),
        ]

        document = transformer.compile(fields, storage_bucket="storage123")

        assert sorted(document.resources) == [
            "QueryReadTextResolver",
            "QueryTranslateImageTextResolver",
            "RekognitionDataSource",
            "TranslateDataSource",
            "identifyTextFunction",
            "predictionsIAMRole",
            "translateTextFunction",
        ]

    def test_every_dependency_defined(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Every DependsOn entry names a resource in the document."""
        document = transformer.compile(
            [predictions_field(["identifyText", "translateText", "convertTextToSpeech"])],
            storage_bucket="storage123",
        )

        for definition in document.resources.values():
            for dependency in definition.depends_on:
                assert dependency in document.resources

    def test_filter_schema(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Generated input types are part of the document."""
        document = transformer.compile([predictions_field(["identifyText", "translateText"])], storage_bucket="b")

        assert document.schema_sdl().startswith("input TranslateImageTextInput {")
        assert "input TranslateImageTextTranslateTextInput {" in document.to_dict()["Schema"]

    def test_empty_schema(self, transformer: PredictionsTransformer) -> None:
        """Fields without @predictions produce no resources and need no bucket."""
        document = transformer.compile([FieldDefinition("Query", "listPhotos")])

        assert document.resources == {}
        assert document.resolvers == ()
        assert "Schema" not in document.to_dict()


class TestCompileErrors:
    """Tests for compilation failures."""

    def test_missing_bucket(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Predictions fields need a storage bucket."""
        with pytest.raises(ConfigError):
            transformer.compile([predictions_field(["identifyText"])])

    def test_duplicate_action(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """An action may appear once per field."""
        with pytest.raises(ConfigError) as exc_info:
            transformer.compile([predictions_field(["identifyText", "identifyText"])], storage_bucket="b")

        assert exc_info.value.details["field"] == "Query.translateImageText"

    def test_invalid_chain(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Chaining after an action whose result cannot be consumed fails."""
        with pytest.raises(DependencyResolutionError) as exc_info:
            transformer.compile([predictions_field(["convertTextToSpeech", "translateText"])], storage_bucket="b")

        assert exc_info.value.missing == "convertTextToSpeech result"

    def test_failure_is_logged(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Failures are logged with the error details before propagating."""
        with patch("predictions_transformer.logging.StructuredLogger.error") as mock_error:
            with pytest.raises(TransformerError):
                transformer.compile([predictions_field(["describeImage"])], storage_bucket="b")

        mock_error.assert_called_once()
        assert mock_error.call_args.kwargs["error"]["action"] == "describeImage"


class TestCompileAuth:
    """Tests for authorization merging during compilation."""

    def test_api_auth(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """API-level auth settings are merged into the document."""
        document = transformer.compile(
            [predictions_field(["identifyText"])],
            storage_bucket="b",
            auth={"primary": {"type": "API_KEY", "apiExpirationDays": 30}, "additional": [{"type": "AWS_IAM"}]},
        )

        auth = document.to_dict()["AdvancedSettings"]["authConfig"]
        assert auth["defaultAuthentication"]["apiKeyConfig"]["apiKeyExpirationDays"] == 30
        assert auth["additionalAuthenticationProviders"] == [{"authenticationType": "AWS_IAM"}]

    def test_directive_auth(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Auth settings on a directive are used when the API sets none."""
        field = predictions_field(["identifyText"], auth={"primary": {"type": "AWS_IAM"}})

        document = transformer.compile([field], storage_bucket="b")

        assert document.advanced_settings.auth.primary.auth_type is AuthType.AWS_IAM

    def test_conflicting_auth(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Different auth settings on different fields conflict."""
        fields = [
            predictions_field(["identifyText"], "a", auth={"primary": {"type": "AWS_IAM"}}),
            predictions_field(["identifyText"], "b", auth={"primary": {"type": "API_KEY"}}),
        ]

        with pytest.raises(ConfigError) as exc_info:
            transformer.compile(fields, storage_bucket="b")

        assert exc_info.value.details["field"] == "Query.b"

    def test_duplicate_auth_type(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Repeating an auth variant fails the compilation."""
        with pytest.raises(DuplicateAuthTypeError):
            transformer.compile(
                [predictions_field(["identifyText"])],
                storage_bucket="b",
                auth={"primary": {"type": "AWS_IAM"}, "additional": [{"type": "IAM"}]},
            )


class TestCompileIsolation:
    """Tests for determinism and per-compilation state."""

    def test_deterministic_output(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Compiling the same input twice yields identical documents."""
        fields = [predictions_field(["identifyLabels", "translateText", "convertTextToSpeech"])]

        first = transformer.compile(fields, storage_bucket="storage123-${env}", env_name="dev")
        second = transformer.compile(fields, storage_bucket="storage123-${env}", env_name="dev")

        assert first.to_json() == second.to_json()

    def test_compilations_do_not_share_state(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """Resources from one compilation never leak into the next."""
        transformer.compile([predictions_field(["convertTextToSpeech"], "speak")], storage_bucket="b")

        document = transformer.compile([predictions_field(["translateText"], "translate")], storage_bucket="b")

        assert "predictionsLambda" not in document.resources
        policy_names = [p["PolicyName"] for p in document.resources["predictionsIAMRole"].properties["Policies"]]
        assert policy_names == ["PredictionsStorageAccess", "translateTextAccess"]

    def test_to_json(self, transformer: PredictionsTransformer, predictions_field) -> None:
        """The document serializes to template JSON."""
        document = transformer.compile([predictions_field(["identifyText"])], storage_bucket="b", env_name="dev")

        data = json.loads(document.to_json())
        assert data["Resources"]["predictionsIAMRole"]["Properties"]["RoleName"]["Fn::If"][0] == (
            "HasEnvironmentParameter"
        )
        assert data["Resolvers"][0]["kind"] == "PIPELINE"
        assert data["Conditions"]["HasEnvironmentParameter"] == {
            "Fn::Not": [{"Fn::Equals": [{"Ref": "env"}, "NONE"]}]
        }
