"""Tests for transformer error types."""

from predictions_transformer.errors import (
    ConfigError,
    DependencyResolutionError,
    DuplicateAuthTypeError,
    ErrorCode,
    TransformerError,
    UnsupportedActionError,
)


class TestTransformerError:
    """Tests for the TransformerError base class."""

    def test_error_with_message(self) -> None:
        """Base error stores code and message."""
        error = TransformerError(ErrorCode.CONFIG_ERROR, "bad config")

        assert error.error_code == ErrorCode.CONFIG_ERROR
        assert error.message == "bad config"
        assert error.details == {}
        assert str(error) == "bad config"

    def test_to_dict_merges_details(self) -> None:
        """to_dict includes code, message and details."""
        error = TransformerError(ErrorCode.CONFIG_ERROR, "bad config", {"field": "Query.f"})

        assert error.to_dict() == {"errorCode": "CONFIG_ERROR", "message": "bad config", "field": "Query.f"}


class TestConfigError:
    """Tests for ConfigError."""

    def test_reports_field_and_variant(self) -> None:
        """ConfigError names the offending type/field and variant."""
        error = ConfigError("missing oidcClientId", "Query", "speak", "OPENID_CONNECT")

        assert isinstance(error, TransformerError)
        assert error.error_code == ErrorCode.CONFIG_ERROR
        assert error.details == {"field": "Query.speak", "variant": "OPENID_CONNECT"}

    def test_omits_unknown_location(self) -> None:
        """Details leave out what is not known."""
        error = ConfigError("no bucket")

        assert error.details == {}


class TestUnsupportedActionError:
    """Tests for UnsupportedActionError."""

    def test_names_action_and_field(self) -> None:
        """Message and details carry the action and the requesting field."""
        error = UnsupportedActionError("describeImage", "Query", "describe")

        assert error.action == "describeImage"
        assert "describeImage" in error.message
        assert "Query.describe" in error.message
        assert error.to_dict()["action"] == "describeImage"
        assert error.to_dict()["field"] == "Query.describe"

    def test_without_field(self) -> None:
        """Error without a field only reports the action."""
        error = UnsupportedActionError("describeImage")

        assert error.details == {"action": "describeImage"}


class TestDuplicateAuthTypeError:
    """Tests for DuplicateAuthTypeError."""

    def test_reports_variant(self) -> None:
        """Error reports the duplicated variant."""
        error = DuplicateAuthTypeError("API_KEY")

        assert error.error_code == ErrorCode.DUPLICATE_AUTH_TYPE
        assert error.variant == "API_KEY"
        assert error.details == {"variant": "API_KEY"}


class TestDependencyResolutionError:
    """Tests for DependencyResolutionError."""

    def test_reports_missing_and_referrer(self) -> None:
        """Error reports the missing resource and what referenced it."""
        error = DependencyResolutionError("TranslateDataSource", "translateTextFunction")

        assert error.missing == "TranslateDataSource"
        assert error.referenced_by == "translateTextFunction"
        assert error.to_dict() == {
            "errorCode": "DEPENDENCY_RESOLUTION",
            "message": "translateTextFunction depends on undefined resource TranslateDataSource",
            "missing": "TranslateDataSource",
            "referencedBy": "translateTextFunction",
        }
