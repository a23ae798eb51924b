"""Shared fixtures for transformer tests."""

from typing import Callable

import pytest

from predictions_transformer.appsync.actions import ActionTemplateCatalog, default_catalog
from predictions_transformer.context import EnvContext
from predictions_transformer.directives import FieldDefinition
from predictions_transformer.resources import ResourceRegistry
from predictions_transformer.settings import TransformerSettings
from predictions_transformer.transformer import PredictionsTransformer
from tests.unit.fixtures import STACK_NAME, make_predictions_field


@pytest.fixture(autouse=True)
def quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep structured logs out of test output unless a test opts in."""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")


@pytest.fixture
def settings() -> TransformerSettings:
    """Default transformer settings."""
    return TransformerSettings(log_level="ERROR")


@pytest.fixture
def catalog(settings: TransformerSettings) -> ActionTemplateCatalog:
    """The default action catalog."""
    return default_catalog(settings)


@pytest.fixture
def registry() -> ResourceRegistry:
    """An empty resource registry."""
    return ResourceRegistry()


@pytest.fixture
def env() -> EnvContext:
    """Compilation without an environment."""
    return EnvContext(stack_name=STACK_NAME)


@pytest.fixture
def transformer(catalog: ActionTemplateCatalog, settings: TransformerSettings) -> PredictionsTransformer:
    """Transformer with default catalog and settings."""
    return PredictionsTransformer(catalog=catalog, settings=settings)


@pytest.fixture
def predictions_field() -> Callable[..., FieldDefinition]:
    """Factory for fields carrying a @predictions directive."""
    return make_predictions_field
