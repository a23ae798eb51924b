"""
Directive-driven synthesis of AppSync predictions resolvers.

Compiles ``@predictions`` fields into pipeline resolvers plus the roles,
policies, data sources and functions they depend on.
"""

from .errors import (
    ConfigError,
    DependencyResolutionError,
    DuplicateAuthTypeError,
    TransformerError,
    UnsupportedActionError,
)
from .transformer import CompiledDocument, PredictionsTransformer

__all__ = [
    "CompiledDocument",
    "ConfigError",
    "DependencyResolutionError",
    "DuplicateAuthTypeError",
    "PredictionsTransformer",
    "TransformerError",
    "UnsupportedActionError",
]
