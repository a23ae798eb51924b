"""Per-compilation synthesis state."""

import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from .appsync.actions import ActionTemplateCatalog
from .helpers import ResourceNameResolver
from .iam_roles import PolicyDocument
from .logging import StructuredLogger, get_logger
from .resources import ResourceRegistry
from .settings import TransformerSettings


@dataclass(frozen=True)
class EnvContext:
    """Environment name and stack-name token for one compilation."""

    env_name: Optional[str] = None
    stack_name: Optional[str] = None

    @property
    def env_configured(self) -> bool:
        return self.env_name is not None

    def name_resolver(self, delimiter: str = "-") -> ResourceNameResolver:
        return ResourceNameResolver(self.env_configured, self.stack_name, delimiter)


@dataclass
class SynthesisContext:
    """
    Everything one compilation accumulates.

    A fresh context is created for every compilation; nothing in it is shared
    with any other compilation.
    """

    env: EnvContext
    catalog: ActionTemplateCatalog
    settings: TransformerSettings
    registry: ResourceRegistry = field(default_factory=ResourceRegistry)
    policies: Dict[str, PolicyDocument] = field(default_factory=dict)
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    logger: Optional[StructuredLogger] = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger(__name__, self.correlation_id, self.settings.log_level)

    @property
    def names(self) -> ResourceNameResolver:
        return self.env.name_resolver(self.settings.name_delimiter)
