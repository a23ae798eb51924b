"""Resource definitions and the per-compilation resource registry."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Mapping, Tuple

from .errors import ConfigError, DependencyResolutionError
from .intrinsics import render


@dataclass(frozen=True)
class ResourceRef:
    """Logical identifier of a role, data source or function.

    Creating a ref does not create the resource; the registry checks that
    every ref used as a dependency is defined.
    """

    logical_id: str

    def __str__(self) -> str:
        return self.logical_id


@dataclass(frozen=True)
class ResourceDefinition:
    """One infrastructure resource with its explicit dependency list."""

    logical_id: str
    resource_type: str
    properties: Mapping[str, Any]
    depends_on: Tuple[str, ...] = field(default=())

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.logical_id)

    def to_dict(self) -> Dict[str, Any]:
        resource: Dict[str, Any] = {"Type": self.resource_type, "Properties": render(self.properties)}
        if self.depends_on:
            resource["DependsOn"] = list(self.depends_on)
        return resource


class ResourceRegistry:
    """Resources defined so far in one compilation, in definition order."""

    def __init__(self) -> None:
        self._definitions: Dict[str, ResourceDefinition] = {}

    def __contains__(self, logical_id: object) -> bool:
        if isinstance(logical_id, ResourceRef):
            logical_id = logical_id.logical_id
        return logical_id in self._definitions

    def __iter__(self) -> Iterator[ResourceDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, logical_id: str) -> ResourceDefinition:
        return self._definitions[logical_id]

    def define(self, definition: ResourceDefinition) -> ResourceRef:
        """
        Register a resource.

        Re-defining an identical resource is a no-op; a different definition
        under the same logical ID is a configuration error.
        """
        existing = self._definitions.get(definition.logical_id)
        if existing is not None and existing != definition:
            raise ConfigError(f"Resource {definition.logical_id} defined twice with different settings")
        self._definitions[definition.logical_id] = definition
        return definition.ref

    def require(self, ref: ResourceRef, referenced_by: str) -> ResourceRef:
        """Fail unless ``ref`` names a defined resource."""
        if ref.logical_id not in self._definitions:
            raise DependencyResolutionError(ref.logical_id, referenced_by)
        return ref

    def require_all(self, logical_ids: Iterable[str], referenced_by: str) -> None:
        for logical_id in logical_ids:
            self.require(ResourceRef(logical_id), referenced_by)

    def validate(self) -> None:
        """Check that every declared dependency resolves inside this registry."""
        for definition in self._definitions.values():
            self.require_all(definition.depends_on, definition.logical_id)

    def definitions(self) -> Dict[str, ResourceDefinition]:
        """Definitions keyed by logical ID, sorted for stable output."""
        return {logical_id: self._definitions[logical_id] for logical_id in sorted(self._definitions)}

    def to_dict(self) -> Dict[str, Any]:
        return {logical_id: definition.to_dict() for logical_id, definition in self.definitions().items()}
