"""
Document metadata domain models.

Metadata travels beside the content of a document: the collections it
belongs to, the role permissions that guard it, free-form properties and a
search quality. It is carried by a MetadataHandle and serialized as JSON.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field, field_validator


class MetadataCategory(str, Enum):
    """Parts of the metadata a read asks for."""

    COLLECTIONS = "collections"
    PERMISSIONS = "permissions"
    PROPERTIES = "properties"
    QUALITY = "quality"
    ALL = "all"


class MetadataExtraction(str, Enum):
    """Whether intrinsic properties of binary content are extracted.

    NONE leaves binary documents with only caller-supplied metadata.
    PROPERTIES records content length, content type and content multihash
    as document properties on write, and fetches them back into the
    content handle on read.
    """

    NONE = "none"
    PROPERTIES = "properties"


PermissionCapability = str
PERMISSION_CAPABILITIES = {"read", "update", "insert", "execute"}


class Permission(BaseModel):
    role: str
    capabilities: Set[PermissionCapability] = Field(default_factory=set)

    @field_validator("role")
    @classmethod
    def role_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Permission role cannot be empty")
        return v.strip()

    @field_validator("capabilities")
    @classmethod
    def capabilities_must_be_known(
        cls, v: Set[PermissionCapability]
    ) -> Set[PermissionCapability]:
        unknown = set(v) - PERMISSION_CAPABILITIES
        if unknown:
            raise ValueError(
                f"Unknown permission capabilities: {sorted(unknown)}"
            )
        return v


def _unique_collections(names: List[str]) -> List[str]:
    seen: List[str] = []
    for name in names:
        if not name or not name.strip():
            raise ValueError("Collection names cannot be empty")
        if name not in seen:
            seen.append(name)
    return seen


class DocumentMetadata(BaseModel):
    collections: List[str] = Field(default_factory=list)
    permissions: List[Permission] = Field(default_factory=list)
    properties: Dict[str, str] = Field(default_factory=dict)
    quality: int = 0

    @field_validator("collections")
    @classmethod
    def collections_must_be_unique(cls, v: List[str]) -> List[str]:
        return _unique_collections(v)

    def add_collections(self, *names: str) -> "DocumentMetadata":
        self.collections = _unique_collections([*self.collections, *names])
        return self

    def add_permission(
        self, role: str, *capabilities: PermissionCapability
    ) -> "DocumentMetadata":
        for permission in self.permissions:
            if permission.role == role:
                permission.capabilities |= set(capabilities)
                return self
        self.permissions.append(
            Permission(role=role, capabilities=set(capabilities))
        )
        return self

    def restricted_to(
        self, categories: Optional[Iterable[MetadataCategory]]
    ) -> "DocumentMetadata":
        """Copy holding only the requested categories."""
        wanted = set(categories or [MetadataCategory.ALL])
        if MetadataCategory.ALL in wanted:
            return self.model_copy(deep=True)
        restricted = DocumentMetadata()
        if MetadataCategory.COLLECTIONS in wanted:
            restricted.collections = list(self.collections)
        if MetadataCategory.PERMISSIONS in wanted:
            restricted.permissions = [
                p.model_copy(deep=True) for p in self.permissions
            ]
        if MetadataCategory.PROPERTIES in wanted:
            restricted.properties = dict(self.properties)
        if MetadataCategory.QUALITY in wanted:
            restricted.quality = self.quality
        return restricted
