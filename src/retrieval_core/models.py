"""
Persisted index schema.
"""

from __future__ import annotations

import math

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    field_validator,
    model_validator,
)

FORMAT_VERSION = 1


class PersistedDocument(BaseModel):
    """One embedded chunk as written to disk."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sequence_id: int = Field(
        ge=0,
        strict=True,
        validation_alias=AliasChoices("sequenceId", "sequence_id", "id"),
        serialization_alias="sequenceId",
        description="Zero-based position within the collection",
    )
    text: str = Field(description="Chunk text")
    embedding: list[StrictFloat] = Field(description="Embedding vector")

    @field_validator("embedding")
    @classmethod
    def _finite(cls, value: list[float]) -> list[float]:
        if not all(math.isfinite(component) for component in value):
            raise ValueError("embedding contains non-finite values")
        return value


class PersistedCollection(BaseModel):
    """Versioned envelope around a collection's ordered documents."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    format_version: int = Field(
        default=FORMAT_VERSION,
        validation_alias=AliasChoices("formatVersion", "format_version"),
        serialization_alias="formatVersion",
    )
    collection_id: str = Field(
        validation_alias=AliasChoices("collectionId", "collection_id"),
        serialization_alias="collectionId",
    )
    dimensions: int = Field(ge=1, strict=True, description="Length of every embedding")
    documents: list[PersistedDocument]

    @model_validator(mode="after")
    def _consistent(self) -> "PersistedCollection":
        if self.format_version > FORMAT_VERSION:
            raise ValueError(
                f"unsupported format version {self.format_version} "
                f"(this build reads up to {FORMAT_VERSION})"
            )
        previous = -1
        for document in self.documents:
            if document.sequence_id <= previous:
                raise ValueError(
                    f"sequence id {document.sequence_id} does not follow {previous}"
                )
            previous = document.sequence_id
            if len(document.embedding) != self.dimensions:
                raise ValueError(
                    f"document {document.sequence_id} has {len(document.embedding)} "
                    f"components, envelope declares {self.dimensions}"
                )
        return self
