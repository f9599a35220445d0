"""
Grounding Metadata Schemas
Typed view of the web sources a provider used to produce a response
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ProviderModel(BaseModel):
    """Provider payloads use camelCase; unknown keys are ignored"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WebSource(_ProviderModel):
    """A web page the response was grounded on"""
    uri: Optional[str] = None
    title: Optional[str] = None


class GroundingChunk(_ProviderModel):
    """One grounding chunk; only web-sourced chunks carry `web`"""
    web: Optional[WebSource] = None


class GroundingMetadata(_ProviderModel):
    """Grounding metadata with explicit defaults at every level"""
    grounding_chunks: List[GroundingChunk] = Field(default_factory=list, alias="groundingChunks")
    web_search_queries: List[str] = Field(default_factory=list, alias="webSearchQueries")

    @field_validator("grounding_chunks", "web_search_queries", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v
