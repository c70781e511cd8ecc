from typing import Optional

from pydantic import BaseModel, Field


class ResolvedAsset(BaseModel):
    """
    Outcome of a cascading provider lookup.
    """

    query_key: str = Field(
        ...,
        description="Lookup key, e.g. a normalized company name"
    )

    found: bool = Field(
        default=False,
        description="True when some provider returned a usable resource"
    )

    value: Optional[str] = Field(
        default=None,
        description="Resource URL or storage handle"
    )

    provider_used: Optional[str] = Field(
        default=None,
        description="Name of the provider that succeeded"
    )

    from_fallback: bool = Field(
        default=False,
        description="True when the last-resort fallback provider produced the value"
    )

    @classmethod
    def not_found(cls, query_key: str) -> "ResolvedAsset":
        return cls(query_key=query_key, found=False)
