"""Canonical, provider-agnostic token representation (IndexerData).

Every provider payload is normalized into these models before it is staged.
Fields are snake_case in Python and accept camelCase on input, so manually
supplied records from admin tooling validate either way.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UNTITLED = "Untitled"


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class Dimensions(_CanonicalModel):
    width: int
    height: int


class Attribute(_CanonicalModel):
    """One ordered key/value trait."""

    trait_type: str
    value: Any = None


class SocialLinks(_CanonicalModel):
    twitter: str | None = None
    instagram: str | None = None
    discord: str | None = None
    website: str | None = None


class CreatorData(_CanonicalModel):
    """Creator identity resolved for a token.

    resolution_source records which upstream signal produced the identity
    (embedded_creator, verified_creators, objkt, manual).
    """

    address: str
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    profile_url: str | None = None
    website_url: str | None = None
    ens_name: str | None = None
    is_verified: bool = False
    twitter_handle: str | None = None
    instagram_handle: str | None = None
    resolution_source: str | None = None
    social_links: SocialLinks | None = None


class CollectionData(_CanonicalModel):
    slug: str
    title: str | None = None
    description: str | None = None
    contract_address: str | None = None
    parent_contract: str | None = None
    chain_identifier: str | None = None
    website_url: str | None = None
    project_url: str | None = None
    image_url: str | None = None
    banner_image_url: str | None = None
    discord_url: str | None = None
    telegram_url: str | None = None
    medium_url: str | None = None
    is_generative_art: bool = False
    is_shared_contract: bool = False
    safelist_status: str | None = None
    fees: list[dict[str, Any]] | None = None
    total_supply: int | None = None
    current_supply: int | None = None
    mint_start_date: datetime | None = None
    mint_end_date: datetime | None = None
    floor_price: float | None = None
    volume_traded: float | None = None
    external_collection_id: str | None = None


class IndexerData(_CanonicalModel):
    """Canonical token record. Every field except title is optional."""

    contract_address: str | None = None
    token_id: str | None = None
    title: str = UNTITLED
    description: str | None = None
    image_url: str | None = None
    animation_url: str | None = None
    generator_url: str | None = None
    thumbnail_url: str | None = None
    metadata_url: str | None = None
    mime: str | None = None
    is_generative_art: bool = False
    blockchain: str = "unknown"
    token_standard: str | None = None
    supply: int | None = None
    mint_date: datetime | None = None
    dimensions: Dimensions | None = None
    attributes: list[Attribute] = Field(default_factory=list)
    features: dict[str, Any] | None = None
    creator: CreatorData | None = None
    collection: CollectionData | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _placeholder_title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNTITLED
        return value

    @property
    def uid(self) -> str | None:
        if not self.contract_address or not self.token_id:
            return None
        return f"{self.contract_address}:{self.token_id}"

    def to_payload(self) -> dict[str, Any]:
        """Serialize for storage in ArtworkIndex.normalized_data."""
        return self.model_dump(mode="json", exclude_none=True)
