"""Content types.

Remote payloads are validated with pydantic at the client boundary, then
mapped to the frozen records the rest of the application works with.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProfilePayload(_Payload):
    """An artist or seller profile as returned by the content API."""

    address: str
    alias: str | None = None
    website: str | None = None
    tzdomain: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    logo: str | None = None


class TokenPayload(_Payload):
    token_id: str
    name: str | None = None
    description: str | None = None
    display_uri: str | None = None

    @field_validator("token_id", mode="before")
    @classmethod
    def _coerce_token_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class ListingPayload(_Payload):
    id: int | None = None
    price_xtz: int | float | None = None
    token: TokenPayload
    seller: ProfilePayload | None = None


class ArtistPayload(_Payload):
    """Response body of the random artist endpoint."""

    artist: ProfilePayload
    sample_listing: ListingPayload | None = Field(default=None, alias="sampleListing")
    profile_link: str | None = Field(default=None, alias="profileLink")


class RandomListingPayload(_Payload):
    """Response body of the random listing endpoint."""

    listing: ListingPayload
    referral_link: str | None = Field(default=None, alias="referralLink")


@dataclass(frozen=True)
class ArtistRecord:
    id: str
    name: str
    address: str
    image_url: str | None = None
    profile_link: str | None = None
    website: str | None = None
    twitter: str | None = None
    tzdomain: str | None = None
    telegram: str | None = None
    kind: Literal["artist"] = field(default="artist", init=False)


@dataclass(frozen=True)
class ListingRecord:
    id: str
    name: str
    description: str | None = None
    image_url: str | None = None
    price: str | None = None
    referral_link: str | None = None
    seller_alias: str | None = None
    kind: Literal["nft"] = field(default="nft", init=False)


ContentRecord = ArtistRecord | ListingRecord
