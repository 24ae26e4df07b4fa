"""HTTP client for the random artist and random listing endpoints."""

import logging

import httpx
from pydantic import ValidationError

from artfeed.content.formatting import format_price, ipfs_to_http
from artfeed.content.types import (
    ArtistPayload,
    ArtistRecord,
    ContentRecord,
    ListingRecord,
    RandomListingPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_ARTIST_ENDPOINT = "https://beta.rejkt.xyz/.netlify/functions/randomArtist"
DEFAULT_NFT_ENDPOINT = "https://beta.rejkt.xyz/.netlify/functions/randomListing"
UNKNOWN_ARTIST = "Unknown Artist"


class ContentClient:
    """Fetches one random artist or NFT listing per call.

    ``fetch`` never raises for remote failures: HTTP errors, transport errors
    and malformed payloads are logged and reported as ``None``.

    Example:
        async with ContentClient(api_key="...") as client:
            record = await client.fetch("artist")
    """

    def __init__(
        self,
        artist_endpoint: str = DEFAULT_ARTIST_ENDPOINT,
        nft_endpoint: str = DEFAULT_NFT_ENDPOINT,
        api_key: str | None = None,
        timeout: float = 15.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoints = {"artist": artist_endpoint, "nft": nft_endpoint}
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            headers=headers, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "ContentClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, kind: str) -> ContentRecord | None:
        """Fetch a record of the given kind (``"artist"`` or ``"nft"``)."""
        kind = str(kind)
        if kind == "artist":
            return await self.get_random_artist()
        if kind == "nft":
            return await self.get_random_listing()
        logger.error("content_kind_unknown", extra={"content.kind": kind})
        return None

    async def get_random_artist(self) -> ArtistRecord | None:
        data = await self._get_json("artist")
        if data is None:
            return None
        try:
            payload = ArtistPayload.model_validate(data)
        except ValidationError as e:
            logger.error(
                "content_payload_invalid",
                extra={"content.kind": "artist", "error.message": str(e)},
            )
            return None
        return artist_record(payload)

    async def get_random_listing(self) -> ListingRecord | None:
        data = await self._get_json("nft")
        if data is None:
            return None
        try:
            payload = RandomListingPayload.model_validate(data)
        except ValidationError as e:
            logger.error(
                "content_payload_invalid",
                extra={"content.kind": "nft", "error.message": str(e)},
            )
            return None
        return listing_record(payload)

    async def _get_json(self, kind: str) -> object | None:
        endpoint = self._endpoints[kind]
        try:
            response = await self._client.get(endpoint)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "content_fetch_failed",
                extra={
                    "content.kind": kind,
                    "http.status_code": e.response.status_code,
                },
            )
        except httpx.HTTPError as e:
            logger.error(
                "content_fetch_error",
                extra={"content.kind": kind, "error.message": str(e)},
            )
        except ValueError as e:
            logger.error(
                "content_response_not_json",
                extra={"content.kind": kind, "error.message": str(e)},
            )
        return None


def artist_record(payload: ArtistPayload) -> ArtistRecord:
    artist = payload.artist
    image = artist.logo
    if not image and payload.sample_listing is not None:
        image = payload.sample_listing.token.display_uri
    return ArtistRecord(
        id=artist.address,
        name=artist.alias or UNKNOWN_ARTIST,
        address=artist.address,
        image_url=ipfs_to_http(image),
        profile_link=payload.profile_link,
        website=artist.website or None,
        twitter=artist.twitter or None,
        tzdomain=artist.tzdomain or None,
        telegram=artist.telegram or None,
    )


def listing_record(payload: RandomListingPayload) -> ListingRecord:
    listing = payload.listing
    token = listing.token
    return ListingRecord(
        id=token.token_id,
        name=token.name or f"Token #{token.token_id}",
        description=token.description or None,
        image_url=ipfs_to_http(token.display_uri),
        price=format_price(listing.price_xtz) if listing.price_xtz is not None else None,
        referral_link=payload.referral_link,
        seller_alias=listing.seller.alias if listing.seller else None,
    )
