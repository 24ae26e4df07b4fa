"""Plain-text rendering of content records."""

from decimal import Decimal

from artfeed.content.types import ArtistRecord, ContentRecord, ListingRecord

IPFS_GATEWAY = "https://ipfs.io/ipfs/"
DESCRIPTION_LIMIT = 200
MICROTEZ_PER_TEZ = Decimal(1_000_000)


def ipfs_to_http(uri: str | None) -> str | None:
    """Rewrite an ``ipfs://`` URI to the public gateway. Other URIs pass through."""
    if not uri:
        return None
    if uri.startswith("ipfs://"):
        return IPFS_GATEWAY + uri.removeprefix("ipfs://")
    return uri


def format_price(microtez: int | float | str) -> str:
    """Format a price in microtez as tez, e.g. ``2500000`` -> ``"2.5 ꜩ"``."""
    tez = (Decimal(str(microtez)) / MICROTEZ_PER_TEZ).normalize()
    return f"{tez:f} ꜩ"


def truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def render_message(record: ContentRecord) -> str:
    """Render a record as the message posted by a schedule."""
    if isinstance(record, ArtistRecord):
        lines = [f"🎨 Random Artist: {record.name}"]
        if record.image_url:
            lines.append(f"Image: {record.image_url}")
        if record.profile_link:
            lines.extend(["", f"View on REJKT: {record.profile_link}"])
        return "\n".join(lines)

    if isinstance(record, ListingRecord):
        lines = [f"🖼️ Random NFT: {record.name}"]
        if record.description:
            lines.append(f"Description: {truncate(record.description)}")
        if record.price:
            lines.append(f"Price: {record.price}")
        if record.image_url:
            lines.append(f"Image: {record.image_url}")
        if record.referral_link:
            lines.extend(["", f"View on Objkt: {record.referral_link}"])
        return "\n".join(lines)

    raise TypeError(f"Unsupported content record: {type(record).__name__}")
