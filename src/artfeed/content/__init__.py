"""Remote content: random artists and NFT listings.

Public API:
- ContentClient: Fetches and validates records from the content API
- render_message: Renders a record as a plain-text message
"""

from artfeed.content.formatting import format_price, ipfs_to_http, render_message
from artfeed.content.types import ArtistRecord, ContentRecord, ListingRecord
from artfeed.content.client import ContentClient

__all__ = [
    "ArtistRecord",
    "ContentClient",
    "ContentRecord",
    "ListingRecord",
    "format_price",
    "ipfs_to_http",
    "render_message",
]
