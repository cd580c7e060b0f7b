"""Python client for the hosted chat REST API."""

from stream_chat.channel import Channel, ChannelMute, ChannelMuteResponse
from stream_chat.client import Client
from stream_chat.errors import RateLimit, StreamAPIError
from stream_chat.schemas import (
    Attachment,
    ChannelRead,
    Device,
    ImportChannelMessagesResponse,
    Member,
    Message,
    MessageFlag,
    PartialUpdate,
    PartialUserUpdate,
    QueryOption,
    Reaction,
    ReactionResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SendFileRequest,
    SortOption,
    User,
)
from stream_chat.version import __version__

__all__ = [
    "Attachment",
    "Channel",
    "ChannelMute",
    "ChannelMuteResponse",
    "ChannelRead",
    "Client",
    "Device",
    "ImportChannelMessagesResponse",
    "Member",
    "Message",
    "MessageFlag",
    "PartialUpdate",
    "PartialUserUpdate",
    "QueryOption",
    "RateLimit",
    "Reaction",
    "ReactionResponse",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
    "SendFileRequest",
    "SortOption",
    "StreamAPIError",
    "User",
    "__version__",
]
