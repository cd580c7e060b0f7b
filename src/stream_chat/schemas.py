"""
Data-transfer records mirroring the chat API JSON schema.

Records that accept custom fields (User, Message, Attachment, Reaction,
Channel) keep any key they do not declare in `extra_data`, and flatten it
back into the payload when dumped.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer, model_validator


MESSAGE_TYPE_REGULAR = "regular"
MESSAGE_TYPE_REPLY = "reply"
MESSAGE_TYPE_SYSTEM = "system"
MESSAGE_TYPE_ERROR = "error"
MESSAGE_TYPE_EPHEMERAL = "ephemeral"
MESSAGE_TYPE_DELETED = "deleted"

PUSH_PROVIDER_APN = "apn"
PUSH_PROVIDER_FIREBASE = "firebase"
PUSH_PROVIDER_XIAOMI = "xiaomi"
PUSH_PROVIDER_HUAWEI = "huawei"

PushProvider = Literal["apn", "firebase", "xiaomi", "huawei"]


class ExtraDataModel(BaseModel):
    """Base for records carrying arbitrary custom fields next to the declared ones."""

    extra_data: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_extra_data(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        extra = dict(data.get("extra_data") or {})
        fields: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "extra_data":
                continue
            if key in known:
                fields[key] = value
            else:
                extra[key] = value
        fields["extra_data"] = extra
        return fields

    @model_serializer(mode="wrap")
    def _flatten_extra_data(self, handler):
        data = handler(self)
        extra = data.pop("extra_data", None) or {}
        for key, value in extra.items():
            # declared fields win over a custom field of the same name
            data.setdefault(key, value)
        return data

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class User(ExtraDataModel):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: Optional[str] = None
    teams: Optional[List[str]] = None

    online: Optional[bool] = None
    invisible: Optional[bool] = None
    banned: Optional[bool] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_active: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


# server-managed fields the upsert endpoint rejects
_USER_READ_ONLY = ("online", "created_at", "updated_at", "last_active", "deactivated_at", "deleted_at")


def user_request(user: User) -> Dict[str, Any]:
    payload = user.to_payload()
    for key in _USER_READ_ONLY:
        payload.pop(key, None)
    return payload


class Attachment(ExtraDataModel):
    type: Optional[str] = None  # image, video, audio, file, giphy
    fallback: Optional[str] = None
    color: Optional[str] = None
    pretext: Optional[str] = None

    author_name: Optional[str] = None
    author_link: Optional[str] = None
    author_icon: Optional[str] = None

    title: Optional[str] = None
    title_link: Optional[str] = None
    text: Optional[str] = None

    image_url: Optional[str] = None
    thumb_url: Optional[str] = None
    asset_url: Optional[str] = None
    og_scrape_url: Optional[str] = None


class Reaction(ExtraDataModel):
    message_id: Optional[str] = None
    user_id: Optional[str] = None
    type: str
    score: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Message(ExtraDataModel):
    id: Optional[str] = None
    cid: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    type: Optional[str] = None
    silent: Optional[bool] = None

    user: Optional[User] = None
    attachments: Optional[List[Attachment]] = None
    latest_reactions: Optional[List[Reaction]] = None
    own_reactions: Optional[List[Reaction]] = None
    reaction_counts: Optional[Dict[str, int]] = None

    parent_id: Optional[str] = None
    show_in_channel: Optional[bool] = None
    reply_count: Optional[int] = None

    mentioned_users: Optional[List[User]] = None
    pinned: Optional[bool] = None
    shadowed: Optional[bool] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


def message_request(message: Message, keep_timestamps: bool = False) -> Dict[str, Any]:
    """
    Shape a Message for a write endpoint.

    Users are sent by id only (`user_id`, `mentioned_users` as ids) and
    server-rendered fields are dropped. `keep_timestamps` preserves the
    caller's `created_at` and `type`, which only the import endpoint accepts.
    """
    payload: Dict[str, Any] = {}
    if message.id:
        payload["id"] = message.id
    if message.text is not None:
        payload["text"] = message.text
    if message.attachments:
        payload["attachments"] = [a.to_payload() for a in message.attachments]
    if message.user is not None:
        payload["user_id"] = message.user.id
    if message.mentioned_users:
        payload["mentioned_users"] = [u.id for u in message.mentioned_users]
    if message.parent_id:
        payload["parent_id"] = message.parent_id
    if message.show_in_channel is not None:
        payload["show_in_channel"] = message.show_in_channel
    if message.silent is not None:
        payload["silent"] = message.silent
    if message.pinned is not None:
        payload["pinned"] = message.pinned
    if keep_timestamps:
        if message.created_at is not None:
            payload["created_at"] = message.model_dump(mode="json", include={"created_at"})["created_at"]
        if message.type:
            payload["type"] = message.type
    for key, value in message.to_payload().items():
        if key not in Message.model_fields:
            payload.setdefault(key, value)
    return payload


class Member(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = None
    user: Optional[User] = None
    role: Optional[str] = None
    channel_role: Optional[str] = None
    is_moderator: Optional[bool] = None

    invited: bool = False
    invite_accepted_at: Optional[datetime] = None
    invite_rejected_at: Optional[datetime] = None

    banned: bool = False
    shadow_banned: bool = False

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChannelRead(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: Optional[User] = None
    last_read: Optional[datetime] = None
    unread_messages: int = 0


class MessageFlag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    created_by_automod: bool = False
    user: Optional[User] = None
    message: Optional[Message] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[User] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None


class Device(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    push_provider: PushProvider
    user_id: str
    created_at: Optional[datetime] = None


class SortOption(BaseModel):
    field: str
    direction: int = 1  # 1 ascending, -1 descending

    @field_validator("direction")
    @classmethod
    def _check_direction(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError("sort direction must be 1 or -1")
        return v

    def to_payload(self) -> Dict[str, Any]:
        return {"field": self.field, "direction": self.direction}


class QueryOption(BaseModel):
    """Filter, sort and pagination forwarded as-is to the query endpoints."""

    filter: Dict[str, Any] = Field(default_factory=dict)
    sort: List[SortOption] = Field(default_factory=list)

    user_id: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    message_limit: Optional[int] = None  # messages returned per channel
    member_limit: Optional[int] = None   # members returned per channel

    def to_payload(self, *sort: SortOption) -> Dict[str, Any]:
        sorters = list(sort) or self.sort
        payload: Dict[str, Any] = {"filter_conditions": self.filter}
        if sorters:
            payload["sort"] = [s.to_payload() for s in sorters]
        for key in ("user_id", "limit", "offset", "message_limit", "member_limit"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


class SearchRequest(BaseModel):
    """
    Message search parameters.

    `query` (full text) and `message_filters` are alternatives; `offset`
    pagination cannot be combined with `sort` or a `next` cursor.
    """

    query: str = ""
    filters: Dict[str, Any] = Field(default_factory=dict)
    message_filters: Dict[str, Any] = Field(default_factory=dict)
    sort: List[SortOption] = Field(default_factory=list)

    limit: Optional[int] = None
    offset: Optional[int] = None
    next: Optional[str] = None

    def validate_request(self) -> None:
        if not self.filters:
            raise ValueError("search filters are required")
        if self.query and self.message_filters:
            raise ValueError("only one of query or message_filters can be set")
        if self.offset:
            if self.sort:
                raise ValueError("cannot use offset with sort")
            if self.next:
                raise ValueError("cannot use offset with next")

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"filter_conditions": self.filters}
        if self.query:
            payload["query"] = self.query
        if self.message_filters:
            payload["message_filter_conditions"] = self.message_filters
        if self.sort:
            payload["sort"] = [s.to_payload() for s in self.sort]
        for key in ("limit", "offset", "next"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        return payload


class SearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: Message


class SearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: List[SearchResult] = Field(default_factory=list)
    next: Optional[str] = None
    previous: Optional[str] = None

    @property
    def messages(self) -> List[Message]:
        return [r.message for r in self.results]


class PartialUpdate(BaseModel):
    set: Dict[str, Any] = Field(default_factory=dict)
    unset: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {"set": self.set, "unset": self.unset}


class PartialUserUpdate(PartialUpdate):
    id: str

    def to_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "set": self.set, "unset": self.unset}


class ImportChannelMessagesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: List[Message] = Field(default_factory=list)


@dataclass
class SendFileRequest:
    """Upload of a file or image to a channel."""
    reader: BinaryIO
    file_name: str
    user: User
    content_type: str = "application/octet-stream"


class ReactionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: Optional[Message] = None
    reaction: Optional[Reaction] = None
