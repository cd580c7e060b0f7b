"""
Channel handle: a channel's state plus the operations scoped to it.

A Channel is bound to the Client that produced it; every method is one
request against `channels/{type}/{id}` (or a moderation endpoint scoped by
type and id) followed by a mapping of the reply onto local records.
"""

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from stream_chat.adapters.rest.client import build_path
from stream_chat.schemas import (
    ChannelRead,
    ExtraDataModel,
    ImportChannelMessagesResponse,
    Member,
    Message,
    PartialUpdate,
    QueryOption,
    SendFileRequest,
    SortOption,
    User,
    message_request,
)

if TYPE_CHECKING:
    from stream_chat.client import Client

logger = logging.getLogger(__name__)


class Channel(ExtraDataModel):
    id: str = ""
    type: str = ""
    cid: str = ""
    team: Optional[str] = None
    config: Optional[Dict[str, Any]] = None

    created_by: Optional[User] = None
    disabled: bool = False
    frozen: bool = False

    member_count: int = 0
    members: List[Member] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    read: List[ChannelRead] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None

    _client: Any = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _fill_cid(self) -> "Channel":
        if not self.cid and self.type and self.id:
            self.cid = f"{self.type}:{self.id}"
        return self

    @classmethod
    def from_response(cls, client: Optional["Client"], resp: Dict[str, Any]) -> "Channel":
        """Build a channel from a channel state reply (`channel` plus members/messages/read)."""
        ch = cls.model_validate(_state_fields(resp))
        ch._client = client
        return ch

    @property
    def client(self) -> Optional["Client"]:
        return self._client

    def _require_client(self) -> "Client":
        if self._client is None:
            raise ValueError("channel is not bound to a client")
        return self._client

    def _path(self, *parts: str) -> str:
        if not self.type or not self.id:
            raise ValueError("channel type and id are required")
        return build_path("channels", self.type, self.id, *parts)

    def _apply(self, resp: Dict[str, Any], state: bool = True) -> None:
        fresh = Channel.model_validate(_state_fields(resp))
        for name in Channel.model_fields:
            if not state and (name not in fresh.model_fields_set
                              or name in _STATE_FIELDS and not resp.get(name)):
                continue
            setattr(self, name, getattr(fresh, name))

    # ---- lifecycle ----

    def refresh(self) -> None:
        """Reload the channel state (members, messages, reads, custom data) in place."""
        resp = self._require_client().rest.post(
            self._path("query"), json={"state": True, "watch": False, "presence": False}
        )
        self._apply(resp)
        logger.debug(f"Refreshed {self.cid}: {len(self.members)} members, {len(self.messages)} messages")

    def delete(self) -> None:
        self._require_client().rest.delete(self._path())

    def truncate(self) -> None:
        """Remove every message from the channel; the channel itself stays."""
        self._require_client().rest.post(self._path("truncate"))

    def update(self, data: Dict[str, Any], message: Optional[Message] = None) -> None:
        """
        Replace the channel's custom data.

        Fields left out of `data` are removed on the service side; use
        partial_update to change individual keys.
        """
        payload: Dict[str, Any] = {"data": data}
        if message is not None:
            payload["message"] = message_request(message)
        resp = self._require_client().rest.post(self._path(), json=payload)
        self._apply_channel(resp)

    def partial_update(self, update: PartialUpdate) -> None:
        resp = self._require_client().rest.patch(self._path(), json=update.to_payload())
        self._apply_channel(resp)

    def _apply_channel(self, resp: Dict[str, Any]) -> None:
        # update replies carry the channel and sometimes members, never messages
        if resp.get("channel"):
            self._apply(resp, state=False)

    # ---- membership ----

    def _update_members(self, payload: Dict[str, Any], message: Optional[Message]) -> Dict[str, Any]:
        if message is not None:
            payload["message"] = message_request(message)
        return self._require_client().rest.post(self._path(), json=payload)

    def add_members(self, user_ids: Iterable[str], message: Optional[Message] = None,
                    options: Optional[Dict[str, Any]] = None) -> None:
        """
        Add users to the channel.

        Args:
            user_ids: ids of the users to add
            message: optional system message announcing the change
            options: extra request flags, e.g. {"hide_history": True}
        """
        user_ids = _require_ids(user_ids)
        payload: Dict[str, Any] = dict(options or {})
        payload["add_members"] = user_ids
        self._update_members(payload, message)

    def remove_members(self, user_ids: Iterable[str], message: Optional[Message] = None) -> None:
        user_ids = _require_ids(user_ids)
        self._update_members({"remove_members": user_ids}, message)
        removed = set(user_ids)
        self.members = [m for m in self.members if _member_id(m) not in removed]

    def invite_members(self, *user_ids: str) -> None:
        self._update_members({"invites": _require_ids(user_ids)}, None)

    def accept_invite(self, user_id: str, message: Optional[Message] = None) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self._update_members({"accept_invite": True, "user_id": user_id}, message)

    def reject_invite(self, user_id: str, message: Optional[Message] = None) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self._update_members({"reject_invite": True, "user_id": user_id}, message)

    def add_moderators(self, *user_ids: str) -> None:
        self.add_moderators_with_message(user_ids, None)

    def add_moderators_with_message(self, user_ids: Iterable[str], message: Optional[Message]) -> None:
        self._update_members({"add_moderators": _require_ids(user_ids)}, message)

    def demote_moderators(self, *user_ids: str) -> None:
        self.demote_moderators_with_message(user_ids, None)

    def demote_moderators_with_message(self, user_ids: Iterable[str], message: Optional[Message]) -> None:
        self._update_members({"demote_moderators": _require_ids(user_ids)}, message)

    def query_members(self, q: QueryOption, *sort: SortOption) -> List[Member]:
        payload = q.to_payload(*sort)
        payload.update({"type": self.type, "id": self.id})
        resp = self._require_client().rest.get("members", params={"payload": json.dumps(payload)})
        return [Member.model_validate(m) for m in resp.get("members", [])]

    # ---- moderation ----

    def ban_user(self, target_id: str, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Ban `target_id` from this channel on behalf of `user_id`.

        Options are forwarded as-is, e.g. {"timeout": 3600, "reason": "spam"}
        (timeout in minutes).
        """
        if not target_id:
            raise ValueError("target ID must be not empty")
        payload = dict(options or {})
        payload.update({"type": self.type, "id": self.id})
        self._require_client().ban_user(target_id, user_id, payload)

    def unban_user(self, target_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        if not target_id:
            raise ValueError("target ID must be not empty")
        payload = dict(options or {})
        payload.update({"type": self.type, "id": self.id})
        self._require_client().unban_user(target_id, payload)

    def mute(self, user_id: str, expiration: Optional[int] = None) -> "ChannelMuteResponse":
        """Mute the channel for `user_id`; `expiration` is in milliseconds."""
        if not user_id:
            raise ValueError("user ID must be not empty")
        payload: Dict[str, Any] = {"channel_cid": self.cid, "user_id": user_id}
        if expiration is not None:
            payload["expiration"] = expiration
        resp = self._require_client().rest.post("moderation/mute/channel", json=payload)
        return ChannelMuteResponse.model_validate(resp)

    def unmute(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self._require_client().rest.post(
            "moderation/unmute/channel", json={"channel_cid": self.cid, "user_id": user_id}
        )

    def hide(self, user_id: str, clear_history: bool = False) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self._require_client().rest.post(
            self._path("hide"), json={"user_id": user_id, "clear_history": clear_history}
        )

    def show(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self._require_client().rest.post(self._path("show"), json={"user_id": user_id})

    # ---- messages ----

    def send_message(self, message: Message, user_id: str, skip_push: bool = False,
                     skip_enrich_url: bool = False) -> Message:
        """
        Send a message as `user_id` and return it as stored by the service
        (with its id, rendered html and timestamps).
        """
        if not user_id:
            raise ValueError("user ID must be not empty")
        body = message_request(message)
        body["user_id"] = user_id
        payload: Dict[str, Any] = {"message": body}
        if skip_push:
            payload["skip_push"] = True
        if skip_enrich_url:
            payload["skip_enrich_url"] = True
        resp = self._require_client().rest.post(self._path("message"), json=payload)
        return Message.model_validate(resp["message"])

    def import_messages(self, *messages: Message) -> ImportChannelMessagesResponse:
        """Import historical messages, keeping their own created_at timestamps."""
        if not messages:
            raise ValueError("at least one message is required")
        payload = {"messages": [message_request(m, keep_timestamps=True) for m in messages]}
        resp = self._require_client().rest.post(self._path("import"), json=payload)
        return ImportChannelMessagesResponse.model_validate(resp)

    def get_replies(self, parent_id: str, options: Optional[Dict[str, Any]] = None) -> List[Message]:
        """Replies to `parent_id`; options are pagination params (limit, id_lt, ...)."""
        if not parent_id:
            raise ValueError("parent ID must be not empty")
        resp = self._require_client().rest.get(build_path("messages", parent_id, "replies"), params=options)
        return [Message.model_validate(m) for m in resp.get("messages", [])]

    def send_event(self, event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        if not event.get("type"):
            raise ValueError("event type must be not empty")
        if not user_id:
            raise ValueError("user ID must be not empty")
        payload = dict(event)
        payload["user_id"] = user_id
        resp = self._require_client().rest.post(self._path("event"), json={"event": payload})
        return resp.get("event", {})

    def mark_read(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        payload = dict(options or {})
        payload["user_id"] = user_id
        self._require_client().rest.post(self._path("read"), json=payload)

    # ---- uploads ----

    def _send_upload(self, kind: str, request: SendFileRequest) -> str:
        if not request.file_name:
            raise ValueError("file name must be not empty")
        if request.user is None or not request.user.id:
            raise ValueError("user must be set")
        resp = self._require_client().rest.request(
            "POST",
            self._path(kind),
            data={"user": json.dumps({"id": request.user.id})},
            files={"file": (request.file_name, request.reader, request.content_type)},
        )
        return resp.get("file", "")

    def send_file(self, request: SendFileRequest) -> str:
        """Upload a file to the channel, returning its URL."""
        return self._send_upload("file", request)

    def send_image(self, request: SendFileRequest) -> str:
        """Upload an image to the channel, returning its URL."""
        return self._send_upload("image", request)

    def delete_file(self, location: str) -> None:
        if not location:
            raise ValueError("file url must be not empty")
        self._require_client().rest.delete(self._path("file"), params={"url": location})

    def delete_image(self, location: str) -> None:
        if not location:
            raise ValueError("image url must be not empty")
        self._require_client().rest.delete(self._path("image"), params={"url": location})


class ChannelMute(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: Optional[User] = None
    channel: Optional[Channel] = None
    expires: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChannelMuteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    channel_mute: ChannelMute


_STATE_FIELDS = ("members", "messages", "read")


def _state_fields(resp: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(resp.get("channel") or {})
    for key in _STATE_FIELDS:
        data[key] = resp.get(key) or []
    return data


def _require_ids(user_ids: Iterable[str]) -> List[str]:
    if isinstance(user_ids, str):
        raise ValueError("user IDs must be a list, not a single string")
    ids = [u for u in user_ids]
    if not ids:
        raise ValueError("user IDs are empty")
    if any(not u for u in ids):
        raise ValueError("user IDs must be not empty")
    return ids


def _member_id(member: Member) -> Optional[str]:
    if member.user is not None:
        return member.user.id
    return member.user_id
