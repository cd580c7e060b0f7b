"""
Server-side client for the hosted chat REST API.

    client = Client.from_env()
    channel = client.create_channel("messaging", "general", "tommaso")
    channel.send_message(Message(text="hi there!"), "tommaso")
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from stream_chat import auth
from stream_chat.adapters.rest.client import StreamRESTClient, build_path
from stream_chat.channel import Channel
from stream_chat.schemas import (
    Device,
    Message,
    MessageFlag,
    PartialUserUpdate,
    QueryOption,
    Reaction,
    ReactionResponse,
    SearchRequest,
    SearchResponse,
    SortOption,
    User,
    message_request,
    user_request,
)
from stream_chat.settings import DEFAULT_CHAT_URL, DEFAULT_TIMEOUT_SECONDS, StreamSettings, get_settings

logger = logging.getLogger(__name__)


class Client:
    def __init__(self,
                 api_key: str,
                 api_secret: str,
                 base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 verify_ssl: bool = True,
                 max_retries: int = 3):
        if not api_key or not api_secret:
            raise ValueError("API key and secret are required")

        self.api_key = api_key
        self._api_secret = api_secret
        self.base_url = (base_url or DEFAULT_CHAT_URL).rstrip("/")
        self.rest = StreamRESTClient(
            api_key,
            api_secret,
            self.base_url,
            timeout=timeout or DEFAULT_TIMEOUT_SECONDS,
            verify_ssl=verify_ssl,
            total_retries=max_retries,
        )

    @classmethod
    def from_env(cls, settings: Optional[StreamSettings] = None) -> "Client":
        """Build a client from STREAM_KEY / STREAM_SECRET / STREAM_CHAT_URL / STREAM_CHAT_TIMEOUT."""
        cfg = settings or get_settings()
        if not cfg.key or cfg.secret is None:
            raise ValueError("STREAM_KEY and STREAM_SECRET must be set")
        return cls(
            cfg.key,
            cfg.secret.get_secret_value(),
            base_url=str(cfg.chat_url),
            timeout=cfg.chat_timeout,
            verify_ssl=cfg.verify_ssl,
            max_retries=cfg.max_retries,
        )

    def close(self) -> None:
        self.rest.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- auth ----

    def create_token(self, user_id: str, expire: Optional[datetime] = None,
                     issued_at: Optional[datetime] = None) -> str:
        """Signed token a client app uses to connect as `user_id`; `issued_at` sets the `iat` claim."""
        return auth.user_token(self._api_secret, user_id, expire, issued_at)

    def verify_webhook(self, body: Union[bytes, str], signature: str) -> bool:
        """True when `signature` (X-Signature header) matches the raw webhook body."""
        return auth.verify_webhook(self._api_secret, body, signature)

    # ---- channels ----

    def channel(self, channel_type: str, channel_id: str) -> Channel:
        """Local handle on a channel; no request is made."""
        ch = Channel(type=channel_type, id=channel_id)
        ch._client = self
        return ch

    def create_channel(self, channel_type: str, channel_id: str, user_id: str,
                       data: Optional[Dict[str, Any]] = None) -> Channel:
        """
        Create the channel, or fetch it if it already exists, and return its state.

        Args:
            channel_type: channel type, e.g. "messaging" or "team"
            channel_id: channel id; may be empty when data["members"] is given,
                the service then derives a distinct id from the member list
            user_id: creator of the channel
            data: custom channel data, plus "members"/"invites" lists

        Raises:
            ValueError: If neither an id nor members are provided
        """
        if not channel_type:
            raise ValueError("channel type is empty")
        data = dict(data or {})
        if not channel_id and not data.get("members"):
            raise ValueError("either channel ID or members must be provided")
        if user_id:
            data["created_by"] = {"id": user_id}

        payload = {"watch": False, "state": True, "presence": False, "data": data}
        resp = self.rest.post(build_path("channels", channel_type, channel_id, "query"), json=payload)
        ch = Channel.from_response(self, resp)
        logger.debug(f"Created channel {ch.cid} ({ch.member_count} members)")
        return ch

    def query_channels(self, q: QueryOption, *sort: SortOption) -> List[Channel]:
        payload = {"state": True, "watch": False, "presence": False}
        payload.update(q.to_payload(*sort))
        resp = self.rest.post("channels", json=payload)
        return [Channel.from_response(self, c) for c in resp.get("channels", [])]

    def mark_all_read(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user ID must be not empty")
        self.rest.post("channels/read", json={"user": {"id": user_id}})

    # ---- users ----

    def upsert_user(self, user: User) -> User:
        return self.upsert_users(user)[user.id]

    def upsert_users(self, *users: User) -> Dict[str, User]:
        """Create or replace users, returning the stored users keyed by id."""
        if not users:
            raise ValueError("users are not set")
        payload = {"users": {u.id: user_request(u) for u in users}}
        resp = self.rest.post("users", json=payload)
        return {uid: User.model_validate(u) for uid, u in resp.get("users", {}).items()}

    def partial_update_users(self, *updates: PartialUserUpdate) -> Dict[str, User]:
        if not updates:
            raise ValueError("updates are not set")
        resp = self.rest.patch("users", json={"users": [u.to_payload() for u in updates]})
        return {uid: User.model_validate(u) for uid, u in resp.get("users", {}).items()}

    def query_users(self, q: QueryOption, *sort: SortOption) -> List[User]:
        payload = q.to_payload(*sort)
        resp = self.rest.get("users", params={"payload": json.dumps(payload)})
        return [User.model_validate(u) for u in resp.get("users", [])]

    def delete_user(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        """Options: mark_messages_deleted, hard_delete, delete_conversation_channels."""
        if not user_id:
            raise ValueError("user ID is empty")
        self.rest.delete(build_path("users", user_id), params=options)

    def deactivate_user(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        if not user_id:
            raise ValueError("user ID is empty")
        self.rest.post(build_path("users", user_id, "deactivate"), json=options)

    def reactivate_user(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        if not user_id:
            raise ValueError("user ID is empty")
        self.rest.post(build_path("users", user_id, "reactivate"), json=options)

    def export_user(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not user_id:
            raise ValueError("user ID is empty")
        return self.rest.get(build_path("users", user_id, "export"), params=options)

    # ---- messages ----

    def get_message(self, message_id: str) -> Message:
        if not message_id:
            raise ValueError("message ID must be not empty")
        resp = self.rest.get(build_path("messages", message_id))
        return Message.model_validate(resp["message"])

    def update_message(self, message: Message) -> Message:
        if not message.id:
            raise ValueError("message ID must be not empty")
        resp = self.rest.post(build_path("messages", message.id), json={"message": message_request(message)})
        return Message.model_validate(resp["message"])

    def delete_message(self, message_id: str, hard: bool = False) -> Message:
        if not message_id:
            raise ValueError("message ID must be not empty")
        resp = self.rest.delete(build_path("messages", message_id), params={"hard": hard or None})
        return Message.model_validate(resp["message"])

    def send_reaction(self, reaction: Reaction, message_id: str, user_id: str) -> ReactionResponse:
        if not message_id:
            raise ValueError("message ID must be not empty")
        if not user_id:
            raise ValueError("user ID must be not empty")
        body = reaction.to_payload()
        body["user_id"] = user_id
        resp = self.rest.post(build_path("messages", message_id, "reaction"), json={"reaction": body})
        return ReactionResponse.model_validate(resp)

    def delete_reaction(self, message_id: str, reaction_type: str, user_id: str) -> ReactionResponse:
        if not message_id:
            raise ValueError("message ID is empty")
        if not reaction_type:
            raise ValueError("reaction type is empty")
        if not user_id:
            raise ValueError("user ID is empty")
        resp = self.rest.delete(build_path("messages", message_id, "reaction", reaction_type),
                                params={"user_id": user_id})
        return ReactionResponse.model_validate(resp)

    # ---- moderation ----

    def mute_user(self, target_id: str, user_id: str) -> None:
        _require(target_id=target_id, user_id=user_id)
        self.rest.post("moderation/mute", json={"target_id": target_id, "user_id": user_id})

    def unmute_user(self, target_id: str, user_id: str) -> None:
        _require(target_id=target_id, user_id=user_id)
        self.rest.post("moderation/unmute", json={"target_id": target_id, "user_id": user_id})

    def ban_user(self, target_id: str, user_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        """Ban app-wide, or in one channel when options carry its `type` and `id`."""
        _require(target_id=target_id, user_id=user_id)
        payload = dict(options or {})
        payload.update({"target_user_id": target_id, "user_id": user_id})
        self.rest.post("moderation/ban", json=payload)

    def unban_user(self, target_id: str, options: Optional[Dict[str, Any]] = None) -> None:
        _require(target_id=target_id)
        params = dict(options or {})
        params["target_user_id"] = target_id
        self.rest.delete("moderation/ban", params=params)

    def flag_message(self, message_id: str, user_id: str) -> None:
        _require(message_id=message_id, user_id=user_id)
        self.rest.post("moderation/flag", json={"target_message_id": message_id, "user_id": user_id})

    def unflag_message(self, message_id: str, user_id: str) -> None:
        _require(message_id=message_id, user_id=user_id)
        self.rest.post("moderation/unflag", json={"target_message_id": message_id, "user_id": user_id})

    def flag_user(self, target_id: str, user_id: str) -> None:
        _require(target_id=target_id, user_id=user_id)
        self.rest.post("moderation/flag", json={"target_user_id": target_id, "user_id": user_id})

    def unflag_user(self, target_id: str, user_id: str) -> None:
        _require(target_id=target_id, user_id=user_id)
        self.rest.post("moderation/unflag", json={"target_user_id": target_id, "user_id": user_id})

    def query_message_flags(self, q: QueryOption) -> List[MessageFlag]:
        payload = q.to_payload()
        resp = self.rest.get("moderation/flags/message", params={"payload": json.dumps(payload)})
        return [MessageFlag.model_validate(f) for f in resp.get("flags", [])]

    # ---- search ----

    def search(self, request: SearchRequest) -> List[Message]:
        """Messages matching the request, in service order."""
        return self.search_with_full_response(request).messages

    def search_with_full_response(self, request: SearchRequest) -> SearchResponse:
        """Search results along with the `next`/`previous` pagination cursors."""
        request.validate_request()
        resp = self.rest.get("search", params={"payload": json.dumps(request.to_payload())})
        return SearchResponse.model_validate(resp)

    # ---- devices ----

    def add_device(self, device: Device) -> None:
        self.rest.post("devices", json=device.model_dump(mode="json", exclude_none=True))

    def get_devices(self, user_id: str) -> List[Device]:
        if not user_id:
            raise ValueError("user ID is empty")
        resp = self.rest.get("devices", params={"user_id": user_id})
        return [Device.model_validate(d) for d in resp.get("devices", [])]

    def delete_device(self, user_id: str, device_id: str) -> None:
        _require(user_id=user_id, device_id=device_id)
        self.rest.delete("devices", params={"id": device_id, "user_id": user_id})

    # ---- app ----

    def get_app_config(self) -> Dict[str, Any]:
        return self.rest.get("app").get("app", {})

    def update_app_settings(self, settings: Dict[str, Any]) -> None:
        self.rest.patch("app", json=settings)


def _require(**values: str) -> None:
    for name, value in values.items():
        if not value:
            raise ValueError(f"{name} must be not empty")
