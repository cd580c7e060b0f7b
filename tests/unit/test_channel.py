"""Unit tests for Channel operations against a mocked session."""
import io
import json
from datetime import datetime, timezone

import pytest

from stream_chat.channel import Channel, ChannelMuteResponse
from stream_chat.schemas import (
    Message,
    PartialUpdate,
    QueryOption,
    SendFileRequest,
    SortOption,
    User,
)


@pytest.fixture
def channel(client):
    ch = Channel.from_response(client, {
        "channel": {"id": "general", "type": "messaging", "created_by": {"id": "tommaso"}},
        "members": [
            {"user_id": "u1", "user": {"id": "u1"}, "role": "member"},
            {"user_id": "u2", "user": {"id": "u2"}, "role": "member"},
        ],
    })
    client.rest.session.request.reset_mock()
    return ch


class TestState:
    """Channel state mapping."""

    def test_cid_derived_from_type_and_id(self):
        assert Channel(type="messaging", id="general").cid == "messaging:general"

    def test_unbound_channel_fails(self):
        with pytest.raises(ValueError, match="not bound"):
            Channel(type="messaging", id="general").delete()

    def test_missing_id_fails(self, client):
        with pytest.raises(ValueError, match="type and id"):
            client.channel("messaging", "").truncate()

    def test_refresh_updates_in_place(self, channel, reply, last_call):
        reply({
            "channel": {"id": "general", "type": "messaging", "color": "red", "member_count": 1,
                        "last_message_at": "2021-01-01T00:00:01Z"},
            "members": [{"user": {"id": "u3"}, "role": "moderator"}],
            "messages": [{"id": "m1", "text": "hello"}],
        })
        channel.refresh()

        _, path, kwargs = last_call()
        assert path == "channels/messaging/general/query"
        assert kwargs["json"]["state"] is True
        assert channel.extra_data == {"color": "red"}
        assert [m.user.id for m in channel.members] == ["u3"]
        assert channel.members[0].role == "moderator"
        assert channel.messages[0].id == "m1"
        assert channel.last_message_at == datetime(2021, 1, 1, 0, 0, 1, tzinfo=timezone.utc)

    def test_refresh_drops_unset_custom_fields(self, channel, reply):
        channel.extra_data = {"color": "blue", "age": 30}
        reply({"channel": {"id": "general", "type": "messaging", "color": "red"}})
        channel.refresh()
        assert channel.extra_data.get("age") is None
        assert channel.extra_data["color"] == "red"


class TestLifecycle:
    """Delete, truncate and updates."""

    def test_delete(self, channel, last_call):
        channel.delete()
        assert last_call()[:2] == ("DELETE", "channels/messaging/general")

    def test_truncate(self, channel, last_call):
        channel.truncate()
        assert last_call()[:2] == ("POST", "channels/messaging/general/truncate")

    def test_update_with_message(self, channel, reply, last_call):
        reply({"channel": {"id": "general", "type": "messaging", "color": "blue"}})
        channel.update({"color": "blue"}, Message(text="color is blue", user=User(id="u1")))

        method, path, kwargs = last_call()
        assert (method, path) == ("POST", "channels/messaging/general")
        assert kwargs["json"] == {
            "data": {"color": "blue"},
            "message": {"text": "color is blue", "user_id": "u1"},
        }
        assert channel.extra_data == {"color": "blue"}
        # update replies without members leave the local list alone
        assert len(channel.members) == 2

    def test_update_keeps_fields_missing_from_reply(self, channel, reply):
        channel.member_count = 3
        channel.config = {"typing_events": True}
        reply({"channel": {"id": "general", "type": "messaging", "color": "blue"}})
        channel.update({"color": "blue"})

        assert channel.member_count == 3
        assert channel.created_by.id == "tommaso"
        assert channel.config == {"typing_events": True}
        assert channel.extra_data == {"color": "blue"}

    def test_partial_update(self, channel, reply, last_call):
        reply({"channel": {"id": "general", "type": "messaging", "color": "red"}})
        channel.partial_update(PartialUpdate(set={"color": "red"}, unset=["age"]))

        method, path, kwargs = last_call()
        assert (method, path) == ("PATCH", "channels/messaging/general")
        assert kwargs["json"] == {"set": {"color": "red"}, "unset": ["age"]}
        assert channel.extra_data == {"color": "red"}


class TestMembership:
    """Member, invite and moderator changes."""

    def test_add_members_with_options(self, channel, last_call):
        channel.add_members(["u9"], Message(text="welcome", user=User(id="u9")), {"hide_history": True})
        _, path, kwargs = last_call()
        assert path == "channels/messaging/general"
        assert kwargs["json"] == {
            "hide_history": True,
            "add_members": ["u9"],
            "message": {"text": "welcome", "user_id": "u9"},
        }

    def test_add_members_requires_ids(self, channel):
        with pytest.raises(ValueError):
            channel.add_members([])
        with pytest.raises(ValueError):
            channel.add_members([""])

    def test_single_string_is_rejected(self, channel, client):
        with pytest.raises(ValueError):
            channel.add_members("bob")
        with pytest.raises(ValueError):
            channel.remove_members("u1")
        client.rest.session.request.assert_not_called()
        assert [m.user.id for m in channel.members] == ["u1", "u2"]

    def test_remove_members_updates_local_state(self, channel, last_call):
        channel.remove_members(["u1"])
        assert last_call()[2]["json"] == {"remove_members": ["u1"]}
        assert [m.user.id for m in channel.members] == ["u2"]

    def test_invite_members(self, channel, last_call):
        channel.invite_members("u5", "u6")
        assert last_call()[2]["json"] == {"invites": ["u5", "u6"]}

    def test_accept_and_reject_invite(self, channel, last_call):
        channel.accept_invite("u5", Message(text="accepted", user=User(id="u5")))
        assert last_call()[2]["json"] == {
            "accept_invite": True,
            "user_id": "u5",
            "message": {"text": "accepted", "user_id": "u5"},
        }
        channel.reject_invite("u6")
        assert last_call()[2]["json"] == {"reject_invite": True, "user_id": "u6"}

    def test_accept_invite_requires_user(self, channel):
        with pytest.raises(ValueError):
            channel.accept_invite("")

    def test_moderators(self, channel, last_call):
        channel.add_moderators("thierry", "josh")
        assert last_call()[2]["json"] == {"add_moderators": ["thierry", "josh"]}

        channel.add_moderators_with_message(["sue"], Message(text="promoted", user=User(id="sue")))
        assert last_call()[2]["json"]["message"]["text"] == "promoted"

        channel.demote_moderators("bob", "sue")
        assert last_call()[2]["json"] == {"demote_moderators": ["bob", "sue"]}

        channel.demote_moderators_with_message(["sue"], None)
        assert last_call()[2]["json"] == {"demote_moderators": ["sue"]}

    def test_query_members(self, channel, reply, last_call, payload_param):
        reply({"members": [{"user": {"id": "pjessica"}}, {"user": {"id": "pjohn2"}}]})
        got = channel.query_members(
            QueryOption(filter={"name": {"$autocomplete": "pj"}}, offset=1, limit=10),
            SortOption(field="created_at", direction=1),
        )

        method, path, kwargs = last_call()
        assert (method, path) == ("GET", "members")
        assert payload_param(kwargs) == {
            "type": "messaging",
            "id": "general",
            "filter_conditions": {"name": {"$autocomplete": "pj"}},
            "sort": [{"field": "created_at", "direction": 1}],
            "offset": 1,
            "limit": 10,
        }
        assert [m.user.id for m in got] == ["pjessica", "pjohn2"]


class TestModeration:
    """Channel-scoped bans, mutes and visibility."""

    def test_ban_user_scoped_to_channel(self, channel, last_call):
        channel.ban_user("bad", "mod", {"timeout": 3600, "reason": "offensive language is not allowed here"})
        _, path, kwargs = last_call()
        assert path == "moderation/ban"
        assert kwargs["json"] == {
            "timeout": 3600,
            "reason": "offensive language is not allowed here",
            "type": "messaging",
            "id": "general",
            "target_user_id": "bad",
            "user_id": "mod",
        }

    def test_unban_user(self, channel, last_call):
        channel.unban_user("bad")
        method, path, kwargs = last_call()
        assert (method, path) == ("DELETE", "moderation/ban")
        assert kwargs["params"] == {"api_key": "test-key", "type": "messaging", "id": "general",
                                    "target_user_id": "bad"}

    def test_ban_requires_target(self, channel):
        with pytest.raises(ValueError):
            channel.ban_user("", "mod")

    def test_mute(self, channel, reply, last_call):
        reply({"channel_mute": {
            "user": {"id": "u1"},
            "channel": {"id": "general", "type": "messaging", "cid": "messaging:general"},
            "created_at": "2021-01-01T00:00:00Z",
        }})
        mute = channel.mute("u1")

        _, path, kwargs = last_call()
        assert path == "moderation/mute/channel"
        assert kwargs["json"] == {"channel_cid": "messaging:general", "user_id": "u1"}
        assert isinstance(mute, ChannelMuteResponse)
        assert mute.channel_mute.channel.cid == channel.cid
        assert mute.channel_mute.user.id == "u1"

    def test_mute_with_expiration(self, channel, reply, last_call):
        reply({"channel_mute": {"user": {"id": "u1"}}})
        channel.mute("u1", expiration=60000)
        assert last_call()[2]["json"]["expiration"] == 60000

    def test_unmute(self, channel, last_call):
        channel.unmute("u1")
        _, path, kwargs = last_call()
        assert path == "moderation/unmute/channel"
        assert kwargs["json"] == {"channel_cid": "messaging:general", "user_id": "u1"}

    def test_hide_and_show(self, channel, last_call):
        channel.hide("u1", clear_history=True)
        assert last_call()[1] == "channels/messaging/general/hide"
        assert last_call()[2]["json"] == {"user_id": "u1", "clear_history": True}
        channel.show("u1")
        assert last_call()[1] == "channels/messaging/general/show"


class TestMessages:
    """Sending, importing and reading messages."""

    def test_send_message(self, channel, reply, last_call):
        reply({"message": {"id": "m1", "text": "test message", "html": "<p>test message</p>",
                           "user": {"id": "u2"}, "silent": True}})
        got = channel.send_message(Message(text="test message", user=User(id="u1"), silent=True), "u2")

        _, path, kwargs = last_call()
        assert path == "channels/messaging/general/message"
        assert kwargs["json"] == {"message": {"text": "test message", "user_id": "u2", "silent": True}}
        assert got.id == "m1"
        assert got.html
        assert got.silent is True

    def test_send_message_skip_push(self, channel, reply, last_call):
        reply({"message": {"id": "m1"}})
        channel.send_message(Message(text="quiet"), "u1", skip_push=True)
        assert last_call()[2]["json"]["skip_push"] is True

    def test_send_reply(self, channel, reply, last_call):
        reply({"message": {"id": "r1", "parent_id": "m1", "type": "reply"}})
        got = channel.send_message(Message(text="test reply", parent_id="m1", type="reply"), "u1")
        assert last_call()[2]["json"]["message"]["parent_id"] == "m1"
        assert got.type == "reply"

    def test_send_message_requires_user(self, channel):
        with pytest.raises(ValueError):
            channel.send_message(Message(text="x"), "")

    def test_import_messages_keeps_timestamps(self, channel, reply, last_call):
        t0 = datetime.fromtimestamp(0, tz=timezone.utc)
        t1 = datetime.fromtimestamp(1, tz=timezone.utc)
        reply({"messages": [
            {"id": "a", "text": "hi 0", "created_at": "1970-01-01T00:00:00Z"},
            {"id": "b", "text": "hi 1", "created_at": "1970-01-01T00:00:01Z"},
        ]})
        resp = channel.import_messages(
            Message(text="hi 1", user=User(id="u1"), created_at=t1),
            Message(text="hi 0", user=User(id="u1"), created_at=t0),
        )

        _, path, kwargs = last_call()
        assert path == "channels/messaging/general/import"
        assert [m["created_at"] for m in kwargs["json"]["messages"]] == [
            "1970-01-01T00:00:01Z",
            "1970-01-01T00:00:00Z",
        ]
        assert resp.messages[0].created_at == t0
        assert resp.messages[1].created_at == t1

    def test_import_requires_messages(self, channel):
        with pytest.raises(ValueError):
            channel.import_messages()

    def test_get_replies(self, channel, reply, last_call):
        reply({"messages": [{"id": "r1", "parent_id": "m1"}]})
        got = channel.get_replies("m1", {"limit": 5})
        method, path, kwargs = last_call()
        assert (method, path) == ("GET", "messages/m1/replies")
        assert kwargs["params"]["limit"] == 5
        assert len(got) == 1

    def test_send_event(self, channel, reply, last_call):
        reply({"event": {"type": "typing.start", "user": {"id": "u1"}}})
        got = channel.send_event({"type": "typing.start"}, "u1")
        _, path, kwargs = last_call()
        assert path == "channels/messaging/general/event"
        assert kwargs["json"] == {"event": {"type": "typing.start", "user_id": "u1"}}
        assert got["type"] == "typing.start"

    def test_send_event_requires_type(self, channel):
        with pytest.raises(ValueError):
            channel.send_event({}, "u1")

    def test_send_event_requires_user(self, channel, client):
        with pytest.raises(ValueError):
            channel.send_event({"type": "typing.start"}, "")
        client.rest.session.request.assert_not_called()

    def test_mark_read(self, channel, last_call):
        channel.mark_read("u1", {"message_id": "m1"})
        _, path, kwargs = last_call()
        assert path == "channels/messaging/general/read"
        assert kwargs["json"] == {"message_id": "m1", "user_id": "u1"}


class TestUploads:
    """File and image uploads."""

    def test_send_file_is_multipart(self, channel, reply, last_call):
        reply({"file": "https://cdn.example.com/HelloWorld.txt"})
        reader = io.BytesIO(b"hello world")
        url = channel.send_file(SendFileRequest(reader=reader, file_name="HelloWorld.txt", user=User(id="u1")))

        method, path, kwargs = last_call()
        assert (method, path) == ("POST", "channels/messaging/general/file")
        assert kwargs["json"] is None
        assert json.loads(kwargs["data"]["user"]) == {"id": "u1"}
        assert kwargs["files"]["file"] == ("HelloWorld.txt", reader, "application/octet-stream")
        assert url == "https://cdn.example.com/HelloWorld.txt"

    def test_send_image(self, channel, reply, last_call):
        reply({"file": "https://cdn.example.com/HelloWorld.jpg"})
        req = SendFileRequest(reader=io.BytesIO(b"\xff\xd8"), file_name="HelloWorld.jpg",
                              user=User(id="u1"), content_type="image/jpeg")
        assert channel.send_image(req).endswith(".jpg")
        assert last_call()[1] == "channels/messaging/general/image"
        assert last_call()[2]["files"]["file"][2] == "image/jpeg"

    def test_send_file_requires_name(self, channel):
        with pytest.raises(ValueError):
            channel.send_file(SendFileRequest(reader=io.BytesIO(b""), file_name="", user=User(id="u1")))

    def test_delete_file_and_image(self, channel, last_call):
        channel.delete_file("https://cdn.example.com/a.txt")
        method, path, kwargs = last_call()
        assert (method, path) == ("DELETE", "channels/messaging/general/file")
        assert kwargs["params"]["url"] == "https://cdn.example.com/a.txt"

        channel.delete_image("https://cdn.example.com/a.jpg")
        assert last_call()[1] == "channels/messaging/general/image"
