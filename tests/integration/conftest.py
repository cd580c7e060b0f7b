"""Fixtures for tests that run against the live chat service."""
import os
import random
import string

import pytest

from stream_chat.client import Client
from stream_chat.schemas import User


def random_string(n: int) -> str:
    return "".join(random.choices(string.ascii_letters, k=n))


@pytest.fixture(scope="session")
def client():
    if not os.getenv("STREAM_KEY") or not os.getenv("STREAM_SECRET"):
        pytest.skip("STREAM_KEY and STREAM_SECRET are required for integration tests")
    c = Client.from_env()
    yield c
    c.close()


@pytest.fixture
def random_user(client):
    def _random_user() -> User:
        return client.upsert_user(User(id=random_string(12)))
    return _random_user


@pytest.fixture
def random_users(random_user):
    def _random_users(n: int):
        return [random_user() for _ in range(n)]
    return _random_users


@pytest.fixture
def new_channel(client, random_user):
    """Create channels for the test and delete them afterwards."""
    created = []

    def _new_channel(*member_ids, channel_type="messaging", data=None):
        data = dict(data or {})
        if member_ids:
            data["members"] = list(member_ids)
        ch = client.create_channel(channel_type, random_string(12), random_user().id, data)
        created.append(ch)
        return ch

    yield _new_channel

    for ch in created:
        try:
            ch.delete()
        except Exception:
            pass


@pytest.fixture
def rand():
    return random_string
