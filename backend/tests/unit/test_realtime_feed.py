import asyncio
from datetime import datetime, timezone

import pytest

from studymatch.domain.chat.feed import LocalFeed, RedisFeed, build_feed, channel_for
from studymatch.domain.chat.models import Message


def _message(seq: int, conversation_id: str = "c1") -> Message:
    return Message(
        id=f"m{seq}",
        conversation_id=conversation_id,
        seq=seq,
        sender_id="alice",
        body=f"body {seq}",
        event_ref=None,
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_local_feed_fans_out_per_conversation():
    feed = LocalFeed()
    first = await feed.listen("c1")
    second = await feed.listen("c1")
    other = await feed.listen("c2")

    await feed.publish(_message(1))

    assert (await first.next_message()).seq == 1
    assert (await second.next_message()).seq == 1
    assert other.queue.empty()

    await first.close()
    await second.close()
    assert feed.listener_count("c1") == 0


@pytest.mark.asyncio
async def test_redis_feed_round_trips_messages(fake_redis):
    feed = RedisFeed(fake_redis)
    listener = await feed.listen("c1")

    await feed.publish(_message(7))
    received = await asyncio.wait_for(listener.next_message(), timeout=5)

    assert received == _message(7)
    await listener.close()
    await listener.close()


def test_channel_name_and_backend_selection():
    assert channel_for("abc") == "chat:conv:abc"
    assert isinstance(build_feed("local"), LocalFeed)
    assert isinstance(build_feed("redis"), RedisFeed)
