import asyncio
from unittest.mock import AsyncMock

import pytest
import socketio

from studymatch import container
from studymatch.domain.chat.sockets import ChatNamespace


def _environ(user_id: str | None) -> dict:
    headers = [(b"x-user-id", user_id.encode())] if user_id else []
    return {"asgi.scope": {"headers": headers}}


def _namespace() -> ChatNamespace:
    server = socketio.AsyncServer(async_mode="asgi")
    namespace = ChatNamespace(container.get_stream)
    server.register_namespace(namespace)
    namespace.emit = AsyncMock()
    return namespace


def _emitted(namespace, event: str) -> list:
    return [call.args[1] for call in namespace.emit.await_args_list if call.args[0] == event]


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_connect_requires_user():
    namespace = _namespace()

    with pytest.raises(ConnectionRefusedError):
        await namespace.trigger_event("connect", "sid-1", _environ(None))


@pytest.mark.asyncio
async def test_join_forwards_new_messages(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("bob"))

    ack = await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})
    assert ack == {"ok": True, "conversation_id": conversation_id, "last_seq": 0}

    await container.get_stream().send(conversation_id, "alice", "hello")
    await _wait_for(lambda: _emitted(namespace, "chat:message"))

    payload = _emitted(namespace, "chat:message")[0]
    assert payload["body"] == "hello"
    assert payload["seq"] == 1

    await namespace.trigger_event("disconnect", "sid-1")
    assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_join_replays_after_seq(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    stream = container.get_stream()
    for body in ("one", "two", "three"):
        await stream.send(conversation_id, "alice", body)
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("bob"))

    await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id, "after_seq": 1})
    await _wait_for(lambda: len(_emitted(namespace, "chat:message")) == 2)

    assert [item["body"] for item in _emitted(namespace, "chat:message")] == ["two", "three"]


@pytest.mark.asyncio
async def test_join_rejects_outsiders(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"), make_profile("eve"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("eve"))

    ack = await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})

    assert ack == {"ok": False, "error": "conversation_not_found"}
    assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_leave_drops_subscription(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("alice"))
    await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})

    await namespace.trigger_event("leave", "sid-1", {"conversation_id": conversation_id})

    assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_join_rejects_malformed_after_seq(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("alice"))

    ack = await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id, "after_seq": "abc"})

    assert ack == {"ok": False, "error": "invalid_after_seq"}
    assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_disconnect_during_join_releases_subscription(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    stream = container.get_stream()
    feed = container.get_feed()
    opened = asyncio.Event()
    proceed = asyncio.Event()

    class SlowStream:
        async def conversation_for(self, conversation_id, user_id):
            return await stream.conversation_for(conversation_id, user_id)

        async def subscribe(self, *args, **kwargs):
            subscription = await stream.subscribe(*args, **kwargs)
            opened.set()
            await proceed.wait()
            return subscription

    server = socketio.AsyncServer(async_mode="asgi")
    namespace = ChatNamespace(SlowStream)
    server.register_namespace(namespace)
    namespace.emit = AsyncMock()
    await namespace.trigger_event("connect", "sid-1", _environ("alice"))

    join = asyncio.create_task(namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id}))
    await opened.wait()
    await namespace.trigger_event("disconnect", "sid-1")
    proceed.set()
    ack = await join

    assert ack == {"ok": False, "error": "disconnected"}
    assert namespace.subscription_count("sid-1") == 0
    await _wait_for(lambda: feed.listener_count(conversation_id) == 0)


@pytest.mark.asyncio
async def test_failed_subscription_is_dropped_and_reported(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()

    async def emit(event, data=None, **kwargs):
        if event == "chat:message":
            raise ConnectionError("client gone")

    namespace.emit = AsyncMock(side_effect=emit)
    await namespace.trigger_event("connect", "sid-1", _environ("bob"))
    await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})

    await container.get_stream().send(conversation_id, "alice", "hello")
    await _wait_for(lambda: _emitted(namespace, "chat:error"))

    assert _emitted(namespace, "chat:error")[0]["conversation_id"] == conversation_id
    assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_late_failure_report_keeps_newer_subscription(seed_profiles, make_profile):
    await seed_profiles(make_profile("alice"), make_profile("bob"))
    conversation_id = await container.get_resolver().resolve_direct("alice", "bob")
    namespace = _namespace()
    await namespace.trigger_event("connect", "sid-1", _environ("bob"))
    await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})
    await namespace.trigger_event("join", "sid-1", {"conversation_id": conversation_id})

    # The first subscription reports its failure after the rejoin replaced it
    await namespace._error_reporter("sid-1", conversation_id)(RuntimeError("boom"))

    assert namespace.subscription_count("sid-1") == 1
