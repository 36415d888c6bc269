import asyncio

from college_notes.core.pubsub import Event, InMemoryBroker
from college_notes.core.streaming import format_sse, sse_stream


def test_publish_without_subscribers_delivers_nothing():
    broker = InMemoryBroker()
    assert broker.publish("nobody", Event("notification", {"id": "1"})) == 0


def test_subscriber_receives_only_own_events():
    async def scenario():
        broker = InMemoryBroker()
        mine = broker.subscribe("u1")
        other = broker.subscribe("u2")

        delivered = broker.publish("u1", Event("notification", {"id": "n1"}))
        got = await mine.next(timeout=1)
        nothing = await other.next(timeout=0.01)

        mine.close()
        other.close()
        return delivered, got, nothing, broker.subscriber_count("u1")

    delivered, got, nothing, remaining = asyncio.run(scenario())
    assert delivered == 1
    assert got == Event("notification", {"id": "n1"})
    assert nothing is None
    assert remaining == 0


def test_every_connection_of_a_user_gets_the_event():
    async def scenario():
        broker = InMemoryBroker()
        tab1 = broker.subscribe("u1")
        tab2 = broker.subscribe("u1")
        delivered = broker.publish("u1", Event("notification", {"id": "n1"}))
        return delivered, await tab1.next(timeout=1), await tab2.next(timeout=1)

    delivered, a, b = asyncio.run(scenario())
    assert delivered == 2
    assert a == b


def test_slow_subscriber_drops_overflow():
    async def scenario():
        broker = InMemoryBroker(max_pending=2)
        sub = broker.subscribe("u1")
        for i in range(5):
            broker.publish("u1", Event("notification", {"i": i}))
        received = []
        while True:
            ev = await sub.next(timeout=0.05)
            if ev is None:
                break
            received.append(ev.data["i"])
        return received

    assert asyncio.run(scenario()) == [0, 1]


def test_format_sse_frame():
    frame = format_sse(Event("notification", {"id": "n1", "is_read": False}))
    assert frame == 'event: notification\ndata: {"id":"n1","is_read":false}\n\n'


def test_stream_connects_then_forwards_and_keeps_alive():
    async def scenario():
        broker = InMemoryBroker()
        sub = broker.subscribe("u1")
        stream = sse_stream(sub, keepalive_seconds=0.01)

        first = await stream.__anext__()
        keepalive = await stream.__anext__()
        broker.publish("u1", Event("notification", {"id": "n1"}))
        forwarded = await stream.__anext__()

        await stream.aclose()
        return first, keepalive, forwarded, broker.subscriber_count("u1")

    first, keepalive, forwarded, remaining = asyncio.run(scenario())
    assert first == 'event: connected\ndata: {"user_id":"u1"}\n\n'
    assert keepalive == ": keepalive\n\n"
    assert forwarded == 'event: notification\ndata: {"id":"n1"}\n\n'
    assert remaining == 0


def test_stream_stops_when_client_disconnects():
    async def scenario():
        broker = InMemoryBroker()
        sub = broker.subscribe("u1")

        async def gone():
            return True

        frames = [frame async for frame in sse_stream(sub, keepalive_seconds=1, is_disconnected=gone)]
        return frames, broker.subscriber_count("u1")

    frames, remaining = asyncio.run(scenario())
    assert len(frames) == 1
    assert remaining == 0
