import asyncio

from epl_hub.broadcast import StandingsBroadcaster, SubscriberState
from epl_hub.table import TableRow

TABLE_V1 = (TableRow(1, "Arsenal", 1, 3, 2), TableRow(2, "Chelsea", 1, 0, -2))
TABLE_V2 = (TableRow(2, "Chelsea", 2, 3, 0), TableRow(1, "Arsenal", 2, 3, 0))


class RecordingSink:
    def __init__(self):
        self.messages = []
        self.close_code = None

    @property
    def closed(self):
        return self.close_code is not None

    async def send_json(self, data):
        self.messages.append(data)

    async def close(self, code=1000):
        self.close_code = code


class FailingSink(RecordingSink):
    def __init__(self, fail_after=0):
        super().__init__()
        self.fail_after = fail_after

    async def send_json(self, data):
        if len(self.messages) >= self.fail_after:
            raise ConnectionResetError("peer went away")
        self.messages.append(data)


class StalledSink(RecordingSink):
    def __init__(self, stall_after=1):
        super().__init__()
        self.stall_after = stall_after

    async def send_json(self, data):
        if len(self.messages) >= self.stall_after:
            await asyncio.sleep(10)
        self.messages.append(data)


class UnclosableSink(FailingSink):
    async def close(self, code=1000):
        raise RuntimeError("socket already torn down")


def names(message):
    return [row["team"] for row in message["standings"]]


def test_subscribe_sends_the_snapshot_exactly_once():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        sink = RecordingSink()
        subscriber = await broadcaster.subscribe(sink, TABLE_V1)
        return broadcaster, sink, subscriber

    broadcaster, sink, subscriber = asyncio.run(scenario())

    assert len(sink.messages) == 1
    assert names(sink.messages[0]) == ["Arsenal", "Chelsea"]
    assert sink.messages[0]["standings"][0] == {"team_id": 1, "team": "Arsenal", "played": 1, "points": 3, "gd": 2}
    assert subscriber.state is SubscriberState.ACTIVE
    assert sink in broadcaster


def test_broadcast_reaches_every_active_subscriber():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        sinks = [RecordingSink() for _ in range(3)]
        for sink in sinks:
            await broadcaster.subscribe(sink, TABLE_V1)
        delivered = await broadcaster.broadcast(TABLE_V2)
        return sinks, delivered

    sinks, delivered = asyncio.run(scenario())

    assert delivered == 3
    for sink in sinks:
        assert [names(m) for m in sink.messages] == [["Arsenal", "Chelsea"], ["Chelsea", "Arsenal"]]


def test_unsubscribed_sink_gets_nothing_more():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        staying, leaving = RecordingSink(), RecordingSink()
        await broadcaster.subscribe(staying, TABLE_V1)
        subscriber = await broadcaster.subscribe(leaving, TABLE_V1)
        await broadcaster.unsubscribe(subscriber)
        await broadcaster.unsubscribe(subscriber)  # Idempotent
        delivered = await broadcaster.broadcast(TABLE_V2)
        return broadcaster, staying, leaving, subscriber, delivered

    broadcaster, staying, leaving, subscriber, delivered = asyncio.run(scenario())

    assert delivered == 1
    assert len(staying.messages) == 2
    assert len(leaving.messages) == 1
    assert leaving not in broadcaster
    assert subscriber.state is SubscriberState.CLOSED
    assert not leaving.closed  # The peer closed it, not us
    assert broadcaster.subscriber_count == 1


def test_failing_sink_is_dropped_without_affecting_others():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        good, bad = RecordingSink(), FailingSink(fail_after=1)
        await broadcaster.subscribe(good, TABLE_V1)
        bad_subscriber = await broadcaster.subscribe(bad, TABLE_V1)
        first = await broadcaster.broadcast(TABLE_V2)
        second = await broadcaster.broadcast(TABLE_V1)
        return broadcaster, good, bad, bad_subscriber, first, second

    broadcaster, good, bad, bad_subscriber, first, second = asyncio.run(scenario())

    assert first == 1
    assert second == 1
    assert len(good.messages) == 3
    assert len(bad.messages) == 1
    assert bad not in broadcaster
    assert bad_subscriber.state is SubscriberState.CLOSED
    assert bad.close_code == 1011
    assert not good.closed


def test_failed_initial_send_leaves_nothing_registered():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        subscriber = await broadcaster.subscribe(FailingSink(), TABLE_V1)
        return broadcaster, subscriber

    broadcaster, subscriber = asyncio.run(scenario())

    assert not subscriber.active
    assert broadcaster.subscriber_count == 0


def test_stalled_sink_times_out_and_is_dropped():
    async def scenario():
        broadcaster = StandingsBroadcaster(send_timeout=0.05)
        good, slow = RecordingSink(), StalledSink()
        await broadcaster.subscribe(good, TABLE_V1)
        await broadcaster.subscribe(slow, TABLE_V1)
        delivered = await broadcaster.broadcast(TABLE_V2)
        return broadcaster, good, slow, delivered

    broadcaster, good, slow, delivered = asyncio.run(scenario())

    assert delivered == 1
    assert len(good.messages) == 2
    assert slow not in broadcaster
    assert slow.close_code == 1011


def test_broadcast_with_no_subscribers():
    assert asyncio.run(StandingsBroadcaster().broadcast(TABLE_V1)) == 0


def test_broadcast_during_subscribe_arrives_after_the_snapshot():
    class SlowFirstSink(RecordingSink):
        async def send_json(self, data):
            if not self.messages:
                await asyncio.sleep(0.05)
            self.messages.append(data)

    async def scenario():
        broadcaster = StandingsBroadcaster()
        sink = SlowFirstSink()
        subscribing = asyncio.create_task(broadcaster.subscribe(sink, TABLE_V1))
        await asyncio.sleep(0.01)  # Registered, initial send in flight
        await broadcaster.broadcast(TABLE_V2)
        await subscribing
        return sink

    sink = asyncio.run(scenario())

    assert [names(m) for m in sink.messages] == [["Arsenal", "Chelsea"], ["Chelsea", "Arsenal"]]


def test_close_all():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        subscriber = await broadcaster.subscribe(RecordingSink(), TABLE_V1)
        await broadcaster.close_all()
        return broadcaster, subscriber

    broadcaster, subscriber = asyncio.run(scenario())

    assert broadcaster.subscriber_count == 0
    assert subscriber.state is SubscriberState.CLOSED
    assert subscriber.sink.close_code == 1001


def test_dropped_subscriber_is_woken_to_end_its_connection():
    async def scenario():
        broadcaster = StandingsBroadcaster(send_timeout=0.05)
        slow = StalledSink()
        subscriber = await broadcaster.subscribe(slow, TABLE_V1)
        waiter = asyncio.create_task(subscriber.wait_closed())
        await broadcaster.broadcast(TABLE_V2)
        await asyncio.wait_for(waiter, timeout=1)
        return slow

    slow = asyncio.run(scenario())

    assert slow.closed


def test_close_errors_do_not_escape_the_broadcast():
    async def scenario():
        broadcaster = StandingsBroadcaster()
        good, broken = RecordingSink(), UnclosableSink(fail_after=1)
        await broadcaster.subscribe(good, TABLE_V1)
        await broadcaster.subscribe(broken, TABLE_V1)
        delivered = await broadcaster.broadcast(TABLE_V2)
        return broadcaster, broken, delivered

    broadcaster, broken, delivered = asyncio.run(scenario())

    assert delivered == 1
    assert broken not in broadcaster
