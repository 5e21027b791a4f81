"""Tests for SSE event bus and streaming endpoint."""
import json
import queue
import threading
import time

from eleague.events import EventBus, event_bus, competition_topic, match_topic, ticket_topic


# ── EventBus unit tests ─────────────────────────────────────────────────────


class TestEventBus:
    def test_subscribe_creates_queue(self):
        bus = EventBus()
        q = bus.subscribe()
        assert isinstance(q, queue.Queue)
        assert bus.subscriber_count == 1
        bus.unsubscribe(q)

    def test_publish_delivers_to_subscriber(self):
        bus = EventBus()
        q = bus.subscribe()
        bus.publish("test_event", {"key": "value"}, topic="competition:1")
        msg = json.loads(q.get_nowait())
        assert msg["type"] == "test_event"
        assert msg["topic"] == "competition:1"
        assert msg["data"]["key"] == "value"
        assert "timestamp" in msg
        bus.unsubscribe(q)

    def test_publish_delivers_to_multiple_subscribers(self):
        bus = EventBus()
        q1 = bus.subscribe()
        q2 = bus.subscribe()
        bus.publish("broadcast", {"x": 1})
        m1 = json.loads(q1.get_nowait())
        m2 = json.loads(q2.get_nowait())
        assert m1["type"] == "broadcast"
        assert m2["type"] == "broadcast"
        bus.unsubscribe(q1)
        bus.unsubscribe(q2)

    def test_topic_filter(self):
        bus = EventBus()
        match_q = bus.subscribe(topics={"match:7"})
        everything = bus.subscribe()

        bus.publish("chat_message", {"match_id": 7}, topic="match:7")
        bus.publish("chat_message", {"match_id": 8}, topic="match:8")
        bus.publish("request_created", {})

        assert json.loads(match_q.get_nowait())["data"]["match_id"] == 7
        assert match_q.empty()
        assert everything.qsize() == 3

    def test_untopical_event_skips_filtered_subscribers(self):
        bus = EventBus()
        q = bus.subscribe(topics={"competition:1"})
        bus.publish("request_resolved", {"request_id": 1})
        assert q.empty()

    def test_unsubscribe_removes_queue(self):
        bus = EventBus()
        q = bus.subscribe()
        bus.unsubscribe(q)
        assert bus.subscriber_count == 0
        bus.publish("after_unsub", {})
        assert q.empty()

    def test_full_queue_is_dropped(self):
        bus = EventBus(maxsize=5)
        q = bus.subscribe()
        for i in range(5):
            bus.publish("fill", {"i": i})
        assert bus.subscriber_count == 1
        # Next publish should drop the full queue
        bus.publish("overflow", {})
        assert bus.subscriber_count == 0
        assert q.qsize() == 5

    def test_slow_subscriber_does_not_block_others(self):
        bus = EventBus(maxsize=1)
        slow = bus.subscribe()
        bus.publish("first", {})
        fast = bus.subscribe()
        bus.publish("second", {})
        assert bus.subscriber_count == 1
        assert json.loads(fast.get_nowait())["type"] == "second"
        assert json.loads(slow.get_nowait())["type"] == "first"

    def test_clear_removes_all_subscribers(self):
        bus = EventBus()
        bus.subscribe()
        bus.subscribe(topics={"ticket:1"})
        assert bus.subscriber_count == 2
        bus.clear()
        assert bus.subscriber_count == 0

    def test_thread_safety(self):
        bus = EventBus()
        queues = []
        errors = []

        def sub_and_read():
            try:
                q = bus.subscribe()
                queues.append(q)
                msg = q.get(timeout=2)
                json.loads(msg)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=sub_and_read) for _ in range(5)]
        for t in threads:
            t.start()
        time.sleep(0.1)
        bus.publish("thread_test", {"ok": True})
        for t in threads:
            t.join(timeout=3)
        assert not errors
        for q in queues:
            bus.unsubscribe(q)

    def test_topic_names(self):
        assert competition_topic(3) == "competition:3"
        assert match_topic(4) == "match:4"
        assert ticket_topic(5) == "ticket:5"


# ── SSE endpoint tests ──────────────────────────────────────────────────────


class TestSSEEndpoint:
    def _read(self, client, url, want, chunks):
        with client.get(url, headers={"Accept": "text/event-stream"}) as resp:
            chunks.append(resp.content_type)
            for line in resp.response:
                if isinstance(line, bytes):
                    line = line.decode()
                chunks.append(line)
                if len([c for c in chunks if c.startswith("data: ")]) >= want:
                    break

    def test_stream_receives_published_event(self, client):
        chunks = []
        t = threading.Thread(target=self._read, args=(client, "/api/events/stream", 1, chunks))
        t.start()
        time.sleep(0.3)  # Wait for subscription to register

        event_bus.publish("test_sse", {"msg": "hello"})
        t.join(timeout=5)

        assert "text/event-stream" in chunks[0]
        data_lines = [c for c in chunks if c.startswith("data: ")]
        payload = json.loads(data_lines[0].removeprefix("data: ").strip())
        assert payload["type"] == "test_sse"
        assert payload["data"]["msg"] == "hello"

    def test_stream_filters_by_topic(self, client):
        chunks = []
        url = "/api/events/stream?topics=match:1,ticket:2"
        t = threading.Thread(target=self._read, args=(client, url, 2, chunks))
        t.start()
        time.sleep(0.3)

        event_bus.publish("chat_message", {"n": 1}, topic="match:1")
        event_bus.publish("chat_message", {"n": 2}, topic="match:9")
        event_bus.publish("ticket_message", {"n": 3}, topic="ticket:2")
        t.join(timeout=5)

        payloads = [
            json.loads(c.removeprefix("data: ").strip())
            for c in chunks if c.startswith("data: ")
        ]
        assert [p["data"]["n"] for p in payloads] == [1, 3]
