import json
import logging
import queue
import threading
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class EventBus:
    """In-memory pub/sub for SSE.

    Stands in for the database change feed: services publish after they
    commit, and every subscriber re-fetches whatever the event points at.
    Each subscriber gets a bounded Queue and an optional set of topics.
    """

    def __init__(self, maxsize=50):
        self._subscribers = []
        self._lock = threading.Lock()
        self._maxsize = maxsize

    def subscribe(self, topics=None):
        """Create a new subscriber queue.

        ``topics`` limits delivery to events whose ``topic`` is in the set;
        None receives everything.
        """
        q = queue.Queue(maxsize=self._maxsize)
        entry = (q, frozenset(topics) if topics else None)
        with self._lock:
            self._subscribers.append(entry)
        return q

    def unsubscribe(self, q):
        """Remove a subscriber queue."""
        with self._lock:
            self._subscribers = [s for s in self._subscribers if s[0] is not q]

    def publish(self, event_type, data, topic=None):
        """Push event to matching subscribers. Drops full queues."""
        event = {
            "type": event_type,
            "topic": topic,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        msg = json.dumps(event, default=str)
        with self._lock:
            dead = []
            for entry in self._subscribers:
                q, topics = entry
                if topics is not None and topic not in topics:
                    continue
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    dead.append(entry)
            for entry in dead:
                self._subscribers.remove(entry)
        if dead:
            logger.info("Dropped %d slow subscriber(s) on %s", len(dead), event_type)

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def clear(self):
        """Remove all subscribers. Used in tests."""
        with self._lock:
            self._subscribers.clear()


event_bus = EventBus()


def competition_topic(competition_id):
    return f"competition:{competition_id}"


def match_topic(match_id):
    return f"match:{match_id}"


def ticket_topic(ticket_id):
    return f"ticket:{ticket_id}"
