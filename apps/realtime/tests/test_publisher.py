"""Tests for server-side publishing to client rooms."""

from __future__ import annotations

import json
from unittest import TestCase, mock

import redis

from apps.realtime import publisher
from apps.realtime.tasks import publish_event


class PublishToRoomTests(TestCase):
    def setUp(self) -> None:
        self.redis = mock.Mock(spec=redis.Redis)
        patcher = mock.patch.object(publisher, "get_redis", return_value=self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_publishes_wire_format(self) -> None:
        self.redis.publish.return_value = 2

        receivers = publisher.publish_to_room("hold:abc", "payment_status_updated", {"bookingId": "BK-1"})

        self.assertEqual(receivers, 2)
        room, message = self.redis.publish.call_args.args
        self.assertEqual(room, "hold:abc")
        self.assertEqual(json.loads(message), {"event": "payment_status_updated", "data": {"bookingId": "BK-1"}})

    def test_redis_failure_is_not_raised(self) -> None:
        self.redis.publish.side_effect = redis.ConnectionError("down")

        self.assertEqual(publisher.publish_to_room("hold:abc", "hold_expired"), 0)

    def test_celery_task_publishes(self) -> None:
        self.redis.publish.return_value = 1

        result = publish_event.delay("hold:abc", "hold_expired", {})

        self.assertEqual(result.get(), 1)
        self.redis.publish.assert_called_once()

    def test_celery_task_without_room(self) -> None:
        self.assertEqual(publish_event("", "hold_expired"), 0)
        self.redis.publish.assert_not_called()
