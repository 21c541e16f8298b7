from datetime import datetime, timedelta, timezone

from app.services.delivery_service import build_timeline


OPENED = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
UPDATED = OPENED + timedelta(days=1)
DELIVERED = OPENED + timedelta(days=2)


class TestBuildTimeline:

    def test_pending_only(self):
        timeline = build_timeline("pending", OPENED, UPDATED)

        assert len(timeline) == 1
        assert timeline[0]["status"] == "pending"
        assert timeline[0]["timestamp"] == OPENED
        assert timeline[0]["completed"] is True

    def test_out_for_delivery(self):
        timeline = build_timeline("out_for_delivery", OPENED, UPDATED)

        assert [entry["status"] for entry in timeline] == [
            "pending", "picked_up", "in_transit", "out_for_delivery",
        ]
        assert timeline[-1]["message"] == "Out for delivery"
        assert all(entry["timestamp"] == UPDATED for entry in timeline[1:])

    def test_delivered_uses_actual_delivery(self):
        timeline = build_timeline("delivered", OPENED, UPDATED, DELIVERED)

        assert len(timeline) == 5
        assert timeline[-1]["message"] == "Package delivered successfully"
        assert timeline[-1]["timestamp"] == DELIVERED

    def test_failed_and_returned_show_only_pending(self):
        for status in ("failed", "returned"):
            timeline = build_timeline(status, OPENED, UPDATED)
            assert [entry["status"] for entry in timeline] == ["pending"]
