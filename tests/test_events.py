"""
Tests for batch event construction.
"""

import json
from datetime import date

from talentintake.errors import RateLimitError, describe_error
from talentintake.events import complete_event, error_event, item_event, start_event, to_ndjson


class TestEvents:
    def test_item_event_omits_empty_parts(self):
        """Successful items carry a result and no error."""
        assert item_event(1, True, result={"candidateId": "c1"}) == {
            "type": "item",
            "index": 1,
            "success": True,
            "result": {"candidateId": "c1"},
        }

    def test_complete_event_keys(self):
        """Completion counters use camelCase keys."""
        event = complete_event(5, 5, 4, 1, 2, 2)
        assert event["matchedExisting"] == 2
        assert event["newlyCreated"] == 2
        assert event["cancelled"] is False

    def test_error_event(self):
        """Error events wrap a described error."""
        error = describe_error(RateLimitError("slow down", provider="profile-search"))
        assert error_event(error) == {
            "type": "error",
            "error": {
                "kind": "RateLimitError",
                "message": "slow down",
                "retryable": True,
                "provider": "profile-search",
            },
        }

    def test_to_ndjson_single_line(self):
        """Events encode to one line; dates become strings."""
        line = to_ndjson(item_event(2, True, result={"seen": date(2026, 6, 1), "note": "a\nb"}))

        assert "\n" not in line
        assert json.loads(line)["result"]["seen"] == "2026-06-01"

    def test_start_event(self):
        """The start event names the tenant and batch size."""
        assert start_event("t1", 3) == {"type": "start", "tenantId": "t1", "total": 3}
