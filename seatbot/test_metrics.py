import pytest
from metrics import MetricsTracker


def test_metrics_tracker_records_stage():
    tracker = MetricsTracker()
    tracker.start_stage("date")
    tracker.end_stage("date", success=True)

    summary = tracker.get_summary()
    assert summary["success"] is True
    assert summary["failed_stage"] is None
    assert summary["stages"][0]["name"] == "date"


def test_metrics_tracker_failed_stage():
    tracker = MetricsTracker()
    tracker.start_stage("date")
    tracker.end_stage("date", success=True)
    tracker.start_stage("captcha")
    tracker.end_stage("captcha", success=False, error="no valid code")
    tracker.captcha_attempts = 3

    summary = tracker.get_summary()
    assert summary["success"] is False
    assert summary["failed_stage"] == "captcha"
    assert summary["captcha_attempts"] == 3
    assert summary["stages"][1]["error"] == "no valid code"


def test_empty_tracker_is_not_a_success():
    assert MetricsTracker().get_summary()["success"] is False
