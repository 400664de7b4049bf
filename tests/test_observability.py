"""
Tests for metrics, the audit ledger, log formatting and access helpers.
"""

from __future__ import annotations

import io
import json
import logging

from menumirror.access import Actor, RequestOrigin, TokenVerifier, actor_for_token
from menumirror.logging_config import HumanFormatter, JSONFormatter, setup_logging
from menumirror.models import SyncOutcome
from menumirror.models.outcome import RefusalReason
from menumirror.observability.metrics import Counter, Histogram, MetricsRegistry
from menumirror.persistence import AuditWriter


def read_events(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestMetrics:

    def test_counter_labels(self):
        counter = Counter("c")
        counter.inc(labels={"outcome": "ok"})
        counter.inc(2, labels={"outcome": "skipped", "reason": "collision"})

        assert counter.get(labels={"outcome": "ok"}) == 1
        assert counter.get(labels={"reason": "collision", "outcome": "skipped"}) == 2
        assert counter.total() == 3

    def test_histogram_buckets_cumulative(self):
        histogram = Histogram("h", buckets=(10, 100, float("inf")))
        histogram.observe(5)
        histogram.observe(50)
        histogram.observe(500)

        buckets = {p.labels["le"]: p.value for p in histogram.export() if p.name == "h_bucket"}
        assert buckets == {"10": 1, "100": 2, "+Inf": 3}
        assert histogram.count() == 3

    def test_prometheus_export(self):
        registry = MetricsRegistry()
        registry.increment("sync_total", labels={"outcome": "ok"})
        registry.set_gauge("mirror_entries", 2)

        text = registry.export_prometheus()

        assert "# TYPE menumirror_sync_total counter" in text
        assert 'menumirror_sync_total{outcome="ok"} 1.0' in text
        assert "menumirror_mirror_entries 2" in text
        assert text.endswith("\n")

    def test_reset(self):
        registry = MetricsRegistry()
        registry.increment("sync_total")
        registry.reset()
        assert registry.counter("sync_total").total() == 0

    def test_export_json(self):
        registry = MetricsRegistry()
        registry.timing("drain_duration_ms", 12)
        data = registry.export_json()
        assert data["histograms"]["menumirror_drain_duration_ms"] == {"sum": 12, "count": 1}


class TestAuditWriter:

    def test_creates_file(self, tmp_path):
        path = tmp_path / "audit" / "sync.ndjson"
        AuditWriter(path)
        assert path.exists()

    def test_emit(self, tmp_path):
        audit = AuditWriter(tmp_path / "sync.ndjson")
        event_id = audit.emit("sync_queued", "footer", menu_id=3, details={"snapshot": True})

        event = read_events(audit.path)[0]
        assert event["event_id"] == event_id
        assert event_id.startswith("E-")
        assert event["menu_slug"] == "footer"
        assert event["menu_id"] == 3
        assert event["level"] == "info"
        assert event["ts_iso"].endswith("Z")
        assert "reason" not in event

    def test_outcomes(self, tmp_path):
        audit = AuditWriter(tmp_path / "sync.ndjson")
        audit.emit_outcome(SyncOutcome.ok("footer", details={"key": "footer"}))
        audit.emit_outcome(SyncOutcome.skipped("footer", RefusalReason.COLLISION))
        audit.emit_outcome(SyncOutcome.failed("footer", "write_fault", "boom"))

        events = read_events(audit.path)
        assert [(e["type"], e["level"]) for e in events] == [
            ("sync_written", "info"),
            ("sync_skipped", "warning"),
            ("sync_failed", "error"),
        ]
        assert events[1]["reason"] == "collision"
        assert events[2]["details"] == {"code": "write_fault", "message": "boom"}

    def test_append_only(self, tmp_path):
        path = tmp_path / "sync.ndjson"
        AuditWriter(path).emit_override_changed("footer", True)
        AuditWriter(path).emit_override_changed("footer", False)
        assert [e["details"]["enabled"] for e in read_events(path)] == [True, False]


class TestLogFormatting:

    def make_record(self, **extra):
        record = logging.LogRecord("menumirror.engine.executor", logging.INFO, __file__, 1, "Synced", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_includes_sync_context(self):
        line = JSONFormatter().format(self.make_record(menu_slug="footer", menu_id=2))
        data = json.loads(line)
        assert data["message"] == "Synced"
        assert data["menu_slug"] == "footer"
        assert data["menu_id"] == 2
        assert "topic" not in data

    def test_human_appends_slug(self):
        line = HumanFormatter(use_color=False).format(self.make_record(menu_slug="footer"))
        assert line.endswith("Synced <footer>")
        assert "[executor" in line

    def test_human_tags_menu_id(self):
        line = HumanFormatter(use_color=False).format(self.make_record(menu_slug="footer", menu_id=2))
        assert line.endswith("Synced <footer#2>")

    def test_human_without_context(self):
        line = HumanFormatter(use_color=False).format(self.make_record())
        assert line.endswith("] Synced")

    def test_setup_logging_json(self):
        stream = io.StringIO()
        root = logging.getLogger()
        saved = (list(root.handlers), root.level)
        try:
            setup_logging(level="debug", format_type="json", stream=stream)
            logging.getLogger("menumirror.engine.queue").info("Queued", extra={"menu_slug": "footer"})
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert lines[-1]["message"] == "Queued"
        assert lines[-1]["menu_slug"] == "footer"
        assert lines[-1]["level"] == "INFO"


class TestAccess:

    def test_origin_from_path(self):
        assert RequestOrigin.from_path("/api/menus") == RequestOrigin.API
        assert RequestOrigin.from_path("/admin/menus") == RequestOrigin.ADMIN
        assert RequestOrigin.from_path("/menus/footer") == RequestOrigin.PUBLIC
        assert not RequestOrigin.PUBLIC.may_drain

    def test_actor_for_token(self):
        assert actor_for_token("tok", "tok", "cap").can("cap")
        assert not actor_for_token("nope", "tok", "cap").can("cap")
        assert not actor_for_token("tok", None, "cap").can("cap")
        assert not actor_for_token(None, "tok", "cap").can("cap")

    def test_anonymous_has_nothing(self):
        assert not Actor.anonymous().can("edit_theme_options")

    def test_token_bound_to_action_and_secret(self):
        tokens = TokenVerifier("s1")
        token = tokens.issue("menu_sync_override")

        assert tokens.verify(token, "menu_sync_override")
        assert not tokens.verify(token, "other_action")
        assert not TokenVerifier("s2").verify(token, "menu_sync_override")
        assert not tokens.verify(None, "menu_sync_override")
