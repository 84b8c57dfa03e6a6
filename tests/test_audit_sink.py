"""
Tests for audit events and the audit sink.
"""

import asyncio
import dataclasses
import json
import pytest

from safety_triage.audit import (
    AuditEvent, AuditSink, EventType, TriggerSource, ModerationOutcome, ResourceType
)
from safety_triage.config import AuditConfig
from safety_triage.exceptions import AuditWriteError
from safety_triage.triage import RiskLevel


class TestAuditEvent:
    """Tests for AuditEvent construction."""

    def test_defaults(self):
        event = AuditEvent(event_type=EventType.TRIAGE_COMPLETED)
        assert len(event.id) == 32
        assert event.created_at.tzinfo is not None
        assert event.notified_owner is False

    def test_fields_are_categorical(self):
        """Every field is an enum, bool, timestamp, id or region code."""
        event = AuditEvent(
            event_type=EventType.CRISIS_MODE_TRIGGERED,
            risk_level=RiskLevel.EMERGENCY,
            region_code="CA",
            trigger_source=TriggerSource.TRIAGE,
            notified_owner=True
        )
        names = {f.name for f in dataclasses.fields(event)}
        assert names == {
            "event_type", "id", "created_at", "risk_level", "region_code",
            "trigger_source", "moderation_outcome", "resource_type", "notified_owner"
        }

    def test_string_event_type_rejected(self):
        with pytest.raises(TypeError):
            AuditEvent(event_type="triage_completed")

    def test_free_text_region_rejected(self):
        with pytest.raises(TypeError):
            AuditEvent(event_type=EventType.TRIAGE_COMPLETED, region_code="I feel unsafe")

    def test_free_text_id_rejected(self):
        with pytest.raises(TypeError):
            AuditEvent(event_type=EventType.TRIAGE_COMPLETED, id="user said hello")

    def test_string_risk_level_rejected(self):
        with pytest.raises(TypeError):
            AuditEvent(event_type=EventType.TRIAGE_COMPLETED, risk_level="EMERGENCY!")

    def test_non_bool_notified_owner_rejected(self):
        with pytest.raises(TypeError):
            AuditEvent(event_type=EventType.TRIAGE_COMPLETED, notified_owner="yes")

    def test_immutable(self):
        event = AuditEvent(event_type=EventType.TRIAGE_COMPLETED)
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.risk_level = RiskLevel.URGENT

    def test_to_json(self):
        event = AuditEvent(
            event_type=EventType.AI_ASSISTANT_USED,
            moderation_outcome=ModerationOutcome.SAFE
        )
        data = json.loads(event.to_json())
        assert data["event_type"] == "ai_assistant_used"
        assert data["moderation_outcome"] == "safe"
        assert data["risk_level"] is None

    def test_from_dict_restores_event(self):
        event = AuditEvent(
            event_type=EventType.CRISIS_MODE_TRIGGERED_BY_MODERATION,
            risk_level=RiskLevel.EMERGENCY,
            region_code="WA",
            trigger_source=TriggerSource.MODERATION,
            moderation_outcome=ModerationOutcome.FLAGGED,
            notified_owner=True
        )
        assert AuditEvent.from_dict(json.loads(event.to_json())) == event

    def test_from_dict_rejects_unknown_member(self):
        data = AuditEvent(event_type=EventType.TRIAGE_COMPLETED).to_dict()
        data["event_type"] = "user_said_something"
        with pytest.raises(ValueError):
            AuditEvent.from_dict(data)


class TestAuditSink:
    """Tests for AuditSink."""

    @pytest.mark.asyncio
    async def test_record_returns_id(self, audit_sink):
        event = AuditEvent(event_type=EventType.TRIAGE_COMPLETED)
        assert await audit_sink.record(event) == event.id
        assert audit_sink.count() == 1

    @pytest.mark.asyncio
    async def test_rejects_non_events(self, audit_sink):
        with pytest.raises(TypeError):
            await audit_sink.record({"event_type": "triage_completed", "message": "help"})
        with pytest.raises(TypeError):
            await audit_sink.record("I want to hurt myself")
        assert audit_sink.count() == 0

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self, audit_sink):
        await audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))
        snapshot = await audit_sink.snapshot()
        assert isinstance(snapshot, tuple)
        assert not hasattr(audit_sink, "delete")
        assert not hasattr(audit_sink, "update")

    @pytest.mark.asyncio
    async def test_snapshot_filters(self, audit_sink):
        await audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))
        await audit_sink.record(AuditEvent(event_type=EventType.RESOURCE_CLICKED,
                                           resource_type=ResourceType.CRISIS))
        await audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))

        assert len(await audit_sink.snapshot(event_type=EventType.TRIAGE_COMPLETED)) == 2
        assert len(await audit_sink.snapshot(limit=1)) == 1

    @pytest.mark.asyncio
    async def test_jsonl_persistence(self, file_audit_sink, tmp_path):
        await file_audit_sink.record(AuditEvent(
            event_type=EventType.CRISIS_MODE_TRIGGERED,
            risk_level=RiskLevel.EMERGENCY,
            trigger_source=TriggerSource.TRIAGE
        ))
        await file_audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED,
                                                risk_level=RiskLevel.ROUTINE))

        files = list((tmp_path / "audit").glob("audit_*.jsonl"))
        assert len(files) == 1
        lines = files[0].read_text(encoding="utf-8").strip().split("\n")
        assert [json.loads(l)["event_type"] for l in lines] == [
            "crisis_mode_triggered", "triage_completed"
        ]

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path):
        sink = AuditSink(AuditConfig(log_dir=str(tmp_path / "audit")))
        # Replace the directory with a file so the append fails
        (tmp_path / "audit").rmdir()
        (tmp_path / "audit").write_text("not a directory")

        with pytest.raises(AuditWriteError):
            await sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))

    @pytest.mark.asyncio
    async def test_concurrent_records(self, file_audit_sink, tmp_path):
        events = [AuditEvent(event_type=EventType.TRIAGE_COMPLETED) for _ in range(200)]
        await asyncio.gather(*(file_audit_sink.record(e) for e in events))

        assert file_audit_sink.count() == 200
        lines = next((tmp_path / "audit").glob("audit_*.jsonl")).read_text().strip().split("\n")
        assert len(lines) == 200
        assert {json.loads(l)["id"] for l in lines} == {e.id for e in events}

    @pytest.mark.asyncio
    async def test_stats(self, audit_sink):
        await audit_sink.record(AuditEvent(event_type=EventType.CRISIS_MODE_TRIGGERED,
                                           risk_level=RiskLevel.EMERGENCY, region_code="CA"))
        await audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED,
                                           risk_level=RiskLevel.URGENT, region_code="CA"))
        await audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED,
                                           risk_level=RiskLevel.ROUTINE))

        stats = await audit_sink.stats()
        assert stats.total == 3
        assert stats.by_event_type == {"triage_completed": 2, "crisis_mode_triggered": 1}
        assert stats.by_risk_level == {"EMERGENCY": 1, "URGENT": 1, "ROUTINE": 1}
        assert stats.by_region == {"CA": 2}
        assert stats.to_dict()["total"] == 3


class TestAuditRetention:
    """Memory use of the sink stays bounded."""

    @pytest.mark.asyncio
    async def test_memory_window_is_bounded(self):
        sink = AuditSink(AuditConfig(max_memory_events=3))
        events = [
            AuditEvent(event_type=EventType.TRIAGE_COMPLETED, risk_level=RiskLevel.ROUTINE)
            for _ in range(5)
        ]
        for event in events:
            await sink.record(event)

        snapshot = await sink.snapshot()
        assert [e.id for e in snapshot] == [e.id for e in events[-3:]]
        assert sink.buffered_count == 3
        assert sink.count() == 5

        # Counters cover every event, not just the retained window
        stats = await sink.stats()
        assert stats.total == 5
        assert stats.by_risk_level == {"ROUTINE": 5}

    @pytest.mark.asyncio
    async def test_file_backed_sink_keeps_nothing_in_memory(self, file_audit_sink):
        for _ in range(500):
            await file_audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))

        assert file_audit_sink.count() == 500
        assert file_audit_sink.buffered_count == 0

    @pytest.mark.asyncio
    async def test_file_backed_queries_read_the_log(self, file_audit_sink):
        crisis = AuditEvent(
            event_type=EventType.CRISIS_MODE_TRIGGERED,
            risk_level=RiskLevel.EMERGENCY,
            region_code="NY",
            trigger_source=TriggerSource.TRIAGE,
            notified_owner=True
        )
        await file_audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED,
                                                risk_level=RiskLevel.URGENT))
        await file_audit_sink.record(crisis)
        await file_audit_sink.record(AuditEvent(event_type=EventType.RESOURCE_CLICKED,
                                                region_code="NY",
                                                resource_type=ResourceType.CRISIS))

        stats = await file_audit_sink.stats()
        assert stats.total == 3
        assert stats.by_risk_level == {"URGENT": 1, "EMERGENCY": 1}
        assert stats.by_region == {"NY": 2}

        matching = await file_audit_sink.snapshot(event_type=EventType.CRISIS_MODE_TRIGGERED)
        assert matching == (crisis,)
        newest = await file_audit_sink.snapshot(limit=1)
        assert newest[0].event_type == EventType.RESOURCE_CLICKED

    @pytest.mark.asyncio
    async def test_history_survives_restart(self, tmp_path):
        config = AuditConfig(log_dir=str(tmp_path / "audit"))
        first = AuditSink(config)
        await first.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))

        second = AuditSink(config)
        assert second.count() == 0
        assert (await second.stats()).total == 1

    @pytest.mark.asyncio
    async def test_malformed_lines_skipped(self, file_audit_sink, tmp_path):
        await file_audit_sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))
        log_file = next((tmp_path / "audit").glob("audit_*.jsonl"))
        with open(log_file, "a", encoding="utf-8") as f:
            f.write("{not json\n")

        assert (await file_audit_sink.stats()).total == 1
        assert len(await file_audit_sink.snapshot()) == 1
