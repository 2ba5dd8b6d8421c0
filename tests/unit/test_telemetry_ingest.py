import pydantic
import pytest

from app.domain.exceptions import NotFoundError, ValidationError
from app.services.application.telemetry_ingest import TelemetryIngestService


@pytest.fixture()
def ingest(telemetry_repo, alert_repo, threshold_repo, recording_bus):
    return TelemetryIngestService(telemetry_repo, alert_repo, threshold_repo, recording_bus)


def test_readings_are_stored_and_latest_is_published(ingest, recording_bus):
    count = ingest.ingest_readings(
        {
            "readings": [
                {"temp": 22.0, "hum": 55, "soil1": 40, "recorded_at": "2024-05-01T10:00:00Z"},
                {"temp": 23.5, "npk": {"n": 10, "p": 5, "k": 8}, "actuators": {"pump_water": True}},
            ]
        }
    )

    assert count == 2
    assert recording_bus.topics() == ["new_reading"]
    latest = ingest.latest_reading()
    assert latest["temp"] == 23.5
    assert latest["npk"] == {"n": 10.0, "p": 5.0, "k": 8.0}
    assert latest["actuators"] == {"pump_water": True}


def test_device_timestamps_are_normalised_to_utc(ingest, recording_bus):
    ingest.ingest_readings({"readings": [{"temp": 20, "recorded_at": "2024-05-01T12:00:00+02:00"}]})
    _, reading = recording_bus.published[0]
    assert reading["recorded_at"] == "2024-05-01T10:00:00+00:00"


@pytest.mark.parametrize("payload", [{}, {"readings": "nope"}, None])
def test_missing_readings_array_is_rejected(ingest, payload):
    with pytest.raises(ValidationError, match="Readings array required"):
        ingest.ingest_readings(payload)


def test_malformed_item_rejects_the_whole_batch(ingest, recording_bus):
    with pytest.raises(pydantic.ValidationError):
        ingest.ingest_readings({"readings": [{"temp": 21}, {"temp": "hot"}]})

    with pytest.raises(NotFoundError):
        ingest.latest_reading()
    assert recording_bus.published == []


def test_events_are_published_one_by_one(ingest, telemetry_repo, recording_bus):
    count = ingest.ingest_events(
        {"events": [{"event": "pump_on", "reason": "soil dry"}, {"event": "pump_off"}]}
    )

    assert count == 2
    assert telemetry_repo.count_events() == 2
    assert recording_bus.topics() == ["automation_event", "automation_event"]
    assert [payload["event"] for _, payload in recording_bus.published] == ["pump_on", "pump_off"]


def test_empty_event_name_rejects_batch(ingest, telemetry_repo):
    with pytest.raises(pydantic.ValidationError):
        ingest.ingest_events({"events": [{"event": "fan_on"}, {"event": ""}]})
    assert telemetry_repo.count_events() == 0


def test_only_urgent_alerts_are_pushed_live(ingest, alert_repo, recording_bus):
    count = ingest.ingest_alerts(
        {
            "alerts": [
                {"level": "INFO", "message": "boot complete"},
                {"level": "CRITICAL", "message": "arduino lost"},
                {"level": "WARNING", "message": "wifi weak"},
                {"level": "ERROR", "message": "sensor fault"},
            ]
        }
    )

    assert count == 4
    assert recording_bus.topics() == ["system_alert", "system_alert"]
    assert [payload["level"] for _, payload in recording_bus.published] == ["CRITICAL", "ERROR"]
    assert all(alert["source"] == "pi" for alert in alert_repo.newest())


def test_unknown_alert_level_rejects_batch(ingest, alert_repo):
    with pytest.raises(pydantic.ValidationError):
        ingest.ingest_alerts({"alerts": [{"level": "INFO", "message": "ok"}, {"level": "PANIC", "message": "x"}]})
    assert alert_repo.newest() == []


def test_heartbeat_overwrites_snapshot(ingest, recording_bus):
    first = ingest.record_heartbeat({"arduino_connected": True, "wifi_available": True, "pending_readings": 3})
    assert first["arduino_connected"] is True
    assert first["pending_readings"] == 3
    assert first["lastHeartbeat"]

    second = ingest.record_heartbeat({"arduino_connected": False})
    assert second["arduino_connected"] is False
    assert second["wifi_available"] is None
    assert ingest.pi_status() == second
    assert recording_bus.topics() == ["pi_status", "pi_status"]


def test_status_before_first_heartbeat_is_none(ingest):
    assert ingest.pi_status() is None
