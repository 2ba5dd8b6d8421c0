from unittest.mock import MagicMock

import pytest
import requests

from app.domain.exceptions import RelayTimeout, RelayUnavailable
from app.services.device_relay import DeviceRelayClient


def _response(status: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    return response


@pytest.fixture()
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def relay(session):
    client = DeviceRelayClient("http://pi.local:5000/", "pi-secret", timeout=0.5, session=session)
    yield client
    client.close()


def test_push_thresholds_posts_changed_fields_with_api_key(relay, session):
    session.post.return_value = _response(body={"success": True})

    result = relay.push_thresholds({"soil1": 45.0})

    assert result == {"success": True}
    session.post.assert_called_once_with(
        "http://pi.local:5000/api/thresholds/bulk",
        json={"soil1": 45.0},
        headers={"X-API-Key": "pi-secret"},
        timeout=0.5,
    )


def test_manual_and_auto_endpoints(relay, session):
    session.post.return_value = _response()

    assert relay.send_command({"actuator": "fan_exhaust", "state": True, "pwm": 200}) == {}
    relay.resume_auto()

    urls = [call.args[0] for call in session.post.call_args_list]
    assert urls == ["http://pi.local:5000/api/manual", "http://pi.local:5000/api/auto"]
    assert session.post.call_args_list[1].kwargs["json"] == {}


def test_socket_timeout_maps_to_relay_timeout(relay, session):
    session.post.side_effect = requests.exceptions.ReadTimeout("read timed out")
    with pytest.raises(RelayTimeout):
        relay.push_thresholds({"soil1": 45})


def test_connection_error_maps_to_relay_unavailable(relay, session):
    session.post.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(RelayUnavailable):
        relay.resume_auto()


def test_non_2xx_answer_is_relay_unavailable(relay, session):
    session.post.return_value = _response(status=500, body={"error": "boom"})
    with pytest.raises(RelayUnavailable):
        relay.send_command({"actuator": "pump_water", "state": False})


def test_hung_device_is_abandoned_after_deadline(relay, session):
    import threading

    release = threading.Event()

    def hang(*args, **kwargs):
        release.wait(2)
        return _response(body={"success": True})

    session.post.side_effect = hang
    try:
        with pytest.raises(RelayTimeout):
            relay.push_thresholds({"soil2": 50})
    finally:
        release.set()


def test_non_object_json_is_wrapped(relay, session):
    session.post.return_value = _response(body=[1, 2])
    assert relay.resume_auto() == {"result": [1, 2]}
