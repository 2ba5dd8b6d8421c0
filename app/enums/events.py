from enum import Enum


class LiveTopic(str, Enum):
    """Socket.IO event names published on the broadcast bus."""

    # Device telemetry
    NEW_READING = "new_reading"
    AUTOMATION_EVENT = "automation_event"
    PI_STATUS = "pi_status"
    SYSTEM_ALERT = "system_alert"

    # Operator commands
    THRESHOLD_UPDATE = "threshold_update"
    MANUAL_CONTROL = "manual_control"
    AUTO_MODE_RESUMED = "auto_mode_resumed"

    # Presence
    USER_ONLINE = "user_online"
    USER_OFFLINE = "user_offline"

    # Targeted
    FORCE_DISCONNECT = "force_disconnect"
    LIVE_DATA_REQUESTED = "live_data_requested"

    def __str__(self) -> str:
        return self.value
