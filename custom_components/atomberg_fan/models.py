"""Data models for Atomberg Fan integration."""

from dataclasses import dataclass, fields
from typing import Any


@dataclass(frozen=True)
class AtombergFanDevice:
    """Represents a fan registered with the Atomberg account."""

    device_id: str
    name: str
    model: str = ""
    series: str = ""
    color: str = ""
    room: str = ""
    ssid: str = ""

    @property
    def model_name(self) -> str:
        """Return model and series joined, or "Unknown" when neither is set."""
        return " ".join(part for part in (self.model, self.series) if part) or "Unknown"


@dataclass(slots=True)
class AtombergFanDeviceState:
    """Represents the operating state reported by the cloud or a broadcast."""

    device_id: str
    is_online: bool
    power: bool = False
    led: bool = False
    sleep_mode: bool = False
    last_recorded_speed: int = 0
    timer_hours: int = 0  # Timer code, see TIMER_DURATIONS_HOURS
    timer_time_elapsed_mins: int = 0
    ts_epoch_seconds: int | None = None
    last_recorded_brightness: int | None = None  # Light variant only
    last_recorded_color: str | None = None  # Light variant only

    @classmethod
    def offline(cls, device_id: str) -> "AtombergFanDeviceState":
        """Return the placeholder used before any state is known."""
        return cls(device_id=device_id, is_online=False)


# Python field name -> key expected by the send_command endpoint
_COMMAND_WIRE_KEYS = {
    "speed_delta": "speedDelta",
    "brightness_delta": "brightnessDelta",
}


@dataclass(frozen=True)
class AtombergFanCommand:
    """A sparse command; only fields that are set are sent to the device."""

    device_id: str
    power: bool | None = None
    speed: int | None = None
    speed_delta: int | None = None
    sleep: bool | None = None
    timer: int | None = None
    led: bool | None = None
    brightness: int | None = None
    brightness_delta: int | None = None
    light_mode: str | None = None

    def command_fields(self) -> dict[str, Any]:
        """Return the set fields keyed by their Python names."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if field.name != "device_id" and getattr(self, field.name) is not None
        }

    def as_payload(self) -> dict[str, Any]:
        """Build the JSON body for the send_command endpoint."""
        command = {
            _COMMAND_WIRE_KEYS.get(name, name): value
            for name, value in self.command_fields().items()
        }
        return {"device_id": self.device_id, "command": command}
