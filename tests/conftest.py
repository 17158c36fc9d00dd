"""Pytest configuration and fixtures for Atomberg Fan tests."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable


def create_broadcast(
    device_id: str,
    state_code: int,
    *,
    padding: int = 16,
) -> bytes:
    """Create a broadcast datagram as sent by a fan.

    Args:
        device_id: Device identifier to embed.
        state_code: Integer state code placed first in state_string.
        padding: Extra characters appended to state_string.

    Returns:
        The hex-encoded JSON payload as bytes.

    """
    payload = {
        "device_id": device_id,
        "state_string": f"{state_code},0,0,{'0' * padding}",
    }
    return json.dumps(payload).encode().hex().encode()


class FakeTimerHandle:
    """Minimal timer handle tracking cancellation state."""

    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        """Bind the handle to a callback."""
        self.delay = delay
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        """Mark the handle as cancelled."""
        self.cancelled = True

    def fire(self) -> None:
        """Invoke the stored callback when not cancelled."""
        if not self.cancelled:
            self._callback()


class FakeLoop:
    """Event loop double that records scheduled callbacks."""

    def __init__(self) -> None:
        """Set up storage for scheduled timer handles."""
        self.handles: list[FakeTimerHandle] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> FakeTimerHandle:
        """Record timer registrations with the requested delay."""
        handle = FakeTimerHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def active(self, delay: float | None = None) -> list[FakeTimerHandle]:
        """Return handles that are not cancelled, optionally by delay."""
        return [
            handle
            for handle in self.handles
            if not handle.cancelled and (delay is None or handle.delay == delay)
        ]


@pytest.fixture
def fake_loop() -> FakeLoop:
    """Fixture providing a loop double for timer assertions."""
    return FakeLoop()


@pytest.fixture
def mock_hass(fake_loop: FakeLoop) -> MagicMock:
    """Create a mock Home Assistant instance."""
    hass = MagicMock()
    hass.loop = fake_loop
    hass.data = {}
    hass.async_create_task = MagicMock(
        side_effect=lambda coro: asyncio.create_task(coro)
    )
    return hass


@pytest.fixture
def sample_access_token_response() -> dict:
    """Fixture providing a sample get_access_token API response."""
    return {
        "status": "Success",
        "message": {"access_token": "test_access_token"},
    }


@pytest.fixture
def sample_devices_response() -> dict:
    """Fixture providing a sample get_list_of_devices API response.

    Returns:
        A dictionary representing a devices API response with two fans.

    """
    return {
        "status": "Success",
        "message": {
            "devices_list": [
                {
                    "device_id": "device1",
                    "color": "Earth Brown",
                    "series": "I1",
                    "model": "Renesa+",
                    "room": "Bedroom",
                    "name": "Bedroom Fan",
                    "metadata": {"ssid": "home"},
                },
                {
                    "device_id": "device2",
                    "color": "White",
                    "series": "",
                    "model": "Aris Starlight",
                    "room": "Living Room",
                    "name": "Living Room Fan",
                    "metadata": {"ssid": "home"},
                },
            ],
        },
    }


@pytest.fixture
def sample_device_state_response() -> dict:
    """Fixture providing a sample get_device_state API response."""
    return {
        "status": "Success",
        "message": {
            "device_state": [
                {
                    "device_id": "device1",
                    "is_online": True,
                    "power": True,
                    "led": False,
                    "sleep_mode": False,
                    "last_recorded_speed": 3,
                    "timer_hours": 0,
                    "timer_time_elapsed_mins": 0,
                    "ts_epoch_seconds": 1700000000,
                },
                {
                    "device_id": "device2",
                    "is_online": False,
                    "power": False,
                    "led": True,
                    "sleep_mode": False,
                    "last_recorded_speed": 1,
                    "timer_hours": 2,
                    "timer_time_elapsed_mins": 12,
                    "ts_epoch_seconds": 1700000000,
                    "last_recorded_brightness": 50,
                    "last_recorded_color": "Daylight",
                },
            ],
        },
    }


@pytest.fixture
def sample_send_command_response() -> dict:
    """Fixture providing a sample send_command API response."""
    return {"status": "Success", "message": "Command sent"}


@pytest.fixture
def broadcast_factory() -> Callable[..., bytes]:
    """Fixture providing the broadcast datagram builder."""
    return create_broadcast
