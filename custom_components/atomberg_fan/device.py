"""Per-device handle for Atomberg fans.

A handle is the consumer-facing side of one reconciled device: it keeps the
last known state, publishes state changes to listeners, and turns user
intent into commands.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from .api import (
    AtombergApiClientError,
    AtombergDeviceOfflineError,
    AtombergPreconditionError,
)
from .models import AtombergFanCommand, AtombergFanDevice, AtombergFanDeviceState

if TYPE_CHECKING:
    from collections.abc import Callable

    from .api import AtombergApiClient

_LOGGER = logging.getLogger(__name__)


class AtombergFanDeviceHandle:
    """Last known state and command entry point for a single fan."""

    def __init__(
        self,
        client: AtombergApiClient,
        device: AtombergFanDevice,
        state: AtombergFanDeviceState | None = None,
    ) -> None:
        self._client = client
        self._device = device
        self._state = state or AtombergFanDeviceState.offline(device.device_id)
        self._listeners: list[Callable[[AtombergFanDeviceState], None]] = []

    @property
    def device(self) -> AtombergFanDevice:
        """Return the identity record of the fan."""
        return self._device

    @property
    def device_id(self) -> str:
        """Return the device identifier."""
        return self._device.device_id

    @property
    def state(self) -> AtombergFanDeviceState:
        """Return the last known state."""
        return self._state

    @property
    def available(self) -> bool:
        """Return True if the fan was online at the last update."""
        return self._state.is_online

    def register_listener(
        self,
        callback: Callable[[AtombergFanDeviceState], None],
    ) -> Callable[[], None]:
        """Register a callback for state changes.

        Returns:
            A function to unregister the callback.

        """
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    def update_device(self, device: AtombergFanDevice) -> None:
        """Replace the identity record with a newer one from the inventory."""
        self._device = device

    def refresh_state(self, state: AtombergFanDeviceState) -> bool:
        """Apply a state update.

        An offline update keeps the last known values and only marks the
        fan unavailable; listeners are not notified.

        Returns:
            True if the state was applied and published.

        """
        if not state.is_online:
            _LOGGER.debug(
                "Device %s is offline, skipping device status refresh",
                self._device.name,
            )
            self._state = dataclasses.replace(self._state, is_online=False)
            return False

        _LOGGER.debug("Refreshing device %s details", self._device.name)
        self._state = state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception(
                    "Error in state listener for device %s", self._device.name
                )
        return True

    async def async_send_command(self, command: AtombergFanCommand) -> bool:
        """Send a command to the fan.

        Returns:
            True if the API accepted the command, False if it failed.

        Raises:
            AtombergDeviceOfflineError: If the fan is offline.
            AtombergPreconditionError: If the command is invalid or no access
                token is available.

        """
        if not self._state.is_online:
            _LOGGER.info(
                "Device %s is offline, unable to send command", self._device.name
            )
            error_msg = f"Device {self._device.name} is offline"
            raise AtombergDeviceOfflineError(error_msg)

        try:
            result = await self._client.async_send_command(command)
        except AtombergPreconditionError:
            raise
        except AtombergApiClientError as err:
            _LOGGER.error(
                "An error occurred while sending a command to %s: %s",
                self._device.name,
                err,
            )
            return False

        _LOGGER.debug("Successfully sent command to device %s", self._device.name)
        return result

    async def async_set_power(self, power: bool) -> bool:  # noqa: FBT001
        """Turn the fan on or off."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, power=power)
        )

    async def async_set_speed(self, speed: int) -> bool:
        """Set an absolute fan speed (1 to 6)."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, speed=speed)
        )

    async def async_change_speed(self, delta: int) -> bool:
        """Raise or lower the fan speed by up to 5 steps."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, speed_delta=delta)
        )

    async def async_set_led(self, led: bool) -> bool:  # noqa: FBT001
        """Turn the indicator LED on or off."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, led=led)
        )

    async def async_set_sleep_mode(self, sleep: bool) -> bool:  # noqa: FBT001
        """Enable or disable sleep mode."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, sleep=sleep)
        )

    async def async_set_timer(self, timer: int) -> bool:
        """Set the timer code (see TIMER_DURATIONS_HOURS)."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, timer=timer)
        )

    async def async_set_brightness(self, brightness: int) -> bool:
        """Set the light brightness (10 to 100)."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, brightness=brightness)
        )

    async def async_set_light_mode(self, light_mode: str) -> bool:
        """Set the light color mode (cool, warm or daylight)."""
        return await self.async_send_command(
            AtombergFanCommand(device_id=self.device_id, light_mode=light_mode)
        )
