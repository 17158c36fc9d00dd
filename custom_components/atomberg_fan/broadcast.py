"""Local UDP broadcast support for Atomberg fans.

Fans periodically broadcast their state on the local network. Each datagram
is hex-encoded JSON whose ``state_string`` starts with an integer state code
packing every attribute into bit fields.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from .const import (
    BROADCAST_MIN_SIZE,
    BROADCAST_PORT,
    COLOR_COOL,
    COLOR_DAYLIGHT,
    COLOR_WARM,
    MASK_BRIGHTNESS,
    MASK_COOL,
    MASK_LED,
    MASK_POWER,
    MASK_SLEEP,
    MASK_SPEED,
    MASK_TIMER,
    MASK_TIMER_ELAPSED,
    MASK_WARM,
    MAX_SPEED,
    SHIFT_BRIGHTNESS,
    SHIFT_TIMER,
    SHIFT_TIMER_ELAPSED,
    TIMER_ELAPSED_UNIT_MINS,
)
from .models import AtombergFanDeviceState

if TYPE_CHECKING:
    from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)


class BroadcastDecodeError(Exception):
    """Raised internally when a datagram is not a valid state broadcast."""


def _decode_payload(data: bytes) -> dict[str, Any]:
    try:
        hex_string = data.decode("ascii").strip()
        payload = json.loads(bytes.fromhex(hex_string).decode("utf-8"))
    except (ValueError, RecursionError) as err:
        error_msg = f"Invalid broadcast encoding: {err}"
        raise BroadcastDecodeError(error_msg) from err

    if not isinstance(payload, dict):
        error_msg = "Broadcast payload is not a JSON object"
        raise BroadcastDecodeError(error_msg)
    return payload


def _extract_state_code(payload: dict[str, Any]) -> int:
    state_string = payload.get("state_string")
    if not isinstance(state_string, str):
        error_msg = "Broadcast payload has no state_string"
        raise BroadcastDecodeError(error_msg)

    try:
        return int(state_string.split(",")[0])
    except ValueError as err:
        error_msg = f"Invalid state code in {state_string!r}"
        raise BroadcastDecodeError(error_msg) from err


def _decode_color(state_code: int) -> str:
    """Decode the light color mode from the cool and warm flags."""
    if not state_code & MASK_COOL:
        return COLOR_WARM
    if not state_code & MASK_WARM:
        return COLOR_COOL
    return COLOR_DAYLIGHT


def decode_state_code(device_id: str, state_code: int) -> AtombergFanDeviceState:
    """Decode an integer state code into a device state.

    Bit layout:
        0x00000007  speed (0-6)
        0x00000008  cool flag (light variant)
        0x00000010  power
        0x00000020  LED
        0x00000080  sleep mode
        0x00007F00  brightness (light variant)
        0x00008000  warm flag (light variant)
        0x000F0000  timer code
        0xFF000000  timer elapsed, in units of 4 minutes

    Raises:
        BroadcastDecodeError: If the speed bits hold a value above 6.

    """
    speed = state_code & MASK_SPEED
    if speed > MAX_SPEED:
        error_msg = f"Invalid speed {speed} in state code {state_code:#x}"
        raise BroadcastDecodeError(error_msg)

    return AtombergFanDeviceState(
        device_id=device_id,
        is_online=True,
        power=bool(state_code & MASK_POWER),
        led=bool(state_code & MASK_LED),
        sleep_mode=bool(state_code & MASK_SLEEP),
        last_recorded_speed=speed,
        timer_hours=(state_code & MASK_TIMER) >> SHIFT_TIMER,
        timer_time_elapsed_mins=(
            ((state_code & MASK_TIMER_ELAPSED) >> SHIFT_TIMER_ELAPSED)
            * TIMER_ELAPSED_UNIT_MINS
        ),
        last_recorded_brightness=(state_code & MASK_BRIGHTNESS) >> SHIFT_BRIGHTNESS,
        last_recorded_color=_decode_color(state_code),
    )


def decode_broadcast(data: bytes) -> AtombergFanDeviceState | None:
    """Decode a raw broadcast datagram.

    Returns:
        The decoded state, or None if the datagram is malformed.

    """
    try:
        payload = _decode_payload(data)
        device_id = payload.get("device_id")
        if not device_id:
            error_msg = "Broadcast payload has no device_id"
            raise BroadcastDecodeError(error_msg)
        return decode_state_code(str(device_id), _extract_state_code(payload))
    except BroadcastDecodeError as err:
        _LOGGER.warning("Error parsing broadcast message: %s", err)
        return None


class _BroadcastProtocol(asyncio.DatagramProtocol):
    def __init__(self, listener: AtombergBroadcastListener) -> None:
        self._listener = listener

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._listener.handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        _LOGGER.warning("Broadcast socket error: %s", exc)


class AtombergBroadcastListener:
    """Listen for state broadcasts and dispatch decoded states to callbacks."""

    def __init__(self, port: int = BROADCAST_PORT) -> None:
        self._port = port
        self._transport: asyncio.DatagramTransport | None = None
        self._state_callbacks: list[Callable[[AtombergFanDeviceState], None]] = []

    @property
    def listening(self) -> bool:
        """Return True while the socket is bound."""
        return self._transport is not None

    def register_state_callback(
        self,
        callback: Callable[[AtombergFanDeviceState], None],
    ) -> Callable[[], None]:
        """Register a callback for decoded device states.

        Returns:
            A function to unregister the callback.

        """
        self._state_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._state_callbacks:
                self._state_callbacks.remove(callback)

        return unregister

    async def async_start(self) -> None:
        """Bind the UDP socket.

        Raises:
            OSError: If the port cannot be bound.

        """
        if self._transport is not None:
            return

        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _BroadcastProtocol(self),
            local_addr=("0.0.0.0", self._port),  # noqa: S104
        )
        self._transport = transport
        _LOGGER.debug("UDP socket listening on %s", transport.get_extra_info("sockname"))

    async def async_stop(self) -> None:
        """Close the UDP socket."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            _LOGGER.debug("Closed broadcast socket on port %d", self._port)

    def handle_datagram(self, data: bytes, addr: tuple[str, int]) -> None:
        """Filter, decode and dispatch one datagram."""
        if len(data) <= BROADCAST_MIN_SIZE:
            _LOGGER.debug(
                "Ignoring %d byte datagram from %s (must exceed %d)",
                len(data),
                addr,
                BROADCAST_MIN_SIZE,
            )
            return

        state = decode_broadcast(data)
        if state is None:
            return

        state = dataclasses.replace(state, ts_epoch_seconds=int(time.time()))
        _LOGGER.debug("Received broadcast from %s: %s", addr, state)

        for callback in list(self._state_callbacks):
            try:
                callback(state)
            except Exception:
                _LOGGER.exception("Error in broadcast state callback")
