"""Coordinator for Atomberg Fan integration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DOMAIN
from .device import AtombergFanDeviceHandle

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .models import AtombergFanDevice, AtombergFanDeviceState

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of one reconciliation pass.

    Attributes:
        added: Devices new to the account, in inventory order.
        updated: Devices that were already known locally, in inventory order.
        removed: Identifiers of local devices missing from the inventory.

    """

    added: list[AtombergFanDevice] = field(default_factory=list)
    updated: list[AtombergFanDevice] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def added_ids(self) -> set[str]:
        """Return the identifiers of added devices."""
        return {device.device_id for device in self.added}

    @property
    def updated_ids(self) -> set[str]:
        """Return the identifiers of updated devices."""
        return {device.device_id for device in self.updated}


class AtombergFanCoordinator(DataUpdateCoordinator[ReconciliationResult]):
    """Reconcile the cloud inventory with local devices and route state changes.

    The registry maps device identifiers to their handles. Devices restored
    from the device registry are known locally before the first pass.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        client: api.AtombergApiClient,
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=None,
        )
        self._client = client
        self._handles: dict[str, AtombergFanDeviceHandle] = {}
        self._cached_device_ids: set[str] = set()

    @property
    def handles(self) -> dict[str, AtombergFanDeviceHandle]:
        """Return the registry of device handles."""
        return dict(self._handles)

    @property
    def known_device_ids(self) -> set[str]:
        """Return identifiers of every locally known device."""
        return self._cached_device_ids | set(self._handles)

    def get_handle(self, device_id: str) -> AtombergFanDeviceHandle | None:
        """Return the handle for a device, if it has been reconciled."""
        return self._handles.get(device_id)

    def restore_cached_device(self, device_id: str) -> None:
        """Record a device restored from the host cache."""
        _LOGGER.info("Loading device %s from cache", device_id)
        self._cached_device_ids.add(device_id)

    async def _async_update_data(self) -> ReconciliationResult:
        try:
            return await self.async_reconcile()
        except api.AtombergNotAuthenticatedError as err:
            raise UpdateFailed(f"Not logged in to Atomberg: {err}") from err
        except api.AtombergApiAuthError as err:
            raise UpdateFailed(f"Authentication error during discovery: {err}") from err
        except api.AtombergApiClientError as err:
            raise UpdateFailed(f"API error during discovery: {err}") from err

    async def async_reconcile(self) -> ReconciliationResult:
        """Run a full reconciliation pass against the Atomberg inventory.

        Raises:
            AtombergApiClientError: If the device inventory cannot be fetched.

        """
        _LOGGER.info("Discovering devices on Atomberg platform")
        devices = await self._client.async_get_devices()
        if not devices:
            _LOGGER.info("No devices found on Atomberg platform")
        states = await self._async_fetch_states() if devices else {}

        local_ids = self.known_device_ids
        added: list[AtombergFanDevice] = []
        updated: list[AtombergFanDevice] = []
        seen_ids: set[str] = set()

        for device in devices:
            if device.device_id in seen_ids:
                _LOGGER.debug(
                    "Skipping duplicate inventory entry for device %s",
                    device.device_id,
                )
                continue
            seen_ids.add(device.device_id)

            state = states.get(device.device_id)
            if device.device_id in local_ids:
                _LOGGER.info(
                    "Restoring existing device %s (%s)", device.name, device.device_id
                )
                self._merge_device(device, state)
                updated.append(device)
            else:
                _LOGGER.info("Adding new device %s (%s)", device.name, device.device_id)
                self._handles[device.device_id] = AtombergFanDeviceHandle(
                    self._client, device, state
                )
                added.append(device)

        removed = sorted(local_ids - seen_ids)
        for device_id in removed:
            _LOGGER.info(
                "Removing device %s because it does not exist on the account anymore",
                device_id,
            )
            self._handles.pop(device_id, None)

        self._cached_device_ids = seen_ids
        return ReconciliationResult(added=added, updated=updated, removed=removed)

    async def _async_fetch_states(self) -> dict[str, AtombergFanDeviceState]:
        try:
            states = await self._client.async_get_device_states()
        except api.AtombergApiClientError as err:
            _LOGGER.warning(
                "Could not fetch device states, devices start offline: %s", err
            )
            return {}
        return {state.device_id: state for state in states}

    def _merge_device(
        self, device: AtombergFanDevice, state: AtombergFanDeviceState | None
    ) -> None:
        handle = self._handles.get(device.device_id)
        if handle is None:
            self._handles[device.device_id] = AtombergFanDeviceHandle(
                self._client, device, state
            )
            return

        handle.update_device(device)
        if state is not None:
            handle.refresh_state(state)

    def handle_state_change(self, state: AtombergFanDeviceState) -> None:
        """Forward a state change to the device handle, if the device is known."""
        handle = self._handles.get(state.device_id)
        if handle is None:
            _LOGGER.debug("Dropping state for unknown device %s", state.device_id)
            return

        _LOGGER.debug("Updating state for device %s", state.device_id)
        handle.refresh_state(state)
