from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from homeassistant.helpers import device_registry as dr

from .api import AtombergApiClient, create_session_client
from .broadcast import AtombergBroadcastListener
from .const import CONF_API_KEY, CONF_REFRESH_TOKEN, DOMAIN, MANUFACTURER
from .coordinator import AtombergFanCoordinator, ReconciliationResult
from .session import AtombergSessionManager

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


@dataclass
class AtombergFanData:
    """Runtime objects owned by one config entry."""

    session: httpx.AsyncClient
    session_manager: AtombergSessionManager
    client: AtombergApiClient
    coordinator: AtombergFanCoordinator
    listener: AtombergBroadcastListener
    unsubscribers: list[Callable[[], None]] = field(default_factory=list)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Atomberg Fan integration for entry %s", entry.entry_id)

    if not entry.data.get(CONF_API_KEY):
        _LOGGER.error(
            "API key is not configured for entry %s - aborting setup. "
            "Add the API key from the Atomberg app and reload the integration",
            entry.entry_id,
        )
        return False

    if not entry.data.get(CONF_REFRESH_TOKEN):
        _LOGGER.error(
            "Refresh token is not configured for entry %s - aborting setup. "
            "Add the refresh token from the Atomberg app and reload the integration",
            entry.entry_id,
        )
        return False

    session = create_session_client(hass)
    session_manager = AtombergSessionManager(
        hass, session, entry.data[CONF_API_KEY], entry.data[CONF_REFRESH_TOKEN]
    )
    client = AtombergApiClient(session, entry.data[CONF_API_KEY], session_manager)
    coordinator = AtombergFanCoordinator(hass, entry, client)
    listener = AtombergBroadcastListener()
    data = AtombergFanData(
        session=session,
        session_manager=session_manager,
        client=client,
        coordinator=coordinator,
        listener=listener,
    )

    device_registry = dr.async_get(hass)
    for device_entry in dr.async_entries_for_config_entry(
        device_registry, entry.entry_id
    ):
        for domain, device_id in device_entry.identifiers:
            if domain == DOMAIN:
                coordinator.restore_cached_device(device_id)

    data.unsubscribers.append(
        listener.register_state_callback(coordinator.handle_state_change)
    )
    try:
        await listener.async_start()
    except OSError as err:
        _LOGGER.error(
            "Could not listen for fan broadcasts on the local network: %s. "
            "Live state updates are unavailable",
            err,
        )

    async def _async_discover() -> None:
        await coordinator.async_refresh()
        if not coordinator.last_update_success:
            _LOGGER.error(
                "An error occurred during device discovery. "
                "Turn on debug logging for more information"
            )
            return
        async_apply_reconciliation(hass, entry, coordinator.data)

    data.unsubscribers.append(
        session_manager.register_login_callback(
            lambda: hass.async_create_task(_async_discover())
        )
    )
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = data

    _LOGGER.info("Attempting to log into Atomberg platform")
    if await session_manager.async_login():
        _LOGGER.info("Successfully logged in to Atomberg platform")
    else:
        _LOGGER.error(
            "Login failed for entry %s. Device discovery runs once a retry succeeds",
            entry.entry_id,
        )

    return True


def async_apply_reconciliation(
    hass: HomeAssistant, entry: ConfigEntry, result: ReconciliationResult
) -> None:
    """Create, update or detach device registry entries for a pass."""
    device_registry = dr.async_get(hass)

    for device in [*result.added, *result.updated]:
        device_registry.async_get_or_create(
            config_entry_id=entry.entry_id,
            identifiers={(DOMAIN, device.device_id)},
            manufacturer=MANUFACTURER,
            model=device.model_name,
            name=device.name,
            suggested_area=device.room or None,
        )

    for device_id in result.removed:
        device_entry = device_registry.async_get_device(
            identifiers={(DOMAIN, device_id)}
        )
        if device_entry is None:
            continue
        device_registry.async_update_device(
            device_entry.id, remove_config_entry_id=entry.entry_id
        )

    _LOGGER.debug(
        "Applied reconciliation for entry %s: %d added, %d updated, %d removed",
        entry.entry_id,
        len(result.added),
        len(result.updated),
        len(result.removed),
    )


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Atomberg Fan integration for entry %s", entry.entry_id)

    data: AtombergFanData | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if data is None:
        _LOGGER.warning("No runtime data found for entry %s", entry.entry_id)
        return True

    for unsubscribe in data.unsubscribers:
        unsubscribe()
    await data.listener.async_stop()
    await data.session_manager.async_shutdown()
    _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    return True
