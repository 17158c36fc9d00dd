"""API client for the Atomberg developer cloud.

This module provides functions to interact with the Atomberg API,
including access token retrieval, device inventory, device state
polling, and command sending.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
import voluptuous as vol
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    API_HOST,
    API_STATUS_SUCCESS,
    ATOMBERG_ERROR_CODES,
    ENDPOINT_GET_ACCESS_TOKEN,
    ENDPOINT_GET_DEVICE_STATE,
    ENDPOINT_GET_DEVICES,
    ENDPOINT_SEND_COMMAND,
    LIGHT_MODES,
    MAX_BRIGHTNESS,
    MAX_BRIGHTNESS_DELTA,
    MAX_SPEED,
    MAX_SPEED_DELTA,
    MIN_BRIGHTNESS,
    MIN_SPEED,
    TIMER_DURATIONS_HOURS,
)
from .models import AtombergFanCommand, AtombergFanDevice, AtombergFanDeviceState

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .session import AtombergSessionManager

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401

NOT_AUTHENTICATED_MESSAGE = (
    "No auth token available (login probably failed). "
    "Check your credentials and restart Home Assistant."
)


class AtombergApiClientError(Exception):
    """Base exception for Atomberg API client errors."""


class AtombergApiHttpError(AtombergApiClientError):
    """Exception raised when the API answers with an HTTP error status."""

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AtombergApiAuthError(AtombergApiHttpError):
    """Exception raised when the API rejects the access token."""


class AtombergApiResponseError(AtombergApiClientError):
    """Exception raised when a 2xx response carries a non-Success status."""

    def __init__(self, payload: Any) -> None:  # noqa: ANN401
        super().__init__(str(payload))
        self.payload = payload


class AtombergApiConnectionError(AtombergApiClientError):
    """Exception raised when a request was sent but no response arrived."""


class AtombergApiRequestError(AtombergApiClientError):
    """Exception raised when a request could not be built or sent."""


class AtombergPreconditionError(AtombergApiClientError):
    """Exception raised when an operation is rejected before any request."""


class AtombergNotAuthenticatedError(AtombergPreconditionError):
    """Exception raised when no access token is available."""


class AtombergDeviceOfflineError(AtombergPreconditionError):
    """Exception raised when a command targets an offline device."""


class AtombergInvalidCommandError(AtombergPreconditionError):
    """Exception raised when a command carries out-of-range values."""


COMMAND_SCHEMA = vol.Schema(
    {
        vol.Optional("power"): bool,
        vol.Optional("speed"): vol.All(int, vol.Range(min=MIN_SPEED, max=MAX_SPEED)),
        vol.Optional("speed_delta"): vol.All(
            int,
            vol.Range(min=-MAX_SPEED_DELTA, max=MAX_SPEED_DELTA),
            vol.NotIn([0]),
        ),
        vol.Optional("sleep"): bool,
        vol.Optional("timer"): vol.In(list(TIMER_DURATIONS_HOURS)),
        vol.Optional("led"): bool,
        vol.Optional("brightness"): vol.All(
            int, vol.Range(min=MIN_BRIGHTNESS, max=MAX_BRIGHTNESS)
        ),
        vol.Optional("brightness_delta"): vol.All(
            int,
            vol.Range(min=-MAX_BRIGHTNESS_DELTA, max=MAX_BRIGHTNESS_DELTA),
            vol.NotIn([0]),
        ),
        vol.Optional("light_mode"): vol.In(LIGHT_MODES),
    }
)


def create_headers(api_key: str, token: str) -> dict[str, str]:
    """Create HTTP headers for Atomberg API requests.

    Args:
        api_key: Developer API key.
        token: Refresh token for the token endpoint, access token otherwise.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    return {
        "accept": "application/json",
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "Authorization": f"Bearer {token}",
    }


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authentication error."""
    return status == HTTP_UNAUTHORIZED


def is_api_error(data: dict[str, Any]) -> bool:
    """Check if the response envelope reports anything but Success."""
    return data.get("status") != API_STATUS_SUCCESS


def validate_response(response: httpx.Response) -> dict[str, Any]:
    """Validate HTTP response and return the parsed JSON envelope.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON envelope from the response.

    Raises:
        AtombergApiAuthError: If the API answered 401.
        AtombergApiHttpError: If the API answered with another error status.
        AtombergApiResponseError: If the envelope status is not Success.

    """
    _validate_http_status(response)
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in Atomberg API response: {err}"
        raise AtombergApiClientError(error_msg) from err
    if not isinstance(data, dict):
        raise AtombergApiResponseError(data)
    _validate_api_status(data)
    return data


def _validate_http_status(response: httpx.Response) -> None:
    status = response.status_code
    if not is_http_error(status):
        return

    message = ATOMBERG_ERROR_CODES.get(status, f"Request failed: {status}")
    if is_auth_error(status):
        raise AtombergApiAuthError(message, status, response.text)

    raise AtombergApiHttpError(message, status, response.text)


def _validate_api_status(data: dict[str, Any]) -> None:
    if not is_api_error(data):
        return

    raise AtombergApiResponseError(data.get("message", data))


def _message(data: dict[str, Any]) -> dict[str, Any]:
    message = data.get("message")
    if not isinstance(message, dict):
        raise AtombergApiResponseError(message)
    return message


def extract_access_token(data: dict[str, Any]) -> str:
    """Extract the access token from a get_access_token response.

    Raises:
        AtombergApiResponseError: If the response carries no token.

    """
    token = _message(data).get("access_token")
    if not token:
        raise AtombergApiResponseError(data.get("message"))
    return str(token)


def extract_devices(data: dict[str, Any]) -> list[AtombergFanDevice]:
    """Extract the device list from a get_list_of_devices response.

    Args:
        data: API response envelope.

    Returns:
        List of AtombergFanDevice objects in the order the API returned them.

    """
    devices = []
    for item in _message(data).get("devices_list") or []:
        device_id = item.get("device_id")
        if not device_id:
            _LOGGER.debug("Skipping device entry without device_id: %s", item)
            continue
        metadata = item.get("metadata") or {}
        devices.append(
            AtombergFanDevice(
                device_id=str(device_id),
                name=str(item.get("name") or device_id),
                model=str(item.get("model") or ""),
                series=str(item.get("series") or ""),
                color=str(item.get("color") or ""),
                room=str(item.get("room") or ""),
                ssid=str(metadata.get("ssid") or ""),
            )
        )
    return devices


def _parse_device_state(item: dict[str, Any]) -> AtombergFanDeviceState:
    brightness = item.get("last_recorded_brightness")
    ts_epoch_seconds = item.get("ts_epoch_seconds")
    return AtombergFanDeviceState(
        device_id=str(item["device_id"]),
        is_online=bool(item.get("is_online", False)),
        power=bool(item.get("power", False)),
        led=bool(item.get("led", False)),
        sleep_mode=bool(item.get("sleep_mode", False)),
        last_recorded_speed=int(item.get("last_recorded_speed") or 0),
        timer_hours=int(item.get("timer_hours") or 0),
        timer_time_elapsed_mins=int(item.get("timer_time_elapsed_mins") or 0),
        ts_epoch_seconds=int(ts_epoch_seconds) if ts_epoch_seconds else None,
        last_recorded_brightness=int(brightness) if brightness is not None else None,
        last_recorded_color=item.get("last_recorded_color"),
    )


def extract_device_states(data: dict[str, Any]) -> list[AtombergFanDeviceState]:
    """Extract device states from a get_device_state response.

    Entries without a device_id or with non-numeric fields are skipped.
    """
    states = []
    for item in _message(data).get("device_state") or []:
        if not item.get("device_id"):
            _LOGGER.debug("Skipping state entry without device_id: %s", item)
            continue
        try:
            states.append(_parse_device_state(item))
        except (TypeError, ValueError):
            _LOGGER.warning("Skipping malformed device state: %s", item)
    return states


def validate_command(command: AtombergFanCommand) -> None:
    """Check command values against the ranges the firmware accepts.

    Raises:
        AtombergInvalidCommandError: If a value is out of range.

    """
    try:
        COMMAND_SCHEMA(command.command_fields())
    except vol.Invalid as err:
        error_msg = f"Invalid command for device {command.device_id}: {err}"
        raise AtombergInvalidCommandError(error_msg) from err


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the Atomberg API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=5.0)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def _async_request(
    session: httpx.AsyncClient,
    method: str,
    endpoint: str,
    headers: dict[str, str],
    **kwargs: Any,  # noqa: ANN401
) -> dict[str, Any]:
    url = f"{API_HOST}{endpoint}"
    try:
        response = await session.request(method, url, headers=headers, **kwargs)
    except (
        httpx.UnsupportedProtocol,
        httpx.LocalProtocolError,
        httpx.InvalidURL,
        httpx.TooManyRedirects,
    ) as err:
        error_msg = f"Could not send request to Atomberg API ({endpoint}): {err!r}"
        raise AtombergApiRequestError(error_msg) from err
    except httpx.TransportError as err:
        error_msg = f"No response from Atomberg API ({endpoint}): {err!r}"
        raise AtombergApiConnectionError(error_msg) from err
    except httpx.DecodingError as err:
        error_msg = f"Undecodable response from Atomberg API ({endpoint}): {err!r}"
        raise AtombergApiClientError(error_msg) from err

    _LOGGER.debug("Atomberg API %s %s -> %s", method, endpoint, response.text)
    return validate_response(response)


async def async_get_access_token(
    session: httpx.AsyncClient,
    api_key: str,
    refresh_token: str,
) -> str:
    """Exchange the refresh token for an access token.

    Raises:
        AtombergApiAuthError: If the API answered 401.
        AtombergApiClientError: If the request fails in any other way.

    """
    _LOGGER.debug("Requesting access token from Atomberg API")
    data = await _async_request(
        session,
        "GET",
        ENDPOINT_GET_ACCESS_TOKEN,
        create_headers(api_key, refresh_token),
    )
    return extract_access_token(data)


async def async_get_devices(
    session: httpx.AsyncClient,
    api_key: str,
    access_token: str,
) -> list[AtombergFanDevice]:
    """Fetch the devices registered with the account."""
    _LOGGER.debug("Fetching devices from Atomberg API")
    data = await _async_request(
        session,
        "GET",
        ENDPOINT_GET_DEVICES,
        create_headers(api_key, access_token),
    )
    devices = extract_devices(data)
    _LOGGER.debug("Retrieved %d devices from Atomberg API", len(devices))
    return devices


async def async_get_device_states(
    session: httpx.AsyncClient,
    api_key: str,
    access_token: str,
    device_id: str = "all",
) -> list[AtombergFanDeviceState]:
    """Fetch device states for one device, or for every device with "all"."""
    _LOGGER.debug("Fetching device state for %s from Atomberg API", device_id)
    data = await _async_request(
        session,
        "GET",
        ENDPOINT_GET_DEVICE_STATE,
        create_headers(api_key, access_token),
        params={"device_id": device_id},
    )
    return extract_device_states(data)


async def async_send_command(
    session: httpx.AsyncClient,
    api_key: str,
    access_token: str,
    command: AtombergFanCommand,
) -> bool:
    """Send a command to a device.

    Returns:
        True once the API has accepted the command.

    """
    payload = command.as_payload()
    _LOGGER.debug("Sending command to device %s: %s", command.device_id, payload)
    await _async_request(
        session,
        "POST",
        ENDPOINT_SEND_COMMAND,
        create_headers(api_key, access_token),
        json=payload,
    )
    return True


class AtombergApiClient:
    """Binds the request functions to a session and the current access token.

    Every call is rejected without a request while no access token is
    available. A 401 answer schedules a re-login before the error is raised.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        api_key: str,
        session_manager: AtombergSessionManager,
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._session_manager = session_manager

    def _require_token(self) -> str:
        token = self._session_manager.access_token
        if not token:
            raise AtombergNotAuthenticatedError(NOT_AUTHENTICATED_MESSAGE)
        return token

    async def async_get_devices(self) -> list[AtombergFanDevice]:
        """Fetch the device inventory."""
        token = self._require_token()
        try:
            return await async_get_devices(self._session, self._api_key, token)
        except AtombergApiClientError as err:
            self._handle_request_error("get_devices", err)
            raise

    async def async_get_device_states(
        self, device_id: str = "all"
    ) -> list[AtombergFanDeviceState]:
        """Fetch device states, for every device by default."""
        token = self._require_token()
        try:
            return await async_get_device_states(
                self._session, self._api_key, token, device_id
            )
        except AtombergApiClientError as err:
            self._handle_request_error("get_device_state", err)
            raise

    async def async_send_command(self, command: AtombergFanCommand) -> bool:
        """Validate and send a command."""
        validate_command(command)
        token = self._require_token()
        try:
            return await async_send_command(
                self._session, self._api_key, token, command
            )
        except AtombergApiClientError as err:
            self._handle_request_error("send_command", err)
            raise

    def _handle_request_error(self, operation: str, err: AtombergApiClientError) -> None:
        """Log a failed request and trigger re-login on 401."""
        _LOGGER.debug("Atomberg API %s failed", operation)

        if isinstance(err, AtombergApiAuthError):
            _LOGGER.warning(
                "Atomberg API rejected the access token during %s, logging in again",
                operation,
            )
            self._session_manager.schedule_retry_login()
        elif isinstance(err, AtombergApiHttpError):
            if err.status_code in ATOMBERG_ERROR_CODES:
                _LOGGER.error("%s", ATOMBERG_ERROR_CODES[err.status_code])
            else:
                _LOGGER.debug(
                    "Unexpected HTTP %s from Atomberg API: %s",
                    err.status_code,
                    err.body or "Some error occurred",
                )
        elif isinstance(err, AtombergApiConnectionError):
            _LOGGER.debug("No response received from Atomberg API: %s", err)
        elif isinstance(err, AtombergApiRequestError):
            _LOGGER.debug("Failed to set up Atomberg API request: %s", err)
        else:
            _LOGGER.debug("Atomberg API %s error: %s", operation, err)
