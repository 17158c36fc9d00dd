"""Access token lifecycle for the Atomberg API.

The session manager owns the access token, refreshes it shortly before it
expires, and keeps retrying failed logins with a fixed delay.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from . import api
from .const import LOGIN_RETRY_DELAY, LOGIN_TOKEN_REFRESH_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class AtombergSessionManager:
    """Manage the Atomberg access token with scheduled refresh and retry.

    Starting a login cancels every pending retry timer and the refresh
    timer first. Logins requested while one is in flight share its result.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        session: httpx.AsyncClient,
        api_key: str,
        refresh_token: str,
    ) -> None:
        """Initialize the session manager.

        Args:
            hass: Home Assistant instance, used for its event loop.
            session: HTTP client session.
            api_key: Developer API key.
            refresh_token: Long-lived refresh token from the Atomberg app.

        """
        self._hass = hass
        self._session = session
        self._api_key = api_key
        self._refresh_token = refresh_token
        self._access_token = ""
        self._refresh_timer: asyncio.TimerHandle | None = None
        self._retry_timers: list[asyncio.TimerHandle] = []
        self._login_task: asyncio.Task[bool] | None = None
        self._login_callbacks: list[Callable[[], None]] = []
        self._shutdown = False

    @property
    def access_token(self) -> str:
        """Return the current access token, or an empty string."""
        return self._access_token

    def get_access_token(self) -> str:
        """Return the current access token, or an empty string."""
        return self._access_token

    def register_login_callback(
        self,
        callback: Callable[[], None],
    ) -> Callable[[], None]:
        """Register a callback invoked after every successful login.

        Returns:
            A function to unregister the callback.

        """
        self._login_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._login_callbacks:
                self._login_callbacks.remove(callback)

        return unregister

    async def async_login(self) -> bool:
        """Log in, or join the login already in flight.

        Returns:
            True if an access token was obtained.

        """
        return await asyncio.shield(self._start_login())

    def _start_login(self) -> asyncio.Task[bool]:
        if self._login_task is None or self._login_task.done():
            self._cancel_timers()
            self._login_task = self._hass.async_create_task(self._async_login())
        return self._login_task

    async def _async_login(self) -> bool:
        try:
            token = await api.async_get_access_token(
                self._session,
                self._api_key,
                self._refresh_token,
            )
        except api.AtombergApiClientError as err:
            self._access_token = ""
            self._retry_login(err)
            return False

        self._access_token = token
        _LOGGER.debug("Obtained Atomberg access token")
        self._schedule_refresh()

        for callback in list(self._login_callbacks):
            try:
                callback()
            except Exception:
                _LOGGER.exception("Error in login callback")

        return True

    def _retry_login(self, err: api.AtombergApiClientError) -> None:
        """Log a failed login and schedule another attempt."""
        _LOGGER.debug("Atomberg platform login failed")
        payload = err.payload if isinstance(err, api.AtombergApiResponseError) else err
        _LOGGER.debug("Login failure payload: %s", payload)
        _LOGGER.error(
            "Login failed. Will try to log in again in %d seconds. "
            "If the issue persists, make sure the API key and refresh token "
            "are correct and Developer mode is enabled in the Atomberg app. "
            "Reload the integration after changing its configuration",
            LOGIN_RETRY_DELAY,
        )
        self.schedule_retry_login()

    def schedule_retry_login(self) -> None:
        """Schedule one login attempt after the retry delay."""
        if self._shutdown:
            return
        self._retry_timers.append(
            self._hass.loop.call_later(LOGIN_RETRY_DELAY, self._start_login)
        )

    def _schedule_refresh(self) -> None:
        if self._shutdown:
            return
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
        self._refresh_timer = self._hass.loop.call_later(
            LOGIN_TOKEN_REFRESH_INTERVAL, self._start_login
        )

    def _cancel_timers(self) -> None:
        for timer in self._retry_timers:
            timer.cancel()
        self._retry_timers.clear()
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    async def async_shutdown(self) -> None:
        """Cancel all timers; logins still in flight finish without rescheduling."""
        self._shutdown = True
        self._cancel_timers()
        self._login_callbacks.clear()
