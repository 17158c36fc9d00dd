"""
Configuration flow for Atomberg Fan integration.

This module handles the setup and configuration of the Atomberg Fan
integration through Home Assistant's config flow system.
"""

import hashlib
import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_API_KEY,
    CONF_REFRESH_TOKEN,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_UNKNOWN,
)

_LOGGER = logging.getLogger(__name__)


class AtombergFanConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for Atomberg Fan integration."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing API key and refresh token.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            api_key = user_input[CONF_API_KEY].strip()
            refresh_token = user_input[CONF_REFRESH_TOKEN].strip()

            try:
                session = get_async_client(self.hass)
                await api.async_get_access_token(session, api_key, refresh_token)
                _LOGGER.info("Successfully authenticated with Atomberg API")

            except api.AtombergApiAuthError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except api.AtombergApiResponseError as err:
                _LOGGER.warning(
                    "Access token request rejected (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except (api.AtombergApiConnectionError, api.AtombergApiRequestError):
                _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
                errors["base"] = ERROR_CANNOT_CONNECT
            except api.AtombergApiClientError:
                _LOGGER.exception("API client error (%s)", ERROR_API_ERROR)
                errors["base"] = ERROR_API_ERROR
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during authentication (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                unique_id = hashlib.sha256(api_key.encode()).hexdigest()
                await self.async_set_unique_id(unique_id)
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title="Atomberg Fan",
                    data={
                        CONF_API_KEY: api_key,
                        CONF_REFRESH_TOKEN: refresh_token,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_API_KEY): str,
                    vol.Required(CONF_REFRESH_TOKEN): str,
                }
            ),
            errors=errors,
        )
