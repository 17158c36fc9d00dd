"""Tests for the Atomberg Fan Config Flow."""

import hashlib
from unittest.mock import AsyncMock, Mock, patch

import pytest
from homeassistant.data_entry_flow import FlowResultType

from custom_components.atomberg_fan import api
from custom_components.atomberg_fan.config_flow import AtombergFanConfigFlow
from custom_components.atomberg_fan.const import (
    CONF_API_KEY,
    CONF_REFRESH_TOKEN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_UNKNOWN,
)

GET_CLIENT = "custom_components.atomberg_fan.config_flow.get_async_client"
GET_ACCESS_TOKEN = "custom_components.atomberg_fan.config_flow.api.async_get_access_token"


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance."""
    return Mock()


@pytest.fixture
def flow(mock_hass: Mock) -> AtombergFanConfigFlow:
    """Create an AtombergFanConfigFlow instance for testing."""
    flow_instance = AtombergFanConfigFlow()
    flow_instance.hass = mock_hass
    flow_instance.async_set_unique_id = AsyncMock()
    flow_instance._abort_if_unique_id_configured = Mock()
    flow_instance.async_create_entry = Mock(
        return_value={"type": FlowResultType.CREATE_ENTRY},
    )
    flow_instance.async_show_form = Mock(return_value={"type": FlowResultType.FORM})
    return flow_instance


@pytest.fixture
def user_input() -> dict[str, str]:
    """Create user input for the setup form."""
    return {
        CONF_API_KEY: " test_api_key ",
        CONF_REFRESH_TOKEN: "test_refresh_token\n",
    }


class TestAtombergFanConfigFlowAsyncStepUser:
    """Tests for async_step_user method."""

    @pytest.mark.asyncio
    async def test_async_step_user_shows_form_when_no_input(
        self,
        flow: AtombergFanConfigFlow,
    ) -> None:
        """Test that async_step_user shows form when no input provided."""
        result = await flow.async_step_user()
        flow.async_show_form.assert_called_once()
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_async_step_user_creates_entry_on_successful_login(
        self,
        flow: AtombergFanConfigFlow,
        user_input: dict[str, str],
    ) -> None:
        """Test that async_step_user creates entry with stripped credentials."""
        mock_session = Mock()
        mock_get_token = AsyncMock(return_value="access_token")
        with (
            patch(GET_CLIENT, return_value=mock_session),
            patch(GET_ACCESS_TOKEN, mock_get_token),
        ):
            result = await flow.async_step_user(user_input)

        mock_get_token.assert_awaited_once_with(
            mock_session, "test_api_key", "test_refresh_token"
        )
        flow.async_set_unique_id.assert_called_once_with(
            hashlib.sha256(b"test_api_key").hexdigest()
        )
        flow._abort_if_unique_id_configured.assert_called_once()
        call_args = flow.async_create_entry.call_args
        assert call_args[1]["title"] == "Atomberg Fan"
        assert call_args[1]["data"] == {
            CONF_API_KEY: "test_api_key",
            CONF_REFRESH_TOKEN: "test_refresh_token",
        }
        assert result["type"] == FlowResultType.CREATE_ENTRY

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (api.AtombergApiAuthError("Access token expired", 401), ERROR_INVALID_AUTH),
            (api.AtombergApiResponseError("Invalid refresh token"), ERROR_INVALID_AUTH),
            (api.AtombergApiConnectionError("timeout"), ERROR_CANNOT_CONNECT),
            (api.AtombergApiRequestError("bad url"), ERROR_CANNOT_CONNECT),
            (api.AtombergApiHttpError("API limit Reached", 429), ERROR_API_ERROR),
            (api.AtombergApiClientError("Invalid JSON"), ERROR_API_ERROR),
            (ValueError("Unexpected error"), ERROR_UNKNOWN),
        ],
    )
    async def test_async_step_user_maps_errors(
        self,
        flow: AtombergFanConfigFlow,
        user_input: dict[str, str],
        error: Exception,
        expected: str,
    ) -> None:
        """Test that login failures are shown on the form."""
        with (
            patch(GET_CLIENT, return_value=Mock()),
            patch(GET_ACCESS_TOKEN, AsyncMock(side_effect=error)),
        ):
            result = await flow.async_step_user(user_input)

        flow.async_show_form.assert_called_once()
        call_args = flow.async_show_form.call_args
        assert call_args[1]["errors"]["base"] == expected
        flow.async_create_entry.assert_not_called()
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_async_step_user_shows_form_with_schema(
        self,
        flow: AtombergFanConfigFlow,
    ) -> None:
        """Test that async_step_user shows form with both credential fields."""
        await flow.async_step_user()
        call_args = flow.async_show_form.call_args
        assert call_args[1]["step_id"] == "user"
        assert call_args[1]["errors"] == {}
        schema = call_args[1]["data_schema"]
        assert {str(key) for key in schema.schema} == {
            CONF_API_KEY,
            CONF_REFRESH_TOKEN,
        }
