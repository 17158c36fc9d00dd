"""Constants for Atomberg Fan integration.

This module contains all the constants used throughout the integration,
including API endpoints, timing values, configuration keys, and the
broadcast bit masks.
"""

DOMAIN = "atomberg_fan"
MANUFACTURER = "Atomberg"

API_HOST = "https://api.developer.atomberg-iot.com"
ENDPOINT_GET_ACCESS_TOKEN = "/v1/get_access_token"
ENDPOINT_GET_DEVICES = "/v1/get_list_of_devices"
ENDPOINT_GET_DEVICE_STATE = "/v1/get_device_state"
ENDPOINT_SEND_COMMAND = "/v1/send_command"

API_STATUS_SUCCESS = "Success"

ATOMBERG_ERROR_CODES = {
    401: "Access token expired",
    403: (
        "Forbidden, please make sure Developer mode is enabled "
        "and correct token is provided"
    ),
    404: "Device not found",
    429: "API limit Reached",
}

LOGIN_RETRY_DELAY = 360  # Seconds between failed login attempts
LOGIN_TOKEN_REFRESH_INTERVAL = 60 * 60 * 23  # Access tokens live for 24 hours

BROADCAST_PORT = 5625
BROADCAST_MIN_SIZE = 100  # Bytes; datagrams of this size or smaller are dropped

CONF_API_KEY = "api_key"
CONF_REFRESH_TOKEN = "refresh_token"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

# State code bit masks
MASK_SPEED = 0x07
MASK_COOL = 0x08
MASK_POWER = 0x10
MASK_LED = 0x20
MASK_SLEEP = 0x80
MASK_BRIGHTNESS = 0x7F00
MASK_WARM = 0x8000
MASK_TIMER = 0x0F0000
MASK_TIMER_ELAPSED = 0xFF000000

SHIFT_BRIGHTNESS = 8
SHIFT_TIMER = 16
SHIFT_TIMER_ELAPSED = 24
TIMER_ELAPSED_UNIT_MINS = 4

COLOR_COOL = "Cool"
COLOR_WARM = "Warm"
COLOR_DAYLIGHT = "Daylight"

LIGHT_MODE_COOL = "cool"
LIGHT_MODE_WARM = "warm"
LIGHT_MODE_DAYLIGHT = "daylight"
LIGHT_MODES = [LIGHT_MODE_COOL, LIGHT_MODE_WARM, LIGHT_MODE_DAYLIGHT]

MIN_SPEED = 1
MAX_SPEED = 6
MAX_SPEED_DELTA = 5
MIN_BRIGHTNESS = 10
MAX_BRIGHTNESS = 100
MAX_BRIGHTNESS_DELTA = 90

# Timer command codes mapped to their duration in hours (0 cancels the timer)
TIMER_DURATIONS_HOURS = {
    0: 0,
    1: 1,
    2: 2,
    3: 3,
    4: 6,
}
