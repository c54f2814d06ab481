from datetime import datetime, timezone

DOMAIN = "nextpvr"
VERSION = "0.1.0"

CLIENT_NAME = "homeassistant"

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_BASE_URL = "base_url"
CONF_PIN = "pin"
CONF_ENABLE_DEBUG_LOGGING = "enable_debug_logging"
CONF_NEW_EPISODES = "new_episodes"
CONF_RECORDING_DEFAULT = "recording_default"
CONF_PRE_PADDING = "pre_padding_seconds"
CONF_POST_PADDING = "post_padding_seconds"

DEFAULT_BASE_URL = "http://localhost:8866"
DEFAULT_PIN = "0000"
DEFAULT_RECORDING_DEFAULT = "2"

# Recurring recording types understood by recording.recurring.save
RECURRING_NEW_ANY_TIME = 1
RECURRING_ALL_ANY_TIME = 2
RECURRING_SPECIFIC_DAYS = 3
RECURRING_EVERY_DAY = 4
RECURRING_KEYWORD = 99

RECURRING_TYPE_NAMES: dict[int, str] = {
    RECURRING_NEW_ANY_TIME: "New episodes, any time",
    RECURRING_ALL_ANY_TIME: "All episodes, any time",
    RECURRING_SPECIFIC_DAYS: "This timeslot, specific days",
    RECURRING_EVERY_DAY: "This timeslot, every day",
    RECURRING_KEYWORD: "All episodes matching the title",
}

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Timings (seconds)
SESSION_TTL = 5 * 60        # sid is re-negotiated once it is older than this
POLL_INTERVAL = 20          # recording.lastupdated probe
REQUEST_TIMEOUT = 10        # multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 3

# Backend setting that tells whether programme artwork comes from Schedules Direct
SETTING_ARTWORK_FROM_SD = "/Settings/General/ArtworkFromSchedulesDirect"

# Marker returned when the backend is unreachable or reports nothing
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

EVENT_CONTENT_CHANGED = f"{DOMAIN}_content_changed"

# Recording group folder ids
FOLDER_SERIES_PREFIX = "series_"
FOLDER_KIDS = "kids"
FOLDER_MOVIES = "movies"
FOLDER_NEWS = "news"
FOLDER_SPORTS = "sports"
FOLDER_OTHERS = "others"
