"""Runtime settings and the fixed intervals the lifecycle runs on."""

from dataclasses import dataclass, field

DEFAULT_TARGET_URL = "https://example.com/"
DEFAULT_COLLECTOR_URL = "http://localhost:8080/lobbies"
DEFAULT_WATCHED_PATH = "/api/lobbies"
DEFAULT_COUNT_FIELD = "lobbies"
DEFAULT_COOKIE_FILE = "cookies.json"

# Periodic self-healing reload.
DEFAULT_RELOAD_INTERVAL = 31 * 60.0
DEFAULT_CHALLENGE_TIMEOUT_MS = 60_000
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_IDLE_TIMEOUT_MS = 10_000
# Time for a reloaded page to start rendering before title polling.
DEFAULT_SETTLE_DELAY = 3.0

DEFAULT_VIEWPORT = (1366, 768)

DEFAULT_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--use-gl=swiftshader",
    "--enable-webgl",
    "--enable-accelerated-2d-canvas",
    "--disable-software-rasterizer",
)


@dataclass
class Settings:
    """Everything a lobbytap run can be configured with.

    Times ending in ``_ms`` are milliseconds, the rest are seconds.
    """

    target_url: str = DEFAULT_TARGET_URL
    collector_url: str = DEFAULT_COLLECTOR_URL
    watched_path: str = DEFAULT_WATCHED_PATH
    count_field: str = DEFAULT_COUNT_FIELD
    cookie_file: str = DEFAULT_COOKIE_FILE
    reload_interval: float = DEFAULT_RELOAD_INTERVAL
    challenge_timeout_ms: int = DEFAULT_CHALLENGE_TIMEOUT_MS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    idle_timeout_ms: int = DEFAULT_IDLE_TIMEOUT_MS
    settle_delay: float = DEFAULT_SETTLE_DELAY
    headless: bool = False
    channel: str | None = None
    user_agent: str | None = None
    viewport: tuple[int, int] = DEFAULT_VIEWPORT
    launch_args: tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_LAUNCH_ARGS
    )
    click_turnstile: bool = True
