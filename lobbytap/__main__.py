"""Run a lobbytap session.

Usage:
    python -m lobbytap [--target-url URL] [--collector-url URL] ...

Option defaults can also be set through ``LOBBYTAP_*`` environment
variables.  Type ``help`` at the prompt for operator commands.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

from lobbytap._config import Settings
from lobbytap._console import OperatorConsole
from lobbytap._errors import BrowserLaunchFailed, SessionClosed
from lobbytap._lifecycle import SessionLifecycleManager
from lobbytap.browser._session import launch

logger = logging.getLogger("lobbytap")


def _env(name: str, default):
    return os.environ.get(f"LOBBYTAP_{name}", default)


def build_parser() -> argparse.ArgumentParser:
    defaults = Settings()
    parser = argparse.ArgumentParser(
        prog="lobbytap",
        description="Keep a challenge-protected page alive and relay "
        "its lobby feed to a collector",
    )
    parser.add_argument(
        "--target-url", default=_env("TARGET_URL", defaults.target_url),
        help="Page to open",
    )
    parser.add_argument(
        "--collector-url",
        default=_env("COLLECTOR_URL", defaults.collector_url),
        help="Where intercepted payloads are POSTed",
    )
    parser.add_argument(
        "--watched-path",
        default=_env("WATCHED_PATH", defaults.watched_path),
        help="Exact request path to intercept",
    )
    parser.add_argument(
        "--count-field",
        default=_env("COUNT_FIELD", defaults.count_field),
        help="Payload field counted in status messages",
    )
    parser.add_argument(
        "--cookie-file",
        default=_env("COOKIE_FILE", defaults.cookie_file),
        help="Cookie persistence file",
    )
    parser.add_argument(
        "--reload-interval", type=float,
        default=float(_env("RELOAD_INTERVAL", defaults.reload_interval)),
        help="Seconds between automatic reloads",
    )
    parser.add_argument(
        "--challenge-timeout", type=int,
        default=int(_env("CHALLENGE_TIMEOUT_MS", defaults.challenge_timeout_ms)),
        help="Milliseconds to wait for the challenge to clear",
    )
    parser.add_argument(
        "--user-agent", default=_env("USER_AGENT", None),
        help="Override the browser user agent",
    )
    parser.add_argument(
        "--channel", default=_env("CHANNEL", None),
        help='Browser channel, e.g. "chrome" for system Chrome',
    )
    parser.add_argument(
        "--headless", action="store_true",
        default=_env("HEADLESS", "") not in ("", "0", "false"),
        help="Run without a visible window",
    )
    parser.add_argument(
        "--no-turnstile", action="store_true",
        help="Do not click Turnstile checkboxes while waiting",
    )
    parser.add_argument(
        "--log-level", default=_env("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        target_url=args.target_url,
        collector_url=args.collector_url,
        watched_path=args.watched_path,
        count_field=args.count_field,
        cookie_file=args.cookie_file,
        reload_interval=args.reload_interval,
        challenge_timeout_ms=args.challenge_timeout,
        headless=args.headless,
        channel=args.channel,
        user_agent=args.user_agent,
        click_turnstile=not args.no_turnstile,
    )


async def run(settings: Settings) -> int:
    """Launch the browser and run until the operator or a signal exits."""
    session = await launch(settings)
    manager = SessionLifecycleManager(session, settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, manager.request_exit)
        except (NotImplementedError, RuntimeError):
            pass

    console = OperatorConsole(manager, manager.sink)
    console_task = asyncio.create_task(console.run())
    try:
        await manager.goto(settings.target_url)
    except SessionClosed:
        console_task.cancel()
        return 0
    except Exception:
        logger.error("Initial navigation failed", exc_info=True)
        console_task.cancel()
        await manager.exit()
        return 1

    await manager.wait_closed()
    console_task.cancel()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    settings = settings_from_args(args)
    try:
        return asyncio.run(run(settings))
    except BrowserLaunchFailed as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
