"""Status display and operator command input.

``StatusSink`` turns page status reports into log lines.
``OperatorConsole`` reads operator commands from a text stream and maps
them onto the lifecycle manager.
"""

import asyncio
import logging
import sys
import threading

logger = logging.getLogger("lobbytap")

COMMANDS = {
    "title": "Show the current page title",
    "url": "Show the current page URL",
    "screenshot <file>": "Save a screenshot of the page",
    "timesLoaded": "Show how many clearance cycles have completed",
    "reload": "Reload the page and wait out the challenge again",
    "exit": "Save cookies, close the browser and quit",
    "help": "Show this list",
}


class StatusSink:
    """Receives status updates and log lines for display.

    Keeps the latest working flag and log line so a front end can
    render them; every change is also logged.
    """

    def __init__(self):
        self.working: bool | None = None
        self.last_log: str | None = None

    def update(self, msg) -> None:
        if msg.working is not None:
            self.working = msg.working
            logger.info(
                "Status: %s", "Working" if msg.working else "Stopped"
            )
        if msg.last_log:
            self.last_log = msg.last_log
            logger.info("Last log: %s", msg.last_log)

    def log(self, line: str) -> None:
        logger.info("%s", line)


def _pump_lines(stream, loop, queue: asyncio.Queue) -> None:
    """Feed lines from a blocking stream into *queue* (runs in a thread)."""
    try:
        for line in iter(stream.readline, ""):
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)
    except (OSError, ValueError):
        # Unreadable or closed input: treat as end of input.
        try:
            loop.call_soon_threadsafe(queue.put_nowait, None)
        except RuntimeError:
            pass
    except RuntimeError:
        # Event loop already closed; nothing left to deliver to.
        pass


class OperatorConsole:
    """Operator commands over a line-oriented stream (stdin by default)."""

    def __init__(self, manager, sink: StatusSink):
        self._manager = manager
        self._sink = sink

    async def execute(self, line: str) -> bool:
        """Run one command line.  Returns False once ``exit`` ran."""
        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True
        command = parts[0]
        arg = parts[1].strip() if len(parts) > 1 else ""

        if command == "title":
            self._sink.log(f"Title: {await self._manager.title()}")
        elif command == "url":
            self._sink.log(f"URL: {self._manager.url()}")
        elif command == "screenshot":
            if not arg:
                self._sink.log("Usage: screenshot <file>")
            else:
                await self._manager.screenshot(arg)
                self._sink.log(f"Screenshot saved to {arg}")
        elif command == "timesLoaded":
            self._sink.log(f"Times loaded: {self._manager.times_loaded}")
        elif command == "reload":
            self._sink.log("Reloading...")
            self._manager.request_reload()
        elif command == "exit":
            await self._manager.exit()
            return False
        elif command == "help":
            for usage, description in COMMANDS.items():
                self._sink.log(f"{usage:<18} {description}")
        else:
            self._sink.log(f"Unknown command: {command}")
        return True

    async def run(self, stream=None) -> None:
        """Execute commands until ``exit``, end of input, or shutdown."""
        stream = stream if stream is not None else sys.stdin
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        threading.Thread(
            target=_pump_lines,
            args=(stream, loop, queue),
            name="lobbytap-console",
            daemon=True,
        ).start()

        while not self._manager.closed:
            line = await queue.get()
            if line is None:
                logger.debug("Command input closed")
                return
            try:
                keep_going = await self.execute(line)
            except Exception as e:
                logger.debug("Command %r failed", line, exc_info=True)
                self._sink.log(f"Command failed: {e}")
                continue
            if not keep_going:
                return
