#!/usr/bin/env python3
"""
Forecast cache channel server - stdio-based JSON lines communication.

Each input line is a notification::

    {"notification": "OPENWEATHER_ONE_CALL_FORECAST_GET", "payload": {...}}

and each forecast delivered is written to stdout the same way with the
``OPENWEATHER_ONE_CALL_FORECAST_DATA`` notification.
"""
import argparse
import json
import logging
import sys
import threading
from concurrent.futures import wait
from typing import Any, Dict, List, Optional, TextIO

from .config import Settings
from .helper import ForecastHelper
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


class StdioChannel:
    """Writes outbound notifications to a stream, one JSON object per line."""

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._lock = threading.Lock()

    def send(self, notification: str, payload: Dict[str, Any]) -> None:
        line = json.dumps(
            {"notification": notification, "payload": payload}, ensure_ascii=False
        )
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()


def parse_notification(line: str) -> Optional[Dict[str, Any]]:
    """Decode one input line; undecodable lines are logged and skipped."""
    try:
        message = json.loads(line)
    except json.JSONDecodeError:
        logger.error("Input must be valid JSON")
        return None

    if not isinstance(message, dict) or "notification" not in message:
        logger.error("Input must be an object with a 'notification' field")
        return None
    return message


def serve(
    helper: ForecastHelper, input_stream: TextIO, persistent: bool = False
) -> None:
    """
    Feed every notification from ``input_stream`` to the helper.

    Requests run concurrently; this returns once input is exhausted and
    every outstanding request has finished.
    """
    helper.start(run_janitor=persistent)
    pending: List = []
    try:
        for line in input_stream:
            line = line.strip()
            if not line:
                continue

            message = parse_notification(line)
            if message is None:
                continue

            future = helper.notification_received(
                message["notification"], message.get("payload")
            )
            if future is not None:
                pending.append(future)
                pending = [f for f in pending if not f.done()]
    except KeyboardInterrupt:
        logger.info("Interrupted, finishing outstanding requests")
    finally:
        wait(pending)
        helper.stop()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the channel server."""
    parser = argparse.ArgumentParser(description="OpenWeather forecast cache server")
    parser.add_argument(
        "--persistent",
        action="store_true",
        help="Keep serving and sweep the cache periodically",
    )
    args = parser.parse_args(argv)

    settings = Settings()
    setup_logging(settings.log_level, stream=sys.stderr)

    channel = StdioChannel(sys.stdout)
    helper = ForecastHelper(channel.send, settings=settings)

    if args.persistent:
        logger.info("Starting forecast cache server in persistent mode")
    serve(helper, sys.stdin, persistent=args.persistent)
    logger.info("Forecast cache server ended")


if __name__ == "__main__":
    main()
