from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import ConfigError, load_config
from .fetcher import SourceError
from .module import CalendarModule
from .render import RenderError

CONFIG_PATH_DEFAULT = "/etc/glancecal/config.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger("glancecal")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    ap = argparse.ArgumentParser(description="Aggregate calendar feeds into a periodically rendered agenda")
    ap.add_argument("--config", default=os.environ.get("GLANCECAL_CONFIG", CONFIG_PATH_DEFAULT))
    ap.add_argument("--once", action="store_true", help="refresh and render once, then exit")
    ap.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get("GLANCECAL_LOG_LEVEL", "INFO"),
    )
    args = ap.parse_args(argv)
    # argparse does not check defaults against choices.
    if args.log_level not in LOG_LEVELS:
        ap.error(f"invalid log level {args.log_level!r}")

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error("Could not parse config error=%s", e)
        return 2

    module = CalendarModule(cfg)
    try:
        if args.once:
            module.run_once()
            return 0
        module.start()
    except ConfigError as e:
        logger.error("Could not setup module error=%s", e)
        return 2
    except (SourceError, RenderError) as e:
        logger.error("Could not load calendar error=%s", e)
        return 1

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received signal %s; stopping", signal.Signals(signum).name)
        module.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)
    module.wait()
    module.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
