# main.py
from __future__ import annotations
import sys
import structlog
from app.config import TrackerConfig
from app.logging_config import configure_logging
from tools.tracker_cli import run

def main() -> int:
    # native messaging hosts get the caller origin as argv[1]; nothing else to parse
    # logging first so config warnings reach stderr, not the message channel
    configure_logging()
    cfg = TrackerConfig.from_env()
    if cfg.debug:
        configure_logging(debug=True)
    log = structlog.get_logger()

    log.info("app.start", msg="Launching browser context tracker", origin=sys.argv[1] if len(sys.argv) > 1 else None)
    code = run(cfg)
    log.info("app.stop", msg="Exited cleanly")
    return code

if __name__ == "__main__":
    sys.exit(main())
