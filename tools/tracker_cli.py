from __future__ import annotations
import argparse, signal, sys
from dataclasses import replace

from app.config import TrackerConfig
from app.logging_config import configure_logging


def run(cfg: TrackerConfig) -> int:
    from app.controller.runner import TrackerRuntime
    runtime = TrackerRuntime(config=cfg)

    def _stop(_signum=None, _frame=None):
        runtime.stop()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    runtime.start()
    try:
        while not runtime.stopped and not runtime.wait(timeout=1.0):
            pass
    finally:
        if not runtime.stopped:
            runtime.stop()
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="context-tracker", description="Browser context tracker")
    ap.add_argument("--collector-url", help="override TRACKER_COLLECTOR_URL")
    ap.add_argument("--debug", action="store_true")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("run", help="Run as the browser's native messaging host (reads stdin)")

    p_id = sub.add_parser("identify", help="Print the detected browser name")
    p_id.add_argument("--signature", help="classify this string instead of the parent process")

    p_send = sub.add_parser("send", help="Send one context update to the collector and print the outcome")
    p_send.add_argument("--url", required=True)
    p_send.add_argument("--title", default="")
    p_send.add_argument("--browser", choices=["Chrome", "Helium"])

    args = ap.parse_args(argv)
    configure_logging(debug=args.debug)
    cfg = TrackerConfig.from_env()
    if args.collector_url:
        cfg = replace(cfg, collector_url=args.collector_url)
    if args.debug:
        cfg = replace(cfg, debug=True)
    elif cfg.debug:
        configure_logging(debug=True)

    if args.cmd == "run":
        return run(cfg)

    from core.browser.identity import BrowserIdentity, resolve_identity

    if args.cmd == "identify":
        sig = args.signature if args.signature is not None else cfg.browser_signature
        print(resolve_identity(sig).value)
        return 0

    if args.cmd == "send":
        from app.reporting.reporter import ContextReporter
        identity = BrowserIdentity(args.browser) if args.browser else resolve_identity(cfg.browser_signature)
        reporter = ContextReporter(collector_url=cfg.collector_url, timeout_s=cfg.request_timeout_s)
        status = reporter.deliver(reporter.build_payload(args.url, args.title, identity))
        if status is None:
            print(f"Collector unreachable at {cfg.collector_url}")
            return 2
        print(f"POST {cfg.collector_url} -> {status}")
        return 0 if 200 <= status < 300 else 2

    return 1

if __name__ == "__main__":
    sys.exit(main())
