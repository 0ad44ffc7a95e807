#!/usr/bin/env python3
"""
NodeSeek check-in daemon.

Keeps a NodeSeek session cookie alive and performs the daily attendance
(check-in). Two kinds of invocation are supported:

- scheduled: load the cookie, validate it, check in, notify
- capture: a request descriptor ({"url", "headers"}) seen by a proxy is
  handed in; its Cookie header is captured when the freshness policy says so

Run once (e.g. from cron or Task Scheduler) with `--once`, or let the daemon
loop with `--interval` seconds between check-ins.
"""

import argparse
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

from actions.checkin import perform_checkin
from nodeseek.arguments import InvocationArgs
from nodeseek.credential import (
    CredentialCapture,
    CredentialValidator,
    extract_cookie,
    now_ms,
)
from nodeseek.freshness import FreshnessPolicy
from nodeseek.nodeseek_client import DEFAULT_BASE_URL, NodeSeekClient, mask_cookie
from nodeseek.notifier import build_notifier
from nodeseek.state_store import (
    COOKIE_KEY,
    LAST_CHECKIN_KEY,
    StateStore,
    clear_credential,
    default_state_path,
)


logger = logging.getLogger('nodeseek-checkin')

NOTIFY_TITLE = 'NodeSeek 签到'
CHECKIN_TRIGGER_MARKER = 'manual-checkin'


def _configure_logging():
    # Best-effort: prefer UTF-8 on Windows consoles; messages are Chinese.
    try:
        if hasattr(sys.stdout, 'reconfigure'):
            sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        if hasattr(sys.stderr, 'reconfigure'):
            sys.stderr.reconfigure(encoding='utf-8', errors='replace')
    except (AttributeError, OSError, ValueError):
        pass

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('nodeseek_checkin.log', encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def _utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


class Orchestrator:
    """Run one invocation: capture or check-in.

    `on_done` is the host's completion hook. It fires exactly once per `run`,
    whatever happens inside.
    """

    def __init__(self, args, client, store, notifier, on_done=None, clock=None):
        self.args = args
        self.client = client
        self.store = store
        self.notifier = notifier
        self.on_done = on_done
        self.clock = clock or now_ms

        self.validator = CredentialValidator(client)
        self.policy = FreshnessPolicy(store, self.validator, clock=self.clock)
        self.capture = CredentialCapture(
            client, store, notifier, validator=self.validator, clock=self.clock
        )

    def run(self, request=None):
        """Dispatch on the trigger context. Returns True when the flow succeeded."""
        try:
            if request is not None:
                url = str(request.get('url') or '')
                if CHECKIN_TRIGGER_MARKER in url:
                    logger.info("Manual check-in trigger: %s", url)
                    return self.run_checkin()
                return self.run_capture(request)
            return self.run_checkin()
        except Exception as e:
            logger.exception("Invocation failed")
            self.notifier.post(NOTIFY_TITLE, '错误', str(e))
            return False
        finally:
            if self.on_done is not None:
                self.on_done()

    def run_capture(self, request):
        if not self.policy.should_capture(self.args):
            return True

        candidate = extract_cookie(request.get('headers'))
        if not candidate:
            logger.info("Capture requested but the request carries no Cookie header")
            return False
        return self.capture.capture(candidate, silent=self.args.silent)

    def run_checkin(self):
        logger.info("Starting NodeSeek check-in")

        cookie = self.args.credential or self.store.read(COOKIE_KEY)
        if not cookie:
            logger.error("No saved cookie found")
            self.notifier.post(NOTIFY_TITLE, '失败', '请先获取 Cookie')
            return False

        if not self.validator.validate(cookie):
            logger.error("Cookie %s has expired", mask_cookie(cookie))
            self.notifier.post(NOTIFY_TITLE, '失败', 'Cookie 已过期，请重新获取')
            if self.args.auto_refresh:
                clear_credential(self.store)
            return False

        outcome = perform_checkin(self.client, cookie)
        self._record_outcome(outcome)

        if outcome.success:
            logger.info("Check-in succeeded: %s", outcome.message)
            if not self.args.silent:
                self.notifier.post(NOTIFY_TITLE, '成功', outcome.message or '今日签到完成')
        else:
            logger.error("Check-in failed: %s", outcome.message)
            self.notifier.post(NOTIFY_TITLE, '失败', outcome.message or '签到过程中出现错误')

        if outcome.needs_reauth:
            clear_credential(self.store)

        return outcome.success

    def _record_outcome(self, outcome):
        record = {'at': _utc_now_iso()}
        record.update(outcome.to_dict())
        self.store.write(LAST_CHECKIN_KEY, json.dumps(record, ensure_ascii=False))


class CheckinDaemon:
    """Main daemon class: one check-in per interval."""

    def __init__(self, orchestrator, interval=86400, once=False):
        """Initialize the daemon.

        Args:
            orchestrator: Orchestrator used for each iteration
            interval: Seconds between check-ins (default: 86400)
            once: Run a single iteration and exit
        """
        self.orchestrator = orchestrator
        self.interval = interval
        self.once = once
        self.running = False
        self.last_result = None

    def run_iteration(self, iteration):
        logger.info(f"Daemon iteration {iteration}")
        self.last_result = self.orchestrator.run()
        return self.last_result

    def start(self):
        """Start the daemon."""
        logger.info("Starting NodeSeek check-in daemon...")
        if self.orchestrator.args.cron:
            logger.info(f"Configured schedule (external): {self.orchestrator.args.cron}")

        self.running = True
        iteration = 0

        try:
            while self.running:
                iteration += 1
                self.run_iteration(iteration)

                if self.once:
                    logger.info("--once set; exiting after one iteration")
                    self.running = False
                    break

                logger.info(f"Sleeping for {self.interval} seconds...")
                time.sleep(self.interval)

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down...")
            self.running = False

        return self.last_result

    def stop(self):
        """Stop the daemon."""
        logger.info("Stopping daemon...")
        self.running = False


def _load_request(args):
    if args.request_file:
        data = json.loads(Path(args.request_file).read_text(encoding='utf-8'))
        if not isinstance(data, dict):
            raise ValueError(f"Request file must hold a JSON object: {args.request_file}")
        return data
    if args.capture_cookie:
        return {'url': f"{DEFAULT_BASE_URL}/", 'headers': {'Cookie': args.capture_cookie}}
    return None


def _parse_args(argv):
    parser = argparse.ArgumentParser(description="NodeSeek check-in daemon")
    parser.add_argument('--once', action='store_true', help='Run one iteration and exit')
    parser.add_argument(
        '--interval',
        type=int,
        default=None,
        help='Seconds between check-ins (overrides INTERVAL env var, default 86400)'
    )
    parser.add_argument(
        '--argument',
        default=None,
        help='Host-style argument string, e.g. "cookie=...&auto_refresh=true" '
             '(default: NODESEEK_ARGUMENT env)'
    )
    parser.add_argument(
        '--cookie',
        default=None,
        help='Cookie override; used instead of the stored one and never saved '
             '(default: NODESEEK_COOKIE env)'
    )
    parser.add_argument(
        '--no-auto-refresh',
        action='store_true',
        help='Report an expired cookie but keep it in place'
    )
    parser.add_argument(
        '--silent',
        action='store_true',
        help='Suppress success notifications (failures are always notified)'
    )
    parser.add_argument(
        '--state-file',
        default=None,
        help='Path to state JSON file (default: .nodeseek_checkin_state.json in repo root)'
    )
    parser.add_argument(
        '--timeout-s',
        type=float,
        default=None,
        help='HTTP timeout seconds (default: NODESEEK_TIMEOUT_S env or 15)'
    )
    parser.add_argument(
        '--request-file',
        default=None,
        help='JSON request descriptor {"url", "headers"}; runs the capture flow'
    )
    parser.add_argument(
        '--capture-cookie',
        default=None,
        help='Shorthand for a capture request carrying this Cookie header'
    )
    return parser.parse_args(argv)


def build_args(cli_args):
    """Resolve invocation settings: CLI flags > env > defaults."""
    raw = cli_args.argument if cli_args.argument is not None else os.getenv('NODESEEK_ARGUMENT')
    return InvocationArgs.from_argument(raw).with_overrides(
        credential=cli_args.cookie or os.getenv('NODESEEK_COOKIE'),
        auto_refresh=False if cli_args.no_auto_refresh else None,
        silent=True if cli_args.silent else None,
    )


def main(argv=None):
    """Main entry point for the daemon."""
    cli_args = _parse_args(sys.argv[1:] if argv is None else argv)

    load_dotenv()
    _configure_logging()

    args = build_args(cli_args)
    timeout_s = (
        cli_args.timeout_s
        if cli_args.timeout_s is not None
        else float(os.getenv('NODESEEK_TIMEOUT_S', '15'))
    )
    interval = (
        cli_args.interval
        if cli_args.interval is not None
        else int(os.getenv('INTERVAL', '86400'))
    )

    store = StateStore(cli_args.state_file or default_state_path())
    client = NodeSeekClient(timeout_s=timeout_s)
    orchestrator = Orchestrator(
        args,
        client,
        store,
        build_notifier(),
        on_done=lambda: logger.info("Invocation done"),
    )

    try:
        request = _load_request(cli_args)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load request descriptor: {e}")
        return 1

    if request is not None:
        return 0 if orchestrator.run(request) else 1

    daemon = CheckinDaemon(orchestrator, interval=interval, once=cli_args.once)
    return 0 if daemon.start() else 1


if __name__ == '__main__':
    raise SystemExit(main())
