"""
main.py — Aptitude test launcher

    python main.py                 # HTTP API + browser client
    python main.py --no-browser    # HTTP API only
    python main.py --ui            # Streamlit UI
    python main.py --check-bank    # validate the question bank and exit
"""

import argparse
import logging
import os
import socket
import subprocess
import sys
import threading
import time
import webbrowser

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

import config

logger = logging.getLogger("aptitude_test.launcher")


class _NullStream:
    """Stand-in for stdout/stderr when the process runs without a console."""

    def write(self, data): pass
    def flush(self): pass
    def isatty(self): return False


def _configure_logging(verbose: bool = False) -> None:
    if sys.stdout is None:
        sys.stdout = _NullStream()
    if sys.stderr is None:
        sys.stderr = _NullStream()

    level = logging.DEBUG if verbose else logging.INFO
    fmt = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    try:
        logging.basicConfig(
            level=level,
            format=fmt,
            handlers=[
                logging.FileHandler(config.LOG_FILE, encoding='utf-8'),
                logging.StreamHandler(sys.stdout),
            ],
        )
    except PermissionError:
        # log file not writable: console only
        logging.basicConfig(level=level, format=fmt)


# ── Checks ───────────────────────────────────────────────────────────────────

def _check_bank() -> int:
    """Load the configured bank and report every category/difficulty below the target count."""
    from aptitude_test.services.question_bank import load_question_bank

    try:
        bank = load_question_bank(config.QUESTION_BANK_FILE)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Question bank unusable: {e}")
        return 1

    short = 0
    for category, counts in bank.availability().items():
        for difficulty, count in counts.items():
            if count < config.TARGET_QUESTION_COUNT:
                short += 1
                logger.warning(
                    f"{category} / {difficulty}: {count} questions "
                    f"(a single-topic test needs {config.TARGET_QUESTION_COUNT})"
                )
    logger.info(f"Question bank: {len(bank)} questions, {len(bank.categories())} categories, "
                f"{short} short combinations")
    return 0


# ── HTTP API ─────────────────────────────────────────────────────────────────

def _pick_port(preferred: int) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((config.DEFAULT_HOST, preferred))
        except OSError:
            logger.info(f"Port {preferred} is busy, using a free one")
            s.bind((config.DEFAULT_HOST, 0))
        return s.getsockname()[1]


def _server_ready(port: int, timeout: float = config.DEFAULT_TIMEOUT) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((config.DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def _run_api(port: int) -> None:
    import uvicorn
    from api.app import create_app

    logger.info(f"Serving the aptitude test API on http://{config.DEFAULT_HOST}:{port}")
    uvicorn.run(create_app(), host=config.DEFAULT_HOST, port=port, log_level="warning")


def _serve(port: int, open_browser: bool) -> int:
    port = _pick_port(port)
    server = threading.Thread(target=_run_api, args=(port,), daemon=True)
    server.start()

    if not _server_ready(port):
        logger.error("The API did not come up in time.")
        return 1

    if open_browser:
        webbrowser.open(f"http://{config.DEFAULT_HOST}:{port}")

    try:
        while server.is_alive():
            server.join(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    return 0


# ── Streamlit UI ─────────────────────────────────────────────────────────────

def _run_streamlit() -> int:
    script = os.path.join(config.BASE_DIR, "aptitude_test", "app.py")
    cmd = [sys.executable, "-m", "streamlit", "run", script]
    logger.info(f"Starting Streamlit: {' '.join(cmd)}")
    try:
        return subprocess.call(cmd, cwd=config.BASE_DIR)
    except KeyboardInterrupt:
        return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Timed aptitude tests")
    parser.add_argument("--port", type=int, default=config.DEFAULT_PORT, help="preferred API port")
    parser.add_argument("--no-browser", action="store_true", help="do not open the browser client")
    parser.add_argument("--ui", action="store_true", help="run the Streamlit UI instead of the API")
    parser.add_argument("--check-bank", action="store_true", help="validate the question bank and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    os.chdir(config.BASE_DIR)

    if args.check_bank:
        return _check_bank()
    if args.ui:
        return _run_streamlit()
    return _serve(args.port, open_browser=not args.no_browser)


if __name__ == "__main__":
    sys.exit(main())
