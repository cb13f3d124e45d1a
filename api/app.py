"""
api/app.py — FastAPI application factory

  - cookie session middleware (one aptitude session per browser)
  - question bank warm-up and expired-session sweeper at creation
  - static browser client at /
"""

import logging
import os
import threading

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

import api.session as session
from api.routes import router
from aptitude_test.services.question_bank import get_default_bank
from config import STATIC_DIR

SESSION_COOKIE = "aptitude_session"
CLEANUP_INTERVAL = 300  # seconds

logger = logging.getLogger(__name__)


def _sweep_sessions(stop: threading.Event) -> None:
    while not stop.wait(CLEANUP_INTERVAL):
        removed = session.cleanup_expired()
        if removed:
            logger.info(f"Expired {removed} idle candidates")


def _warm_up_bank() -> None:
    try:
        bank = get_default_bank()
    except (FileNotFoundError, ValueError) as e:
        # /api/catalog and /api/start-test fail until the bank file is fixed
        logger.error(f"Question bank could not be loaded: {e}")
        return
    logger.info(f"Question bank ready: {len(bank)} questions in {len(bank.categories())} categories")


async def _attach_session(request: Request, call_next):
    sid = request.cookies.get(SESSION_COOKIE)
    candidate = session.lookup(sid) if sid else None
    if candidate is None:
        sid = session.create_session()
        candidate = session.lookup(sid)
    request.state.session_id = sid
    request.state.candidate = candidate

    response = await call_next(request)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=sid,
        httponly=True,
        samesite="lax",
        max_age=session.SESSION_TTL,
    )
    return response


def create_app() -> FastAPI:
    app = FastAPI(title="Aptitude Test", docs_url=None, redoc_url=None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(_attach_session)
    app.include_router(router)

    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/", include_in_schema=False)
    async def index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if not os.path.exists(index_path):
            return JSONResponse(status_code=404, content={"detail": "Browser client not installed."})
        return FileResponse(index_path)

    _warm_up_bank()
    app.state.sweeper_stop = threading.Event()
    threading.Thread(target=_sweep_sessions, args=(app.state.sweeper_stop,), daemon=True).start()

    return app
