"""
Per-application service wiring.

The rate limiter, suite store and execution engine are stateful, so one
set is built at startup and shared by every request through the
``get_workspace`` dependency. Tests build their own workspace and
override the dependency.
"""

import asyncio
from dataclasses import dataclass

import httpx
from fastapi import Request
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .database import SessionLocal
from .services.execution_engine import ExecutionEngine
from .services.rate_limiter import RateLimiter
from .services.reqline_client import ReqlineClient
from .services.storage import SqlStorage
from .services.suite_store import SuiteStore


@dataclass
class Workspace:
    """Stateful services shared by all requests of one application."""
    store: SuiteStore
    rate_limiter: RateLimiter
    engine: ExecutionEngine


def build_workspace(
    settings: Settings,
    session_factory: sessionmaker = SessionLocal,
    transport: httpx.AsyncBaseTransport | None = None,
    rate_limiter: RateLimiter | None = None,
    sleep=asyncio.sleep
) -> Workspace:
    """
    Build the services for one application instance.

    Args:
        settings: Application settings
        session_factory: SQLAlchemy session factory for durable storage
        transport: Optional httpx transport for the execution API client
        rate_limiter: Optional limiter, e.g. one driven by a fake clock
        sleep: Coroutine used for the pause between batch calls
    """
    store = SuiteStore(
        SqlStorage(session_factory),
        ttl_seconds=settings.persisted_ttl_seconds
    )
    rate_limiter = rate_limiter or RateLimiter()
    client = ReqlineClient(
        settings.api_url,
        timeout=settings.request_timeout_seconds,
        transport=transport
    )
    engine = ExecutionEngine(
        store,
        rate_limiter,
        client,
        identifier=settings.rate_limit_identifier,
        inter_call_delay=settings.inter_call_delay_seconds,
        sleep=sleep
    )
    return Workspace(store=store, rate_limiter=rate_limiter, engine=engine)


def get_workspace(request: Request) -> Workspace:
    """Dependency returning the application's workspace."""
    return request.app.state.workspace
