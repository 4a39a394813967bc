"""Service wiring and FastAPI dependencies."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import Settings, settings
from errors import Unauthenticated
from identity import Caller, IdentityVerifier, JwtIdentityVerifier
from interview_session import RoutedTextGenerator, SessionLifecycleManager
from notifications import HttpEmailNotifier, LogNotifier, Notifier
from scheduling import ScheduleService
from storage import SqliteDocumentStore


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)  # Missing headers are reported as Unauthenticated

_BUILD_LOCK = threading.Lock()


@dataclass
class Services:  # Explicit dependency bundle shared by the routers
    verifier: IdentityVerifier
    sessions: SessionLifecycleManager
    schedule: ScheduleService


def build_notifier(config: Settings) -> Notifier:
    if not config.EMAIL_API_URL:
        logger.info("EMAIL_API_URL not set; notifications will only be logged")
        return LogNotifier()
    return HttpEmailNotifier(
        config.EMAIL_API_URL,
        sender=config.EMAIL_SENDER,
        api_key_env=config.EMAIL_API_KEY_ENV,
        timeout_s=config.EMAIL_TIMEOUT_S,
    )


def build_services(config: Optional[Settings] = None) -> Services:
    """Construct production services from settings."""

    config = config or settings
    store = SqliteDocumentStore(config.DB_PATH)
    generator = RoutedTextGenerator.from_config(Path(config.LLM_CONFIG_PATH))
    verifier = JwtIdentityVerifier(
        config.AUTH_SECRET,
        algorithms=config.AUTH_ALGORITHMS,
        audience=config.AUTH_AUDIENCE,
        issuer=config.AUTH_ISSUER,
    )
    return Services(
        verifier=verifier,
        sessions=SessionLifecycleManager(store, generator, settings=config),
        schedule=ScheduleService(store, build_notifier(config)),
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is not None:
        return services
    with _BUILD_LOCK:
        services = getattr(request.app.state, "services", None)
        if services is None:
            services = build_services()
            request.app.state.services = services
    return services


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> Caller:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token.")
    return services.verifier.verify(credentials.credentials)


__all__ = ["Services", "bearer_scheme", "build_notifier", "build_services", "get_caller", "get_services"]
