"""
Composition root for the auth core.

build_services() wires the storage handle into the credential store, session
manager and request authenticator once per app; handlers reach the container
through current_services().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app

from models.credential_store import CredentialStore
from models.db_storage import DBStorage
from services.activity_log import ActivityLog
from services.authenticator import RequestAuthenticator
from services.session_manager import SessionManager
from utils.security import PasswordService
from utils.tokens import TokenCodec

logger = logging.getLogger(__name__)

EXTENSION_KEY = "ats_services"


@dataclass
class ServiceContainer:
    storage: DBStorage
    store: CredentialStore
    hasher: PasswordService
    codec: TokenCodec
    activity: ActivityLog
    sessions: SessionManager
    authenticator: RequestAuthenticator

    def shutdown(self) -> None:
        self.storage.dispose()


def build_services(config) -> ServiceContainer:
    """`config` is any mapping with the keys defined in api.config.BaseConfig."""
    storage = DBStorage(config["DATABASE_URL"], echo=config.get("SQL_ECHO", False))
    storage.reload()

    hasher = PasswordService(
        time_cost=config["PASSWORD_HASH_TIME_COST"],
        memory_cost=config["PASSWORD_HASH_MEMORY_COST"],
        parallelism=config["PASSWORD_HASH_PARALLELISM"],
    )
    codec = TokenCodec(
        access_secret=config.get("ACCESS_TOKEN_SECRET"),
        refresh_secret=config.get("REFRESH_TOKEN_SECRET"),
        access_ttl=config["ACCESS_TOKEN_EXPIRY"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRY"],
        algorithm=config["JWT_ALGORITHM"],
    )
    if not codec.configured:
        logger.error(
            "ACCESS_TOKEN_SECRET and/or REFRESH_TOKEN_SECRET not set; token signing and verification will fail"
        )
    elif config.get("ACCESS_TOKEN_SECRET") == config.get("REFRESH_TOKEN_SECRET"):
        logger.warning("Access and refresh tokens share one secret; configure two independent secrets")

    store = CredentialStore(storage)
    activity = ActivityLog(storage)
    sessions = SessionManager(
        store,
        codec,
        hasher,
        activity=activity,
        rotate_refresh_tokens=config.get("ROTATE_REFRESH_TOKENS", False),
        reset_ttl=config.get("PASSWORD_RESET_EXPIRY", "30m"),
    )
    return ServiceContainer(
        storage=storage,
        store=store,
        hasher=hasher,
        codec=codec,
        activity=activity,
        sessions=sessions,
        authenticator=RequestAuthenticator(store, codec),
    )


def current_services() -> ServiceContainer:
    return current_app.extensions[EXTENSION_KEY]
