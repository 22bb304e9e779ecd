"""
Optional crash reporting through Sentry.

Reporting is enabled only when ``WOWCLASSICUI_SENTRY_DSN`` is set. Error
records written through loguru are forwarded as Sentry events, so failures
logged on the worker thread or the update pool are reported too.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

import sentry_sdk
from sentry_sdk.integrations.loguru import LoguruIntegration

from . import APP_VERSION
from . import logger as app_logger

SENTRY_DSN_ENV = "WOWCLASSICUI_SENTRY_DSN"
SENTRY_ENVIRONMENT_ENV = "WOWCLASSICUI_SENTRY_ENVIRONMENT"


def init_crash_reporting(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    dsn = (env.get(SENTRY_DSN_ENV) or "").strip()
    if not dsn:
        app_logger.get_logger().debug("Crash reporting disabled; {} is not set.", SENTRY_DSN_ENV)
        return False

    sentry_sdk.init(
        dsn=dsn,
        release=f"wowclassicui-app@{APP_VERSION}",
        environment=env.get(SENTRY_ENVIRONMENT_ENV) or "production",
        integrations=[LoguruIntegration()],
    )
    app_logger.get_logger().info("Crash reporting enabled.")
    return True
