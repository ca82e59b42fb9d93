"""Process entry point: ``python -m userhub`` or the ``userhub`` script.

All settings are loaded before anything connects. A missing or invalid
value is fatal: it is logged as ``configuration_invalid`` and the process
exits with status 1.
"""

from __future__ import annotations

import sys

import pydantic
import uvicorn

from userhub.infra.fastapi.settings import get_app_settings
from userhub.infra.messaging.settings import get_rabbitmq_settings
from userhub.infra.observability.logging import configure_logging, get_logger
from userhub.infra.persistence.database import get_database_settings
from userhub.infra.security.password_hasher import get_password_hasher_settings

logger = get_logger(__name__)


def load_settings() -> None:
    """Load and cache every settings object.

    Raises:
        pydantic.ValidationError: A required variable is missing or invalid.
    """
    get_app_settings()
    get_database_settings()
    get_rabbitmq_settings()
    get_password_hasher_settings()


def main() -> None:
    try:
        configure_logging()
        load_settings()
    except pydantic.ValidationError as exc:
        logger.error(
            "configuration_invalid",
            errors=[
                {"setting": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in exc.errors()
            ],
            settings_class=exc.title,
        )
        raise SystemExit(1) from None

    from userhub.app import create_userhub_app

    settings = get_app_settings()
    logger.info("userhub_starting", host=settings.host, port=settings.port)
    uvicorn.run(
        create_userhub_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    sys.exit(main())
