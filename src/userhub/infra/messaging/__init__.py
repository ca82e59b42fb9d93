"""Userhub Infra Messaging -- RabbitMQ event notifier with publisher confirms."""

from userhub.infra.messaging.errors import (
    BrokerConnectionError,
    NotifierError,
    PublishRejectedError,
    PublishTimeoutError,
)
from userhub.infra.messaging.lifespan import lifespan_contribution
from userhub.infra.messaging.notifier import RabbitMQNotifier
from userhub.infra.messaging.settings import RabbitMQSettings, get_rabbitmq_settings

__all__ = [
    "BrokerConnectionError",
    "NotifierError",
    "PublishRejectedError",
    "PublishTimeoutError",
    "RabbitMQNotifier",
    "RabbitMQSettings",
    "get_rabbitmq_settings",
    "lifespan_contribution",
]
