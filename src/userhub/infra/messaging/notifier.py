"""RabbitMQ publisher for user domain events.

Declares the topology on connect (durable topic exchange, queue bound
with a wildcard key) and publishes on a single channel in publisher
confirm mode. Publishes are serialized by a lock: the channel has one
writer, and each publish waits for its own broker acknowledgement.

Usage:
    notifier = RabbitMQNotifier(RabbitMQSettings())
    await notifier.connect()
    await notifier.user_created(user)
    await notifier.close()
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aio_pika
from aio_pika import DeliveryMode, ExchangeType, Message
from aio_pika.exceptions import AMQPError, ChannelInvalidStateError, DeliveryError
from pamqp.commands import Basic

from userhub.domain.user.events import (
    CONTENT_TYPE,
    UserEventKind,
    encode_user,
    encode_user_id,
)
from userhub.infra.messaging.errors import (
    BrokerConnectionError,
    PublishRejectedError,
    PublishTimeoutError,
)
from userhub.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from aio_pika.abc import (
        AbstractExchange,
        AbstractQueue,
        AbstractRobustChannel,
        AbstractRobustConnection,
    )

    from userhub.domain.user.user import User
    from userhub.infra.messaging.settings import RabbitMQSettings

logger = get_logger(__name__)


class RabbitMQNotifier:
    """Publishes ``user.created``, ``user.updated`` and ``user.deleted``.

    Args:
        settings: Broker address, credentials, topology and timeouts.
    """

    def __init__(self, settings: RabbitMQSettings) -> None:
        self._settings = settings
        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractRobustChannel | None = None
        self._exchange: AbstractExchange | None = None
        self._queue: AbstractQueue | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return (
            self._connection is not None
            and not self._connection.is_closed
            and self._exchange is not None
        )

    async def connect(self) -> None:
        """Open the connection and confirm-mode channel, then declare topology.

        Raises:
            BrokerConnectionError: The broker is unreachable or refused the
                topology declaration.
        """
        s = self._settings
        try:
            self._connection = await aio_pika.connect_robust(
                host=s.host,
                port=s.port,
                login=s.user,
                password=s.password,
                virtualhost=s.vhost,
                timeout=s.connect_timeout,
            )
            self._channel = await self._connection.channel(publisher_confirms=True)
            self._exchange = await self._channel.declare_exchange(
                s.exchange,
                ExchangeType.TOPIC,
                durable=True,
            )
            self._queue = await self._channel.declare_queue(s.queue, durable=False)
            await self._queue.bind(self._exchange, routing_key=s.binding_key)
        except (AMQPError, OSError, TimeoutError) as exc:
            await self.close()
            msg = f"cannot set up broker at {s.safe_url}: {exc}"
            raise BrokerConnectionError(msg) from exc

        logger.info(
            "rabbitmq_connected",
            url=s.safe_url,
            exchange=s.exchange,
            queue=s.queue,
            binding_key=s.binding_key,
        )

    async def close(self) -> None:
        """Close the connection. Safe to call multiple times."""
        connection, self._connection = self._connection, None
        self._channel = None
        self._exchange = None
        self._queue = None
        if connection is not None and not connection.is_closed:
            await connection.close()
            logger.info("rabbitmq_closed")

    # -- UserNotifierPort --

    async def user_created(self, user: User, *, timeout: float | None = None) -> None:
        await self.publish(UserEventKind.CREATED, encode_user(user), timeout=timeout)

    async def user_updated(self, user: User, *, timeout: float | None = None) -> None:
        await self.publish(UserEventKind.UPDATED, encode_user(user), timeout=timeout)

    async def user_deleted(self, user_id: str, *, timeout: float | None = None) -> None:
        await self.publish(UserEventKind.DELETED, encode_user_id(user_id), timeout=timeout)

    async def publish(
        self,
        kind: UserEventKind,
        body: bytes,
        *,
        timeout: float | None = None,
    ) -> None:
        """Publish one JSON event and wait for the broker's confirmation.

        Args:
            kind: Event kind; its value is the routing key.
            body: Encoded JSON payload.
            timeout: Seconds to wait for the confirmation. Defaults to
                ``RABBITMQ_PUBLISH_TIMEOUT``.

        Raises:
            BrokerConnectionError: Not connected, or the channel failed.
            PublishRejectedError: The broker nacked the message.
            PublishTimeoutError: No confirmation within ``timeout``.
        """
        routing_key = str(kind)
        deadline = timeout if timeout is not None else self._settings.publish_timeout
        message = Message(
            body,
            content_type=CONTENT_TYPE,
            timestamp=datetime.now(UTC),
            type=routing_key,
            delivery_mode=DeliveryMode.NOT_PERSISTENT,
        )

        async with self._lock:
            if self._exchange is None:
                msg = "notifier is not connected"
                raise BrokerConnectionError(msg, routing_key)
            try:
                confirmation = await asyncio.wait_for(
                    self._exchange.publish(message, routing_key=routing_key),
                    timeout=deadline,
                )
            except TimeoutError as exc:
                raise PublishTimeoutError(routing_key, deadline) from exc
            except DeliveryError as exc:
                msg = f"broker refused message: {exc}"
                raise PublishRejectedError(msg, routing_key) from exc
            except (AMQPError, ChannelInvalidStateError, ConnectionError) as exc:
                msg = f"publish failed: {exc}"
                raise BrokerConnectionError(msg, routing_key) from exc

        if isinstance(confirmation, Basic.Nack | Basic.Reject):
            msg = "broker nacked message"
            raise PublishRejectedError(msg, routing_key)
        logger.debug("user_event_confirmed", routing_key=routing_key, size=len(body))
