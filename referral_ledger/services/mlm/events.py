"""
Outbound MLM events.

Ledger services publish "commission updated" and "network updated" events
after their transaction commits. Delivery is fire-and-forget: a failing
emitter is logged and never affects the ledger.
"""

import json
from typing import Any, Protocol

from loguru import logger

from redis.asyncio import Redis as AsyncRedis


COMMISSION_UPDATED = "commission_updated"
NETWORK_UPDATED = "mlm_network_updated"


class EventEmitter(Protocol):
    """Outbound notification interface."""

    async def emit_commission_updated(
        self, user_id: int, payload: dict[str, Any]
    ) -> None:
        ...

    async def emit_network_updated(
        self, user_id: int, tree: list[dict[str, Any]]
    ) -> None:
        ...


class NullEventEmitter:
    """Emitter that only logs (default when no transport is configured)."""

    async def emit_commission_updated(
        self, user_id: int, payload: dict[str, Any]
    ) -> None:
        logger.debug(
            "Commission updated",
            extra={"user_id": user_id, "payload": payload},
        )

    async def emit_network_updated(
        self, user_id: int, tree: list[dict[str, Any]]
    ) -> None:
        logger.debug(
            "MLM network updated",
            extra={"user_id": user_id, "nodes": len(tree)},
        )


class RedisEventEmitter:
    """Publishes events as JSON messages to a Redis pub/sub channel."""

    def __init__(self, redis: AsyncRedis, channel: str) -> None:
        """
        Initialize emitter.

        Args:
            redis: Redis client instance
            channel: Pub/sub channel name
        """
        self.redis = redis
        self.channel = channel

    async def _publish(self, event: str, user_id: int, data: Any) -> None:
        message = json.dumps(
            {"event": event, "user_id": user_id, "data": data},
            default=str,
        )
        await self.redis.publish(self.channel, message)

    async def emit_commission_updated(
        self, user_id: int, payload: dict[str, Any]
    ) -> None:
        await self._publish(COMMISSION_UPDATED, user_id, payload)

    async def emit_network_updated(
        self, user_id: int, tree: list[dict[str, Any]]
    ) -> None:
        await self._publish(NETWORK_UPDATED, user_id, tree)


async def emit_safely(
    emitter: EventEmitter, event: str, user_id: int, data: Any
) -> bool:
    """
    Emit an event, logging instead of raising on failure.

    Args:
        emitter: Event emitter
        event: COMMISSION_UPDATED or NETWORK_UPDATED
        user_id: Addressed user
        data: Payload (dict) or tree (list)

    Returns:
        True if the emitter accepted the event
    """
    try:
        if event == COMMISSION_UPDATED:
            await emitter.emit_commission_updated(user_id, data)
        elif event == NETWORK_UPDATED:
            await emitter.emit_network_updated(user_id, data)
        else:
            raise ValueError(f"Unknown MLM event {event!r}")
        return True
    except Exception as e:
        logger.warning(
            "Failed to emit MLM event",
            extra={"event": event, "user_id": user_id, "error": str(e)},
        )
        return False
