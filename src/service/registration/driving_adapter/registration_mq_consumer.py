"""
Registration Consumer

Listens to the registration request topic and hands every message to the
RegistrationChangeDispatcher:

- COMPLETED: acknowledged
- REJECTED:  published to the DLQ (if configured), then acknowledged
- RETRY:     left unacknowledged; redelivered after the retry backoff
"""

from typing import Any, Dict, Optional

from confluent_kafka import Message
import orjson

from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.logging.loguru_io import Logger
from src.platform.message_queue.base_kafka_consumer import BaseKafkaConsumer, MessageHandler
from src.service.registration.app.command.registration_change_dispatcher import (
    RegistrationChangeDispatcher,
)
from src.service.registration.app.dto import DispatchOutcome


class RegistrationConsumer(BaseKafkaConsumer):
    MAX_CONCURRENT_TASKS: int = settings.REGISTRATION_MAX_CONCURRENT_TASKS
    RETRY_BACKOFF_SECONDS: float = settings.REGISTRATION_RETRY_BACKOFF_SECONDS

    def __init__(self, *, dispatcher: Optional[RegistrationChangeDispatcher] = None) -> None:
        super().__init__(
            service_name='REGISTRATION',
            consumer_group_id=settings.KAFKA_CONSUMER_GROUP_ID,
            dlq_topic=settings.KAFKA_REGISTRATION_DLQ_TOPIC or None,
        )
        self.request_topic = settings.KAFKA_REGISTRATION_TOPIC
        self.dispatcher = dispatcher

    async def _initialize_dependencies(self) -> None:
        if self.dispatcher is None:
            self.dispatcher = container.registration_change_dispatcher()

    def _get_topic_handlers(self) -> Dict[str, MessageHandler]:
        return {self.request_topic: self._handle_registration_change}

    @staticmethod
    def _message_for_dlq(value: Optional[bytes]) -> Any:
        if value is None:
            return None
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            return value.decode('utf-8', errors='replace')

    async def _handle_registration_change(self, msg: Message) -> bool:
        result = await self.dispatcher.dispatch_message(msg.value())

        if result.outcome == DispatchOutcome.REJECTED:
            self._send_to_dlq(
                message=self._message_for_dlq(msg.value()),
                original_topic=msg.topic(),
                error=str(result.error),
                error_type=type(result.error).__name__,
                key=msg.key(),
            )
        elif result.outcome == DispatchOutcome.RETRY:
            Logger.base.warning(
                f'🔁 [REGISTRATION-{self.instance_id}] {msg.topic()}[{msg.partition()}]@{msg.offset()} '
                f'not acknowledged: {result.error}'
            )

        return result.outcome.should_ack
