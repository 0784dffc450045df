from abc import ABC, abstractmethod
from functools import partial
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anyio
import anyio.to_thread
from anyio.abc import TaskGroup
from confluent_kafka import Consumer, KafkaError, KafkaException, Message, Producer, TopicPartition
from opentelemetry import trace
import orjson

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.message_queue.offset_tracker import PartitionOffsetTracker
from src.platform.observability.tracing import extract_trace_context


MessageHandler = Callable[[Message], Awaitable[bool]]


class BaseKafkaConsumer(ABC):
    """
    Async Kafka consumer with manual, gap-aware offset commits.

    A topic handler returns True to acknowledge a message and False to leave
    it unacknowledged. Unacknowledged messages are redelivered by seeking the
    partition back to them after RETRY_BACKOFF_SECONDS; committed offsets never
    move past them.
    """

    # === Tuning Parameters (subclasses can override) ===
    #
    # POLL_TIMEOUT_SECONDS: Max time poll() waits for messages
    #   - Too long → slow shutdown; Too short → CPU spin
    #
    # COMMIT_INTERVAL_SECONDS: How often to batch commit offsets
    #   - Too long → more reprocessing on restart; Too short → broker overhead
    #
    # MAX_CONCURRENT_TASKS: Messages processed at the same time
    #
    # MAX_PENDING_COMMITS: Force commit after this many finished messages
    #
    # RETRY_BACKOFF_SECONDS: Delay before an unacknowledged message is redelivered
    #
    POLL_TIMEOUT_SECONDS: float = 0.1
    COMMIT_INTERVAL_SECONDS: float = 1.0
    MAX_CONCURRENT_TASKS: int = 16
    MAX_PENDING_COMMITS: int = 100
    RETRY_BACKOFF_SECONDS: float = 1.0

    def __init__(
        self,
        *,
        service_name: str,
        consumer_group_id: str,
        dlq_topic: str | None,
    ) -> None:
        self.service_name = service_name
        self.consumer_group_id = consumer_group_id
        self.dlq_topic = dlq_topic
        self.instance_id = settings.KAFKA_CONSUMER_INSTANCE_ID

        # Kafka clients
        self.consumer: Optional[Consumer] = None
        self.producer: Optional[Producer] = None  # For sending to DLQ
        self.tracer = trace.get_tracer(__name__)

        # Running state control
        self.running = False
        self._stopped: Optional[anyio.Event] = None
        self._draining: Optional[anyio.Event] = None  # set when polling ends
        # Offset tracking: { (topic, partition): tracker }
        self._trackers: Dict[tuple[str, int], PartitionOffsetTracker] = {}
        self._last_commit_time = time.monotonic()
        self._limiter: Optional[anyio.CapacityLimiter] = None

    @abstractmethod
    def _get_topic_handlers(self) -> Dict[str, MessageHandler]:
        """
        Return topic name to handler mapping.

        Example:
            return {
                'event-registration-request': self._handle_registration_change,
            }
        """
        pass

    @abstractmethod
    async def _initialize_dependencies(self) -> None:
        """Initialize use cases and dependencies before consumer starts."""
        pass

    def _create_consumer(self) -> Consumer:
        """
        Create Kafka Consumer.

        Key settings explained:
        - group.id: Consumer group name, consumers in same group share topic
        - auto.offset.reset: Where to start when no committed offset (earliest/latest)
        - enable.auto.commit: False = manual commit control
        - session.timeout.ms: How long before consumer is considered dead
        """
        config: Dict[str, Any] = {
            **settings.KAFKA_CONSUMER_CONFIG,
            'group.id': self.consumer_group_id,
            'enable.auto.commit': False,  # Manual commit for precise control
            # Session management (librdkafka default: 45000, 3000)
            'session.timeout.ms': 45000,
            'heartbeat.interval.ms': 15000,
            # Reconnection (librdkafka default: 100, 10000)
            'reconnect.backoff.ms': 1000,
            'reconnect.backoff.max.ms': 30000,
        }
        return Consumer(config)

    def _create_producer(self) -> Producer:
        return Producer(settings.KAFKA_PRODUCER_CONFIG)

    # ========== Dead Letter Queue ==========

    def _send_to_dlq(
        self,
        *,
        message: Any,
        original_topic: str,
        error: str,
        error_type: str,
        key: bytes | None = None,
    ) -> None:
        if not self.dlq_topic:
            return
        if not self.producer:
            Logger.base.error('[DLQ] Producer not initialized')
            return

        try:
            dlq_message = {
                'original_message': message,
                'original_topic': original_topic,
                'error': error,
                'error_type': error_type,
                'timestamp': time.time(),
                'instance_id': self.instance_id,
            }

            self.producer.produce(
                topic=self.dlq_topic,
                key=key,
                value=orjson.dumps(dlq_message),
            )
            self.producer.poll(0)

            Logger.base.warning(f'[DLQ] Sent to {self.dlq_topic}: {error_type} - {error}')

        except (KafkaException, BufferError, TypeError) as e:
            Logger.base.error(f'[DLQ] Failed to send: {e}')

    # ========== Offset Tracking ==========

    def _tracker(self, topic: str, partition: int) -> PartitionOffsetTracker:
        key = (topic, partition)
        if key not in self._trackers:
            self._trackers[key] = PartitionOffsetTracker()
        return self._trackers[key]

    def _collect_commits(self) -> List[TopicPartition]:
        offsets = []
        for (topic, partition), tracker in self._trackers.items():
            offset = tracker.committable()
            if offset is not None:
                offsets.append(TopicPartition(topic, partition, offset))
        return offsets

    async def _maybe_commit_offsets(self, *, force: bool = False) -> None:
        """
        Batch commit offsets.

        Triggers when ANY of:
        - force=True (shutdown)
        - finished messages >= MAX_PENDING_COMMITS
        - time >= COMMIT_INTERVAL_SECONDS
        """
        now = time.monotonic()
        pending = sum(tracker.pending_count for tracker in self._trackers.values())
        should_commit = (
            force
            or pending >= self.MAX_PENDING_COMMITS
            or now - self._last_commit_time >= self.COMMIT_INTERVAL_SECONDS
        )
        if not should_commit or not self.consumer:
            return

        self._last_commit_time = now
        offsets = self._collect_commits()
        if not offsets:
            return

        try:
            await anyio.to_thread.run_sync(
                partial(self.consumer.commit, offsets=offsets, asynchronous=False)
            )
        except KafkaException as e:
            Logger.base.error(f'[{self.service_name}] Commit failed: {e}')
            return

        for tp in offsets:
            tracker = self._trackers.get((tp.topic, tp.partition))
            if tracker:
                tracker.mark_committed(tp.offset)
        Logger.base.debug(f'[{self.service_name}] Committed {len(offsets)} partition offsets')

    def _on_revoke(self, consumer: Consumer, partitions: List[TopicPartition]) -> None:
        # Runs inside poll(); commit the finished prefix before another member takes over
        offsets = []
        for tp in partitions:
            tracker = self._trackers.pop((tp.topic, tp.partition), None)
            offset = tracker.committable() if tracker else None
            if offset is not None:
                offsets.append(TopicPartition(tp.topic, tp.partition, offset))

        if offsets:
            try:
                consumer.commit(offsets=offsets, asynchronous=False)
            except KafkaException as e:
                Logger.base.warning(f'[{self.service_name}] Commit on revoke failed: {e}')

        Logger.base.info(
            f'[{self.service_name}] Partitions revoked: '
            f'{[(tp.topic, tp.partition) for tp in partitions]}'
        )

    # ========== Processing ==========

    async def _process_message(self, msg: Message, handler: MessageHandler) -> None:
        topic, partition, offset = msg.topic(), msg.partition(), msg.offset()
        tracker = self._tracker(topic, partition)

        try:
            headers = {
                k: v.decode('utf-8') for k, v in (msg.headers() or []) if isinstance(v, bytes)
            }
            extract_trace_context(headers=headers)

            with self.tracer.start_as_current_span(
                f'consumer.{topic}',
                attributes={
                    'messaging.system': 'kafka',
                    'messaging.destination': topic,
                    'messaging.kafka.partition': partition,
                    'messaging.kafka.offset': offset,
                },
            ):
                acked = await handler(msg)
        except Exception as e:
            Logger.base.exception(
                f'[{self.service_name}] Handler error at {topic}[{partition}]@{offset}: {e}'
            )
            acked = False

        if acked:
            tracker.ack(offset)
            return

        tracker.nack(offset)
        await self._redeliver(topic=topic, partition=partition, offset=offset)

    async def _redeliver(self, *, topic: str, partition: int, offset: int) -> None:
        # A failed seek is retried; otherwise the offset would never be read again
        while True:
            # Back off, but wake up early when polling stops so shutdown is not delayed
            with anyio.move_on_after(self.RETRY_BACKOFF_SECONDS):
                await self._draining.wait()
            if not self.running or not self.consumer:
                # Not committed past; the next owner of the partition redelivers it
                return
            if (topic, partition) not in self._trackers:
                return  # revoked while backing off

            try:
                self.consumer.seek(TopicPartition(topic, partition, offset))
            except KafkaException as e:
                Logger.base.warning(
                    f'[{self.service_name}] Seek to {topic}[{partition}]@{offset} failed, '
                    f'retrying in {self.RETRY_BACKOFF_SECONDS}s: {e}'
                )
                continue

            Logger.base.info(f'🔁 [{self.service_name}] Redelivering {topic}[{partition}]@{offset}')
            return

    async def _run_task(self, msg: Message, handler: MessageHandler) -> None:
        try:
            await self._process_message(msg, handler)
        finally:
            self._limiter.release_on_behalf_of(msg)

    # ========== Lifecycle ==========

    async def start(self) -> None:
        """Start consumer with retry for topic availability, then run until stopped."""
        max_retries, delay = 5, 2

        await self._initialize_dependencies()
        handlers = self._get_topic_handlers()

        for attempt in range(1, max_retries + 1):
            try:
                self.consumer = self._create_consumer()
                self.consumer.subscribe(list(handlers.keys()), on_revoke=self._on_revoke)
                break
            except KafkaException as e:
                if attempt < max_retries:
                    Logger.base.warning(
                        f'[{self.service_name}] {attempt}/{max_retries}: Subscribe failed ({e}), retry in {delay}s'
                    )
                    await anyio.sleep(delay)
                    delay *= 2
                else:
                    Logger.base.error(f'[{self.service_name}] Start failed: {e}')
                    raise

        if self.dlq_topic:
            self.producer = self._create_producer()

        Logger.base.info(
            f'[{self.service_name}-{self.instance_id}] Started | '
            f'group={self.consumer_group_id} topics={list(handlers.keys())} '
            f'concurrency={self.MAX_CONCURRENT_TASKS}'
        )

        self._stopped = anyio.Event()
        self._draining = anyio.Event()
        self._limiter = anyio.CapacityLimiter(self.MAX_CONCURRENT_TASKS)
        self.running = True
        try:
            async with anyio.create_task_group() as tg:
                await self._run_loop(tg, handlers)
                self._draining.set()
            # Task group exit waits for in-flight messages
            await self._maybe_commit_offsets(force=True)
        finally:
            self._close_clients()
            self._stopped.set()

    async def _run_loop(self, tg: TaskGroup, handlers: Dict[str, MessageHandler]) -> None:
        """
        Main consumer loop.

        1. poll() fetches next message in a worker thread (max POLL_TIMEOUT_SECONDS)
        2. No message → check if commit needed
        3. Has message → wait for a free slot, then process it in the task group
        """
        while self.running:
            msg = await anyio.to_thread.run_sync(self.consumer.poll, self.POLL_TIMEOUT_SECONDS)

            if msg is None:
                await self._maybe_commit_offsets()
                continue

            if msg.error():
                if msg.error().code() != KafkaError._PARTITION_EOF:
                    Logger.base.error(f'[{self.service_name}] Kafka error: {msg.error()}')
                continue

            handler = handlers.get(msg.topic())
            if handler is None:
                continue

            if not self._tracker(msg.topic(), msg.partition()).begin(msg.offset()):
                Logger.base.debug(
                    f'[{self.service_name}] Skipping already handled '
                    f'{msg.topic()}[{msg.partition()}]@{msg.offset()}'
                )
                continue

            await self._limiter.acquire_on_behalf_of(msg)
            tg.start_soon(self._run_task, msg, handler)

            await self._maybe_commit_offsets()

    async def stop(self) -> None:
        """
        Graceful shutdown.

        Steps:
        1. Clear running flag (poll loop exits after the current poll)
        2. Wait for in-flight messages and the final offset commit
        3. Close Kafka consumer (triggers rebalance) and flush DLQ producer
        """
        if not self.running:
            return

        Logger.base.info(f'[{self.service_name}] Stopping...')
        self.running = False
        if self._stopped:
            await self._stopped.wait()
        Logger.base.info(f'[{self.service_name}] Stopped')

    def _close_clients(self) -> None:
        self.running = False

        # Close consumer (triggers rebalance, other consumers take over partitions)
        if self.consumer:
            try:
                self.consumer.close()
            except (KafkaException, RuntimeError) as e:
                Logger.base.warning(f'[{self.service_name}] Close error: {e}')
            self.consumer = None

        # Flush DLQ producer
        if self.producer:
            remaining = self.producer.flush(timeout=5.0)
            if remaining:
                Logger.base.warning(f'[DLQ] {remaining} messages not delivered on shutdown')
            self.producer = None
