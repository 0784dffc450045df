"""
Kafka Topic Initializer
Container-friendly topic creation using confluent-kafka AdminClient

Creates the registration request topic (and its DLQ) during consumer startup,
so that subscription does not fail with UNKNOWN_TOPIC_OR_PART on a fresh cluster.
"""

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class KafkaTopicInitializer:
    def __init__(
        self,
        *,
        bootstrap_servers: str | None = None,
        num_partitions: int | None = None,
        replication_factor: int | None = None,
    ) -> None:
        self.bootstrap_servers = bootstrap_servers or settings.KAFKA_BOOTSTRAP_SERVERS
        self.num_partitions = num_partitions or settings.KAFKA_TOPIC_PARTITIONS
        self.replication_factor = replication_factor or settings.KAFKA_REPLICATION_FACTOR
        self.admin_client = AdminClient(
            {
                'bootstrap.servers': self.bootstrap_servers,
                'security.protocol': settings.KAFKA_SECURITY_PROTOCOL,
            }
        )

    @staticmethod
    def required_topics() -> list[str]:
        topics = [settings.KAFKA_REGISTRATION_TOPIC]
        if settings.KAFKA_REGISTRATION_DLQ_TOPIC:
            topics.append(settings.KAFKA_REGISTRATION_DLQ_TOPIC)
        return topics

    def ensure_topics_exist(self, *, topics: list[str] | None = None) -> bool:
        """
        Ensure the given topics exist, creating the missing ones.

        Returns:
            bool: True if all topics exist or were created successfully
        """
        required_topics = topics or self.required_topics()
        Logger.base.info(f'🔧 [TOPIC-INIT] Ensuring topics exist: {required_topics}')

        try:
            existing_topics = set(self.admin_client.list_topics(timeout=10).topics.keys())
        except KafkaException as e:
            Logger.base.error(f'❌ [TOPIC-INIT] Failed to list topics: {e}')
            return False

        topics_to_create = [topic for topic in required_topics if topic not in existing_topics]
        if not topics_to_create:
            Logger.base.info(f'✅ [TOPIC-INIT] All {len(required_topics)} topics already exist')
            return True

        Logger.base.info(
            f'📝 [TOPIC-INIT] Creating {len(topics_to_create)}/{len(required_topics)} missing topics...'
        )

        new_topics = [
            NewTopic(
                topic=topic,
                num_partitions=self.num_partitions,
                replication_factor=self.replication_factor,
                config={
                    'cleanup.policy': 'delete',
                    'retention.ms': '604800000',  # 7 days
                },
            )
            for topic in topics_to_create
        ]

        futures = self.admin_client.create_topics(new_topics, request_timeout=30)

        success_count = 0
        for topic, future in futures.items():
            try:
                future.result()  # Block until topic is created
                Logger.base.info(f'✅ [TOPIC-INIT] Created topic: {topic}')
                success_count += 1
            except KafkaException as e:
                # Another consumer instance may have created it concurrently
                if e.args[0].code() == KafkaError.TOPIC_ALREADY_EXISTS:
                    Logger.base.info(f'ℹ️  [TOPIC-INIT] Topic already exists: {topic}')
                    success_count += 1
                else:
                    Logger.base.error(f'❌ [TOPIC-INIT] Failed to create {topic}: {e}')

        return success_count == len(topics_to_create)
