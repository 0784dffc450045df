import os
from pathlib import Path

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    DEBUG: bool = True  # Set to False in production

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'event_registration'

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql+asyncpg://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    @property
    def DATABASE_DSN(self) -> str:
        """Plain libpq DSN for asyncpg (no SQLAlchemy driver suffix)"""
        return self.DATABASE_URL_ASYNC.replace('postgresql+asyncpg://', 'postgresql://')

    # SQLAlchemy engine (schema management only)
    DB_POOL_SIZE: int = 2
    DB_POOL_PRE_PING: bool = True

    # asyncpg pool (registration transactions)
    ASYNCPG_POOL_MIN_SIZE: int = 2
    ASYNCPG_POOL_MAX_SIZE: int = 20
    ASYNCPG_POOL_COMMAND_TIMEOUT: float = 30.0
    ASYNCPG_POOL_MAX_INACTIVE_LIFETIME: float = 300.0
    ASYNCPG_POOL_TIMEOUT: float = 10.0
    ASYNCPG_POOL_MAX_QUERIES: int = 50000

    # Kafka Instance Configuration
    KAFKA_CONSUMER_INSTANCE_ID: str = os.getenv(
        'KAFKA_CONSUMER_INSTANCE_ID', f'consumer-{os.getpid()}'
    )

    # Kafka Configuration
    KAFKA_BOOTSTRAP_SERVERS: str = 'localhost:9092'
    KAFKA_SECURITY_PROTOCOL: str = 'PLAINTEXT'
    KAFKA_CONSUMER_GROUP_ID: str = 'event-registration-service'
    KAFKA_CONSUMER_AUTO_OFFSET_RESET: str = 'earliest'
    KAFKA_REGISTRATION_TOPIC: str = 'event-registration-request'
    KAFKA_REGISTRATION_DLQ_TOPIC: str = 'event-registration-request-dlq'
    KAFKA_TOPIC_PARTITIONS: int = 12
    KAFKA_REPLICATION_FACTOR: int = 1  # Set to 1 for development, 3 for production

    # Registration request processing
    REGISTRATION_REQUEST_TIMEOUT_SECONDS: float = 10.0
    REGISTRATION_RETRY_BACKOFF_SECONDS: float = 1.0
    REGISTRATION_MAX_CONCURRENT_TASKS: int = 16

    @field_validator('REGISTRATION_MAX_CONCURRENT_TASKS')
    @classmethod
    def validate_max_concurrent_tasks(cls, v: int) -> int:
        if v < 1:
            raise ValueError('REGISTRATION_MAX_CONCURRENT_TASKS must be at least 1')
        return v

    @property
    def KAFKA_CONSUMER_CONFIG(self) -> dict:
        return {
            'bootstrap.servers': self.KAFKA_BOOTSTRAP_SERVERS,
            'security.protocol': self.KAFKA_SECURITY_PROTOCOL,
            'group.id': self.KAFKA_CONSUMER_GROUP_ID,
            'auto.offset.reset': self.KAFKA_CONSUMER_AUTO_OFFSET_RESET,
            'enable.auto.commit': False,
        }

    @property
    def KAFKA_PRODUCER_CONFIG(self) -> dict:
        return {
            'bootstrap.servers': self.KAFKA_BOOTSTRAP_SERVERS,
            'security.protocol': self.KAFKA_SECURITY_PROTOCOL,
            'acks': 'all',
            'retries': 3,
        }


settings = Settings()  # type: ignore
