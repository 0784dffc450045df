"""
Standalone Event Registration Consumer Entry Point (Async)

Usage:
    PYTHONPATH=$PWD python src/service/registration/driving_adapter/start_registration_consumer.py
"""

import signal

import anyio
import anyio.to_thread

from src.platform.database.asyncpg_setting import close_asyncpg_pool, get_asyncpg_pool
from src.platform.logging.loguru_io import Logger
from src.platform.message_queue.kafka_topic_initializer import KafkaTopicInitializer
from src.platform.observability.tracing import TracingConfig
from src.service.registration.driving_adapter.registration_mq_consumer import (
    RegistrationConsumer,
)


async def main() -> None:
    """Main async entry point for the Event Registration Consumer."""
    Logger.base.info('🚀 [Registration Consumer] Starting...')

    tracing = TracingConfig(service_name='event-registration-service')
    tracing.setup()
    Logger.base.info('📊 [Registration Consumer] OpenTelemetry configured')

    # Auto-create topics before consumer starts
    if not await anyio.to_thread.run_sync(KafkaTopicInitializer().ensure_topics_exist):
        Logger.base.warning('⚠️ [Registration Consumer] Not all topics could be ensured')

    # Warm up the pool so connection errors surface at startup
    await get_asyncpg_pool()

    consumer = RegistrationConsumer()
    shutdown_event = anyio.Event()

    def shutdown_handler(signum: int) -> None:
        Logger.base.info(f'🛑 [Registration Consumer] Received signal {signum}')
        shutdown_event.set()

    try:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:

            async def signal_watcher() -> None:
                async for signum in signals:
                    shutdown_handler(signum)
                    break

            async def run_consumer() -> None:
                try:
                    await consumer.start()
                finally:
                    # Consumer exited on its own (e.g. start failed): stop the service too
                    shutdown_event.set()

            async with anyio.create_task_group() as tg:
                tg.start_soon(signal_watcher)  # type: ignore[arg-type]
                tg.start_soon(run_consumer)  # type: ignore[arg-type]

                await shutdown_event.wait()

                Logger.base.info('🛑 [Registration Consumer] Initiating graceful shutdown...')
                await consumer.stop()
                tg.cancel_scope.cancel()

    finally:
        await close_asyncpg_pool()
        Logger.base.info('🔌 [Registration Consumer] asyncpg pool closed')

        tracing.shutdown()
        Logger.base.info('📊 [Registration Consumer] Tracing shutdown complete')
        Logger.base.info('👋 [Registration Consumer] Shutdown complete')


if __name__ == '__main__':
    anyio.run(main)  # type: ignore[arg-type]
