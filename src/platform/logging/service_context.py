"""
Service context for log lines.

Identifies which consumer instance produced a log line when several
registration consumers share one consumer group.
"""

import os
from functools import lru_cache
import socket


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'event-registration-service')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container platforms set HOSTNAME to the pod/task name; fall back to PID locally
    instance = os.getenv('HOSTNAME') or str(os.getpid())
    if deploy_env == 'local_dev':
        instance = f'{socket.gethostname()}:{os.getpid()}'

    return f'{service_name}@{deploy_env}:{instance}'
