"""
Service identification for log lines.

`SERVICE_NAME@DEPLOY_ENV:instance` where instance is the container hostname when running
in a container and the PID locally.
"""

from functools import lru_cache
import os

from src.platform.config.core_setting import settings


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = settings.SERVICE_NAME
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')
    instance = os.getenv('HOSTNAME', '')[:12] or str(os.getpid())
    return f'{service_name}@{deploy_env}:{instance}'
