"""arq worker settings module.

Import path for arq CLI: arq levelboard.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq.connections import RedisSettings

from levelboard.config import get_settings
from levelboard.workers.shift_worker import ShiftWorkerSettings


class WorkerSettings(ShiftWorkerSettings):
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)


__all__ = ["WorkerSettings"]
