import os
from dataclasses import dataclass


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ClientConfig:
    base_url: str = 'http://localhost:8000'
    timeout: float = 30.0
    poll_timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 1.0
    demo_mode: bool = False
    state_db: str = 'pickup_state.db'
    verification_refresh_interval: float = 120.0
    notification_count_interval: float = 120.0
    rider_poll_interval: float = 30.0
    customer_poll_interval: float = 300.0

    @classmethod
    def from_env(cls):
        return cls(
            base_url=os.environ.get('PICKUP_API_URL', cls.base_url).rstrip('/'),
            timeout=float(os.environ.get('PICKUP_TIMEOUT', cls.timeout)),
            poll_timeout=float(os.environ.get('PICKUP_POLL_TIMEOUT', cls.poll_timeout)),
            max_retries=int(os.environ.get('PICKUP_MAX_RETRIES', cls.max_retries)),
            retry_delay=float(os.environ.get('PICKUP_RETRY_DELAY', cls.retry_delay)),
            demo_mode=_env_bool('PICKUP_DEMO_MODE'),
            state_db=os.environ.get('PICKUP_STATE_DB', cls.state_db),
        )
