from src.common.resilience.circuit_breaker import get_provider_breaker, provider_call
from src.common.resilience.retry import retry_db_operation, retry_with_backoff

__all__ = [
    "get_provider_breaker",
    "provider_call",
    "retry_db_operation",
    "retry_with_backoff",
]
