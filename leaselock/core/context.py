# leaselock/core/context.py

import contextvars

correlation_id_ctx = contextvars.ContextVar("correlation_id", default=None)
lock_path_ctx = contextvars.ContextVar("lock_path", default=None)
