"""Logger access for the compiler modules.

Modules only ask for a logger here; how events are rendered is decided once
by the application through ``setup_logging``.
"""

from typing import Any

import structlog
from structlog.typing import FilteringBoundLogger


def get_logger(name: str | None = None, **initial_values: Any) -> FilteringBoundLogger:
    """Get a structlog logger for a module.

    The last part of ``name`` is bound as ``component`` so events from the
    path builder, the clauses and the assembler can be told apart.

    Args:
        name: Module name, usually ``__name__``
        **initial_values: Context bound to every event of the logger

    Returns:
        FilteringBoundLogger: A lazily configured structlog logger
    """
    if name:
        initial_values.setdefault("component", name.rsplit(".", 1)[-1])
    return structlog.get_logger(name, **initial_values)
