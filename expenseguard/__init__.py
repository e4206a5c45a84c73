"""Personal expense tracking with category budgets and spending alerts."""

from __future__ import annotations

__all__ = [
    "__version__",
    "aggregation",
    "alerts",
    "config",
    "database",
    "errors",
    "models",
    "money",
    "months",
    "schemas",
    "service",
    "stores",
    "summary",
]

__version__ = "1.0.0"
