"""
Store repository entry point.
Single import for products / sync_logs CRUD.
"""
from __future__ import annotations

from feedsync.store.repo_logs import (
    finish_run_log,
    get_recent_run_logs,
    get_run_log,
    get_running_older_than,
    insert_run_log,
    mark_logs_failed,
    start_run_log,
)
from feedsync.store.repo_products import (
    count_by_category,
    count_products,
    get_product_by_url,
    query_products,
    upsert_product,
)

__all__ = [
    "count_by_category",
    "count_products",
    "finish_run_log",
    "get_product_by_url",
    "get_recent_run_logs",
    "get_run_log",
    "get_running_older_than",
    "insert_run_log",
    "mark_logs_failed",
    "query_products",
    "start_run_log",
    "upsert_product",
]
