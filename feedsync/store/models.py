"""Store row models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

STATUS_RUNNING = "running"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


@dataclass
class ProductRow:
    id: int
    title: str
    description: str
    price: float
    currency: str
    image_url: Optional[str]
    source_url: str  # natural key (affiliate deep link)
    platform: str
    source_network: str
    category: str
    created_at: str
    updated_at: Optional[str]


@dataclass
class SyncLogRow:
    id: int
    platform: str  # run label, e.g. awin-sync or awin-sync-fnac
    status: str  # running / success / error
    items_found: int
    items_added: int
    error_message: Optional[str]
    http_status: Optional[int]
    duration_ms: Optional[int]
    created_at: str
    finished_at: Optional[str]
