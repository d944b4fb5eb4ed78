import uuid
from typing import Dict

from .common import CamelModel


class DashboardOut(CamelModel):
    total_orders: int
    active_orders: int
    completed_orders: int
    completion_rate: float
    by_status: Dict[str, int]
    by_priority: Dict[str, int]


class WorkerPerformanceOut(CamelModel):
    id: uuid.UUID
    name: str
    total_assigned: int
    completed_count: int
    avg_completion_time: float
    on_time_rate: int
    total_hours_logged: float


class TrendPointOut(CamelModel):
    month: str
    total: int
    completed: int
