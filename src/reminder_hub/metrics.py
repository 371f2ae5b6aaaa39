"""
一个简单的运行时指标收集类，用于统计调度轮次、提醒触发与投递结果等信息，供 Admin API 展示。
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from reminder_hub.datamodel import DeliveryResult


@dataclass
class RuntimeMetrics:
    tick_count: int = 0
    tick_total_latency_ms: float = 0.0
    store_error_count: int = 0
    malformed_skipped_count: int = 0
    reminder_triggered_count: int = 0
    delivered_count: int = 0
    declined_count: int = 0
    unsupported_count: int = 0
    occurrence_created_count: int = 0
    last_tick_at: float | None = None

    def record_tick(self, latency_ms: float) -> None:
        self.tick_count += 1
        self.tick_total_latency_ms += max(0.0, latency_ms)
        self.last_tick_at = time.time()

    def record_store_error(self) -> None:
        self.store_error_count += 1

    def record_malformed(self) -> None:
        self.malformed_skipped_count += 1

    def record_triggered(self, result: DeliveryResult) -> None:
        self.reminder_triggered_count += 1
        if result is DeliveryResult.DELIVERED:
            self.delivered_count += 1
        elif result is DeliveryResult.DECLINED:
            self.declined_count += 1
        else:
            self.unsupported_count += 1

    def record_occurrence_created(self) -> None:
        self.occurrence_created_count += 1

    def snapshot(self) -> dict:
        avg_latency_ms = 0.0
        if self.tick_count > 0:
            avg_latency_ms = self.tick_total_latency_ms / self.tick_count

        return {
            "tick_count": self.tick_count,
            "tick_avg_latency_ms": round(avg_latency_ms, 2),
            "store_error_count": self.store_error_count,
            "malformed_skipped_count": self.malformed_skipped_count,
            "reminder_triggered_count": self.reminder_triggered_count,
            "delivered_count": self.delivered_count,
            "declined_count": self.declined_count,
            "unsupported_count": self.unsupported_count,
            "occurrence_created_count": self.occurrence_created_count,
            "last_tick_at_epoch": self.last_tick_at,
            "last_tick_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_tick_at))
                if self.last_tick_at is not None
                else None
            ),
        }


runtime_metrics = RuntimeMetrics()


__all__ = ["RuntimeMetrics", "runtime_metrics"]
