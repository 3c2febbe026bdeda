"""
Planning Run Context
Everything one planning run owns: master data lookups, weights, the cached
bottleneck analysis, the random source and the progress sink.

A fresh context is created for every run so nothing leaks between runs.
"""

import random
from datetime import datetime
from typing import Dict, List, Any, Optional, Callable
from dataclasses import dataclass, field

from algorithms.models import Order, Machine, MachineGroup, Weights, parse_datetime
from algorithms.lookup import TimeLookup, RouteResolver


@dataclass
class PlanningContext:
    """Per-run state passed explicitly through the scheduling call chain."""
    lookup: TimeLookup
    resolver: RouteResolver
    machines: List[Machine]
    machine_groups: List[MachineGroup]
    weights: Weights
    start_date: datetime
    rng: random.Random = field(default_factory=random.Random)
    progress_callback: Optional[Callable[[str], None]] = None
    verbose: bool = True

    # Filled during the run
    bottleneck_scores: Dict[int, float] = field(default_factory=dict)
    bottleneck_groups: List[int] = field(default_factory=list)
    due_offsets: Dict[str, Optional[float]] = field(default_factory=dict)
    unscheduled: List[Dict[str, Any]] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    def register_orders(self, orders: List[Order]):
        """Convert due dates to minute offsets from the planning start."""
        for order in orders:
            self.due_offsets[order.report_number] = self.minutes_from_start(order.due_date)

    def minutes_from_start(self, when: Optional[datetime]) -> Optional[float]:
        when = parse_datetime(when)
        if when is None:
            return None
        return (when - parse_datetime(self.start_date)).total_seconds() / 60

    def is_bottleneck(self, group_id: int) -> bool:
        return group_id in self.bottleneck_groups

    def group_name(self, group_id: int) -> str:
        for group in self.machine_groups:
            if group.group_id == group_id:
                return group.name
        return f"Group {group_id}"

    def log(self, message: str):
        """Report progress: console output plus the optional observer."""
        self.messages.append(message)
        if self.verbose:
            print(f"[Scheduler] {message}")
        if self.progress_callback is not None:
            self.progress_callback(message)

    def warn(self, message: str):
        self.log(f"[WARN] {message}")

    def mark_unscheduled(self, order: Order, reason: str):
        self.unscheduled.append({
            'report_number': order.report_number,
            'name': order.name,
            'part_number': order.part_number,
            'order_type': order.order_type.value,
            'reason': reason,
        })
