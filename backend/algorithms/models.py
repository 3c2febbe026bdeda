"""
Planning Data Model
Orders, master data and schedule structures shared by the scheduling engine.
"""

from datetime import datetime, timezone
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, asdict
from enum import Enum


class OrderType(Enum):
    """Planning class of an order."""
    STOCK = "stock"        # Make to Stock
    CUSTOMER = "customer"  # Make to Order

    @classmethod
    def parse(cls, value: Any) -> 'OrderType':
        """Parse an order type, accepting the legacy MTS/MTO labels."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        aliases = {
            'stock': cls.STOCK,
            'mts': cls.STOCK,
            'make to stock': cls.STOCK,
            'customer': cls.CUSTOMER,
            'mto': cls.CUSTOMER,
            'make to order': cls.CUSTOMER,
        }
        if text not in aliases:
            raise ValueError(f"Unknown order type: {value!r}")
        return aliases[text]


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a date for planning. Timestamps carrying an offset are converted
    to naive UTC; naive values are taken as they are.
    """
    if value is None or value == '':
        return None
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class Order:
    """A production order as supplied by the calling layer."""
    order_id: int
    name: str
    part_number: str
    report_number: str
    order_type: OrderType
    lot_size: int
    due_date: Optional[datetime] = None

    @property
    def is_stock(self) -> bool:
        return self.order_type == OrderType.STOCK

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """
        Build an order from a stored/API record.

        Accepts both snake_case and the camelCase keys used by the
        JSON store. Raises ValueError for malformed records.
        """
        part_number = str(data.get('part_number') or data.get('partNumber') or '').strip()
        report_number = str(data.get('report_number') or data.get('reportNumber') or '').strip()
        if not part_number:
            raise ValueError("Order is missing a part number")
        if not report_number:
            raise ValueError(f"Order for {part_number} is missing a report number")

        try:
            lot_size = int(data.get('lot_size', data.get('lotSize')))
        except (TypeError, ValueError):
            raise ValueError(f"Order {report_number}: lot size must be an integer")
        if lot_size <= 0:
            raise ValueError(f"Order {report_number}: lot size must be positive")

        order_id = data.get('order_id', data.get('id', 0))
        return cls(
            order_id=int(order_id or 0),
            name=str(data.get('name') or report_number),
            part_number=part_number,
            report_number=report_number,
            order_type=OrderType.parse(data.get('order_type', data.get('type'))),
            lot_size=lot_size,
            due_date=parse_datetime(data.get('due_date', data.get('dueDate'))),
        )


@dataclass(frozen=True)
class MachineGroup:
    """A pool of interchangeable machines for one production step."""
    group_id: int
    name: str
    description: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MachineGroup':
        return cls(
            group_id=int(data.get('group_id', data.get('id'))),
            name=str(data.get('name') or ''),
            description=str(data.get('description') or ''),
        )


@dataclass(frozen=True)
class Machine:
    """A machine belonging to exactly one group."""
    machine_id: int
    name: str
    group_id: int
    capable_part_numbers: tuple = ()
    description: str = ''

    def can_produce(self, part_number: str) -> bool:
        return part_number in self.capable_part_numbers

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Machine':
        parts = data.get('capable_part_numbers', data.get('capablePartNumbers')) or []
        return cls(
            machine_id=int(data.get('machine_id', data.get('id'))),
            name=str(data.get('name') or ''),
            group_id=int(data.get('group_id', data.get('groupId'))),
            capable_part_numbers=tuple(str(p) for p in parts),
            description=str(data.get('description') or ''),
        )


@dataclass(frozen=True)
class Route:
    """Ordered machine groups a part number has to pass through."""
    part_number: str
    sequence: tuple
    product_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Route':
        return cls(
            part_number=str(data.get('part_number') or data.get('partNumber') or ''),
            sequence=tuple(int(g) for g in data.get('sequence') or []),
            product_name=data.get('product_name', data.get('productName')),
        )


@dataclass
class Weights:
    """
    Relative importance of the scheduling criteria.

    The weights do not need to sum to 1; only their relative
    magnitudes matter. Defaults match the planning form defaults.
    """
    start_time: float = 0.05
    end_time: float = 0.05
    setup_time: float = 0.30   # alpha
    machine_load: float = 0.00
    due_date: float = 0.40     # beta
    bottleneck: float = 0.20   # gamma

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"Weight '{name}' must be non-negative, got {value}")

    def copy(self) -> 'Weights':
        return Weights(**asdict(self))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Weights':
        """Build weights from snake_case or camelCase keys; missing keys keep defaults."""
        if not data:
            return cls()
        keys = {
            'start_time': ('start_time', 'startTime'),
            'end_time': ('end_time', 'endTime'),
            'setup_time': ('setup_time', 'setupTime'),
            'machine_load': ('machine_load', 'machineLoad'),
            'due_date': ('due_date', 'dueDate'),
            'bottleneck': ('bottleneck',),
        }
        values = {}
        for attr, candidates in keys.items():
            for key in candidates:
                if key in data and data[key] is not None:
                    values[attr] = float(data[key])
                    break
        return cls(**values)


@dataclass
class Slot:
    """One scheduled operation of an order on a machine (minutes from plan start)."""
    order_ref: str  # report number of the order
    order_name: str
    part_number: str
    machine_id: int
    start: float
    end: float
    setup_time: float
    processing_time: float
    order_type: OrderType

    def copy(self) -> 'Slot':
        return Slot(
            order_ref=self.order_ref,
            order_name=self.order_name,
            part_number=self.part_number,
            machine_id=self.machine_id,
            start=self.start,
            end=self.end,
            setup_time=self.setup_time,
            processing_time=self.processing_time,
            order_type=self.order_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'order_ref': self.order_ref,
            'order_name': self.order_name,
            'part_number': self.part_number,
            'machine_id': self.machine_id,
            'start': self.start,
            'end': self.end,
            'setup_time': self.setup_time,
            'processing_time': self.processing_time,
            'order_type': self.order_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Slot':
        return cls(
            order_ref=str(data['order_ref']),
            order_name=str(data.get('order_name') or data['order_ref']),
            part_number=str(data['part_number']),
            machine_id=int(data['machine_id']),
            start=data['start'],
            end=data['end'],
            setup_time=data['setup_time'],
            processing_time=data['processing_time'],
            order_type=OrderType.parse(data['order_type']),
        )


@dataclass
class MachineSchedule:
    """Ordered, time-disjoint slots of one machine."""
    machine_id: int
    machine_name: str
    slots: List[Slot] = field(default_factory=list)

    @property
    def last_slot(self) -> Optional[Slot]:
        return self.slots[-1] if self.slots else None

    @property
    def end_time(self) -> float:
        return max((s.end for s in self.slots), default=0)

    @property
    def total_setup(self) -> float:
        return sum(s.setup_time for s in self.slots)

    @property
    def total_processing(self) -> float:
        return sum(s.processing_time for s in self.slots)

    def copy(self) -> 'MachineSchedule':
        return MachineSchedule(self.machine_id, self.machine_name, [s.copy() for s in self.slots])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'machine_id': self.machine_id,
            'machine_name': self.machine_name,
            'slots': [s.to_dict() for s in self.slots],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MachineSchedule':
        return cls(
            machine_id=int(data['machine_id']),
            machine_name=str(data.get('machine_name') or ''),
            slots=[Slot.from_dict(s) for s in data.get('slots') or []],
        )


def clone_schedule(schedule: Dict[int, MachineSchedule]) -> Dict[int, MachineSchedule]:
    """Structural copy of a schedule; slots are copied by value."""
    return {machine_id: ms.copy() for machine_id, ms in schedule.items()}


@dataclass
class ScheduleResult:
    """Final, read-only outcome of a planning run."""
    schedules: List[MachineSchedule]
    total_duration: float
    stock_orders: int
    customer_orders: int
    total_setup_time: float
    total_processing_time: float
    schedule_end_time: float
    fitness: Optional[float] = None
    bottleneck_groups: List[int] = field(default_factory=list)
    unscheduled: List[Dict[str, Any]] = field(default_factory=list)
    start_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schedules': [ms.to_dict() for ms in self.schedules],
            'total_duration': self.total_duration,
            'stock_orders': self.stock_orders,
            'customer_orders': self.customer_orders,
            'total_setup_time': self.total_setup_time,
            'total_processing_time': self.total_processing_time,
            'schedule_end_time': self.schedule_end_time,
            'fitness': self.fitness,
            'bottleneck_groups': list(self.bottleneck_groups),
            'unscheduled': list(self.unscheduled),
            'start_date': self.start_date.isoformat() if self.start_date else None,
        }

    def order_completions(self) -> Dict[str, float]:
        """Latest slot end (minutes from start) per order reference."""
        completions: Dict[str, float] = {}
        for machine_schedule in self.schedules:
            for slot in machine_schedule.slots:
                completions[slot.order_ref] = max(completions.get(slot.order_ref, 0), slot.end)
        return completions

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduleResult':
        """Rebuild a persisted result."""
        return cls(
            schedules=[MachineSchedule.from_dict(ms) for ms in data.get('schedules') or []],
            total_duration=data.get('total_duration', 0),
            stock_orders=data.get('stock_orders', 0),
            customer_orders=data.get('customer_orders', 0),
            total_setup_time=data.get('total_setup_time', 0),
            total_processing_time=data.get('total_processing_time', 0),
            schedule_end_time=data.get('schedule_end_time', 0),
            fitness=data.get('fitness'),
            bottleneck_groups=list(data.get('bottleneck_groups') or []),
            unscheduled=list(data.get('unscheduled') or []),
            start_date=parse_datetime(data.get('start_date')),
        )
