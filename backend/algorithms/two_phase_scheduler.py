"""
Two-Phase Scheduler
Sequences make-to-stock orders with a greedy construction refined by
simulated annealing, then threads make-to-order (customer) orders into the
resulting plan by ascending due date.
"""

import random
from datetime import datetime
from typing import Dict, List, Any, Optional, Callable, Union

from algorithms.models import (
    Order, OrderType, Machine, MachineGroup, Route, Weights,
    MachineSchedule, ScheduleResult, parse_datetime
)
from algorithms.lookup import TimeLookup, RouteResolver
from algorithms.context import PlanningContext
from algorithms.placement import PlacementEngine, Schedule
from algorithms.bottleneck import identify_bottleneck_groups
from algorithms.quality import QualityEvaluator
from algorithms.annealing import SimulatedAnnealingOptimizer


def _coerce(items, model):
    return [item if isinstance(item, model) else model.from_dict(item) for item in (items or [])]


class TwoPhaseScheduler:
    """
    Make-to-stock / make-to-order sequencing engine.

    Phase 1 builds and optimizes the stock batch, phase 2 inserts customer
    orders around it. Data problems never abort a run: orders without a
    route are reported as unscheduled and unsatisfiable route steps are
    skipped.
    """

    CUSTOMER_DUE_WEIGHT_FACTOR = 2

    def __init__(self, orders: List[Union[Order, Dict]],
                 setup_matrix: Dict[str, Dict[str, float]],
                 cycle_matrix: Dict[str, Dict[str, float]],
                 machines: List[Union[Machine, Dict]],
                 machine_groups: List[Union[MachineGroup, Dict]],
                 routes: List[Union[Route, Dict]],
                 weights: Weights = None,
                 progress_callback: Callable[[str], None] = None,
                 seed: int = None, rng: random.Random = None,
                 deadline: datetime = None, verbose: bool = True):
        """
        Initialize the scheduler.

        Args:
            orders: Orders to plan (model objects or stored records)
            setup_matrix: from part -> to part -> setup minutes
            cycle_matrix: part -> machine name (or the part itself) -> minutes per unit
            machines: Machine master data
            machine_groups: Machine group master data
            routes: Production routes keyed by part number
            weights: Criteria weights (defaults to the planning form defaults)
            progress_callback: Receives human-readable progress messages
            seed: Seed for the annealing random source; each run starts a fresh one
            rng: Explicit random source shared by every run (takes precedence over seed)
            deadline: Wall-clock time after which remaining orders are not placed
            verbose: Echo progress messages to the console
        """
        self.orders = _coerce(orders, Order)
        self.setup_matrix = setup_matrix or {}
        self.cycle_matrix = cycle_matrix or {}
        self.machines = _coerce(machines, Machine)
        self.machine_groups = _coerce(machine_groups, MachineGroup)
        self.routes = _coerce(routes, Route)
        self.weights = weights or Weights()
        self.progress_callback = progress_callback
        self.seed = seed
        self.rng = rng
        self.deadline = deadline
        self.verbose = verbose

        # Results of the last run
        self.context: Optional[PlanningContext] = None
        self.result: Optional[ScheduleResult] = None
        self.optimizer: Optional[SimulatedAnnealingOptimizer] = None

    def _create_context(self, start_date: datetime) -> PlanningContext:
        lookup = TimeLookup(self.setup_matrix, self.cycle_matrix, self.machines)
        resolver = RouteResolver(self.routes, self.machines)
        context = PlanningContext(
            lookup=lookup,
            resolver=resolver,
            machines=self.machines,
            machine_groups=self.machine_groups,
            weights=self.weights.copy(),
            start_date=start_date,
            rng=self.rng if self.rng is not None else random.Random(self.seed),
            progress_callback=self.progress_callback,
            verbose=self.verbose,
        )
        context.register_orders(self.orders)
        return context

    def _deadline_passed(self) -> bool:
        return self.deadline is not None and datetime.now() > self.deadline

    def schedule_orders(self, start_date: datetime = None) -> ScheduleResult:
        """
        Run both planning phases.

        Args:
            start_date: Planning start; slot times are minutes from here

        Returns:
            ScheduleResult with per-machine schedules sorted by machine id
        """
        start_date = parse_datetime(start_date) or datetime.now().replace(second=0, microsecond=0)
        context = self._create_context(start_date)
        self.context = context

        if self.verbose:
            print(f"\n{'='*70}")
            print(f"TWO-PHASE SCHEDULER: {len(self.orders)} ORDERS")
            print(f"Start date: {start_date}")
            print(f"{'='*70}")

        context.log("Starting two-phase sequencing...")

        stock_orders = [o for o in self.orders if o.order_type == OrderType.STOCK]
        customer_orders = [o for o in self.orders if o.order_type == OrderType.CUSTOMER]

        analysis = identify_bottleneck_groups(
            self.orders, self.machine_groups, context.lookup, context.resolver
        )
        context.bottleneck_scores = analysis.scores
        context.bottleneck_groups = analysis.groups
        for gid, detail in analysis.details.items():
            context.log(
                f"{context.group_name(gid)}: score {detail['score']:.3f} "
                f"(utilization {detail['utilization']:.2f}, frequency {detail['frequency']}, "
                f"setup share {detail['setup_factor']:.2f})"
            )
        names = ", ".join(context.group_name(gid) for gid in analysis.groups)
        context.log(f"Identified {len(analysis.groups)} bottleneck group(s): {names}")

        evaluator = QualityEvaluator(
            machine_groups={m.machine_id: m.group_id for m in self.machines},
            bottleneck_groups=analysis.groups,
            due_offsets=context.due_offsets,
        )
        placement = PlacementEngine(context)
        schedule: Schedule = {}

        # Phase 1: stock orders
        if stock_orders:
            context.log(f"Phase 1: optimizing {len(stock_orders)} make-to-stock orders...")
            context.log("Building initial solution with greedy construction...")
            schedule = self.create_greedy_schedule(stock_orders, placement, context)

            if len(stock_orders) > 1:
                context.log("Optimizing base sequence with simulated annealing...")
                self.optimizer = SimulatedAnnealingOptimizer(context, evaluator)
                schedule = self.optimizer.optimize(schedule, len(stock_orders))

        # Phase 2: customer orders
        if customer_orders:
            context.log(f"Phase 2: integrating {len(customer_orders)} make-to-order orders...")
            for order in self.sort_customer_orders(customer_orders):
                if self._deadline_passed():
                    context.mark_unscheduled(order, 'planning deadline exceeded')
                    continue
                context.log(f"Integrating customer order: {order.name} ({order.part_number})")
                schedule = self.integrate_customer_order(order, schedule, placement, context)

        context.log("Computing final statistics...")
        self.result = self._build_result(schedule, stock_orders, customer_orders, evaluator, context)
        context.log(
            f"Sequencing finished - {len(stock_orders)} stock, "
            f"{len(customer_orders)} customer orders"
        )
        return self.result

    def create_greedy_schedule(self, stock_orders: List[Order], placement: PlacementEngine,
                               context: PlanningContext) -> Schedule:
        """
        Phase 1a: place stock orders one after another.

        Orders with short average setup go first; among equal setup, longer
        orders go first.
        """
        lookup = context.lookup

        def sort_key(order: Order):
            representative = self._representative_machine(order, context)
            processing = lookup.cycle_time(order.part_number, order.lot_size, representative)
            return (lookup.average_setup_time(order.part_number), -processing)

        schedule: Schedule = {}
        for order in sorted(stock_orders, key=sort_key):
            if self._deadline_passed():
                context.mark_unscheduled(order, 'planning deadline exceeded')
                continue

            context.log(f"Greedy planning: processing order {order.name} ({order.part_number})")
            route = context.resolver.route_for(order.part_number)
            if route is None:
                context.warn(f"No production route found for {order.name}")
                context.mark_unscheduled(order, 'no production route')
                continue

            schedule, completion = placement.place_order(route, order, schedule, earliest_from=0)
            context.log(f"Order {order.name} placed. Completion: {completion:g} min")

        return schedule

    def _representative_machine(self, order: Order, context: PlanningContext) -> Optional[int]:
        """First capable machine of the first satisfiable route step."""
        route = context.resolver.route_for(order.part_number)
        if route is None:
            return None
        for group_id in route.sequence:
            capable = context.resolver.eligible_machines(group_id, order.part_number)
            if capable:
                return capable[0].machine_id
        return None

    @staticmethod
    def sort_customer_orders(customer_orders: List[Order]) -> List[Order]:
        """Ascending due date; orders without a due date go last."""
        return sorted(
            customer_orders,
            key=lambda o: (o.due_date is None, o.due_date or datetime.max)
        )

    def integrate_customer_order(self, order: Order, schedule: Schedule,
                                 placement: PlacementEngine,
                                 context: PlanningContext) -> Schedule:
        """
        Phase 2: insert one customer order into the cumulative schedule.

        The due-date weight is doubled for this placement only.
        """
        route = context.resolver.route_for(order.part_number)
        if route is None:
            context.warn(f"No production route found for customer order {order.name}")
            context.mark_unscheduled(order, 'no production route')
            return schedule

        original_due_weight = context.weights.due_date
        context.weights.due_date = original_due_weight * self.CUSTOMER_DUE_WEIGHT_FACTOR
        try:
            schedule, completion = placement.place_order(route, order, schedule, earliest_from=0)
        finally:
            context.weights.due_date = original_due_weight

        context.log(f"Customer order {order.name} placed. Completion: {completion:g} min")
        return schedule

    def _build_result(self, schedule: Schedule, stock_orders: List[Order],
                      customer_orders: List[Order], evaluator: QualityEvaluator,
                      context: PlanningContext) -> ScheduleResult:
        total_setup = 0
        total_processing = 0
        end_time = 0
        for machine_schedule in schedule.values():
            for slot in machine_schedule.slots:
                total_setup += slot.setup_time
                total_processing += slot.processing_time
                end_time = max(end_time, slot.end)

        schedules: List[MachineSchedule] = [
            schedule[machine_id] for machine_id in sorted(schedule)
        ]
        return ScheduleResult(
            schedules=schedules,
            total_duration=end_time,
            stock_orders=len(stock_orders),
            customer_orders=len(customer_orders),
            total_setup_time=total_setup,
            total_processing_time=total_processing,
            schedule_end_time=end_time,
            fitness=evaluator.evaluate(schedule, context.weights) if schedule else None,
            bottleneck_groups=list(context.bottleneck_groups),
            unscheduled=list(context.unscheduled),
            start_date=context.start_date,
        )

    def order_completions(self) -> Dict[str, float]:
        """Completion time (minutes from start) per order reference of the last run."""
        return self.result.order_completions() if self.result else {}

    def get_summary(self) -> Dict[str, Any]:
        """Get scheduling summary of the last run."""
        if not self.result:
            return {}

        completions = self.order_completions()
        due_offsets = self.context.due_offsets
        with_due = [ref for ref in completions if due_offsets.get(ref) is not None]
        on_time = sum(1 for ref in with_due if completions[ref] <= due_offsets[ref])
        total_lateness = sum(max(0, completions[ref] - due_offsets[ref]) for ref in with_due)

        return {
            'total_scheduled': len(completions),
            'stock_orders': self.result.stock_orders,
            'customer_orders': self.result.customer_orders,
            'on_time': on_time,
            'on_time_pct': (on_time / len(with_due) * 100) if with_due else 100.0,
            'total_lateness_minutes': total_lateness,
            'total_setup_time': self.result.total_setup_time,
            'total_processing_time': self.result.total_processing_time,
            'schedule_end_time': self.result.schedule_end_time,
            'fitness': self.result.fitness,
            'bottleneck_groups': [self.context.group_name(g) for g in self.result.bottleneck_groups],
            'unscheduled': len(self.result.unscheduled),
            'machines_used': sum(1 for ms in self.result.schedules if ms.slots),
        }

    def print_summary(self):
        """Print scheduling summary."""
        summary = self.get_summary()

        print(f"\n{'='*70}")
        print("TWO-PHASE SCHEDULING SUMMARY")
        print(f"{'='*70}")

        print(f"\nORDERS:")
        print(f"   Total scheduled: {summary.get('total_scheduled', 0)}")
        print(f"   Make-to-stock: {summary.get('stock_orders', 0)}")
        print(f"   Make-to-order: {summary.get('customer_orders', 0)}")
        print(f"   On-time: {summary.get('on_time', 0)} ({summary.get('on_time_pct', 0):.1f}%)")
        print(f"   Unscheduled: {summary.get('unscheduled', 0)}")

        print(f"\nTIMES (minutes):")
        print(f"   Total setup: {summary.get('total_setup_time', 0):g}")
        print(f"   Total processing: {summary.get('total_processing_time', 0):g}")
        print(f"   Schedule end: {summary.get('schedule_end_time', 0):g}")

        if summary.get('fitness') is not None:
            print(f"\nFitness: {summary['fitness']:.4f}")
        if summary.get('bottleneck_groups'):
            print(f"Bottleneck groups: {', '.join(summary['bottleneck_groups'])}")

        if summary.get('unscheduled'):
            print(f"\n[WARN] UNSCHEDULED: {summary['unscheduled']} orders could not be placed")


if __name__ == "__main__":
    import sys
    import os
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    from data_loader import DataLoader

    print("Testing Two-Phase Scheduler")
    print()

    loader = DataLoader()
    if not loader.load_all():
        print("Failed to load data")
        sys.exit(1)

    scheduler = loader.build_scheduler(seed=42)
    result = scheduler.schedule_orders()
    scheduler.print_summary()

    print(f"\n{'='*70}")
    print("MACHINE SEQUENCES:")
    print(f"{'='*70}")
    for machine_schedule in result.schedules:
        print(f"\n{machine_schedule.machine_name} ({len(machine_schedule.slots)} slots)")
        for slot in machine_schedule.slots:
            print(f"  {slot.order_name:<20} {slot.part_number:<12} "
                  f"{slot.start:>8g} -> {slot.end:>8g}  setup {slot.setup_time:g}")
