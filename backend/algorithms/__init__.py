"""
Scheduling Algorithms

This package provides the two-phase sequencing engine for production planning.

Building blocks:
- TimeLookup / RouteResolver: master data lookups with fallbacks
- PlacementEngine: multi-criteria machine selection along a route
- identify_bottleneck_groups: capacity-constrained group detection
- QualityEvaluator: schedule fitness
- SimulatedAnnealingOptimizer: local search over machine sequences
- TwoPhaseScheduler: stock batch optimization plus customer order insertion
"""

from algorithms.models import (
    Order,
    OrderType,
    MachineGroup,
    Machine,
    Route,
    Weights,
    Slot,
    MachineSchedule,
    ScheduleResult,
    clone_schedule
)

from algorithms.lookup import TimeLookup, RouteResolver
from algorithms.context import PlanningContext
from algorithms.placement import PlacementEngine, recalculate_slot_times, machine_load
from algorithms.bottleneck import identify_bottleneck_groups, BottleneckAnalysis
from algorithms.quality import QualityEvaluator
from algorithms.annealing import SimulatedAnnealingOptimizer
from algorithms.two_phase_scheduler import TwoPhaseScheduler

__all__ = [
    # Data model
    'Order',
    'OrderType',
    'MachineGroup',
    'Machine',
    'Route',
    'Weights',
    'Slot',
    'MachineSchedule',
    'ScheduleResult',
    'clone_schedule',
    # Engine
    'TimeLookup',
    'RouteResolver',
    'PlanningContext',
    'PlacementEngine',
    'recalculate_slot_times',
    'machine_load',
    'identify_bottleneck_groups',
    'BottleneckAnalysis',
    'QualityEvaluator',
    'SimulatedAnnealingOptimizer',
    'TwoPhaseScheduler',
]
