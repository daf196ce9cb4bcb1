"""
Mowing scheduling module.

Computes, per lot, the predicted start date (proxima_previsao) of every
mowing area from its size and the lot's daily production rate, counting
business days only.
"""

from zeladoria.rocagem.scheduling.config import (
    SchedulingConfig,
    SchedulingConfigurationError,
    InvalidProductionRateError,
    MissingProductionRateError,
    parse_production_rates,
    validate_production_rate,
)
from zeladoria.rocagem.scheduling.calendar import (
    is_business_day,
    next_business_day,
    add_business_days,
)
from zeladoria.rocagem.scheduling.calculator import (
    ScheduleResult,
    ScheduleStats,
    calculate_mowing_schedule,
    recalculate_after_completion,
    recalculate_all_lots,
    calculate_schedule_stats,
)

__all__ = [
    'SchedulingConfig',
    'SchedulingConfigurationError',
    'InvalidProductionRateError',
    'MissingProductionRateError',
    'parse_production_rates',
    'validate_production_rate',
    'is_business_day',
    'next_business_day',
    'add_business_days',
    'ScheduleResult',
    'ScheduleStats',
    'calculate_mowing_schedule',
    'recalculate_after_completion',
    'recalculate_all_lots',
    'calculate_schedule_stats',
]
