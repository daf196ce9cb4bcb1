"""
Scheduling calculation module.

Pure mowing-schedule logic: no database, no Flask and no ambient clock.
Every entry point takes an explicit reference/start date.

Areas may be plain dicts or objects (e.g. ServiceArea rows) exposing
id, lote, servico, metragem_m2, ordem and manual_schedule.
"""

import math
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional

from zeladoria.rocagem.scheduling.calendar import add_business_days, next_business_day
from zeladoria.rocagem.scheduling.config import (
    MissingProductionRateError,
    SchedulingConfig,
    parse_production_rates,
    validate_production_rate,
)


@dataclass(frozen=True)
class ScheduleResult:
    """Predicted start date and working-day span for one area."""
    area_id: int
    proxima_previsao: str  # YYYY-MM-DD
    days_to_complete: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'areaId': self.area_id,
            'proximaPrevisao': self.proxima_previsao,
            'daysToComplete': self.days_to_complete,
        }


@dataclass(frozen=True)
class ScheduleStats:
    """Summary of a lot's computed schedule."""
    total_areas: int
    total_days_estimated: int
    completion_date: str
    areas_per_day: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _field(area, name, default=None):
    if isinstance(area, Mapping):
        return area.get(name, default)
    return getattr(area, name, default)


def _is_manual(area) -> bool:
    value = _field(area, 'manual_schedule')
    if value is None:
        value = _field(area, 'manualSchedule')
    return bool(value)


def is_schedulable(area, lote: int) -> bool:
    """True if the area belongs to the lot's automatic mowing queue."""
    return (
        _field(area, 'lote') == lote
        and _field(area, 'servico') == SchedulingConfig.MOWING_SERVICE
        and not _is_manual(area)
    )


def queue_sort_key(area):
    """
    Total order for a lot's queue.

    Areas with an ordem come first, by (ordem, id); the rest follow by id.
    """
    ordem = _field(area, 'ordem')
    if ordem is None:
        return (1, 0, _field(area, 'id'))
    return (0, ordem, _field(area, 'id'))


def area_size_m2(area) -> float:
    """Area size used for scheduling; unsized areas count as 1000 m²."""
    size = _field(area, 'metragem_m2')
    # NaN and infinity are as unusable as a missing size
    if not size or not math.isfinite(size) or size <= 0:
        return SchedulingConfig.DEFAULT_AREA_SIZE_M2
    return float(size)


def calculate_days_needed(size_m2: float, production_rate: float) -> int:
    """
    Working days an area consumes from its lot's capacity.

    Formula: ceil(size / rate), so any positive size costs at least one day.
    """
    return math.ceil(size_m2 / production_rate)


def calculate_mowing_schedule(
    areas: Iterable[Any],
    lote: int,
    production_rate: float,
    start_date: date,
    holidays: Optional[Collection[date]] = None
) -> List[ScheduleResult]:
    """
    Calculate the predicted mowing start date for every area of one lot.

    Areas are served one after another, each taking ceil(size / rate)
    working days; the next area starts on the first business day after the
    previous one ends. proxima_previsao is the start of each area's window.

    Args:
        areas: Candidate areas (filtered internally by lot, service and manual flag)
        lote: Target lot
        production_rate: m² mowed per working day by the lot's team
        start_date: First calendar day the schedule may use
        holidays: Optional non-working dates besides weekends

    Returns:
        list: ScheduleResult per scheduled area, in queue order

    Raises:
        InvalidProductionRateError: If production_rate is not a positive number
    """
    production_rate = validate_production_rate(production_rate, lote)

    queue = sorted(
        (area for area in areas if is_schedulable(area, lote)),
        key=queue_sort_key
    )

    results = []
    scheduling_date = next_business_day(start_date, holidays)

    for area in queue:
        days_needed = calculate_days_needed(area_size_m2(area), production_rate)
        end_date = add_business_days(scheduling_date, days_needed - 1, holidays)

        results.append(ScheduleResult(
            area_id=_field(area, 'id'),
            proxima_previsao=scheduling_date.isoformat(),
            days_to_complete=days_needed,
        ))

        scheduling_date = next_business_day(end_date + timedelta(days=1), holidays)

    return results


def _rate_for_lot(production_rates: Mapping[int, float], lote: int) -> float:
    if lote not in production_rates:
        raise MissingProductionRateError(lote)
    return production_rates[lote]


def recalculate_after_completion(
    all_areas: Iterable[Any],
    completed_area_ids: Iterable[int],
    production_rates: Mapping[Any, Any],
    reference_date: date,
    holidays: Optional[Collection[date]] = None
) -> List[ScheduleResult]:
    """
    Recalculate the lots affected by a completion registration.

    Only lots that contain at least one completed area are recomputed. Each
    affected lot is rescheduled in full from the day after reference_date,
    leaving out the areas that were just completed.

    Args:
        all_areas: Every known area (all lots)
        completed_area_ids: Areas that were just mowed
        production_rates: {lote: rate} or the stored {"lote1": ..., "lote2": ...} record
        reference_date: The day the completion was registered ("today")
        holidays: Optional non-working dates besides weekends

    Returns:
        list: ScheduleResult for the affected lots only

    Raises:
        MissingProductionRateError: If an affected lot has no configured rate
        InvalidProductionRateError: If a configured rate is invalid
    """
    all_areas = list(all_areas)
    rates = parse_production_rates(production_rates)
    areas_by_id = {_field(area, 'id'): area for area in all_areas}

    completed_area_ids = list(completed_area_ids)

    affected_lotes = []
    for area_id in completed_area_ids:
        area = areas_by_id.get(area_id)
        # Unknown ids and areas without a lot are skipped
        if area is None:
            continue
        lote = _field(area, 'lote')
        if lote is not None and lote not in affected_lotes:
            affected_lotes.append(lote)

    excluded = set(completed_area_ids)
    remaining = [area for area in all_areas if _field(area, 'id') not in excluded]
    tomorrow = reference_date + timedelta(days=1)

    results = []
    for lote in affected_lotes:
        results.extend(calculate_mowing_schedule(
            remaining,
            lote,
            _rate_for_lot(rates, lote),
            tomorrow,
            holidays
        ))

    return results


def recalculate_all_lots(
    areas: Iterable[Any],
    production_rates: Mapping[Any, Any],
    reference_date: date,
    holidays: Optional[Collection[date]] = None
) -> List[ScheduleResult]:
    """
    Recalculate every configured lot starting from reference_date.

    Lots are processed in ascending order. Areas in lots without a configured
    rate are not scheduled.
    """
    areas = list(areas)
    rates = parse_production_rates(production_rates)

    results = []
    for lote in sorted(rates):
        results.extend(calculate_mowing_schedule(
            areas,
            lote,
            rates[lote],
            reference_date,
            holidays
        ))

    return results


def calculate_schedule_stats(
    areas: Iterable[Any],
    lote: int,
    production_rate: float,
    reference_date: date,
    holidays: Optional[Collection[date]] = None
) -> ScheduleStats:
    """
    Summarize a lot's schedule.

    completion_date is the predicted start of the last area in the queue,
    or an empty string when the lot has nothing to schedule.
    """
    schedule = calculate_mowing_schedule(areas, lote, production_rate, reference_date, holidays)

    if not schedule:
        return ScheduleStats(
            total_areas=0,
            total_days_estimated=0,
            completion_date='',
            areas_per_day=0,
        )

    return ScheduleStats(
        total_areas=len(schedule),
        total_days_estimated=sum(s.days_to_complete for s in schedule),
        completion_date=schedule[-1].proxima_previsao,
        areas_per_day=float(production_rate),
    )
