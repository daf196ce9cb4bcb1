"""
Scheduling service for reading areas/config from the database, running the
calculator and writing proxima_previsao/days_to_complete back.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app

from zeladoria.models import AppConfig, AreaStatus, ServiceArea, db
from zeladoria.datetime_utils import local_today, parse_iso_date
from zeladoria.logging_config import RecalculationContext, get_logger
from zeladoria.recalculation_lock import recalculation_lock
from zeladoria.rocagem.scheduling.calculator import (
    ScheduleResult,
    recalculate_after_completion,
    recalculate_all_lots,
)
from zeladoria.rocagem.scheduling.config import (
    SchedulingConfig,
    parse_production_rates,
)

logger = get_logger(__name__)

REGISTRATION_TYPES = ('completed', 'forecast')

# Columns PATCH /api/areas/<id> may change directly
AREA_UPDATE_FIELDS = ('endereco', 'bairro', 'metragem_m2', 'lote', 'ultima_rocagem', 'status', 'registrado_por')


def today() -> date:
    """Today in the configured municipality timezone."""
    return local_today(current_app.config.get("LOCAL_TIMEZONE"))


def get_mowing_areas() -> List[ServiceArea]:
    """All areas tagged with the mowing service."""
    return ServiceArea.query.filter_by(
        servico=SchedulingConfig.MOWING_SERVICE
    ).order_by(ServiceArea.id.asc()).all()


def is_completed_this_cycle(area: ServiceArea) -> bool:
    """
    True once an area has been mowed in the current cycle.

    Completed areas stay out of the queue until their status is set back
    to Pendente (or Em Execução) for the next cycle.
    """
    return area.status == AreaStatus.COMPLETED.value


def get_queued_areas() -> List[ServiceArea]:
    """Mowing areas still waiting for their turn in the current cycle."""
    return [area for area in get_mowing_areas() if not is_completed_this_cycle(area)]


def get_app_config(commit: bool = True) -> AppConfig:
    """
    Load the configuration row, creating it with default rates if missing.

    Args:
        commit: Whether to commit when the default row is created

    Returns:
        AppConfig: The current configuration
    """
    config = AppConfig.get_current()
    if config is not None:
        return config

    defaults = {
        SchedulingConfig.lot_key(1): current_app.config.get("DEFAULT_PRODUCTION_RATE_LOTE1", 85000.0),
        SchedulingConfig.lot_key(2): current_app.config.get("DEFAULT_PRODUCTION_RATE_LOTE2", 70000.0),
    }
    config = AppConfig(mowing_production_rate=defaults)
    db.session.add(config)
    if commit:
        db.session.commit()
    logger.info("Created default app config", mowing_production_rate=defaults)
    return config


def get_production_rates(commit: bool = True) -> Dict[int, float]:
    """
    Validated {lote: rate} mapping from the stored configuration.

    Raises:
        InvalidProductionRateError: If a stored rate is not usable
    """
    return parse_production_rates(get_app_config(commit=commit).mowing_production_rate)


def update_app_config(payload: Mapping[str, Any]) -> AppConfig:
    """
    Merge a partial configuration update and persist it.

    Args:
        payload: {"mowingProductionRate": {"lote1": 90000, ...}}

    Returns:
        AppConfig: The updated configuration

    Raises:
        InvalidProductionRateError: If any resulting rate is invalid (nothing is written)
        SchedulingConfigurationError: If the update names something other than a lot
    """
    config = get_app_config(commit=False)
    updates = payload.get('mowingProductionRate') or {}

    merged = dict(config.mowing_production_rate or {})
    for lote, rate in parse_production_rates(updates, strict=True).items():
        merged[SchedulingConfig.lot_key(lote)] = rate

    # Re-validate the whole record so a bad stored value is not carried forward
    parse_production_rates(merged)

    # Assign a new dict so the JSON column is flagged dirty
    config.mowing_production_rate = merged
    config.updated_at = datetime.utcnow()
    db.session.commit()

    logger.info("Updated app config", mowing_production_rate=merged)
    return config


def apply_schedule_results(
    results: Iterable[ScheduleResult],
    areas_by_id: Optional[Dict[int, ServiceArea]] = None
) -> int:
    """
    Write computed predictions onto ServiceArea rows (no commit).

    Areas flagged manual_schedule are never overwritten.

    Args:
        results: Calculator output
        areas_by_id: Optional preloaded rows keyed by id

    Returns:
        int: Number of rows whose prediction actually changed
    """
    updated = 0
    for result in results:
        area = None
        if areas_by_id is not None:
            area = areas_by_id.get(result.area_id)
        if area is None:
            area = db.session.get(ServiceArea, result.area_id)
        if area is None:
            logger.warning("Schedule result for unknown area", area_id=result.area_id)
            continue
        if area.manual_schedule:
            continue

        if area.proxima_previsao != result.proxima_previsao or area.days_to_complete != result.days_to_complete:
            updated += 1
        area.proxima_previsao = result.proxima_previsao
        area.days_to_complete = result.days_to_complete

    return updated


def get_area(area_id: int) -> Optional[ServiceArea]:
    return db.session.get(ServiceArea, area_id)


def update_area(area_id: int, changes: Mapping[str, Any], commit: bool = True) -> Optional[ServiceArea]:
    """
    Apply plain field changes to one area.

    No recalculation happens here; completions go through
    register_daily_mowing.

    Args:
        area_id: Area to update
        changes: Column name -> new value (only AREA_UPDATE_FIELDS are accepted)
        commit: Whether to commit the change

    Returns:
        ServiceArea or None if the area does not exist
    """
    unknown = set(changes) - set(AREA_UPDATE_FIELDS)
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    area = get_area(area_id)
    if area is None:
        return None

    for field, value in changes.items():
        setattr(area, field, value)
    area.updated_at = datetime.utcnow()

    if commit:
        db.session.commit()

    logger.info("Updated area", area_id=area_id, fields=sorted(changes))
    return area


def register_daily_mowing(
    area_ids: List[int],
    registration_date: str,
    registration_type: str = 'completed',
    registered_by: Optional[str] = None,
    reference_date: Optional[date] = None
) -> Dict[str, Any]:
    """
    Register mowing for a batch of areas.

    'completed' sets ultima_rocagem and status, appends a history entry and
    recalculates the affected lots from the day after reference_date.
    'forecast' only appends a history entry.

    Args:
        area_ids: Areas being registered
        registration_date: YYYY-MM-DD date of the mowing
        registration_type: 'completed' or 'forecast'
        registered_by: Optional operator name for the audit fields
        reference_date: "Today" for the recalculation (defaults to local today)

    Returns:
        dict: Summary with registered/missing ids and recalculated count
    """
    if registration_type not in REGISTRATION_TYPES:
        raise ValueError(f"registration_type must be one of: {', '.join(REGISTRATION_TYPES)}")

    mowing_date = parse_iso_date(registration_date)
    if mowing_date is None:
        raise ValueError("date is required")
    mowing_date_str = mowing_date.isoformat()

    if reference_date is None:
        reference_date = today()

    completed = registration_type == 'completed'
    registered = []
    missing = []

    with recalculation_lock.acquire("register-daily"):
        try:
            for area_id in area_ids:
                area = db.session.get(ServiceArea, area_id)
                if area is None:
                    missing.append(area_id)
                    continue

                entry = {
                    'date': mowing_date_str,
                    'status': AreaStatus.COMPLETED.value if completed else 'Previsto',
                    'type': registration_type,
                    'observation': 'Roçagem concluída' if completed else 'Previsão de roçagem',
                }
                area.history = list(area.history or []) + [entry]

                if completed:
                    area.ultima_rocagem = mowing_date_str
                    area.status = AreaStatus.COMPLETED.value
                    if registered_by:
                        area.registrado_por = registered_by
                        area.data_registro = datetime.utcnow()

                registered.append(area_id)

            if missing:
                logger.warning("Mowing registration skipped unknown areas", area_ids=missing)

            recalculated = 0
            updated = 0
            if completed and registered:
                with RecalculationContext("completion", area_ids=registered,
                                          reference_date=reference_date.isoformat()) as ctx:
                    # Just-registered areas are kept so their lots can be resolved
                    just_completed = set(registered)
                    queued = [
                        area for area in get_mowing_areas()
                        if area.id in just_completed or not is_completed_this_cycle(area)
                    ]
                    areas_by_id = {area.id: area for area in queued}
                    results = recalculate_after_completion(
                        [area.to_schedule_dict() for area in queued],
                        registered,
                        get_production_rates(commit=False),
                        reference_date
                    )
                    updated = apply_schedule_results(results, areas_by_id)
                    recalculated = ctx.results_count = len(results)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    return {
        'registered': registered,
        'missing': missing,
        'type': registration_type,
        'recalculated': recalculated,
        'updated': updated,
    }


def recalculate_all_schedules(reference_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Recalculate and persist predictions for every configured lot.

    Args:
        reference_date: First day of the new schedule (defaults to local today)

    Returns:
        dict: Summary with calculated/updated counts per lot
    """
    if reference_date is None:
        reference_date = today()

    with recalculation_lock.acquire("full-recalculation"):
        with RecalculationContext("full", reference_date=reference_date.isoformat()) as ctx:
            try:
                all_areas = get_queued_areas()
                areas_by_id = {area.id: area for area in all_areas}

                results = recalculate_all_lots(
                    [area.to_schedule_dict() for area in all_areas],
                    get_production_rates(commit=False),
                    reference_date
                )
                updated = apply_schedule_results(results, areas_by_id)
                ctx.results_count = len(results)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

    per_lote: Dict[int, int] = {}
    for result in results:
        lote = areas_by_id[result.area_id].lote
        per_lote[lote] = per_lote.get(lote, 0) + 1

    return {
        'reference_date': reference_date.isoformat(),
        'calculated': len(results),
        'updated': updated,
        'per_lote': per_lote,
    }
