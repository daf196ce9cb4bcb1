"""
Preview of scheduling changes.

Calculates what proxima_previsao/days_to_complete would become after a full
recalculation and diffs that against the stored values, without writing.
"""

from datetime import date
from typing import Any, Dict, Optional

from zeladoria.datetime_utils import parse_iso_date
from zeladoria.logging_config import get_logger
from zeladoria.rocagem.scheduling.calculator import calculate_mowing_schedule
from zeladoria.rocagem.scheduling.config import MissingProductionRateError
from zeladoria.rocagem.scheduling.service import (
    get_queued_areas,
    get_production_rates,
    today,
)

logger = get_logger(__name__)


def preview_schedule_changes(
    reference_date: Optional[date] = None,
    lote: Optional[int] = None,
    show_all: bool = False
) -> Dict[str, Any]:
    """
    Preview scheduling changes without updating the database.

    Args:
        reference_date: First day of the recomputed schedule (defaults to today)
        lote: Restrict the preview to one lot
        show_all: If True, list every scheduled area, not only the changed ones

    Returns:
        dict: Preview results with areas list and summary

    Raises:
        MissingProductionRateError: If lote is given but has no configured rate
    """
    if reference_date is None:
        reference_date = today()

    logger.info(f"Previewing schedule changes (reference_date={reference_date}, lote={lote})")

    all_areas = get_queued_areas()
    areas_by_id = {area.id: area for area in all_areas}
    area_dicts = [area.to_schedule_dict() for area in all_areas]
    rates = get_production_rates(commit=False)

    lotes = sorted(rates) if lote is None else [lote]

    preview_results = []
    total_scheduled = 0
    areas_with_changes = 0
    per_lote = {}

    for current_lote in lotes:
        if current_lote not in rates:
            raise MissingProductionRateError(current_lote)

        schedule = calculate_mowing_schedule(area_dicts, current_lote, rates[current_lote], reference_date)
        total_scheduled += len(schedule)
        per_lote[current_lote] = len(schedule)

        for result in schedule:
            area = areas_by_id[result.area_id]
            current_date = area.proxima_previsao
            changed = (
                current_date != result.proxima_previsao
                or area.days_to_complete != result.days_to_complete
            )
            if changed:
                areas_with_changes += 1

            if show_all or changed:
                preview_results.append({
                    'areaId': area.id,
                    'lote': current_lote,
                    'endereco': area.endereco,
                    'ordem': area.ordem,
                    'metragem_m2': area.metragem_m2,
                    'currentProximaPrevisao': current_date,
                    'computedProximaPrevisao': result.proxima_previsao,
                    'daysShift': _days_between(current_date, result.proxima_previsao),
                    'currentDaysToComplete': area.days_to_complete,
                    'computedDaysToComplete': result.days_to_complete,
                    'changed': changed,
                })

    return {
        'areas': preview_results,
        'summary': {
            'reference_date': reference_date.isoformat(),
            'total_scheduled': total_scheduled,
            'areas_with_changes': areas_with_changes,
            'areas_without_changes': total_scheduled - areas_with_changes,
            'per_lote': per_lote,
        },
    }


def _days_between(current: Optional[str], computed: str) -> Optional[int]:
    if not current:
        return None
    try:
        return (parse_iso_date(computed) - parse_iso_date(current)).days
    except ValueError:
        return None


def print_preview(preview_results: Dict[str, Any], detailed: bool = True):
    """
    Print a formatted preview of scheduling changes.

    Args:
        preview_results: Results from preview_schedule_changes()
        detailed: If True, show every area. If False, only the summary.
    """
    summary = preview_results.get('summary', {})
    areas = preview_results.get('areas', [])

    print("\n" + "=" * 80)
    print("PREVISÃO DE ROÇAGEM - Resumo")
    print("=" * 80)
    print(f"\nReference Date: {summary.get('reference_date', 'N/A')}")
    print(f"Scheduled Areas: {summary.get('total_scheduled', 0)}")
    print(f"Areas with Changes: {summary.get('areas_with_changes', 0)}")
    for lote, count in sorted(summary.get('per_lote', {}).items()):
        print(f"  Lote {lote}: {count} areas")

    if not detailed or not areas:
        print("\n" + "=" * 80)
        return

    print("\n" + "=" * 80)
    print("DETAILED CHANGES")
    print("=" * 80)

    for item in areas:
        print(f"\nArea {item['areaId']} (lote {item['lote']}) - {item.get('endereco') or 'N/A'}")
        print(f"  Ordem: {item.get('ordem')}  Metragem: {item.get('metragem_m2')}")
        shift = item.get('daysShift')
        shift_str = f" ({shift:+d} days)" if shift else ""
        if item['changed']:
            print(f"  ⚠️  Próxima previsão: {item['currentProximaPrevisao']} → {item['computedProximaPrevisao']}{shift_str}")
        else:
            print(f"  ✓  Próxima previsão: {item['currentProximaPrevisao']} (no change)")
        print(f"  Days to complete: {item['currentDaysToComplete']} → {item['computedDaysToComplete']}")

    print("\n" + "=" * 80)


def run_preview_script(
    reference_date_str: Optional[str] = None,
    lote: Optional[int] = None,
    show_all: bool = False,
    detailed: bool = True
):
    """
    Run the preview from the command line.

    Args:
        reference_date_str: Optional ISO date string (YYYY-MM-DD)
        lote: Optional lot filter
        show_all: Show all areas, not just those with changes
        detailed: Show one block per area
    """
    reference_date = None
    if reference_date_str:
        try:
            reference_date = parse_iso_date(reference_date_str)
        except ValueError:
            print(f"Warning: Invalid reference_date '{reference_date_str}', using today")
            reference_date = None

    try:
        preview_results = preview_schedule_changes(
            reference_date=reference_date,
            lote=lote,
            show_all=show_all
        )
        print_preview(preview_results, detailed=detailed)
        return preview_results

    except Exception as e:
        logger.error(f"Error in preview script: {e}", exc_info=True)
        print(f"\nError: {e}")
        raise
