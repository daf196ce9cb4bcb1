import math

from flask import jsonify, request

from zeladoria.rocagem import rocagem_bp
from zeladoria.datetime_utils import parse_iso_date
from zeladoria.logging_config import get_logger
from zeladoria.models import AreaStatus, db
from zeladoria.recalculation_lock import RecalculationBusyError
from zeladoria.rocagem.scheduling.calculator import calculate_schedule_stats
from zeladoria.rocagem.scheduling.config import (
    MissingProductionRateError,
    SchedulingConfigurationError,
)
from zeladoria.rocagem.scheduling.preview import preview_schedule_changes
from zeladoria.rocagem.scheduling.service import (
    REGISTRATION_TYPES,
    get_app_config,
    get_area,
    get_mowing_areas,
    get_queued_areas,
    get_production_rates,
    recalculate_all_schedules,
    register_daily_mowing,
    today,
    update_app_config,
    update_area,
)

logger = get_logger(__name__)


def _parse_reference_date(value):
    """Return (date_or_None, error_message)."""
    if value is None or value == '':
        return None, None
    try:
        return parse_iso_date(value), None
    except (ValueError, TypeError):
        return None, "referenceDate must be in YYYY-MM-DD format"


def _parse_lote(value):
    """Return (lote_or_None, error_message)."""
    if value is None or value == '':
        return None, None
    try:
        return int(value), None
    except (ValueError, TypeError):
        return None, "lote must be an integer"


@rocagem_bp.route("/config", methods=["GET"])
def get_config():
    """Return the application configuration (production rates per lote)"""
    try:
        return jsonify(get_app_config().to_dict()), 200
    except Exception as exc:
        logger.error("Error fetching configuration", error=str(exc))
        db.session.rollback()
        return jsonify({"error": "Failed to fetch configuration"}), 500


@rocagem_bp.route("/config", methods=["PATCH"])
def patch_config():
    """Update production rates. Body: {"mowingProductionRate": {"lote1": 90000}}"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid configuration data", "details": "JSON object body required"}), 400

    rates = data.get('mowingProductionRate')
    if rates is not None and not isinstance(rates, dict):
        return jsonify({
            "error": "Invalid configuration data",
            "details": "mowingProductionRate must be an object"
        }), 400

    try:
        config = update_app_config(data)
        return jsonify(config.to_dict()), 200
    except SchedulingConfigurationError as exc:
        db.session.rollback()
        return jsonify({"error": "Invalid configuration data", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error updating configuration", error=str(exc))
        db.session.rollback()
        return jsonify({"error": "Failed to update configuration", "details": str(exc)}), 500


@rocagem_bp.route("/areas/rocagem", methods=["GET"])
def list_mowing_areas():
    """Return every mowing area with its current prediction"""
    try:
        areas = get_mowing_areas()
        return jsonify([area.to_dict() for area in areas]), 200
    except Exception as exc:
        logger.error("Error fetching mowing areas", error=str(exc))
        return jsonify({"error": "Failed to fetch areas"}), 500


@rocagem_bp.route("/areas/<int:area_id>", methods=["GET"])
def get_area_details(area_id):
    """Return one area with its history and prediction"""
    try:
        area = get_area(area_id)
    except Exception as exc:
        logger.error("Error fetching area details", area_id=area_id, error=str(exc))
        return jsonify({"error": "Failed to fetch area details"}), 500

    if area is None:
        return jsonify({"error": "Area not found"}), 404
    return jsonify(area.to_dict()), 200


STATUS_VALUES = tuple(status.value for status in AreaStatus)

# camelCase body key -> (column, accepted types)
AREA_UPDATE_SCHEMA = {
    'endereco': ('endereco', str),
    'bairro': ('bairro', str),
    'metragem_m2': ('metragem_m2', (int, float)),
    'lote': ('lote', int),
    'ultimaRocagem': ('ultima_rocagem', str),
    'status': ('status', str),
    'registradoPor': ('registrado_por', str),
}


def _parse_area_update(data):
    """Return (changes, error_message) for a PATCH /areas/<id> body."""
    changes = {}
    for key, value in data.items():
        if key not in AREA_UPDATE_SCHEMA:
            return None, f"Unknown field: {key}"
        column, expected = AREA_UPDATE_SCHEMA[key]
        if isinstance(value, bool) or not isinstance(value, expected):
            return None, f"Invalid value for {key}"
        changes[column] = value

    if 'metragem_m2' in changes and not math.isfinite(changes['metragem_m2']):
        return None, "metragem_m2 must be a finite number"

    if 'status' in changes and changes['status'] not in STATUS_VALUES:
        return None, f"status must be one of: {', '.join(STATUS_VALUES)}"

    if 'ultima_rocagem' in changes:
        try:
            changes['ultima_rocagem'] = parse_iso_date(changes['ultima_rocagem']).isoformat()
        except (ValueError, AttributeError):
            return None, "ultimaRocagem must be in YYYY-MM-DD format"

    return changes, None


@rocagem_bp.route("/areas/<int:area_id>/status", methods=["PATCH"])
def patch_area_status(area_id):
    """Set an area's status. Body: {"status": "Pendente"|"Em Execução"|"Concluído"}"""
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if status not in STATUS_VALUES:
        return jsonify({
            "error": "Invalid status data",
            "details": f"status must be one of: {', '.join(STATUS_VALUES)}"
        }), 400

    try:
        area = update_area(area_id, {'status': status})
    except Exception as exc:
        logger.error("Error updating area status", area_id=area_id, error=str(exc))
        db.session.rollback()
        return jsonify({"error": "Failed to update status"}), 500

    if area is None:
        return jsonify({"error": "Area not found"}), 404
    return jsonify(area.to_dict()), 200


@rocagem_bp.route("/areas/<int:area_id>", methods=["PATCH"])
def patch_area(area_id):
    """
    Update an area's fields.

    Sending ultimaRocagem together with registradoPor registers a completion:
    the audit timestamp is stamped and the area's lot is recalculated.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid area data", "details": "JSON object body required"}), 400

    changes, error = _parse_area_update(data)
    if error:
        return jsonify({"error": "Invalid area data", "details": error}), 400

    registers_completion = bool(changes.get('ultima_rocagem') and changes.get('registrado_por'))

    try:
        if not registers_completion:
            area = update_area(area_id, changes)
        else:
            mowing_date = changes.pop('ultima_rocagem')
            registered_by = changes.pop('registrado_por')
            # Stays uncommitted so register_daily_mowing commits or rolls back both
            area = update_area(area_id, changes, commit=False)
            if area is not None:
                register_daily_mowing([area_id], mowing_date, 'completed', registered_by=registered_by)
                area = get_area(area_id)
    except SchedulingConfigurationError as exc:
        db.session.rollback()
        return jsonify({"error": "Invalid configuration", "details": str(exc)}), 400
    except RecalculationBusyError as exc:
        db.session.rollback()
        return jsonify({"error": "Recalculation in progress", "details": str(exc)}), 503
    except Exception as exc:
        logger.error("Error updating area", area_id=area_id, error=str(exc))
        db.session.rollback()
        return jsonify({"error": "Failed to update area", "details": str(exc)}), 500

    if area is None:
        return jsonify({"error": "Area not found"}), 404
    return jsonify(area.to_dict()), 200


@rocagem_bp.route("/areas/register-daily", methods=["POST"])
def register_daily():
    """
    Register mowing for a batch of areas.
    Body: {"areaIds": [1, 2], "date": "YYYY-MM-DD", "type": "completed"|"forecast", "registradoPor": "..."}
    """
    data = request.get_json(silent=True) or {}
    area_ids = data.get('areaIds')
    registration_date = data.get('date')
    registration_type = data.get('type') or 'completed'

    if not isinstance(area_ids, list) or not area_ids:
        return jsonify({"error": "Invalid data", "details": "Select at least one area (areaIds)"}), 400
    if not all(isinstance(area_id, int) and not isinstance(area_id, bool) for area_id in area_ids):
        return jsonify({"error": "Invalid data", "details": "areaIds must be integers"}), 400
    if registration_type not in REGISTRATION_TYPES:
        return jsonify({
            "error": "Invalid data",
            "details": f"type must be one of: {', '.join(REGISTRATION_TYPES)}"
        }), 400

    parsed_date, error = _parse_reference_date(registration_date)
    if parsed_date is None:
        return jsonify({"error": "Invalid data", "details": error or "date is required"}), 400

    try:
        summary = register_daily_mowing(
            area_ids,
            parsed_date.isoformat(),
            registration_type,
            registered_by=data.get('registradoPor')
        )
    except SchedulingConfigurationError as exc:
        return jsonify({"error": "Invalid configuration", "details": str(exc)}), 400
    except RecalculationBusyError as exc:
        return jsonify({"error": "Recalculation in progress", "details": str(exc)}), 503
    except Exception as exc:
        logger.error("Error registering daily mowing", error=str(exc))
        return jsonify({"error": "Failed to register mowing", "details": str(exc)}), 500

    if not summary['registered']:
        return jsonify({"error": "Area not found", "missing": summary['missing']}), 404

    type_label = 'registered' if registration_type == 'completed' else 'forecast'
    return jsonify({
        "success": True,
        "message": f"{len(summary['registered'])} area(s) {type_label}",
        "count": len(summary['registered']),
        "missing": summary['missing'],
        "recalculated": summary['recalculated'],
    }), 200


@rocagem_bp.route("/admin/recalculate-schedules", methods=["POST"])
def admin_recalculate_schedules():
    """Recalculate predictions for every lote. Optional body: {"referenceDate": "YYYY-MM-DD"}"""
    data = request.get_json(silent=True) or {}
    reference_date, error = _parse_reference_date(data.get('referenceDate'))
    if error:
        return jsonify({"error": error}), 400

    try:
        summary = recalculate_all_schedules(reference_date)
    except SchedulingConfigurationError as exc:
        return jsonify({"error": "Invalid configuration", "details": str(exc)}), 400
    except RecalculationBusyError as exc:
        return jsonify({"error": "Recalculation in progress", "details": str(exc)}), 503
    except Exception as exc:
        logger.error("Error recalculating schedules", error=str(exc))
        return jsonify({"error": "Failed to recalculate schedules", "details": str(exc)}), 500

    return jsonify({
        "success": True,
        "message": f"Schedules recalculated for {summary['calculated']} areas",
        "calculated": summary['calculated'],
        "updated": summary['updated'],
        "perLote": {str(lote): count for lote, count in summary['per_lote'].items()},
    }), 200


@rocagem_bp.route("/schedule/preview", methods=["GET"])
def schedule_preview():
    """Diff between stored predictions and a fresh recalculation (read only)"""
    reference_date, error = _parse_reference_date(request.args.get('referenceDate'))
    if error:
        return jsonify({"error": error}), 400
    lote, error = _parse_lote(request.args.get('lote'))
    if error:
        return jsonify({"error": error}), 400
    show_all = request.args.get('showAll', 'false').lower() in ('1', 'true', 'yes')

    try:
        preview = preview_schedule_changes(reference_date=reference_date, lote=lote, show_all=show_all)
    except SchedulingConfigurationError as exc:
        return jsonify({"error": "Invalid configuration", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error previewing schedules", error=str(exc))
        return jsonify({"error": "Failed to preview schedules", "details": str(exc)}), 500

    return jsonify(preview), 200


@rocagem_bp.route("/schedule/stats", methods=["GET"])
def schedule_stats():
    """Per-lote schedule statistics (areas, working days, last predicted date)"""
    reference_date, error = _parse_reference_date(request.args.get('referenceDate'))
    if error:
        return jsonify({"error": error}), 400
    lote, error = _parse_lote(request.args.get('lote'))
    if error:
        return jsonify({"error": error}), 400

    try:
        if reference_date is None:
            reference_date = today()
        rates = get_production_rates(commit=False)
        lotes = sorted(rates) if lote is None else [lote]
        area_dicts = [area.to_schedule_dict() for area in get_queued_areas()]

        stats = {}
        for current_lote in lotes:
            if current_lote not in rates:
                raise MissingProductionRateError(current_lote)
            stats[str(current_lote)] = calculate_schedule_stats(
                area_dicts, current_lote, rates[current_lote], reference_date
            ).to_dict()
    except SchedulingConfigurationError as exc:
        return jsonify({"error": "Invalid configuration", "details": str(exc)}), 400
    except Exception as exc:
        logger.error("Error computing schedule stats", error=str(exc))
        return jsonify({"error": "Failed to compute schedule stats", "details": str(exc)}), 500

    return jsonify({
        "referenceDate": reference_date.isoformat(),
        "lotes": stats,
    }), 200
