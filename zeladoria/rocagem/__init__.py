"""
Roçagem Module
Flask Blueprint for the mowing service: configuration, completion
registration and schedule recalculation/preview/statistics.
"""
from flask import Blueprint

rocagem_bp = Blueprint("rocagem", __name__)

from zeladoria.rocagem import routes
