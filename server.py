"""
WMM Declination - HTTP API
Flask server answering magnetic declination and bearing conversion queries
"""

from flask import Flask, request, jsonify
from flask_cors import CORS
import logging
from datetime import datetime, timezone

import config
from bearings import compute_grid_convergence, convert_bearing
from magnetic_field_model import DeclinationOptions, DeclinationService, get_declination_service, to_utc_datetime
from wmm_coefficients import ModelLoadError

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # Enable CORS for cross-origin requests


def get_service() -> DeclinationService:
    """Service configured on the app (tests), else the process-wide one."""
    return app.config.get('DECLINATION_SERVICE') or get_declination_service()


def get_params():
    """Query string merged with an optional JSON body."""
    params = dict(request.args.items())
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        params.update(body)
    return params


def get_float(params, *keys, default=None):
    """Return the first of keys present in params as a float."""
    for key in keys:
        if key in params and params[key] not in (None, ''):
            try:
                return float(params[key])
            except (TypeError, ValueError):
                raise ValueError(f"Parameter '{key}' must be a number, got {params[key]!r}")
    return default


@app.errorhandler(ValueError)
def handle_value_error(e):
    logger.warning(f"Bad request: {e}")
    return jsonify({'error': str(e)}), 400


@app.errorhandler(ModelLoadError)
def handle_model_load_error(e):
    logger.error(f"WMM model unavailable: {e}")
    return jsonify({'error': 'Magnetic model unavailable', 'details': str(e)}), 503


@app.route('/')
def index():
    """Server status and endpoint list"""
    return jsonify({
        'status': 'running',
        'service': 'WMM Declination Server',
        'endpoints': {
            '/declination': 'GET - Magnetic declination (lat, lon, date, alt_km)',
            '/bearing': 'GET/POST - Convert a bearing between true, magnetic and grid north',
            '/model': 'GET - Loaded coefficient set',
            '/health': 'GET - Health check'
        }
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'model_loaded': get_service().cache.is_loaded,
        'timestamp': datetime.now(timezone.utc).isoformat()
    })


@app.route('/model', methods=['GET'])
def model_info():
    """Describe the loaded coefficient set"""
    model = get_service().cache.load_model(timeout=config.WMM_LOAD_TIMEOUT)
    return jsonify({
        'epoch': model.epoch,
        'nmax': model.nmax,
        'model_name': model.model_name,
        'release_date': model.release_date
    })


@app.route('/declination', methods=['GET'])
def declination():
    """
    Magnetic declination at a point

    Query parameters:
        lat, lon: degrees (required)
        date: ISO-8601 date or datetime (default: now)
        alt_km: altitude above the ellipsoid in km (default: 0)
    """
    params = get_params()
    lat = get_float(params, 'lat', 'latitude')
    lon = get_float(params, 'lon', 'longitude')
    if lat is None or lon is None:
        raise ValueError("Parameters 'lat' and 'lon' are required")

    options = DeclinationOptions(altitude_km=get_float(params, 'alt_km', 'altitude_km', default=0.0))
    date = params.get('date')
    value = get_service().compute_declination(lat, lon, date, options)

    when = to_utc_datetime(date)
    return jsonify({
        'declination': value,
        'latitude': lat,
        'longitude': lon,
        'altitude_km': options.altitude_km,
        'date': when.isoformat() if when else None
    })


@app.route('/bearing', methods=['GET', 'POST'])
def bearing():
    """
    Convert a bearing between north references

    Parameters:
        bearing: degrees (required)
        from, to: 'true', 'magnetic' or 'grid' (required)
        declination, convergence: degrees; when omitted and lat/lon are
            given they are computed for that point
    """
    params = get_params()
    value = get_float(params, 'bearing')
    if value is None:
        raise ValueError("Parameter 'bearing' is required")
    from_ref = str(params.get('from', '')).lower()
    to_ref = str(params.get('to', '')).lower()

    lat = get_float(params, 'lat', 'latitude')
    lon = get_float(params, 'lon', 'longitude')
    declination_deg = get_float(params, 'declination')
    convergence_deg = get_float(params, 'convergence')

    if lat is not None and lon is not None:
        if declination_deg is None:
            declination_deg = get_service().compute_declination(lat, lon, params.get('date'))
        if convergence_deg is None:
            convergence_deg = compute_grid_convergence(lat, lon)

    declination_deg = declination_deg or 0.0
    convergence_deg = convergence_deg or 0.0
    result = convert_bearing(value, from_ref, to_ref, declination_deg, convergence_deg)

    return jsonify({
        'bearing': result,
        'from': from_ref,
        'to': to_ref,
        'declination': declination_deg,
        'convergence': convergence_deg
    })


if __name__ == '__main__':
    config.configure_logging()

    logger.info("Starting WMM Declination Server")
    logger.info(f"HTTP server: http://{config.HOST}:{config.PORT}/declination")

    app.run(host=config.HOST, port=config.PORT, debug=False)
