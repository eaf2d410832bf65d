"""Flask web application for the Cart Match recommendation engine."""

import logging
import os

from flask import Flask, Response, request, jsonify

from cartmatch.models import Profile
from cartmatch.services.batch_service import BatchService
from cartmatch.services.catalog_service import CatalogService
from cartmatch.services.csv_service import CsvServiceError, export_results, read_rows
from cartmatch.services.keyword_service import KeywordService
from cartmatch.services.recommendation_service import RecommendationService
from config import CATALOG_PATH, KEYWORD_CALL_DELAY, MAX_UPLOAD_MB

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
app.config['KEYWORD_CALL_DELAY'] = KEYWORD_CALL_DELAY
app.config['CATALOG_PATH'] = CATALOG_PATH


def _default_catalog_rows():
    """Rows of the configured catalog sheet, or [] if none is deployed."""
    path = app.config['CATALOG_PATH']
    if not path or not os.path.exists(path):
        return []
    return read_rows(path)


def _uploaded_rows(field_name):
    """Read an uploaded CSV file; returns (rows, error_response)."""
    upload = request.files.get(field_name)
    if upload is None or upload.filename == '':
        return None, (jsonify({'error': f'{field_name} CSV file is required'}), 400)
    if not upload.filename.lower().endswith('.csv'):
        return None, (jsonify({'error': f'{field_name} file must be a CSV'}), 400)
    try:
        return read_rows(upload.stream), None
    except CsvServiceError as e:
        return None, (jsonify({'error': str(e)}), 400)


def _run_uploaded_batch():
    """Shared upload handling for the batch endpoints."""
    profile_rows, error = _uploaded_rows('profiles')
    if error:
        return None, error
    catalog_rows, error = _uploaded_rows('catalog')
    if error:
        return None, error

    service = BatchService(call_delay=app.config['KEYWORD_CALL_DELAY'])
    return service.run(profile_rows, catalog_rows), None


@app.route('/api/recommend', methods=['POST'])
def api_recommend():
    """Recommend up to two items for a single profile."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    profile_data = data.get('profile') or {}
    if not isinstance(profile_data, dict):
        return jsonify({'error': 'profile must be a JSON object'}), 400
    profile = Profile.from_dict(profile_data)

    if not profile.email or '@' not in profile.email:
        return jsonify({'error': 'A valid email is required'}), 400

    catalog_rows = data.get('catalog')
    if catalog_rows is not None and (
        not isinstance(catalog_rows, list)
        or not all(isinstance(row, dict) for row in catalog_rows)
    ):
        return jsonify({'error': 'catalog must be a list of JSON objects'}), 400

    try:
        if catalog_rows is None:
            catalog_rows = _default_catalog_rows()
        catalog = CatalogService().parse_rows(catalog_rows)

        warning = None
        try:
            keywords = KeywordService().extract(profile.notes)
        except Exception as e:
            logger.warning("[api] keyword extraction failed for %s: %s", profile.email, e)
            keywords = []
            warning = f'keyword extraction failed: {e}'

        picks = RecommendationService().recommend_one(profile, keywords, catalog.items)
        return jsonify({
            'success': True,
            'profile': profile.to_dict(),
            'keywords': keywords,
            'recommendations': [item.to_dict() for item in picks],
            'warning': warning,
        })
    except Exception as e:
        logger.error("[api] recommend failed: %s", e, exc_info=True)
        return jsonify({'error': str(e)}), 500


@app.route('/api/batch', methods=['POST'])
def api_batch():
    """Run a batch from uploaded profile and catalog sheets."""
    try:
        report, error = _run_uploaded_batch()
        if error:
            return error
        return jsonify({'success': True, **report.to_dict()})
    except Exception as e:
        logger.error("[api] batch failed: %s", e, exc_info=True)
        return jsonify({'error': str(e)}), 500


@app.route('/api/batch/export', methods=['POST'])
def api_batch_export():
    """Run a batch and download the results as CSV."""
    try:
        report, error = _run_uploaded_batch()
        if error:
            return error
        return Response(
            export_results(report.results),
            mimetype='text/csv',
            headers={'Content-Disposition': 'attachment; filename=recommendations.csv'},
        )
    except Exception as e:
        logger.error("[api] batch export failed: %s", e, exc_info=True)
        return jsonify({'error': str(e)}), 500


if __name__ == '__main__':
    # Make sure GEMINI_API_KEY is set
    if not os.environ.get('GEMINI_API_KEY') and not os.environ.get('GOOGLE_API_KEY'):
        print("Warning: GEMINI_API_KEY or GOOGLE_API_KEY environment variable not set")

    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)
