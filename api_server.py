#!/usr/bin/env python3
"""
Cutout Compositor API Server
Upload a photo, get back the stylised original with the background-free
cutout layered on top; move the sliders and get a fresh composite.
"""

import os
import logging
import uuid
from io import BytesIO
from typing import Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

# Import services and models
from models.errors import (
    DimensionMismatch,
    OutOfRangeAdjustment,
    SegmentationFailure,
)
from models.image_adjustments import ADJUSTMENT_RANGES, ImageAdjustments
from services.editor_session import EditorSession, RenderResult
from services.image_service import ImageService
from services.segmentation_service import SegmentationService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_UPLOAD_SIZE_MB = int(os.getenv("UPLOAD_MAX_SIZE_MB", "25"))
DOWNLOAD_NAME = os.getenv("DOWNLOAD_NAME", "edited-image.png")

app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_SIZE_MB * 1024 * 1024

# Initialize services
image_service = ImageService()
segmentation_service = SegmentationService()

logger = logging.getLogger(__name__)

# Session storage: one editor per browser tab
sessions: Dict[str, EditorSession] = {}


def get_or_create_session(session_id: Optional[str] = None) -> EditorSession:
    """Get existing session or create new one.

    Ids the server did not hand out are ignored; new sessions always get a
    server-generated id.
    """
    if session_id and session_id in sessions:
        return sessions[session_id]

    if session_id:
        logger.warning(f"Unknown session id {session_id!r}, starting a new session")
    session_id = uuid.uuid4().hex
    sessions[session_id] = EditorSession(
        # looked up per call so the collaborator can be swapped at runtime
        lambda data: segmentation_service.segment(data),
        session_id=session_id,
    )
    return sessions[session_id]


def lookup_session(session_id: Optional[str]) -> Optional[EditorSession]:
    if not session_id:
        return None
    return sessions.get(session_id)


def result_payload(session: EditorSession, result: Optional[RenderResult]) -> dict:
    """JSON body shared by the upload and adjustment endpoints."""
    payload = {
        'success': True,
        'session_id': session.session_id,
        'adjustments': session.adjustments.to_dict(),
        'revision': session.revision,
        'composite': None,
        'superseded': False,
    }
    if result is not None and result.image is not None:
        payload['composite'] = image_service.to_data_url(result.image)
        payload['revision'] = result.revision
        payload['superseded'] = result.superseded
    return payload


@app.route('/api/upload', methods=['POST'])
def upload_image():
    """Segment an uploaded photo and render the first composite."""
    if 'image' not in request.files:
        return jsonify({'success': False, 'message': 'No image provided'}), 400

    file = request.files['image']
    if file.filename == '':
        return jsonify({'success': False, 'message': 'No file selected'}), 400
    if not image_service.is_allowed_filename(file.filename):
        return jsonify({'success': False, 'message': 'Unsupported file type'}), 400

    session = get_or_create_session(request.form.get('session_id'))

    try:
        future = session.upload(file.read())
    except ValueError as e:
        logger.error(f"Upload rejected for session {session.session_id}: {e}")
        return jsonify({'success': False, 'session_id': session.session_id, 'message': str(e)}), 400

    try:
        result = future.result()
    except SegmentationFailure as e:
        logger.error(f"Segmentation failed for session {session.session_id}: {e}")
        return jsonify({
            'success': False,
            'session_id': session.session_id,
            'message': 'Failed to process image',
            'detail': str(e),
        }), 422
    except DimensionMismatch as e:
        logger.error(f"Cutout does not match upload for session {session.session_id}: {e}")
        return jsonify({'success': False, 'message': 'Failed to process image'}), 500
    except Exception as e:
        logger.error(f"Upload processing error: {e}")
        return jsonify({'success': False, 'message': f'Error processing image: {str(e)}'}), 500

    logger.info(f"Composite ready for session {session.session_id} (r{result.revision})")
    return jsonify(result_payload(session, result))


@app.route('/api/adjustments', methods=['POST'])
def update_adjustments():
    """Apply one or more slider changes and re-render the composite."""
    body = request.get_json(silent=True) or {}
    session = lookup_session(body.get('session_id'))
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400

    changes = body.get('adjustments')
    if not isinstance(changes, dict) or not changes:
        return jsonify({'success': False, 'message': 'No adjustments provided'}), 400

    try:
        future = session.update_adjustments(**changes)
    except OutOfRangeAdjustment as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    try:
        result = future.result()
    except Exception as e:
        logger.error(f"Render error for session {session.session_id}: {e}")
        return jsonify({'success': False, 'message': f'Error rendering composite: {str(e)}'}), 500

    return jsonify(result_payload(session, result))


@app.route('/api/adjustments/ranges', methods=['GET'])
def adjustment_ranges():
    """Slider metadata: min / max / step / default for every adjustment."""
    defaults = ImageAdjustments().to_dict()
    return jsonify({
        name: {
            'min': rng.minimum,
            'max': rng.maximum,
            'step': rng.step,
            'default': defaults[name],
        }
        for name, rng in ADJUSTMENT_RANGES.items()
    })


@app.route('/api/download/<session_id>', methods=['GET'])
def download_composite(session_id):
    """Export the current composite as a PNG attachment."""
    session = lookup_session(session_id)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    try:
        data = session.export_png()
    except ValueError:
        return jsonify({'error': 'Nothing to download yet'}), 404
    return send_file(BytesIO(data), mimetype='image/png',
                     as_attachment=True, download_name=DOWNLOAD_NAME)


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Cutout Compositor API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    body = request.get_json(silent=True) or {}
    session = sessions.pop(body.get('session_id') or '', None)
    if session is None:
        return jsonify({'success': False, 'message': 'Session not found'})
    session.close()
    return jsonify({'success': True, 'message': 'Session cleared'})


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_UPLOAD_SIZE_MB}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Cutout Compositor API on {host}:{port}")
    logger.info(f"Max upload size: {MAX_UPLOAD_SIZE_MB}MB")
    app.run(host=host, port=port, threaded=True)


if __name__ == '__main__':
    main()
