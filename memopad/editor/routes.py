from flask import Blueprint, request, jsonify, current_app
import logging

from memopad.content.extract import extract_plain_text
from memopad.content.linkify import linkify
from memopad.core.dom import create_surface
from memopad.images.container import ingest
from memopad.images.ingest import (
    SOURCES,
    FileItem,
    ImageDecodeError,
    ImageTooLargeError,
    UnsupportedImageError,
)
from memopad.images.preview import PreviewLauncher, QueuedPreviewSurface

editor_bp = Blueprint('editor', __name__)
logger = logging.getLogger(__name__)


def get_store():
    return current_app.config['NOTE_STORE']


def get_editor_config():
    return current_app.config['EDITOR_CONFIG']


def get_previews():
    """Open preview surfaces, by surface id."""
    return current_app.extensions.setdefault('memopad_previews', {})


@editor_bp.route('/api/note')
def get_note():
    """Current note text plus its rendered (linkified) markup."""
    try:
        content = get_store().load_note()
    except Exception as e:
        logger.error(f"Editor: Failed to load note: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    logger.debug(f"Editor: Served note ({len(content)} chars)")
    return jsonify({'content': content, 'html': linkify(content)})


@editor_bp.route('/api/note', methods=['POST'])
def save_note():
    """Save the note; non-blank text is also recorded in history."""
    data = request.get_json(silent=True) or {}
    content = data.get('content')
    if content is None or not isinstance(content, str):
        return jsonify({'error': 'Missing content'}), 400

    store = get_store()
    try:
        if content.strip():
            store.save_note_to_history(content)
        else:
            store.save_note(content)
    except Exception as e:
        logger.error(f"Editor: Failed to save note: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    logger.info(f"Editor: Saved note ({len(content)} chars)")
    return jsonify({'success': True})


@editor_bp.route('/api/note/new', methods=['POST'])
def new_memo():
    try:
        memo_id = get_store().create_new_memo()
    except Exception as e:
        logger.error(f"Editor: Failed to create memo: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500
    return jsonify({'id': memo_id})


@editor_bp.route('/api/linkify', methods=['POST'])
def linkify_text():
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str):
        return jsonify({'error': 'Missing text'}), 400
    return jsonify({'html': linkify(text)})


@editor_bp.route('/api/extract', methods=['POST'])
def extract_text():
    data = request.get_json(silent=True) or {}
    html = data.get('html')
    if not isinstance(html, str):
        return jsonify({'error': 'Missing html'}), 400
    return jsonify({'content': extract_plain_text(create_surface(html))})


@editor_bp.route('/api/images', methods=['POST'])
def upload_image():
    """
    Normalize one pasted or dropped image and return its container markup.
    The size policy depends on the 'source' form field.
    """
    upload = request.files.get('file')
    source = request.form.get('source', 'paste')
    if upload is None:
        return jsonify({'error': 'No file provided'}), 400
    if source not in SOURCES:
        return jsonify({'error': f'Invalid source: {source}'}), 400

    data = upload.read()
    item = FileItem(type=upload.mimetype or '', data=data, name=upload.filename or '')

    try:
        block = ingest(item, source, get_editor_config())
    except ImageTooLargeError as e:
        return jsonify({'error': e.message}), 413
    except UnsupportedImageError as e:
        return jsonify({'error': e.message}), 415
    except ImageDecodeError as e:
        return jsonify({'error': e.message}), 422

    logger.info(f"Editor: Ingested {source} image '{item.name}' ({block.width}x{block.height})")
    return jsonify({
        'markup': block.markup,
        'mime': block.mime,
        'width': block.width,
        'height': block.height,
    })


@editor_bp.route('/api/preview', methods=['POST'])
def open_preview():
    """Open a preview surface; the image is delivered once the surface reports ready."""
    data = request.get_json(silent=True) or {}
    src = data.get('src')
    if not src or not isinstance(src, str):
        return jsonify({'error': 'Missing src'}), 400

    surface = PreviewLauncher(QueuedPreviewSurface).show(src)
    if surface is None:
        return jsonify({'error': 'Preview could not be opened'}), 500

    # One preview at a time: a newer open replaces any that never reported ready
    previews = get_previews()
    previews.clear()
    previews[surface.surface_id] = surface
    return jsonify({'id': surface.surface_id})


@editor_bp.route('/api/preview/<surface_id>/ready', methods=['POST'])
def preview_ready(surface_id):
    surface = get_previews().pop(surface_id, None)
    if surface is None:
        return jsonify({'error': 'Unknown preview'}), 404

    surface.acknowledge_ready()
    if not surface.events:
        logger.warning(f"Editor: Preview {surface_id} became ready without image data")
        return jsonify({'error': 'No image data'}), 500
    return jsonify(surface.events[-1]['payload'])
