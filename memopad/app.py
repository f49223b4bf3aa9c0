"""
Memopad web application.
A Flask app that serves the note editor's content operations over a small JSON API.
"""

from flask import Flask, jsonify
import logging
import os
import traceback
from typing import Optional

from memopad.core.config import EditorConfig
from memopad.editor.routes import editor_bp
from memopad.editor.store import FileNoteStore, NoteStore
from memopad.version_info import __version__ as VERSION

logger = logging.getLogger(__name__)


def create_app(config: Optional[EditorConfig] = None, store: Optional[NoteStore] = None) -> Flask:
    """
    Build the Flask app.

    The config and the store are attached to app.config so blueprint handlers
    can reach them through current_app.
    """
    config = config or EditorConfig()
    if store is None:
        store = FileNoteStore(config.data_path, history_limit=config.history_limit)

    app = Flask(__name__)
    app.secret_key = os.urandom(24)
    app.config['EDITOR_CONFIG'] = config
    app.config['NOTE_STORE'] = store
    # Leave room for a maximum-size dropped image plus multipart overhead
    app.config['MAX_CONTENT_LENGTH'] = config.drop_size_limit * 2

    app.register_blueprint(editor_bp)

    @app.route('/api/version')
    def get_version():
        return jsonify({'version': VERSION})

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"500 Error: {error}\n{traceback.format_exc()}")
        return jsonify({'error': 'Internal Server Error'}), 500

    logger.info(f"Memopad v{VERSION} app created (data dir: {config.data_path})")
    return app
