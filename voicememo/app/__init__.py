"""
Flask application factory for the Voice Memo Insights service.
Sets up: Config, memo store, processor/dispatcher, Socket.IO, API blueprint.
"""

from __future__ import annotations

import os
from typing import Callable, Optional

from flask import Flask
from flask_cors import CORS

from voicememo.config import AppConfig, get_config
from voicememo.store import MemoStore, create_store
from .sockets import socketio


def create_app(
    config_object: AppConfig | None = None,
    store: Optional[MemoStore] = None,
    processor=None,
    dispatcher: Optional[Callable[[str], None]] = None,
) -> Flask:
    """
    Flask application factory.

    ``store``, ``processor`` and ``dispatcher`` may be injected (tests wire
    fakes here); otherwise they are built from the configuration.
    """
    from .orchestration import MemoProcessor, build_dispatcher

    cfg = config_object or get_config()
    app = Flask(__name__)

    app.config.update(
        SECRET_KEY=cfg.web.secret_key,
        MAX_CONTENT_LENGTH=cfg.web.max_content_length,
        UPLOAD_FOLDER=str(cfg.web.upload_folder),
    )

    CORS(
        app,
        resources={
            r"/v1/*": {"origins": cfg.web.cors_origins},
            r"/upload": {"origins": cfg.web.cors_origins},
            r"/health": {"origins": "*"},
        },
    )

    socketio.init_app(
        app,
        async_mode=cfg.web.socketio_async_mode,
        cors_allowed_origins=cfg.web.socketio_cors_allowed_origins,
        message_queue=cfg.web.socketio_message_queue,
    )

    store = store or create_store(cfg.store)
    processor = processor or MemoProcessor(store, cleanup_uploads=cfg.processing.cleanup_uploads)
    dispatcher = dispatcher or build_dispatcher(cfg.web.task_backend, processor)

    app.extensions["voicememo_config"] = cfg
    app.extensions["memo_store"] = store
    app.extensions["memo_processor"] = processor
    app.extensions["memo_dispatcher"] = dispatcher

    from .api import api_bp  # defer import until app exists
    app.register_blueprint(api_bp)

    app.logger.info(
        "App initialized. Health at /health. model=%s store=%s tasks=%s",
        cfg.processing.default_model,
        cfg.store.backend,
        cfg.web.task_backend,
    )

    return app


# Convenience for running via `flask --app voicememo.app run`
if os.getenv("FLASK_RUN_FROM_CLI") == "true" or os.getenv("CREATE_FLASK_APP", "").lower() == "true":
    app = create_app()
else:
    app = None
