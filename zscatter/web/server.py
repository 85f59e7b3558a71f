"""
Flask web server that streams a record file to clients over HTTP.
"""

import logging

from flask import Flask, Response

from ..config import (
    STREAM_CACHE_CONTROL,
    STREAM_MIMETYPE,
    STREAM_ROUTE,
    StreamerConfig,
    parse_listen_address,
)
from ..errors import IOOpenError
from ..streamer import StreamSession

logger = logging.getLogger(__name__)


def create_app(config: StreamerConfig) -> Flask:
    """
    Create and configure the Flask application.

    Each app captures only its own configuration, so several independent
    instances can live in one process.

    Args:
        config: Validated streamer configuration

    Returns:
        Flask app
    """
    app = Flask(__name__)
    app.config['STREAMER'] = config

    register_routes(app, config)

    return app


def register_routes(app: Flask, config: StreamerConfig):
    """Register HTTP routes."""

    @app.route(STREAM_ROUTE, methods=['GET'])
    def stream():
        """Stream the current contents of the source file."""
        session = StreamSession(config.source_path, config.chunk_size)
        try:
            session.open()
        except IOOpenError as e:
            logger.error(str(e))
            return Response('failed to open data file\n', status=500, mimetype='text/plain')

        # The response closes the session when it finishes or the client disconnects
        return Response(
            session,
            mimetype=STREAM_MIMETYPE,
            headers={'Cache-Control': STREAM_CACHE_CONTROL},
        )


def run_server(app: Flask, listen_address: str):
    """
    Run the web server, one thread per request.

    Args:
        app: Flask application
        listen_address: ``host:port`` to bind
    """
    host, port = parse_listen_address(listen_address)
    logger.info(f"Starting stream server on http://{host}:{port}{STREAM_ROUTE}")
    app.run(host=host, port=port, threaded=True, debug=False, use_reloader=False)
