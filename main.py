"""
main.py

Flask backend for dropbin, an ephemeral file and paste store.

Dependencies:
  - Python packages: Flask, flask-restx, flask-cors, redis, celery
  - Infrastructure: Redis server (unless METADATA_BACKEND=memory)

Notes:
  - API endpoints available at /api/ with Swagger docs at /api/docs
  - Expired entries are reclaimed by an in-process thread (REAPER_MODE=thread)
    or by Celery beat (REAPER_MODE=celery)
  - Uses application factory pattern for better testability
"""

import os

from app_factory import create_app

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
