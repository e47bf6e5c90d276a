"""
API v1 - dropbin REST API

This module contains the file and paste endpoints with OpenAPI/Swagger documentation.
"""

from flask import Blueprint
from flask_restx import Api

# Create blueprint for the content API
api_v1_bp = Blueprint("api_v1", __name__, url_prefix="/api")

# Initialize Flask-RESTX API with Swagger documentation
api = Api(
    api_v1_bp,
    version="1.0",
    title="dropbin API",
    description="Ephemeral file and paste sharing with expiring, access-limited links",
    doc="/docs",  # Swagger UI will be available at /api/docs
    license="MIT",
)

# Import namespaces after api is created to avoid circular imports
from .namespaces import file_ns, paste_ns  # noqa: E402

# Register namespaces
api.add_namespace(file_ns, path="/file")
api.add_namespace(paste_ns, path="/paste")
