"""
API Models for request/response documentation
"""

from flask_restx import fields, reqparse
from werkzeug.datastructures import FileStorage

from dropbin.api.v1 import api
from dropbin.domain.content import ACCEPTED_TTLS, DEFAULT_TTL_TOKEN

TTL_CHOICES = list(ACCEPTED_TTLS)

# =============================================================================
# Request Models
# =============================================================================

file_upload_parser = reqparse.RequestParser()
file_upload_parser.add_argument(
    "file", location="files", type=FileStorage, required=True, help="File to share"
)
file_upload_parser.add_argument(
    "ttl",
    location="form",
    choices=TTL_CHOICES,
    default=DEFAULT_TTL_TOKEN,
    help="Lifetime of the link",
)
file_upload_parser.add_argument(
    "max_downloads",
    location="form",
    type=int,
    required=False,
    help="Download cap, 0 or omitted for unlimited",
)

paste_request = api.model(
    "PasteRequest",
    {
        "content": fields.String(required=True, description="Paste text", example="hello"),
        "language": fields.String(
            description="Language hint for highlighting, detected from content when omitted",
            example="python",
        ),
        "title": fields.String(description="Optional title", example="snippet"),
        "ttl": fields.String(
            description="Lifetime of the link", enum=TTL_CHOICES, default=DEFAULT_TTL_TOKEN
        ),
        "max_views": fields.Integer(
            description="View cap, 0 or omitted for unlimited", min=0, required=False
        ),
    },
)

# =============================================================================
# Response Models
# =============================================================================

file_response = api.model(
    "File",
    {
        "ID": fields.String(description="Public identifier"),
        "OriginalName": fields.String(description="Uploaded file name"),
        "Size": fields.Integer(description="Size in bytes"),
        "ContentType": fields.String(description="MIME type"),
        "Downloads": fields.Integer(description="Downloads so far"),
        "MaxDownloads": fields.Integer(description="Download cap, 0 for unlimited"),
        "CreatedAt": fields.String(description="Creation time (ISO-8601 UTC)"),
        "ExpiresAt": fields.String(description="Expiry time (ISO-8601 UTC)"),
        "download": fields.String(description="Download URL"),
        "view": fields.String(description="Viewer URL"),
    },
)

paste_response = api.model(
    "Paste",
    {
        "ID": fields.String(description="Public identifier"),
        "Content": fields.String(
            description="Paste text (empty on metadata reads; fetch the raw URL)"
        ),
        "Language": fields.String(description="Language hint"),
        "Title": fields.String(description="Title"),
        "Views": fields.Integer(description="Raw views so far"),
        "MaxViews": fields.Integer(description="View cap, 0 for unlimited"),
        "CreatedAt": fields.String(description="Creation time (ISO-8601 UTC)"),
        "ExpiresAt": fields.String(description="Expiry time (ISO-8601 UTC)"),
        "raw": fields.String(description="Raw content URL"),
        "view": fields.String(description="Viewer URL"),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(description="Short error title"),
        "message": fields.String(description="User-facing explanation"),
        "action": fields.String(description="Suggested next step"),
    },
)
