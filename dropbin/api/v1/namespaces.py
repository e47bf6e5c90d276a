"""
API Namespaces - File and paste endpoint groups
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Response, current_app, request
from flask_restx import Namespace, Resource
from werkzeug.exceptions import RequestEntityTooLarge

from dropbin.api.v1.models import (
    error_response,
    file_response,
    file_upload_parser,
    paste_request,
    paste_response,
)
from dropbin.domain.content import Entry
from dropbin.domain.errors import (
    ApplicationError,
    DomainError,
    ErrorCategory,
    create_error_response,
)

# =============================================================================
# File Namespace - Uploads and downloads
# =============================================================================

file_ns = Namespace("file", description="File sharing operations")


@file_ns.route("")
class FileUpload(Resource):
    """Upload a file"""

    @file_ns.doc("upload_file")
    @file_ns.expect(file_upload_parser)
    @file_ns.response(201, "Created", file_response)
    @file_ns.response(400, "Bad Request", error_response)
    @file_ns.response(413, "Payload Too Large", error_response)
    @file_ns.response(500, "Storage Error", error_response)
    def post(self):
        """
        Upload a file

        Accepts multipart/form-data with a `file` part, an optional `ttl`
        (1h, 24h, 72h or 168h, default 24h) and an optional `max_downloads`.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            upload = request.files.get("file")
            if upload is None:
                return create_error_response(
                    ErrorCategory.INVALID_REQUEST, "Missing 'file' part in upload"
                )

            entry = service.create_file(
                upload.filename,
                upload.content_type,
                upload.stream,
                ttl=request.form.get("ttl"),
                max_downloads=request.form.get("max_downloads"),
            )
            current_app.logger.info(f"[FILE] Uploaded {entry.entry_id[:8]} ({entry.payload.size} bytes)")
            return serialize_file(entry), 201

        except RequestEntityTooLarge as e:
            current_app.logger.warning(f"[FILE] Upload rejected by request size limit: {e}")
            return create_error_response(ErrorCategory.PAYLOAD_TOO_LARGE, str(e))
        except DomainError as e:
            return _domain_error_response(e, "uploading file")
        except Exception as e:
            current_app.logger.exception(f"[FILE] Unexpected error uploading file: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))


@file_ns.route("/<string:file_id>")
@file_ns.param("file_id", "The file identifier")
class FileContent(Resource):
    """Download or delete a file"""

    @file_ns.doc("download_file")
    @file_ns.response(200, "File content")
    @file_ns.response(404, "Not Found or Expired", error_response)
    @file_ns.response(500, "Storage Error", error_response)
    def get(self, file_id):
        """
        Download a file

        Streams the stored bytes as an attachment. Each call counts one
        download before any byte is sent.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            stream, entry = service.open_file_download(file_id)
        except DomainError as e:
            return _domain_error_response(e, f"downloading file {file_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[FILE] Unexpected error opening {file_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))

        payload = entry.payload
        # The WSGI server closes the stream when the client goes away
        response = Response(stream, content_type=payload.content_type)
        response.headers["Content-Length"] = str(payload.size)
        response.headers.set("Content-Disposition", "attachment", filename=payload.original_name)
        response.headers["Cache-Control"] = "no-store"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response

    @file_ns.doc("delete_file")
    @file_ns.response(204, "File deleted")
    @file_ns.response(404, "Not Found or Expired", error_response)
    @file_ns.response(500, "Storage Error", error_response)
    def delete(self, file_id):
        """Delete a file and its stored bytes immediately"""
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            service.delete_file(file_id)
            return "", 204
        except DomainError as e:
            return _domain_error_response(e, f"deleting file {file_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[FILE] Unexpected error deleting {file_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))


@file_ns.route("/<string:file_id>/info")
@file_ns.param("file_id", "The file identifier")
class FileInfo(Resource):
    """File metadata"""

    @file_ns.doc("get_file_info")
    @file_ns.response(200, "Success", file_response)
    @file_ns.response(404, "Not Found or Expired", error_response)
    def get(self, file_id):
        """
        Get file metadata

        Does not count as a download.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            entry = service.get_file_info(file_id)
            return serialize_file(entry), 200
        except DomainError as e:
            return _domain_error_response(e, f"reading file info {file_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[FILE] Unexpected error reading {file_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))


# =============================================================================
# Paste Namespace - Text snippets
# =============================================================================

paste_ns = Namespace("paste", description="Paste sharing operations")


@paste_ns.route("")
class PasteCreate(Resource):
    """Create a paste"""

    @paste_ns.doc("create_paste")
    @paste_ns.expect(paste_request)
    @paste_ns.response(201, "Created", paste_response)
    @paste_ns.response(400, "Bad Request", error_response)
    @paste_ns.response(413, "Payload Too Large", error_response)
    def post(self):
        """
        Create a paste

        JSON body with `content` (required, non-empty), `language`
        (detected from the content when omitted), `title`, `ttl` and `max_views`.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return create_error_response(
                    ErrorCategory.INVALID_REQUEST, "Request body must be a JSON object"
                )

            entry = service.create_paste(
                data.get("content"),
                language=data.get("language"),
                title=data.get("title"),
                ttl=data.get("ttl"),
                max_views=data.get("max_views"),
            )
            return serialize_paste(entry), 201

        except RequestEntityTooLarge as e:
            return create_error_response(ErrorCategory.PAYLOAD_TOO_LARGE, str(e))
        except DomainError as e:
            return _domain_error_response(e, "creating paste")
        except Exception as e:
            current_app.logger.exception(f"[PASTE] Unexpected error creating paste: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))


@paste_ns.route("/<string:paste_id>")
@paste_ns.param("paste_id", "The paste identifier")
class Paste(Resource):
    """Paste metadata and deletion"""

    @paste_ns.doc("get_paste")
    @paste_ns.response(200, "Success", paste_response)
    @paste_ns.response(404, "Not Found or Expired", error_response)
    def get(self, paste_id):
        """
        Get paste metadata

        Does not count as a view. Content is returned empty; the raw
        endpoint is the counted read.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            entry = service.get_paste(paste_id)
            return serialize_paste(entry, include_content=False), 200
        except DomainError as e:
            return _domain_error_response(e, f"reading paste {paste_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[PASTE] Unexpected error reading {paste_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))

    @paste_ns.doc("delete_paste")
    @paste_ns.response(204, "Paste deleted")
    @paste_ns.response(404, "Not Found or Expired", error_response)
    def delete(self, paste_id):
        """Delete a paste immediately"""
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            service.delete_paste(paste_id)
            return "", 204
        except DomainError as e:
            return _domain_error_response(e, f"deleting paste {paste_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[PASTE] Unexpected error deleting {paste_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))


@paste_ns.route("/<string:paste_id>/raw")
@paste_ns.param("paste_id", "The paste identifier")
class PasteRaw(Resource):
    """Raw paste content"""

    @paste_ns.doc("get_paste_raw")
    @paste_ns.produces(["text/plain"])
    @paste_ns.response(200, "Paste text")
    @paste_ns.response(404, "Not Found or Expired", error_response)
    def get(self, paste_id):
        """
        Get raw paste text

        Counts one view.
        """
        service = _get_content_service()
        if service is None:
            return _service_unavailable()

        try:
            content = service.get_paste_raw(paste_id)
        except DomainError as e:
            return _domain_error_response(e, f"reading raw paste {paste_id[:8]}")
        except Exception as e:
            current_app.logger.exception(f"[PASTE] Unexpected error reading {paste_id[:8]}: {e}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e))

        response = Response(content, content_type="text/plain; charset=utf-8")
        response.headers["Cache-Control"] = "no-store"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response


# =============================================================================
# Serialization
# =============================================================================

def serialize_file(entry: Entry, base_url: Optional[str] = None) -> Dict[str, Any]:
    """Public JSON shape of a file entry. The storage key is never included."""
    payload = entry.payload
    return {
        "ID": entry.entry_id,
        "OriginalName": payload.original_name,
        "Size": payload.size,
        "ContentType": payload.content_type,
        "Downloads": entry.access_count,
        "MaxDownloads": entry.max_access,
        "CreatedAt": _iso(entry.created_at),
        "ExpiresAt": _iso(entry.expires_at),
        "download": _public_url(f"/api/file/{entry.entry_id}", base_url),
        "view": _public_url(f"/view/{entry.entry_id}", base_url),
    }


def serialize_paste(
    entry: Entry, base_url: Optional[str] = None, include_content: bool = True
) -> Dict[str, Any]:
    """Public JSON shape of a paste entry."""
    payload = entry.payload
    return {
        "ID": entry.entry_id,
        "Content": payload.content if include_content else "",
        "Language": payload.language,
        "Title": payload.title,
        "Views": entry.access_count,
        "MaxViews": entry.max_access,
        "CreatedAt": _iso(entry.created_at),
        "ExpiresAt": _iso(entry.expires_at),
        "raw": _public_url(f"/api/paste/{entry.entry_id}/raw", base_url),
        "view": _public_url(f"/view/{entry.entry_id}", base_url),
    }


# =============================================================================
# Helper Functions
# =============================================================================

def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _public_url(path: str, base_url: Optional[str] = None) -> str:
    if base_url is None:
        base_url = current_app.config.get("PUBLIC_BASE_URL") or ""
    return f"{base_url.rstrip('/')}{path}"


def _get_content_service():
    return getattr(current_app, "content_service", None)


def _service_unavailable():
    current_app.logger.error("Content service not initialized")
    return create_error_response(
        ErrorCategory.STORAGE_FAILURE, "Content service not initialized", status_code=503
    )


def _domain_error_response(error: DomainError, operation: str):
    """
    Map a domain error to the JSON error shape.

    Not-found and validation outcomes are routine and logged at info level;
    storage failures are logged as errors. Internal details stay in the log.
    """
    app_error = ApplicationError.from_domain_error(error)
    if app_error.http_status_code >= 500:
        current_app.logger.error(f"Error {operation}: {error}")
    else:
        current_app.logger.info(f"Rejected {operation}: {app_error.category.value}")
    return app_error.to_dict(), app_error.http_status_code
