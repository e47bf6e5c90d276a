"""
Unit tests for the error module: categories, status codes and response shape.
"""

import pytest

from dropbin.domain.errors import (
    ERROR_MESSAGES,
    ApplicationError,
    BlobNotFoundError,
    EntryNotLiveError,
    ErrorCategory,
    InvalidInputError,
    InvalidTTLError,
    NotFoundOrExpiredError,
    PayloadTooLargeError,
    StorageFailureError,
    create_error_response,
)


def test_every_category_has_a_message():
    assert set(ERROR_MESSAGES) == set(ErrorCategory)


@pytest.mark.parametrize(
    "error,status",
    [
        (InvalidTTLError("bad ttl"), 400),
        (InvalidInputError("bad input"), 400),
        (PayloadTooLargeError("too big"), 413),
        (NotFoundOrExpiredError("gone"), 404),
        (EntryNotLiveError("exhausted"), 404),
        (BlobNotFoundError("missing"), 404),
        (StorageFailureError("disk"), 500),
    ],
)
def test_domain_errors_map_to_status(error, status):
    assert ApplicationError.from_domain_error(error).http_status_code == status


def test_to_dict_hides_technical_message():
    error = ApplicationError.from_domain_error(
        StorageFailureError("/var/lib/secret/path: permission denied")
    )

    body = error.to_dict()

    assert set(body) == {"error", "title", "message", "action"}
    assert body["error"] == "storage_failure"
    assert "secret" not in str(body)
    assert error.technical_message.startswith("/var/lib/secret")


def test_create_error_response_defaults_status_from_category():
    body, status = create_error_response(ErrorCategory.NOT_FOUND_OR_EXPIRED)

    assert status == 404
    assert body["error"] == "not_found_or_expired"


def test_create_error_response_status_override():
    _, status = create_error_response(ErrorCategory.STORAGE_FAILURE, status_code=503)

    assert status == 503


def test_original_error_is_kept():
    cause = OSError("disk full")
    error = StorageFailureError("write failed", cause)

    assert error.original_error is cause
