"""Tests for facet.errors: the hierarchy and error documents."""

import pytest

from facet.errors import (
    ERROR_NO_HANDLER,
    ERROR_PROPS_NOT_FOUND,
    ERROR_SCHEMA,
    ApiError,
    FacetError,
    HTTPError,
    InvalidResult,
    NotFound,
    PropertiesNotFound,
    UploadError,
    UploadReason,
    ValidationFailed,
    status_phrase,
)

ENTRY = {"property": "name", "code": 105, "error": "INVALID", "message": "Property is of incorrect type"}


class TestStatusPhrase:
    def test_known(self) -> None:
        assert status_phrase(404) == "NOT FOUND"
        assert status_phrase(422) == "UNPROCESSABLE ENTITY"
        assert status_phrase(508) == "LOOP DETECTED"

    def test_unknown(self) -> None:
        assert status_phrase(599) == "UNKNOWN ERROR"


class TestHierarchy:
    def test_all_are_facet_errors(self) -> None:
        for error in (NotFound(), ValidationFailed(), PropertiesNotFound(("x",))):
            assert isinstance(error, ApiError)
            assert isinstance(error, HTTPError)
            assert isinstance(error, FacetError)

    def test_upload_error_reason(self) -> None:
        error = UploadError("too big", UploadReason.TOO_LARGE)
        assert str(error) == "too big"
        assert error.reason == "ERROR_UPLOAD_TOO_LARGE"

    def test_str(self) -> None:
        assert str(HTTPError(status=418)) == "418"
        assert str(HTTPError(status=400, detail="Bad")) == "400: Bad"

    def test_frozen(self) -> None:
        error = ApiError(status=400)
        with pytest.raises(AttributeError):
            error.status = 500  # type: ignore[misc]


class TestDocuments:
    def test_http_error(self) -> None:
        assert HTTPError(status=400, detail="Bad").document() == {
            "code": 400,
            "error": "BAD REQUEST",
            "message": "Bad",
            "properties": [],
        }

    def test_unknown_message(self) -> None:
        assert ApiError(status=409).document()["message"] == "Unknown error"

    def test_properties_copied(self) -> None:
        error = ApiError(status=422, detail="Nope", properties=(ENTRY,))
        document = error.document()
        assert document["properties"] == [ENTRY]
        assert document["properties"][0] is not ENTRY

    def test_not_found(self) -> None:
        document = NotFound().document()
        assert document["code"] == 404
        assert document["message"] == ERROR_NO_HANDLER

    def test_validation_failed(self) -> None:
        error = ValidationFailed((ENTRY,))
        assert error.status == 422
        assert error.document()["message"] == ERROR_SCHEMA
        assert error.document()["properties"] == [ENTRY]

    def test_properties_not_found(self) -> None:
        error = PropertiesNotFound(("phone",))
        assert error.status == 404
        assert error.missing == ("phone",)
        assert error.document()["message"] == ERROR_PROPS_NOT_FOUND

    def test_invalid_result_hides_validator_messages(self) -> None:
        error = InvalidResult(status=500, detail="Bad result", errors=("age: -1 is less than 0",))
        assert "errors" not in error.document()
        assert error.errors == ("age: -1 is less than 0",)
