"""Tests for response parsing and local file lookup."""

import pytest

from filebin.exceptions import MalformedResponseError
from filebin.models import parse_upload_response
from filebin.session import BinSession
from filebin.types import EncryptedUpload, FileRecord
from tests.conftest import bin_payload, file_payload


@pytest.fixture
def offline_session(transport):
    """Session built without any request."""
    def factory(payload):
        return BinSession.from_service_response("bin1", payload, transport=transport)
    return factory


class TestFromServiceResponse:
    """Building session state from GET /{bin} payloads."""

    def test_all_fields_mapped(self, offline_session):
        session = offline_session(bin_payload(readonly=True, files={"a.txt": b"abc"}))

        assert session.readonly is True
        assert session.size == 3
        assert session.created_at_relative == "an hour ago"
        assert session.expired_at == "2026-10-25T09:00:00.000000Z"

        record = session.files[0]
        assert record.bin_id == "bin1"
        assert record.filename == "a.txt"
        assert record.content_type == "application/octet-stream"
        assert record.size == 3
        assert record.md5 == "900150983cd24fb0d6963f7d28e17f72"

    def test_server_order_preserved(self, offline_session):
        files = {"zeta": b"1", "alpha": b"2", "mid": b"3"}

        session = offline_session(bin_payload(files=files))

        assert [f.filename for f in session.files] == ["zeta", "alpha", "mid"]

    def test_missing_files_field_gives_empty_list(self, offline_session):
        payload = bin_payload()
        del payload["files"]

        session = offline_session(payload)

        assert session.files == []

    def test_null_files_field_gives_empty_list(self, offline_session):
        payload = bin_payload()
        payload["files"] = None

        assert offline_session(payload).files == []

    def test_missing_bin_field(self, offline_session):
        with pytest.raises(MalformedResponseError):
            offline_session({"files": []})

    def test_wrong_field_type(self, offline_session):
        payload = bin_payload()
        payload["bin"]["bytes"] = "a lot"

        with pytest.raises(MalformedResponseError):
            offline_session(payload)

    @pytest.mark.parametrize("field,value", [
        ("readonly", "yes"),
        ("readonly", 1),
        ("bytes", "12"),
        ("bytes", 12.0),
    ])
    def test_loosely_typed_bin_fields_rejected(self, offline_session, field, value):
        session = offline_session(bin_payload(files={"a.txt": b"a"}))
        payload = bin_payload()
        payload["bin"][field] = value

        with pytest.raises(MalformedResponseError):
            session.load_service_response(payload)

        assert session.readonly is False
        assert session.size == 1

    def test_string_file_size_rejected(self, offline_session):
        payload = bin_payload(files={"a.txt": b"abc"})
        payload["files"][0]["bytes"] = "3"

        with pytest.raises(MalformedResponseError):
            offline_session(payload)

    def test_file_without_filename(self, offline_session):
        payload = bin_payload(files={"a.txt": b"a"})
        del payload["files"][0]["filename"]

        with pytest.raises(MalformedResponseError):
            offline_session(payload)

    def test_failed_reload_keeps_previous_state(self, offline_session):
        session = offline_session(bin_payload(files={"a.txt": b"a"}))

        with pytest.raises(MalformedResponseError):
            session.load_service_response({"bin": None})

        assert [f.filename for f in session.files] == ["a.txt"]

    def test_reload_replaces_instead_of_merging(self, offline_session):
        session = offline_session(bin_payload(files={"a.txt": b"a"}))

        session.load_service_response(bin_payload(files={"b.txt": b"b"}))

        assert [f.filename for f in session.files] == ["b.txt"]


class TestGetFile:
    """Lookup by filename, MD5 or SHA-256."""

    def test_lookup_by_each_identifier(self, offline_session):
        session = offline_session(bin_payload(files={"a.txt": b"a", "b.txt": b"b"}))
        target = session.files[1]

        assert session.get_file("b.txt") is target
        assert session.get_file(target.md5) is target
        assert session.get_file(target.sha256) is target

    def test_no_match_returns_none(self, offline_session):
        session = offline_session(bin_payload(files={"a.txt": b"a"}))

        assert session.get_file("missing") is None

    def test_first_match_in_list_order_wins(self, offline_session):
        payload = bin_payload(files={"first": b"x", "second": b"y"})
        payload["files"][1]["filename"] = payload["files"][0]["md5"]
        session = offline_session(payload)

        assert session.get_file(payload["files"][0]["md5"]).filename == "first"


class TestRecords:
    """Value record behaviour."""

    def test_file_record_is_immutable(self):
        record = FileRecord.from_payload("bin1", parse_upload_response({"file": file_payload("a", b"a")}).file)

        with pytest.raises(AttributeError):
            record.size = 10

    def test_upload_response_requires_file(self):
        with pytest.raises(MalformedResponseError):
            parse_upload_response({"bin": {}})

    def test_encrypted_upload_repr_hides_key_material(self):
        record = FileRecord.from_payload("bin1", parse_upload_response({"file": file_payload("a", b"a")}).file)
        result = EncryptedUpload(file=record, key=b"K" * 32, iv=b"I" * 16, algorithm="aes-256-cbc")

        assert "KKKK" not in repr(result)
        assert "IIII" not in repr(result)
