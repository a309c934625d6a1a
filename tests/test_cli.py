import json

import pytest
import requests

import fetch_companies
from bitrix_export.bitrix_client import BitrixClient
from conftest import FakeResponse, FakeSession, page


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _patch_session(monkeypatch, *responses):
    session = FakeSession(list(responses))

    def factory(webhook_url, timeout_ms=30000):
        return BitrixClient(webhook_url, timeout_ms=timeout_ms, session=session)

    monkeypatch.setattr(fetch_companies, "BitrixClient", factory)
    return session


def test_test_mode_writes_sample_snapshot(workdir, capsys):
    assert fetch_companies.main(["--test"]) == 0

    snapshot = json.loads((workdir / "test_output.json").read_text(encoding="utf-8"))
    assert snapshot["meta"]["totalCompanies"] == 2
    assert [row["ID"] for row in snapshot["data"]] == ["1", "2"]
    assert "Test 1" in capsys.readouterr().out


def test_missing_webhook_exits_non_zero(workdir, capsys):
    assert fetch_companies.main([]) == 1

    assert "Webhook URL is required" in capsys.readouterr().err


def test_malformed_webhook_exits_non_zero(workdir, capsys, monkeypatch):
    session = _patch_session(monkeypatch)

    assert fetch_companies.main(["portal.bitrix24.ru/rest/1/x/"]) == 1

    assert "http://" in capsys.readouterr().err
    assert session.calls == []


def test_live_run_saves_companies(workdir, monkeypatch, webhook_url):
    session = _patch_session(monkeypatch, page(50), page(50, 50), page(30, 100))

    assert fetch_companies.main([webhook_url]) == 0

    snapshot = json.loads((workdir / "bitrix_companies.json").read_text(encoding="utf-8"))
    assert snapshot["meta"]["totalCompanies"] == 130
    assert len(session.calls) == 3


def test_webhook_from_environment(workdir, monkeypatch, webhook_url):
    monkeypatch.setenv("BITRIX_WEBHOOK_URL", webhook_url)
    _patch_session(monkeypatch, page(3))

    assert fetch_companies.main(["--output", "exports/companies.json"]) == 0

    assert (workdir / "exports" / "companies.json").exists()


def test_empty_result_writes_nothing(workdir, monkeypatch, webhook_url, capsys):
    _patch_session(monkeypatch, page(0))

    assert fetch_companies.main([webhook_url]) == 0

    assert not (workdir / "bitrix_companies.json").exists()
    assert "No companies found" in capsys.readouterr().out


def test_access_denied_exits_non_zero(workdir, monkeypatch, webhook_url, capsys):
    body = {"error": "ERROR_ACCESS_DENIED", "error_description": "Access denied"}
    _patch_session(monkeypatch, FakeResponse(body))

    assert fetch_companies.main([webhook_url]) == 1

    err = capsys.readouterr().err
    assert "Code: ERROR_ACCESS_DENIED" in err
    assert not (workdir / "bitrix_companies.json").exists()


def test_network_failure_exits_non_zero(workdir, monkeypatch, webhook_url, capsys):
    _patch_session(monkeypatch, page(50), requests.ConnectionError("refused"))

    assert fetch_companies.main([webhook_url]) == 1

    assert "could not connect" in capsys.readouterr().err
    assert not (workdir / "bitrix_companies.json").exists()


def test_partial_result_is_still_saved(workdir, monkeypatch, webhook_url, capsys):
    _patch_session(monkeypatch, page(50), FakeResponse({"unexpected": True}))

    assert fetch_companies.main([webhook_url]) == 0

    snapshot = json.loads((workdir / "bitrix_companies.json").read_text(encoding="utf-8"))
    assert snapshot["meta"]["totalCompanies"] == 50
    assert "malformed response" in capsys.readouterr().out


def test_failed_write_does_not_fail_run(workdir, monkeypatch, webhook_url, capsys):
    (workdir / "blocker").write_text("x", encoding="utf-8")
    _patch_session(monkeypatch, page(2))

    assert fetch_companies.main([webhook_url, "--output", "blocker/companies.json"]) == 0

    captured = capsys.readouterr()
    assert "could not save" in captured.err
    assert "Total companies: 2" in captured.out


def test_null_body_exits_non_zero(workdir, monkeypatch, webhook_url, capsys):
    _patch_session(monkeypatch, FakeResponse(text="null"))

    assert fetch_companies.main([webhook_url]) == 1

    assert "Code: empty_response" in capsys.readouterr().err
    assert not (workdir / "bitrix_companies.json").exists()


def test_non_mapping_records_are_displayed_with_placeholder(workdir, monkeypatch, webhook_url, capsys):
    _patch_session(monkeypatch, FakeResponse({"result": ["a", None]}))

    assert fetch_companies.main([webhook_url]) == 0

    out = capsys.readouterr().out
    assert "1. <unrecognized record: 'a'>" in out
    assert "2. <unrecognized record: None>" in out
    snapshot = json.loads((workdir / "bitrix_companies.json").read_text(encoding="utf-8"))
    assert snapshot["data"] == ["a", None]
