"""End-to-end tests for the HTTP surface using FastAPI's TestClient."""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DB_URL", "sqlite://")

from qrgen import create_app
from qrgen.core.config import AppSettings
from qrgen.core.errors import StorageUnavailable
from qrgen.core.security import hash_password
from qrgen.crud.records import list_records, record_table
from qrgen.crud.tables import TableName
from qrgen.db.session import Storage

COOKIE = "qrgen.sid"


def make_settings(**overrides) -> AppSettings:
    values = {
        "DB_URL": "sqlite://",
        "SESSION_SECRET": "test-secret",
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD_HASH": hash_password("s3cret", rounds=4),
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture()
def storage():
    storage = Storage.from_url("sqlite://")
    try:
        yield storage
    finally:
        storage.dispose()


@pytest.fixture()
def client(storage):
    app = create_app(make_settings(), storage=storage)
    with TestClient(app) as client:
        yield client


def _submit(client, **fields):
    data = {"table": "it", "lp_no": "LP1", "items": "Widget", "issue_voucher_number": "V1"}
    data.update(fields)
    return client.post("/form", data=data, follow_redirects=False)


def _login(client, password="s3cret"):
    return client.post("/admin/login", data={"username": "admin", "password": password}, follow_redirects=False)


def _rows(storage, table="it"):
    with storage.session() as db:
        return list_records(db, TableName(table))


def test_startup_creates_default_table(storage, client):
    assert _rows(storage) == []


def test_root_redirects_to_form(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/form"
    assert client.get("/form").status_code == 200


def test_form_submission_round_trip(client):
    response = _submit(client)
    assert response.status_code == 302
    assert response.headers["location"] == "/success/1?table=it"

    page = client.get(response.headers["location"])
    assert page.status_code == 200
    assert "data:image/png;base64," in page.text
    assert "http://testserver/api/item/1" in page.text

    item = client.get("/api/item/1")
    assert item.status_code == 200
    assert item.json() == {"s_no": 1, "lp_no": "LP1", "items": "Widget", "issue_voucher_number": "V1"}


def test_empty_table_is_a_validation_error(storage, client):
    response = _submit(client, table="")
    assert response.status_code == 400
    assert "All fields are required." in response.text
    assert _rows(storage) == []


def test_missing_field_is_a_validation_error(storage, client):
    response = client.post("/form", data={"table": "it", "lp_no": "LP1"}, follow_redirects=False)
    assert response.status_code == 400
    assert "All fields are required." in response.text
    assert _rows(storage) == []


def test_unknown_table_rerenders_form(storage, client):
    response = _submit(client, table="it; DROP TABLE it")
    assert response.status_code == 400
    assert "not found" in response.text
    assert _rows(storage) == []


def test_storage_failure_hides_backend_error(storage, client):
    with storage.engine.begin() as conn:
        conn.execute(text("CREATE TABLE broken (id INTEGER PRIMARY KEY)"))

    response = _submit(client, table="broken")
    assert response.status_code == 500
    assert "Database error." in response.text
    assert "no column" not in response.text


def test_success_view_for_other_table(storage, client):
    record_table(TableName("stock")).create(storage.engine)
    response = _submit(client, table="stock", lp_no="LP7")
    assert response.headers["location"] == "/success/1?table=stock"
    page = client.get(response.headers["location"])
    assert page.status_code == 200
    assert "LP7" in page.text


def test_success_view_not_found(client):
    assert client.get("/success/42").status_code == 404
    assert client.get("/success/1?table=nope").status_code == 404


def test_api_item_only_reads_fixed_table(storage, client):
    record_table(TableName("stock")).create(storage.engine)
    _submit(client, table="stock")

    response = client.get("/api/item/1")
    assert response.status_code == 404
    assert response.json() == {"code": "not_found", "message": "Not found"}


def test_admin_requires_login(client):
    response = client.get("/admin", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login"


def test_admin_login_failure(client):
    response = _login(client, password="wrong")
    assert response.status_code == 401
    assert "Invalid credentials" in response.text
    assert client.get("/admin", follow_redirects=False).status_code == 302


def test_admin_lists_records_with_qr_codes(client):
    _submit(client, lp_no="LP1")
    _submit(client, lp_no="LP2")

    response = _login(client)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin"

    panel = client.get("/admin")
    assert panel.status_code == 200
    assert panel.text.index("LP1") < panel.text.index("LP2")
    # Two rows, each with a thumbnail and a high-resolution image
    assert panel.text.count("data:image/png;base64,") == 4
    assert "http://testserver/api/item/2" in panel.text


def test_admin_unknown_table_lists_available(client):
    _login(client)
    response = client.get("/admin", params={"table": "nonexistent"})
    assert response.status_code == 404
    assert response.text == "Table 'nonexistent' not found. Available tables: it"


def test_logout_invalidates_replayed_cookie(client):
    _login(client)
    old_cookie = client.cookies.get(COOKIE)
    assert client.get("/admin").status_code == 200

    response = client.post("/admin/logout", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login"
    assert client.get("/admin", follow_redirects=False).status_code == 302

    with TestClient(client.app, cookies={COOKIE: old_cookie}) as replay:
        assert replay.get("/admin", follow_redirects=False).status_code == 302


def test_login_page_redirects_when_signed_in(client):
    assert client.get("/admin/login").status_code == 200
    _login(client)
    response = client.get("/admin/login", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin"


def test_responses_carry_request_id_and_security_headers(client):
    response = client.get("/form", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert "img-src 'self' data:" in response.headers["Content-Security-Policy"]


def test_unreachable_database_aborts_startup(tmp_path):
    missing = tmp_path / "no-such-dir" / "qr.db"
    storage = Storage.from_url(f"sqlite:///{missing}")
    with pytest.raises(StorageUnavailable):
        create_app(make_settings(), storage=storage)


def test_default_table_not_created_when_disabled(storage):
    create_app(make_settings(CREATE_DEFAULT_TABLE=False), storage=storage)
    with storage.engine.connect() as conn:
        names = conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'")).scalars().all()
    assert "it" not in names


@pytest.mark.parametrize("s_no", ["99999999999999999999", "0", "-3", "abc"])
def test_impossible_ids_are_not_found(client, s_no):
    _submit(client)

    api = client.get(f"/api/item/{s_no}")
    assert api.status_code == 404
    assert api.json() == {"code": "not_found", "message": "Not found"}

    page = client.get(f"/success/{s_no}")
    assert page.status_code == 404
    assert page.text == "Not found"


def test_largest_valid_id_is_a_plain_miss(client):
    response = client.get(f"/api/item/{2**63 - 1}")
    assert response.status_code == 404
    assert response.json() == {"code": "not_found", "message": "Not found"}


def test_form_prefills_configured_default_table(storage):
    record_table(TableName("stock")).create(storage.engine)
    app = create_app(make_settings(DEFAULT_TABLE="stock"), storage=storage)
    with TestClient(app) as client:
        page = client.get("/form")
    assert 'name="table" value="stock"' in page.text


def test_templates_come_from_app_settings(storage, tmp_path):
    (tmp_path / "form.html").write_text("custom form for {{ default_table }}", encoding="utf-8")
    app = create_app(make_settings(TEMPLATES_DIR=str(tmp_path)), storage=storage)
    with TestClient(app) as client:
        page = client.get("/form")
    assert page.status_code == 200
    assert page.text == "custom form for it"
