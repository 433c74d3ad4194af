from io import BytesIO

import pandas as pd
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pm_tracker.models.models import User
from pm_tracker.services.machines import PmMachineStore

from .helpers import machine_data, xlsx_bytes

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def create(client, id_msn, **overrides):
    resp = client.post("/pm-machines", json=machine_data(id_msn, **overrides))
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestAuth:
    @pytest.mark.parametrize(
        "method, path",
        [
            ("get", "/pm-machines"),
            ("get", "/pm-machines/MSN-1"),
            ("post", "/pm-machines"),
            ("put", "/pm-machines/MSN-1"),
            ("delete", "/pm-machines/MSN-1"),
            ("get", "/pm-machines/export/excel"),
            ("post", "/pm-machines/import/excel"),
            ("get", "/machine-notes/MSN-1"),
            ("post", "/machine-notes"),
        ],
    )
    def test_requires_a_token(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401

    def test_rejects_a_bad_token(self, client):
        resp = client.get("/pm-machines", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid token"

    def test_login_and_me(self, client, user):
        resp = client.post("/auth/login", json={"identifier": "operator", "password": "operator-pass"})
        assert resp.status_code == 200
        tokens = resp.json()
        me = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "operator"

    def test_wrong_password(self, client, user):
        resp = client.post("/auth/login", json={"identifier": "operator", "password": "nope"})
        assert resp.status_code == 401

    def test_refresh_token_cannot_be_used_for_access(self, client, user):
        tokens = client.post("/auth/login", json={"identifier": "operator", "password": "operator-pass"}).json()
        resp = client.get("/pm-machines", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert resp.status_code == 401

        renewed = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})
        assert renewed.status_code == 200
        assert client.get(
            "/pm-machines", headers={"Authorization": f"Bearer {renewed.json()['access_token']}"}
        ).status_code == 200

    def test_refresh_refused_for_deactivated_user(self, client, user, database):
        tokens = client.post("/auth/login", json={"identifier": "operator", "password": "operator-pass"}).json()
        session = database.session()
        try:
            session.query(User).filter(User.id == user.id).update({"is_active": False})
            session.commit()
        finally:
            session.close()

        resp = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})

        assert resp.status_code == 401
        assert resp.json()["message"] == "User not active"

    def test_refresh_refused_for_removed_user(self, client, user, database):
        tokens = client.post("/auth/login", json={"identifier": "operator", "password": "operator-pass"}).json()
        session = database.session()
        try:
            session.query(User).filter(User.id == user.id).delete()
            session.commit()
        finally:
            session.close()

        resp = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})

        assert resp.status_code == 401

    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestMachines:
    def test_create_returns_camel_case_record(self, auth_client):
        body = create(auth_client, "MSN-1", periodePM="Januari 2024", status="Done")

        assert body["idMsn"] == "MSN-1"
        assert body["no"] == 1
        assert body["status"] == "Outstanding"
        assert body["periodePM"] == "Januari 2024"
        assert body["tglSelesaiPM"] is None
        assert "createdAt" in body and "updatedAt" in body

    def test_create_validation_error(self, auth_client):
        resp = auth_client.post("/pm-machines", json={"idMsn": "MSN-1", "alamat": "x", "pengelola": "y"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid data"
        assert any("teknisi" in e["loc"] for e in body["errors"])

    def test_create_blank_required_field(self, auth_client):
        resp = auth_client.post("/pm-machines", json=machine_data("MSN-1", alamat="   "))
        assert resp.status_code == 400

    def test_create_duplicate(self, auth_client):
        create(auth_client, "MSN-1")
        resp = auth_client.post("/pm-machines", json=machine_data("MSN-1", alamat="other"))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Machine with this ID already exists"
        assert len(auth_client.get("/pm-machines").json()) == 1

    def test_get_one_and_missing(self, auth_client):
        create(auth_client, "MSN-1")
        assert auth_client.get("/pm-machines/MSN-1").json()["idMsn"] == "MSN-1"
        resp = auth_client.get("/pm-machines/MSN-404")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Machine not found"

    def test_list_and_search(self, auth_client):
        create(auth_client, "MSN-1", pengelola="Bank Mandiri")
        create(auth_client, "MSN-2", pengelola="BRI")
        create(auth_client, "MSN-3", pengelola="Mandiri Syariah")

        assert [m["no"] for m in auth_client.get("/pm-machines").json()] == [1, 2, 3]
        found = auth_client.get("/pm-machines", params={"search": "mandiri"}).json()
        assert [m["idMsn"] for m in found] == ["MSN-1", "MSN-3"]

    def test_put_merges_partial_fields(self, auth_client):
        create(auth_client, "MSN-1")
        resp = auth_client.put("/pm-machines/MSN-1", json={"teknisi": "Andi"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["teknisi"] == "Andi"
        assert body["alamat"] == "Jl. Sudirman MSN-1"

    def test_put_drives_status_like_the_ui(self, auth_client):
        create(auth_client, "MSN-1")
        done = auth_client.put("/pm-machines/MSN-1", json={"tglSelesaiPM": "2024-06-01", "status": "Done"}).json()
        assert done["status"] == "Done"
        reopened = auth_client.put("/pm-machines/MSN-1", json={"periodePM": "Juli 2024", "status": "Outstanding"}).json()
        assert reopened["status"] == "Outstanding"
        assert reopened["periodePM"] == "Juli 2024"

    def test_put_rejects_null_required_field_and_bad_status(self, auth_client):
        create(auth_client, "MSN-1")
        assert auth_client.put("/pm-machines/MSN-1", json={"alamat": None}).status_code == 400
        assert auth_client.put("/pm-machines/MSN-1", json={"status": "Broken"}).status_code == 400

    def test_put_missing(self, auth_client):
        assert auth_client.put("/pm-machines/MSN-404", json={"teknisi": "x"}).status_code == 404

    def test_delete_resets_by_default(self, auth_client):
        create(auth_client, "MSN-1", periodePM="Mei 2024")
        auth_client.post("/pm-machines/MSN-1/complete", json={"tglSelesaiPM": "2024-05-30"})

        resp = auth_client.delete("/pm-machines/MSN-1")

        assert resp.status_code == 200
        assert resp.json()["message"] == "Machine data deleted successfully"
        body = auth_client.get("/pm-machines/MSN-1").json()
        assert body["periodePM"] is None
        assert body["tglSelesaiPM"] is None
        assert body["status"] == "Outstanding"
        assert body["no"] == 1

    def test_delete_all_removes_the_row(self, auth_client):
        create(auth_client, "MSN-1")
        create(auth_client, "MSN-2")

        resp = auth_client.delete("/pm-machines/MSN-2", params={"deleteAll": "true"})

        assert resp.status_code == 200
        assert auth_client.get("/pm-machines/MSN-2").status_code == 404
        assert create(auth_client, "MSN-3")["no"] == 3

    @pytest.mark.parametrize("delete_all", ["true", "false"])
    def test_delete_missing(self, auth_client, delete_all):
        resp = auth_client.delete("/pm-machines/MSN-404", params={"deleteAll": delete_all})
        assert resp.status_code == 404


def failing_commit(self):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


class TestStorageFailures:
    def test_failed_create_is_a_500_and_leaves_nothing_behind(self, auth_client, monkeypatch):
        monkeypatch.setattr(Session, "commit", failing_commit)

        resp = auth_client.post("/pm-machines", json=machine_data("MSN-1"))

        assert resp.status_code == 500
        assert resp.json() == {"message": "Unexpected storage error"}
        monkeypatch.undo()
        assert auth_client.get("/pm-machines").json() == []
        assert create(auth_client, "MSN-1")["no"] == 1

    def test_failed_update_is_rolled_back(self, auth_client, monkeypatch):
        create(auth_client, "MSN-1")
        monkeypatch.setattr(Session, "commit", failing_commit)

        resp = auth_client.put("/pm-machines/MSN-1", json={"teknisi": "Andi"})

        assert resp.status_code == 500
        assert resp.json() == {"message": "Unexpected storage error"}
        monkeypatch.undo()
        assert auth_client.get("/pm-machines/MSN-1").json()["teknisi"] == "Budi"

    def test_failed_read_is_a_500(self, auth_client, monkeypatch):
        def failing_search(self, query):
            raise OperationalError("SELECT", {}, Exception("no such table: pm_machines"))

        monkeypatch.setattr(PmMachineStore, "search", failing_search)

        resp = auth_client.get("/pm-machines")

        assert resp.status_code == 500
        assert resp.json() == {"message": "Unexpected storage error"}


class TestLifecycle:
    def test_complete_and_reschedule(self, auth_client):
        create(auth_client, "MSN-1", periodePM="Mei 2024")

        done = auth_client.post("/pm-machines/MSN-1/complete", json={"tglSelesaiPM": "2024-05-30"})
        assert done.status_code == 200
        assert done.json()["status"] == "Done"
        assert done.json()["tglSelesaiPM"] == "2024-05-30"

        again = auth_client.post("/pm-machines/MSN-1/reschedule", json={"periodePM": "Juni 2024"})
        assert again.status_code == 200
        assert again.json()["status"] == "Outstanding"
        assert again.json()["periodePM"] == "Juni 2024"
        assert again.json()["tglSelesaiPM"] == "2024-05-30"

    def test_complete_requires_date(self, auth_client):
        create(auth_client, "MSN-1")
        assert auth_client.post("/pm-machines/MSN-1/complete", json={"tglSelesaiPM": ""}).status_code == 400
        assert auth_client.post("/pm-machines/MSN-1/complete", json={}).status_code == 400

    def test_reschedule_missing_machine(self, auth_client):
        resp = auth_client.post("/pm-machines/MSN-404/reschedule", json={"periodePM": "Juni"})
        assert resp.status_code == 404


class TestSpreadsheets:
    def test_export(self, auth_client):
        create(auth_client, "MSN-1", pengelola="BCA")
        create(auth_client, "MSN-2", pengelola="BRI")

        resp = auth_client.get("/pm-machines/export/excel", params={"search": "bca"})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == XLSX
        assert resp.headers["content-disposition"] == "attachment; filename=pm-data.xlsx"
        frame = pd.read_excel(BytesIO(resp.content), sheet_name="PM Data", dtype=str)
        assert list(frame["Id Msn"]) == ["MSN-1"]

    def test_import(self, auth_client):
        create(auth_client, "MSN-1", alamat="old")
        content = xlsx_bytes([
            {"Id Msn": "MSN-1", "Alamat": "new", "Pengelola": "BCA", "Teknisi": "Budi"},
            {"Id Msn": "MSN-2", "Alamat": "x", "Pengelola": "BCA"},
            {"Id Msn": "MSN-3", "Alamat": "y", "Pengelola": "BCA", "Teknisi": "Andi"},
        ])

        resp = auth_client.post(
            "/pm-machines/import/excel",
            files={"file": ("pm.xlsx", content, XLSX)},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["imported"] == 2
        assert body["message"] == "Import completed. 2 machines processed."
        assert len(body["errors"]) == 1
        assert body["errors"][0].startswith("Row 2: ")
        machines = auth_client.get("/pm-machines").json()
        assert [(m["idMsn"], m["no"]) for m in machines] == [("MSN-1", 1), ("MSN-3", 2)]
        assert machines[0]["alamat"] == "new"

    def test_import_without_file(self, auth_client):
        resp = auth_client.post("/pm-machines/import/excel")
        assert resp.status_code == 400
        assert resp.json()["message"] == "No file uploaded"

    def test_import_unreadable_file(self, auth_client):
        resp = auth_client.post(
            "/pm-machines/import/excel",
            files={"file": ("pm.xlsx", b"garbage", XLSX)},
        )
        assert resp.status_code == 400

    def test_import_too_large(self, auth_client, app):
        app.state.settings.import_max_bytes = 10
        resp = auth_client.post(
            "/pm-machines/import/excel",
            files={"file": ("pm.xlsx", xlsx_bytes([{"Id Msn": "A"}]), XLSX)},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Uploaded file is too large"


class TestNotes:
    def test_placeholder_then_upsert(self, auth_client):
        empty = auth_client.get("/machine-notes/MSN-1")
        assert empty.status_code == 200
        assert empty.json()["content"] == ""
        assert empty.json()["idMsn"] == "MSN-1"

        saved = auth_client.post("/machine-notes", json={"idMsn": "MSN-1", "content": "ganti filter"})
        assert saved.status_code == 200
        assert saved.json()["content"] == "ganti filter"

        auth_client.post("/machine-notes", json={"idMsn": "MSN-1", "content": "filter sudah diganti"})
        assert auth_client.get("/machine-notes/MSN-1").json()["content"] == "filter sudah diganti"

    def test_note_requires_id(self, auth_client):
        resp = auth_client.post("/machine-notes", json={"content": "x"})
        assert resp.status_code == 400
