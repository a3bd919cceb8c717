import io

import openpyxl

from halaqah_monitor import models


def as_user(user_id):
    return {"X-User-Id": user_id}


def _rows(db, halaqah_id=None, year=2025, month=5):
    db.expire_all()
    q = db.query(models.Report).filter(models.Report.year == year, models.Report.month == month)
    if halaqah_id:
        q = q.filter(models.Report.halaqah_id == halaqah_id)
    return q.all()


def _section(content, sid="s1", title="Insight Utama"):
    return [{"id": sid, "title": title, "content": content}]


# ---------- auth ----------
def test_login_with_hashed_password(client, school):
    r = client.post("/auth/login", json={"email": "chairunnisa@sdq.com", "password": "password123"})
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == school["t1"]
    assert body["role"] == "Guru"
    assert "password" not in body


def test_login_wrong_password(client, school):
    r = client.post("/auth/login", json={"email": "chairunnisa@sdq.com", "password": "salah"})
    assert r.status_code == 401


def test_plaintext_credentials_never_authenticate(client, db, school):
    db.add(models.User(id="u-legacy", name="Lama", email="lama@sdq.com", password="password123", role="Guru"))
    db.commit()
    r = client.post("/auth/login", json={"email": "lama@sdq.com", "password": "password123"})
    assert r.status_code == 401


# ---------- snapshot ----------
def test_snapshot_requires_viewer(client, school):
    assert client.get("/snapshot").status_code == 401
    assert client.get("/snapshot", headers=as_user("nobody")).status_code == 401


def test_teacher_snapshot_is_scoped(client, school):
    r = client.get("/snapshot", headers=as_user(school["t1"]))
    assert r.status_code == 200
    classes = r.json()
    assert [c["id"] for c in classes] == ["k1"]
    assert [h["id"] for h in classes[0]["halaqah"]] == ["k1-h1"]


def test_coordinator_snapshot_is_complete(client, school):
    classes = client.get("/snapshot", headers=as_user(school["coord"])).json()
    assert [c["id"] for c in classes] == ["k1", "k2"]
    assert sum(len(c["halaqah"]) for c in classes) == 3


# ---------- saving ----------
def test_bulk_save_creates_rows_only_for_written_groups(client, db, school):
    h1, h2, h3 = school["halaqah"]
    body = {
        "year": 2025,
        "month": 5,
        "reports": {
            h1: {"main_insight": _section("Hafalan lancar")},
            h2: {"main_insight": _section("Perlu murajaah")},
            h3: {"main_insight": []},
        },
    }
    r = client.post("/reports/bulk", json=body, headers=as_user(school["coord"]))
    assert r.status_code == 200
    result = r.json()
    assert sorted(result["saved"]) == sorted([h1, h2])
    assert result["skipped"] == [h3]

    rows = _rows(db)
    assert sorted(row.halaqah_id for row in rows) == sorted([h1, h2])
    # attribution follows the halaqah assignment, not the coordinator
    assert {row.halaqah_id: row.teacher_id for row in rows} == {h1: school["t1"], h2: school["t2"]}


def test_bulk_resubmission_is_idempotent(client, db, school):
    h1 = school["halaqah"][0]
    body = {"year": 2025, "month": 5, "reports": {h1: {"main_insight": _section("Hafalan lancar")}}}
    for _ in range(2):
        assert client.post("/reports/bulk", json=body, headers=as_user(school["coord"])).status_code == 200
    rows = _rows(db, h1)
    assert len(rows) == 1
    assert rows[0].main_insight == _section("Hafalan lancar")


def test_resaving_identical_content_keeps_one_row(client, db, school):
    h1 = school["halaqah"][0]
    edit = {"halaqah_id": h1, "year": 2025, "month": 5, "main_insight": _section("Sama")}
    first = client.put("/reports", json=edit, headers=as_user(school["t1"]))
    second = client.put("/reports", json=edit, headers=as_user(school["t1"]))
    assert first.status_code == second.status_code == 200
    assert first.json()["report"]["id"] == second.json()["report"]["id"]
    rows = _rows(db, h1)
    assert len(rows) == 1
    assert rows[0].main_insight == _section("Sama")


def test_last_write_wins(client, db, school):
    h1 = school["halaqah"][0]
    for text in ("pertama", "kedua"):
        edit = {"halaqah_id": h1, "year": 2025, "month": 5, "main_insight": _section(text)}
        client.put("/reports", json=edit, headers=as_user(school["t1"]))
    rows = _rows(db, h1)
    assert len(rows) == 1
    assert rows[0].main_insight[0]["content"] == "kedua"


def test_save_normalizes_legacy_shapes(client, school):
    h1 = school["halaqah"][0]
    edit = {"halaqah_id": h1, "year": 2025, "month": 5, "student_segmentation": "teks bebas"}
    r = client.put("/reports", json=edit, headers=as_user(school["t1"]))
    sections = r.json()["report"]["student_segmentation"]
    assert len(sections) == 1
    assert sections[0]["title"] == "Segmentasi Murid"
    assert sections[0]["content"] == "teks bebas"


def test_only_teacher_sets_read_and_follow_up(client, db, school):
    h1 = school["halaqah"][0]
    edit = {"halaqah_id": h1, "year": 2025, "month": 5, "main_insight": _section("isi"),
            "is_read": True, "follow_up_status": "Sedang Berjalan", "teacher_notes": "dibaca"}

    r = client.put("/reports", json=edit, headers=as_user(school["coord"]))
    report = r.json()["report"]
    assert (report["is_read"], report["follow_up_status"], report["teacher_notes"]) == (False, "Belum Dimulai", "")

    r = client.put("/reports", json=edit, headers=as_user(school["t1"]))
    report = r.json()["report"]
    assert (report["is_read"], report["follow_up_status"], report["teacher_notes"]) == (True, "Sedang Berjalan", "dibaca")

    # a later coordinator edit keeps what the teacher set
    edit.update(is_read=False, follow_up_status="Butuh Diskusi", main_insight=_section("revisi"))
    client.put("/reports", json=edit, headers=as_user(school["coord"]))
    (row,) = _rows(db, h1)
    assert row.is_read is True
    assert row.follow_up_status == "Sedang Berjalan"
    assert row.main_insight[0]["content"] == "revisi"


def test_unknown_follow_up_status_is_rejected(client, db, school):
    h1 = school["halaqah"][0]
    edit = {"halaqah_id": h1, "year": 2025, "month": 5, "main_insight": _section("isi"),
            "follow_up_status": "Selesai"}
    assert client.put("/reports", json=edit, headers=as_user(school["t1"])).status_code == 200

    edit["follow_up_status"] = "selesai"
    assert client.put("/reports", json=edit, headers=as_user(school["t1"])).status_code == 422
    body = {"year": 2025, "month": 5, "reports": {h1: {"follow_up_status": "selesai"}}}
    assert client.post("/reports/bulk", json=body, headers=as_user(school["t1"])).status_code == 422

    (row,) = _rows(db, h1)
    assert row.follow_up_status == "Selesai"


def test_bulk_skips_coordinator_draft_with_only_teacher_fields(client, db, school):
    h1 = school["halaqah"][0]
    body = {"year": 2025, "month": 5, "reports": {h1: {"teacher_notes": "catatan", "is_read": True}}}
    r = client.post("/reports/bulk", json=body, headers=as_user(school["coord"]))
    assert r.status_code == 200
    assert r.json()["skipped"] == [h1]
    assert _rows(db, h1) == []


def test_save_to_deleted_halaqah_is_rejected(client, db, school):
    edit = {"halaqah_id": "ghost", "year": 2025, "month": 5, "main_insight": _section("x")}
    r = client.put("/reports", json=edit, headers=as_user(school["t1"]))
    assert r.status_code == 409
    assert _rows(db, "ghost") == []


def test_save_rejects_invalid_period(client, school):
    edit = {"halaqah_id": school["halaqah"][0], "year": 2025, "month": 0}
    assert client.put("/reports", json=edit, headers=as_user(school["t1"])).status_code == 400


def test_unsaved_period_returns_blank_draft(client, school):
    h1 = school["halaqah"][0]
    r = client.get(f"/reports/{h1}/2025/5", headers=as_user(school["t1"]))
    assert r.status_code == 200
    draft = r.json()
    assert draft["id"] == ""
    assert draft["main_insight"] == []
    assert draft["follow_up_status"] == "Belum Dimulai"


def test_legacy_row_is_served_normalized(client, db, school):
    h1 = school["halaqah"][0]
    db.add(models.Report(
        halaqah_id=h1, teacher_id=school["t1"], year=2025, month=4,
        main_insight='[{"id":"a","title":"X","content":"[{\\"content\\":\\"real text\\"}]"}]',
        next_month_target="Juz 29",
    ))
    db.commit()
    r = client.get(f"/reports/{h1}/2025/4", headers=as_user(school["t1"]))
    report = r.json()
    assert report["main_insight"] == [{"id": "a", "title": "X", "content": "real text"}]
    assert report["next_month_target"][0]["content"] == "Juz 29"
    assert report["next_month_target"][0]["title"] == "Target"


# ---------- summary / export ----------
def test_summary_counts_submitted_reports(client, school):
    h1, h2, _ = school["halaqah"]
    for h in (h1, h2):
        edit = {"halaqah_id": h, "year": 2025, "month": 5, "main_insight": _section("isi")}
        client.put("/reports", json=edit, headers=as_user(school["coord"]))
    r = client.get("/snapshot/summary?year=2025&month=5", headers=as_user(school["coord"]))
    summary = r.json()
    assert summary["total_halaqah"] == 3
    assert summary["total_students"] == 33
    assert summary["submitted"] == 2
    assert summary["read"] == 0


def test_resume_export(client, school):
    h1 = school["halaqah"][0]
    edit = {"halaqah_id": h1, "year": 2025, "month": 5, "main_insight": _section("isi"), "teacher_notes": "oke"}
    client.put("/reports", json=edit, headers=as_user(school["t1"]))

    r = client.get("/reports/resume.xlsx?year=2025&month=5", headers=as_user(school["coord"]))
    assert r.status_code == 200
    wb = openpyxl.load_workbook(io.BytesIO(r.content))
    rows = list(wb.active.iter_rows(values_only=True))
    assert rows[0][0] == "Periode"
    assert rows[1][:4] == ("Mei 2025", "Kelas 1 Abdullah ibnu Mas'ud", "Halaqah 1", "Ustadzah Chairunnisa")
    assert rows[1][6] == "oke"


# ---------- administration ----------
def test_admin_crud_requires_coordinator(client, school):
    r = client.post("/classes/", json={"name": "Kelas 3"}, headers=as_user(school["t1"]))
    assert r.status_code == 403


def test_class_and_halaqah_crud(client, school):
    headers = as_user(school["coord"])
    c = client.post("/classes/", json={"name": "Kelas 3 Ubay", "gender": "Akhwat"}, headers=headers).json()
    h = client.post("/halaqah/", json={"class_id": c["id"], "name": "Halaqah 1", "teacher_id": school["t1"],
                                        "student_count": 8}, headers=headers).json()
    assert h["teacher_ids"] == [school["t1"]]
    assert h["teacher_name"] == "Ustadzah Chairunnisa"

    h = client.patch(f"/halaqah/{h['id']}", json={"teacher_id": school["t2"]}, headers=headers).json()
    assert h["teacher_id"] == school["t2"]

    assert client.delete(f"/classes/{c['id']}", headers=headers).status_code == 200
    assert client.delete(f"/halaqah/{h['id']}", headers=headers).status_code == 404


def test_assigned_teacher_cannot_be_deleted(client, school):
    headers = as_user(school["coord"])
    assert client.delete(f"/users/{school['t1']}", headers=headers).status_code == 409

    new = client.post("/users/", json={"name": "Ustadz Baru", "email": "Baru@sdq.com", "password": "rahasia1"},
                      headers=headers).json()
    assert new["email"] == "baru@sdq.com"
    assert client.delete(f"/users/{new['id']}", headers=headers).status_code == 200


def test_duplicate_email_conflicts(client, school):
    body = {"name": "Kembar", "email": "dafa@sdq.com", "password": "rahasia1"}
    r = client.post("/users/", json=body, headers=as_user(school["coord"]))
    assert r.status_code == 409
