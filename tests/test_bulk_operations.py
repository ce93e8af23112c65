from datetime import datetime

import pytest

import services.damage_report_service as damage_report_service
from models.audit_log import AuditLog
from models.damage_report import DamageReport, DamageStatus
from models.user import Role
from services.audit_service import AuditService

from conftest import make_user, new_id


def test_bulk_status_mixed_batch(client, db_session, make_report):
    a = make_report(DamageStatus.OPEN)
    b = make_report(DamageStatus.CUSTOMER_NOTIFIED)
    c = make_report(DamageStatus.CLOSED)

    response = client.post(
        "/api/damage-reports/bulk-status",
        json={"ids": [str(a.id), str(b.id), str(c.id)], "status": "DESTROY_STOCK"},
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["updated"] == 1
    assert data["skipped"] == [
        {"id": str(a.id), "reason": "Invalid status transition from OPEN to DESTROY_STOCK"},
        {"id": str(c.id), "reason": "Invalid status transition from CLOSED to DESTROY_STOCK"},
    ]

    db_session.expire_all()
    assert db_session.get(DamageReport, a.id).status == DamageStatus.OPEN
    assert db_session.get(DamageReport, b.id).status == DamageStatus.DESTROY_STOCK
    assert db_session.get(DamageReport, c.id).status == DamageStatus.CLOSED

    audited = db_session.query(AuditLog.entity_id).filter(AuditLog.action == AuditService.STATUS_CHANGE).all()
    assert [row.entity_id for row in audited] == [str(b.id)]


def test_bulk_status_unknown_and_malformed_ids_are_skipped(client, make_report):
    report = make_report(DamageStatus.OPEN)
    missing = new_id()

    response = client.post(
        "/api/damage-reports/bulk-status",
        json={"ids": [missing, "not-a-uuid", str(report.id)], "status": "CUSTOMER_NOTIFIED"},
    )

    data = response.json()["data"]
    assert data["updated"] == 1
    assert data["skipped"] == [
        {"id": missing, "reason": "Damage report not found"},
        {"id": "not-a-uuid", "reason": "Damage report not found"},
    ]


def test_bulk_status_audits_each_success_in_order(client, db_session, make_report):
    reports = [make_report(DamageStatus.OPEN) for _ in range(3)]

    client.post(
        "/api/damage-reports/bulk-status",
        json={"ids": [str(r.id) for r in reports], "status": "CUSTOMER_NOTIFIED", "note": "Batch call"},
    )

    entries = (
        db_session.query(AuditLog)
        .filter(AuditLog.action == AuditService.STATUS_CHANGE)
        .order_by(AuditLog.event_time.asc())
        .all()
    )
    assert [e.entity_id for e in entries] == [str(r.id) for r in reports]
    assert all(e.details["note"] == "Batch call" for e in entries)


@pytest.mark.parametrize("count", [0, 51])
def test_bulk_requests_outside_cap_are_rejected(client, count):
    ids = [new_id() for _ in range(count)]

    status_response = client.post(
        "/api/damage-reports/bulk-status", json={"ids": ids, "status": "CLOSED"}
    )
    archive_response = client.post("/api/damage-reports/bulk-archive", json={"ids": ids})

    assert status_response.status_code == 400
    assert archive_response.status_code == 400


def test_bulk_status_at_cap_is_accepted(client):
    ids = [new_id() for _ in range(50)]

    response = client.post("/api/damage-reports/bulk-status", json={"ids": ids, "status": "CLOSED"})

    assert response.status_code == 200
    assert len(response.json()["data"]["skipped"]) == 50


def test_bulk_archive_only_closed_reports(client, db_session, make_report):
    closed = make_report(DamageStatus.CLOSED)
    open_report = make_report(DamageStatus.OPEN)
    archived = make_report(DamageStatus.CLOSED, archived=True)
    missing = new_id()

    response = client.post(
        "/api/damage-reports/bulk-archive",
        json={"ids": [str(closed.id), str(open_report.id), str(archived.id), missing]},
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["archived"] == 1
    assert data["skipped"] == [
        {"id": str(open_report.id), "reason": "Report is not closed"},
        {"id": str(archived.id), "reason": "Already archived"},
        {"id": missing, "reason": "Damage report not found"},
    ]

    db_session.expire_all()
    refreshed = db_session.get(DamageReport, closed.id)
    assert refreshed.is_archived is True
    assert refreshed.archived_at is not None
    assert db_session.get(DamageReport, open_report.id).is_archived is False

    audited = db_session.query(AuditLog.entity_id).filter(AuditLog.action == AuditService.ARCHIVE).all()
    assert [row.entity_id for row in audited] == [str(closed.id)]


def test_second_archive_attempt_is_skipped(client, make_report):
    closed = make_report(DamageStatus.CLOSED)

    first = client.post("/api/damage-reports/bulk-archive", json={"ids": [str(closed.id)]})
    second = client.post("/api/damage-reports/bulk-archive", json={"ids": [str(closed.id)]})

    assert first.json()["data"] == {"archived": 1, "skipped": []}
    assert second.json()["data"] == {
        "archived": 0,
        "skipped": [{"id": str(closed.id), "reason": "Already archived"}],
    }


def test_repeated_id_in_one_archive_request(client, make_report):
    closed = make_report(DamageStatus.CLOSED)

    response = client.post(
        "/api/damage-reports/bulk-archive", json={"ids": [str(closed.id), str(closed.id)]}
    )

    assert response.json()["data"] == {
        "archived": 1,
        "skipped": [{"id": str(closed.id), "reason": "Duplicate id in request"}],
    }


def test_bulk_archive_audits_each_report_in_order(client, db_session, make_report):
    reports = [make_report(DamageStatus.CLOSED) for _ in range(3)]

    client.post("/api/damage-reports/bulk-archive", json={"ids": [str(r.id) for r in reports]})

    entries = (
        db_session.query(AuditLog)
        .filter(AuditLog.action == AuditService.ARCHIVE)
        .order_by(AuditLog.event_time.asc())
        .all()
    )
    assert [e.entity_id for e in entries] == [str(r.id) for r in reports]


@pytest.fixture
def archive_elsewhere_after_eligibility(db_session, monkeypatch):
    """Archive the given reports in between the eligibility pass and the UPDATE."""
    real_run_batch = damage_report_service.run_batch
    targets = []

    def run_batch_then_archive(*args, **kwargs):
        result = real_run_batch(*args, **kwargs)
        db_session.query(DamageReport).filter(DamageReport.id.in_(targets)).update(
            {DamageReport.is_archived: True, DamageReport.archived_at: datetime(2026, 1, 5, 9, 0)},
            synchronize_session=False,
        )
        db_session.commit()
        return result

    monkeypatch.setattr(damage_report_service, "run_batch", run_batch_then_archive)
    return targets


def test_report_archived_by_another_request_is_not_counted(
    client, db_session, make_report, archive_elsewhere_after_eligibility
):
    closed = make_report(DamageStatus.CLOSED)
    archive_elsewhere_after_eligibility.append(closed.id)

    response = client.post("/api/damage-reports/bulk-archive", json={"ids": [str(closed.id)]})

    assert response.status_code == 200, response.text
    assert response.json()["data"] == {
        "archived": 0,
        "skipped": [{"id": str(closed.id), "reason": "Already archived"}],
    }
    assert db_session.query(AuditLog).filter(AuditLog.action == AuditService.ARCHIVE).count() == 0


def test_lost_archive_race_keeps_skips_in_input_order(
    client, db_session, make_report, archive_elsewhere_after_eligibility
):
    raced = make_report(DamageStatus.CLOSED)
    open_report = make_report(DamageStatus.OPEN)
    closed = make_report(DamageStatus.CLOSED)
    archive_elsewhere_after_eligibility.append(raced.id)

    response = client.post(
        "/api/damage-reports/bulk-archive",
        json={"ids": [str(raced.id), str(open_report.id), str(closed.id)]},
    )

    assert response.json()["data"] == {
        "archived": 1,
        "skipped": [
            {"id": str(raced.id), "reason": "Already archived"},
            {"id": str(open_report.id), "reason": "Report is not closed"},
        ],
    }
    audited = db_session.query(AuditLog.entity_id).filter(AuditLog.action == AuditService.ARCHIVE).all()
    assert [row.entity_id for row in audited] == [str(closed.id)]


def test_archived_reports_hidden_from_default_list(client, make_report):
    make_report(DamageStatus.CLOSED, archived=True)
    visible = make_report(DamageStatus.OPEN)

    default_list = client.get("/api/damage-reports/").json()
    full_list = client.get("/api/damage-reports/", params={"include_archived": True}).json()

    assert [r["id"] for r in default_list["reports"]] == [str(visible.id)]
    assert full_list["total"] == 2


def test_list_filters_by_reporter(client, db_session, make_report, warehouse_user):
    make_report(DamageStatus.OPEN)
    clerk_report = make_report(DamageStatus.OPEN)
    clerk_report.reported_by = warehouse_user.id
    db_session.commit()

    response = client.get("/api/damage-reports/", params={"reported_by": str(warehouse_user.id)})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["total"] == 1
    assert [r["id"] for r in body["reports"]] == [str(clerk_report.id)]


class TestBulkPermissions:
    @pytest.fixture
    def current_user(self, db_session):
        return make_user(db_session, Role.WAREHOUSE_USER, "floorclerk")

    def test_warehouse_user_cannot_bulk_change(self, client):
        response = client.post(
            "/api/damage-reports/bulk-status", json={"ids": [new_id()], "status": "CLOSED"}
        )
        assert response.status_code == 403

    def test_warehouse_user_cannot_bulk_archive(self, client):
        response = client.post("/api/damage-reports/bulk-archive", json={"ids": [new_id()]})
        assert response.status_code == 403
