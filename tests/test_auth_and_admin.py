from models.damage_report import DamageStatus
from models.notification import Notification
from models.user import User
from services.auth_service import AuthService
from services.damage_report_service import DamageReportService


def test_login_returns_token_and_cookie(client, admin_user):
    response = client.post("/auth/login", data={"username": "ADMIN@example.com", "password": "Password123"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["role"] == "ADMIN"
    assert body["must_change_password"] is False
    assert AuthService.verify_token(body["access_token"])["sub"] == "admin@example.com"
    assert "access_token" in response.cookies


def test_login_rejects_bad_password(client, admin_user):
    response = client.post("/auth/login", data={"username": "admin@example.com", "password": "wrong"})
    assert response.status_code == 401


def test_change_password_clears_forced_change(client, db_session, admin_user):
    admin_user.must_change_password = True
    db_session.commit()

    response = client.post(
        "/auth/change-password",
        json={"current_password": "Password123", "new_password": "NewPassword456"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["must_change_password"] is False
    db_session.refresh(admin_user)
    assert AuthService.verify_password("NewPassword456", admin_user.hashed_password)


def test_admin_creates_user_with_forced_password_change(client, db_session):
    response = client.post(
        "/api/admin/users",
        json={
            "email": "Manager@Example.com",
            "username": "Shift_Lead",
            "first_name": "Sam",
            "last_name": "Lead",
            "password": "Welcome123",
            "role": "MANAGER",
        },
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["username"] == "shift_lead"
    assert body["role"] == "MANAGER"
    assert body["must_change_password"] is True

    duplicate = client.post(
        "/api/admin/users",
        json={"email": "other@example.com", "username": "shift_lead", "password": "Welcome123"},
    )
    assert duplicate.status_code == 409


def test_admin_cannot_deactivate_self(client, admin_user):
    response = client.post(f"/api/admin/users/{admin_user.id}/deactivate")
    assert response.status_code == 400


def test_admin_deactivates_user(client, db_session, warehouse_user):
    response = client.post(f"/api/admin/users/{warehouse_user.id}/deactivate")

    assert response.status_code == 200
    assert db_session.get(User, warehouse_user.id).is_active is False


def test_notifications_list_and_mark_read(client, db_session, admin_user, make_report):
    report = make_report(DamageStatus.OPEN)
    DamageReportService.change_status(report.id, DamageStatus.CUSTOMER_NOTIFIED, admin_user, db_session)

    listed = client.get("/api/notifications/", params={"unread_only": True})
    assert listed.status_code == 200
    notifications = listed.json()
    assert len(notifications) == 1
    assert notifications[0]["report_id"] == str(report.id)

    marked = client.post(f"/api/notifications/{notifications[0]['id']}/read")
    assert marked.json() == {"updated": 1}
    assert client.get("/api/notifications/", params={"unread_only": True}).json() == []
    assert db_session.query(Notification).filter(Notification.is_read.is_(True)).count() == 1
