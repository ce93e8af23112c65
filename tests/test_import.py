import io

import pytest
from fastapi import HTTPException

from models.audit_log import AuditLog
from models.customer import Customer
from models.product import Product
from models.user import User
from models.warehouse_location import WarehouseLocation
from services.audit_service import AuditService
from services.auth_service import AuthService
from services.import_service import parse_csv


def upload(client, path: str, text: str, filename: str = "import.csv", content_type: str = "text/csv"):
    files = {"file": (filename, io.BytesIO(text.encode("utf-8")), content_type)}
    return client.post(path, files=files)


def test_customer_import_reports_bad_rows_and_keeps_good_ones(client, db_session, customer):
    csv_text = (
        "name,code,email,phone,contactName\n"
        "Beta Retail,beta,ops@beta.com,,Jo\n"
        ",NONAME,,,\n"
        "Acme Again,acme,,,\n"
        "Gamma Foods,GAMMA,not-an-email,,\n"
    )

    response = upload(client, "/api/import/customers", csv_text)

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["created"] == 1
    assert [(e["row"], e["message"]) for e in data["errors"]] == [
        (3, "name is required"),
        (4, "Customer with code 'ACME' already exists"),
        (5, "Invalid email address"),
    ]
    assert data["errors"][0]["values"] == {
        "name": "", "code": "NONAME", "email": "", "phone": "", "contactName": "",
    }
    beta = db_session.query(Customer).filter(Customer.code == "BETA").one()
    assert beta.contact_name == "Jo"

    audited = db_session.query(AuditLog).filter(AuditLog.action == AuditService.CREATE).all()
    assert [(e.entity_type, e.entity_id) for e in audited] == [("Customer", str(beta.id))]
    assert audited[0].details["source"] == "csv_import"


def test_product_import_with_unknown_customer_creates_nothing(client, db_session, customer):
    csv_text = (
        "sku,name,customerCode,barcode,description,unitValue\n"
        "NEW-1,Widget,NOPE,,,\n"
    )

    response = upload(client, "/api/import/products", csv_text)

    data = response.json()["data"]
    assert data["created"] == 0
    assert data["errors"][0]["row"] == 2
    assert data["errors"][0]["message"] == "Customer with code 'NOPE' not found"
    assert db_session.query(Product).count() == 0


def test_product_import_rules(client, db_session, customer, product):
    csv_text = (
        "sku,name,customerCode,barcode,description,unitValue\n"
        "sku-2,Tinned Peas,acme,600100,,4.75\n"
        "SKU-1,Duplicate Beans,ACME,,,\n"
        "SKU-3,Bad Value,ACME,,,-1\n"
        "SKU-4,Not Numeric,ACME,,,abc\n"
        "SKU-5,No Value,ACME,,,\n"
    )

    response = upload(client, "/api/import/products", csv_text)

    data = response.json()["data"]
    assert data["created"] == 2
    assert [(e["row"], e["message"]) for e in data["errors"]] == [
        (3, "Product with SKU 'SKU-1' already exists for customer 'ACME'"),
        (4, "unitValue must be a non-negative number"),
        (5, "unitValue must be a non-negative number"),
    ]
    created = db_session.query(Product).filter(Product.sku == "SKU-2").one()
    assert float(created.unit_value) == 4.75
    assert created.customer_id == customer.id


def test_same_sku_allowed_for_different_customers(client, db_session, customer, product):
    db_session.add(Customer(name="Other Co", code="OTHER"))
    db_session.commit()

    response = upload(
        client,
        "/api/import/products",
        "sku,name,customerCode\nSKU-1,Beans For Other,OTHER\n",
    )

    assert response.json()["data"] == {"created": 1, "errors": []}
    assert db_session.query(Product).filter(Product.sku == "SKU-1").count() == 2


def test_user_import_hashes_password_and_forces_change(client, db_session):
    csv_text = (
        "email,username,firstName,lastName,password,role\n"
        "Packer@Example.com,Packer_1,Pat,Packer,Secret123,\n"
        "weak@example.com,weakuser,Wes,Weak,password,\n"
        "boss@example.com,boss,Bo,Boss,Secret123,OWNER\n"
    )

    response = upload(client, "/api/import/users", csv_text)

    data = response.json()["data"]
    assert data["created"] == 1
    assert [e["row"] for e in data["errors"]] == [3, 4]
    assert data["errors"][1]["message"] == "role must be one of ADMIN, MANAGER, WAREHOUSE_USER"

    user = db_session.query(User).filter(User.email == "packer@example.com").one()
    assert user.username == "packer_1"
    assert user.role == "WAREHOUSE_USER"
    assert user.must_change_password is True
    assert user.hashed_password != "Secret123"
    assert AuthService.verify_password("Secret123", user.hashed_password)


def test_user_import_rejects_existing_email(client, db_session, admin_user):
    csv_text = (
        "email,username,firstName,lastName,password,role\n"
        "admin@example.com,someoneelse,Ad,Min,Secret123,MANAGER\n"
    )

    response = upload(client, "/api/import/users", csv_text)

    data = response.json()["data"]
    assert data["errors"][0]["message"] == "A user with email 'admin@example.com' already exists"


def test_location_import_upserts_by_code(client, db_session):
    first = "code,zone,aisle,rack,shelf,description,isActive\nA-01-01,Ambient,A,1,1,Front rack,\n"
    second = "code,zone,aisle,rack,shelf,description,isActive\nA-01-01,Chilled,A,1,2,,FALSE\n"

    first_response = upload(client, "/api/warehouse-locations/import", first)
    second_response = upload(client, "/api/warehouse-locations/import", second)

    assert first_response.json()["data"] == {"created": 1, "errors": []}
    assert second_response.json()["data"] == {"created": 1, "errors": []}
    location = db_session.query(WarehouseLocation).one()
    db_session.refresh(location)
    assert location.zone == "Chilled"
    assert location.shelf == "2"
    assert location.description is None
    assert location.is_active is False


def test_non_csv_upload_is_rejected(client):
    response = upload(client, "/api/import/customers", "hello", filename="notes.txt", content_type="text/plain")
    assert response.status_code == 400
    assert response.json()["detail"] == "Only CSV files are allowed"


def test_missing_file_is_rejected(client):
    response = client.post("/api/import/customers")
    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


def test_oversized_upload_is_rejected(client, monkeypatch):
    monkeypatch.setenv("IMPORT_MAX_FILE_BYTES", "16")
    response = upload(client, "/api/import/customers", "name,code\nSomething Long,LONGCODE\n")
    assert response.status_code == 400


def test_parse_csv_strips_bom_and_whitespace():
    rows = parse_csv("\ufeffname , code\n  Beta Retail , BETA \n\n".encode("utf-8"))
    assert rows == [{"name": "Beta Retail", "code": "BETA"}]


def test_parse_csv_without_header_row():
    with pytest.raises(HTTPException) as exc_info:
        parse_csv(b"")
    assert exc_info.value.status_code == 400
