"""
Services module - Business logic layer for DamageTrack.
"""
from services.auth_service import AuthService
from services.audit_service import AuditService
from services.customer_service import CustomerService
from services.damage_report_service import DamageReportService
from services.notification_service import NotificationService
from services.product_service import ProductService
from services.reporting_service import ReportingService
from services.warehouse_location_service import WarehouseLocationService

__all__ = [
    "AuthService",
    "AuditService",
    "CustomerService",
    "DamageReportService",
    "NotificationService",
    "ProductService",
    "ReportingService",
    "WarehouseLocationService",
]
