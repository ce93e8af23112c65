# Software Engineer: Kyeshav Chettiar 
# Company FXO - Adcorp 
# Configured and pushed onto the virtual machine for testing and evaluation for team members to use within the companies rules and regulations 
# v3.0.0.0 

import logging
import os

from fastapi import FastAPI

from core.database import engine, Base

# Import all models to register them
from models.user import User
from models.customer import Customer
from models.product import Product
from models.warehouse_location import WarehouseLocation
from models.damage_report import DamageReport, StatusHistory
from models.notification import Notification
from models.audit_log import AuditLog

# Import routers
from api import (
    auth, admin, audit, customers, products, warehouse_locations, damage_reports, imports, notifications,
    reports, export,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title="DamageTrack",
    description="Warehouse damaged-stock reporting and lifecycle tracking",
    version="1.0.0"
)

# Register routers
app.include_router(auth.router)
app.include_router(damage_reports.router, prefix="/api")
app.include_router(customers.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(warehouse_locations.router, prefix="/api")
app.include_router(imports.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(audit.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(export.router, prefix="/api")


# ==================== HEALTH CHECK ====================
@app.get("/health")
def health_check():
    """Health check endpoint for Docker and Kubernetes."""
    return {
        "status": "healthy",
        "service": "DamageTrack",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
