# app/api/v1/router.py
from fastapi import APIRouter

from app.config.settings import settings
from app.api.v1.auth import router as auth_router
from app.modules.users import users_router
from app.modules.orders import orders_router
from app.modules.express import express_router
from app.modules.analytics import analytics_router
from app.modules.clients import clients_router
from app.modules.mayoristas import mayoristas_router
from app.modules.prices import prices_router
from app.modules.repartos import repartos_router
from app.modules.campaigns import campaigns_router, cron_router

# Crear router principal de la API v1
api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(
    users_router,
    prefix="/users",
    tags=["Users - Usuarios y permisos"]
)

api_router.include_router(
    orders_router,
    prefix="/orders",
    tags=["Orders - Tabla de órdenes"]
)

api_router.include_router(
    express_router,
    prefix="/express",
    tags=["Express - Puntos de envío y stock"]
)

api_router.include_router(
    analytics_router,
    prefix="/analytics",
    tags=["Analytics"]
)

api_router.include_router(
    clients_router,
    prefix="/clients",
    tags=["Clients - Segmentación"]
)

api_router.include_router(
    mayoristas_router,
    prefix="/mayoristas",
    tags=["Mayoristas - Puntos de venta"]
)

api_router.include_router(
    prices_router,
    prefix="/prices",
    tags=["Prices"]
)

api_router.include_router(
    repartos_router,
    prefix="/repartos",
    tags=["Repartos"]
)

api_router.include_router(
    campaigns_router,
    prefix="/campaigns",
    tags=["Campaigns - Emails"]
)

api_router.include_router(
    cron_router,
    prefix="/cron",
    tags=["Cron"]
)

# ==================== ENDPOINTS RAÍZ ====================

@api_router.get("/")
async def api_root():
    """Root endpoint de la API"""
    return {
        "message": "Barfer Gestor API v1",
        "version": settings.version,
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "authentication": "/api/v1/auth",
            "users": "/api/v1/users",
            "orders": "/api/v1/orders",
            "express": "/api/v1/express",
            "analytics": "/api/v1/analytics",
            "clients": "/api/v1/clients",
            "mayoristas": "/api/v1/mayoristas",
            "prices": "/api/v1/prices",
            "repartos": "/api/v1/repartos",
            "campaigns": "/api/v1/campaigns",
            "cron": "/api/v1/cron/run"
        }
    }

@api_router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "Barfer Gestor API",
        "version": settings.version
    }
