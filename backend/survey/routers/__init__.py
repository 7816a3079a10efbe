"""IRVE Survey - API Routers"""
from .survey import router as survey_router
from .stats import router as stats_router
from .admin import router as admin_router
from .rgpd import router as rgpd_router

__all__ = [
    "survey_router",
    "stats_router",
    "admin_router",
    "rgpd_router",
]
