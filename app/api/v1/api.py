"""Router API principal v1"""
from fastapi import APIRouter
from app.api.v1.endpoints import interventions, quotes

# Créer le router principal
api_router = APIRouter()

# ==================== INTERVENTIONS ====================
api_router.include_router(
    interventions.router,
    prefix="/interventions",
    tags=["Interventions"]
)

# ==================== QUOTES ====================
api_router.include_router(
    quotes.router,
    prefix="/quotes",
    tags=["Quotes"]
)
