"""Endpoints API"""
from app.api.v1.endpoints import interventions
from app.api.v1.endpoints import quotes

__all__ = ["interventions", "quotes"]
