# API Routers - DocProof

from app.routers import documents, health

__all__ = ["documents", "health"]
