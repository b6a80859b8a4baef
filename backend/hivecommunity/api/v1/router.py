from fastapi import APIRouter
from hivecommunity.api.v1.endpoints import auth, events, health, hives, members, volunteers

api_router = APIRouter()

api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "hivecommunity-backend"}


api_router.include_router(auth.router)
api_router.include_router(hives.router)
api_router.include_router(members.router)
api_router.include_router(events.router)
api_router.include_router(volunteers.router)
