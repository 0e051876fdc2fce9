from fastapi import APIRouter

from irp.api.v1.endpoints import auth, users, experts, events, feedback, activity, health

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(experts.router, prefix="/experts", tags=["Experts"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["Feedback"])
api_router.include_router(activity.router, prefix="/activity", tags=["Activity"])
api_router.include_router(health.router, tags=["Health"])
