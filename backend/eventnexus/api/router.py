from fastapi import APIRouter

from eventnexus.api.routes import health, auth, tickets, events, notifications

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])  # GET /
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])  # POST /login, /login-json, /register
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])  # issue, my, verify, detail, qr, cancel
api_router.include_router(events.router, prefix="/events", tags=["events"])  # organizer scan history and stats
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
