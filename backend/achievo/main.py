"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Achievo backend.
Controllers are intentionally thin: they accept requests, delegate to
services with the authenticated user's username as the acting
principal, and return JSON responses. Service errors are turned into
responses by a single exception handler.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /users, GET /users/{id}
- POST /users (admin)
- PUT /users/me
- DELETE /users/{id}
- POST /achievements, GET /achievements, GET /achievements/{id}
- DELETE /achievements/{id}
- POST /achievements/{id}/book
- POST /bookings/{id}/complete
- GET /bookings/me
- GET /health
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import List
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, models
from .auth import get_current_user, require_admin
from .config import settings
from .errors import ServiceError
from .schemas import (
    AchievementCreate,
    AchievementResponse,
    BookingResponse,
    LoginIn,
    TokenOut,
    UserCreate,
    UserResponse,
)

app = FastAPI(title="Achievo API")
logger = logging.getLogger("achievo.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    info = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response: Response = await call_next(request)
    except Exception:
        info["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(info, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    info["status_code"] = response.status_code
    info["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(info, ensure_ascii=True))
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.post('/auth/register', response_model=UserResponse, status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_session)):
    """Self-registration. The account is always created with the USER role."""
    payload = payload.model_copy(update={"role": models.Role.USER, "id": None})
    return services.UserService(db).add_user(payload)


@app.post('/auth/login', response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `username` and is signed
    using the configured JWT secret.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/users', response_model=List[UserResponse])
def list_users(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.UserService(db).get_all_users()


@app.get('/users/{user_id}', response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.UserService(db).get_user_by_id(user_id)


@app.post('/users', response_model=UserResponse, status_code=201)
def add_user(payload: UserCreate, db: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    """Add an account as an administrator; the requested role is kept."""
    return services.UserService(db).add_user(payload)


@app.put('/users/me', response_model=UserResponse)
def update_me(payload: UserCreate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Update the caller's own profile. Birth date and role in the body are ignored."""
    return services.UserService(db).update_user(payload, user.username)


@app.delete('/users/{user_id}', status_code=204)
def delete_user(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.UserService(db).delete_user_by_id(user_id, user.username)
    return Response(status_code=204)


@app.post('/achievements', response_model=AchievementResponse, status_code=201)
def add_achievement(payload: AchievementCreate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AchievementService(db).add_achievement(payload, user.username)


@app.get('/achievements', response_model=List[AchievementResponse])
def list_achievements(db: Session = Depends(get_session)):
    return services.AchievementService(db).get_all_achievements()


@app.get('/achievements/{achievement_id}', response_model=AchievementResponse)
def get_achievement(achievement_id: int, db: Session = Depends(get_session)):
    return services.AchievementService(db).get_achievement_by_id(achievement_id)


@app.delete('/achievements/{achievement_id}', status_code=204)
def delete_achievement(achievement_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.AchievementService(db).delete_achievement(achievement_id, user.username)
    return Response(status_code=204)


@app.post('/achievements/{achievement_id}/book', response_model=BookingResponse, status_code=201)
def book_achievement(achievement_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AchievementService(db).book_achievement(achievement_id, user.username)


@app.post('/bookings/{booking_id}/complete', response_model=BookingResponse)
def complete_booking(booking_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AchievementService(db).complete_booking(booking_id, user.username)


@app.get('/bookings/me', response_model=List[BookingResponse])
def my_bookings(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AchievementService(db).get_bookings_for_user(user.username)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
