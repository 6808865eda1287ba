# file: main.py

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import LOG_LEVEL
from app.controllers.auth import router as auth_router
from app.controllers.authorization import router as authorization_router
from app.controllers.notification import router as notification_router
from app.database.connection import init_db

logging.basicConfig(level=LOG_LEVEL)

app = FastAPI(title="LocalNotification API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(authorization_router, prefix="/api/authorization", tags=["authorization"])
app.include_router(notification_router, prefix="/api/notifications", tags=["notifications"])


@app.get("/")
async def root():
    return {"message": "LocalNotification API is running"}

@app.on_event("startup")
async def startup_event():
    await init_db()
