from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, engine, settings
from api import games, rooms, networks
from core.game_manager import GameManager

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create database tables
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Bank Game API",
    description="Backend API for the Bank dice game scorekeeper and the logic-gate playground",
    version="1.0.0",
    lifespan=lifespan
)

# Live engines per game role, loaded lazily from saved_games
app.state.game_manager = GameManager.from_settings(settings)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(games.router)
app.include_router(rooms.router)
app.include_router(networks.router)


@app.get("/")
def root():
    return {"message": "Bank Game API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
