"""
SQLAlchemy models

- SavedGame: key-value store for serialized Bank games (one row per role)
- Room / RoomParticipant / RoomEvent: multiplayer sync channel
- NetworkSession: logic-gate playground state
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import relationship

from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class RoomEventKind(str, enum.Enum):
    ROLL = "roll"
    BANK_REQUEST = "bank_request"


class SavedGame(Base):
    __tablename__ = "saved_games"

    key = Column(String(64), primary_key=True)
    schema_version = Column(Integer, nullable=False, default=1)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Room(Base):
    __tablename__ = "rooms"

    code = Column(String(8), primary_key=True)
    host_role = Column(String(32), nullable=False)
    state = Column(JSON, nullable=False, default=dict)
    state_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    participants = relationship(
        "RoomParticipant", back_populates="room", cascade="all, delete-orphan"
    )
    events = relationship(
        "RoomEvent", back_populates="room", cascade="all, delete-orphan",
        order_by="RoomEvent.id"
    )


class RoomParticipant(Base):
    __tablename__ = "room_participants"

    id = Column(String(64), primary_key=True)
    room_code = Column(String(8), ForeignKey("rooms.code"), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    connected = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime(timezone=True), default=_utcnow)

    room = relationship("Room", back_populates="participants")


class RoomEvent(Base):
    __tablename__ = "room_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_code = Column(String(8), ForeignKey("rooms.code"), nullable=False, index=True)
    kind = Column(Enum(RoomEventKind), nullable=False)
    participant_id = Column(String(64), nullable=False)
    participant_name = Column(String(64), nullable=False)
    value = Column(Integer, nullable=True)
    is_doubles = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    room = relationship("Room", back_populates="events")


class NetworkSession(Base):
    __tablename__ = "network_sessions"

    id = Column(String(36), primary_key=True)
    gate = Column(String(16), nullable=False)
    hidden_neurons = Column(Integer, nullable=False, default=0)
    layers = Column(JSON, nullable=False, default=list)
    saved_layers = Column(JSON, nullable=False, default=dict)
    input_values = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
