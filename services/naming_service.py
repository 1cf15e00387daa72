"""
Naming service: room codes and participant ids

Pure generation, no state changes.
"""
import random
import string
import time

# 32 symbols: no 0/O or 1/I so codes can be read aloud and typed on a phone
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 4

_BASE36 = string.digits + string.ascii_lowercase


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    """
    Random room code, e.g. ``K7QX``

    Notes:
    - uniqueness is not checked here (the caller retries on collision)
    - 32^4 = 1,048,576 codes, collisions are rare for short-lived rooms
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def normalize_room_code(code: str) -> str:
    """Room codes are typed by hand, accept lower case and stray spaces"""
    return (code or "").strip().upper()


def generate_participant_id() -> str:
    """
    Participant id: ``player_<epoch millis>_<9 base36 chars>``

    Example: player_1760745600000_k3j9x0q2a
    """
    millis = int(time.time() * 1000)
    suffix = ''.join(random.choices(_BASE36, k=9))
    return f"player_{millis}_{suffix}"
