"""
Custom exception classes

All domain errors live here so the API layer can translate them in one place.
"""


class BankGameException(Exception):
    """Base class for every domain error"""
    pass


# ============ Game flow ============

class InvalidStateTransition(BankGameException):
    """Command is not allowed in the current game phase"""
    pass


class InvalidRollValue(BankGameException):
    """Dice value outside 2..12 (or an odd doubles face value)"""
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid roll value: {value!r}")


class InvalidRoundCount(BankGameException):
    """Total rounds must be a positive integer"""
    pass


# ============ Roster ============

class InvalidPlayerName(BankGameException):
    """Empty player name"""
    pass


class DuplicatePlayerName(BankGameException):
    """Name already on the roster (case-insensitive)"""
    def __init__(self, name):
        self.name = name
        super().__init__(f"Player {name} already exists")


class RosterFull(BankGameException):
    """Roster already holds the maximum number of players"""
    pass


class PlayerNotFound(BankGameException):
    """Player index is not on the roster"""
    def __init__(self, player_index):
        self.player_index = player_index
        super().__init__(f"Player {player_index} not found")


class InvalidPlayerOrder(BankGameException):
    """Reorder request is not a permutation of the roster"""
    pass


# ============ Persistence ============

class SavedStateError(BankGameException):
    """Persisted game blob failed validation"""
    pass


# ============ Rooms ============

class RoomNotFound(BankGameException):
    """Room does not exist"""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Room {code} not found")


class ParticipantNotFound(BankGameException):
    """Participant is not in the room"""
    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} not found")


# ============ Logic-gate playground ============

class NetworkNotFound(BankGameException):
    """Network session does not exist"""
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Network {session_id} not found")


class InputLengthMismatch(BankGameException):
    """Forward pass called with the wrong number of inputs"""
    def __init__(self, expected, got):
        self.expected = expected
        self.got = got
        super().__init__(f"Network expects {expected} inputs, got {got}")


class UnknownGate(BankGameException):
    """Gate name is not one of the supported challenges"""
    def __init__(self, gate):
        self.gate = gate
        super().__init__(f"Unknown gate {gate!r}")


class InvalidNetworkEdit(BankGameException):
    """Weight/bias edit points outside the network or carries a bad value"""
    pass
