"""
HTTP layer: FastAPI routers for games, rooms and networks
"""
