"""
api package: FastAPI routers for the chat and tool endpoints.
"""
