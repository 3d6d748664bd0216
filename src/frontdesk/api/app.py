"""ASGI entrypoint: uvicorn frontdesk.api.app:app"""

from frontdesk.api.factory import create_app

app = create_app()
