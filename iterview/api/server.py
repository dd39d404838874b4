"""ASGI entrypoint for iterview. Delegates to create_app()."""

from iterview.api.app import create_app

app = create_app()
