"""Web layer: FastAPI application, routers and templates."""

from contenthub.web.app import create_app

__all__ = ["create_app"]
