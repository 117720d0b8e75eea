"""FastAPI dependencies resolving the services attached to the application."""

from fastapi import Request

from metastore.factory import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
