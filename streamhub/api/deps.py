"""
API Dependencies
"""
from fastapi import Request


def get_hub(request: Request):
    """The StreamHub container attached by create_app"""
    return request.app.state.hub
