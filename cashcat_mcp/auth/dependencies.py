"""FastAPI dependencies for authentication."""

from fastapi import Request

from .verifier import KeyVerifier


async def get_key_verifier(request: Request) -> KeyVerifier:
    """Dependency returning the verifier built during app start-up.

    Args:
        request: The FastAPI request object.

    Returns:
        The configured KeyVerifier instance.
    """
    return request.app.state.key_verifier
