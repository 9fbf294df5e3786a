"""
Route Dependencies

Components are built once in the application lifespan and stored on
`app.state`; routes reach them through these dependencies.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.proposals import ProposalService
from workers.components import Components


def get_components(request: Request) -> Components:
    return request.app.state.components


async def get_session(
    components: Components = Depends(get_components)
) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one request."""
    async with components.session_factory() as session:
        yield session


def get_proposals(components: Components = Depends(get_components)) -> ProposalService:
    return components.proposals
