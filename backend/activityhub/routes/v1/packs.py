# backend/activityhub/routes/v1/packs.py
"""
Pack routes - API v1

Endpoints:
    GET /{pack_id}/usage - The caller's consumption of a pack
"""

import asyncio
from dataclasses import asdict

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_user_id, get_pack_tracker
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.activity import PackUsageResponse
from ...services.pack_tracker import PackTracker

router = APIRouter(tags=["packs-v1"])


@router.get("/{pack_id}/usage", response_model=PackUsageResponse)
async def get_pack_usage(
    pack_id: str,
    user_id: str = Depends(get_current_user_id),
    pack_tracker: PackTracker = Depends(get_pack_tracker),
) -> PackUsageResponse:
    try:
        usage = await asyncio.to_thread(pack_tracker.get_pack_usage, pack_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return PackUsageResponse(**asdict(usage))
