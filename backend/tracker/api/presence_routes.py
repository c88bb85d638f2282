"""
Presence Routes - read-only view of the participant registry

Endpoints:
- GET /api/participants - Participants with a known location
- GET /api/names/{name}/available - Whether a display name can be claimed
"""

from fastapi import APIRouter, Request
from typing import Any, Dict
import time

router = APIRouter(prefix="/api", tags=["presence"])


@router.get("/participants")
async def list_participants(request: Request) -> Dict[str, Any]:
    """Snapshot of located participants, in connection order"""
    registry = request.app.state.registry
    participants = [p.to_location_payload() for p in registry.snapshot()]
    return {
        "participants": participants,
        "count": len(participants),
        "connected": len(registry),
        "timestamp": time.time(),
    }


@router.get("/names/{name}/available")
async def name_available(name: str, request: Request) -> Dict[str, Any]:
    """Check a display name without claiming it"""
    registry = request.app.state.registry
    return {
        "name": name.strip(),
        "available": registry.is_name_available(name),
    }
