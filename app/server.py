"""
Beyblade Stats Tracker - FastAPI server
Personal statistics, awards and player search over the Supabase match data
"""
from typing import Optional

from fastapi import FastAPI, Query, HTTPException, Depends
from loguru import logger

from app.config import supabase_config
from app.personal_stats import PersonalStatsService, get_service
from stats import TOURNAMENT_CATEGORIES

VERSION = "1.0.0"

app = FastAPI(
    title="Beyblade Stats Tracker",
    description="Personal combination and match statistics for Beyblade X tournaments",
    version=VERSION
)


async def ensure_public(player_name: str, service: PersonalStatsService):
    """403 for players whose profile is private"""
    if await service.is_private(player_name):
        raise HTTPException(status_code=403, detail="This player's statistics are private")


# ==================== API Endpoints ====================

@app.on_event("startup")
async def startup_event():
    logger.info("Server started")


@app.get("/api/status")
async def api_status():
    """Service status"""
    return {
        "service": "beyblade-stats-tracker",
        "version": VERSION,
        "supabase_configured": bool(supabase_config.supabase_url and supabase_config.supabase_key),
        "categories": ["all"] + TOURNAMENT_CATEGORIES,
    }


@app.get("/api/players/search")
async def api_player_search(
    q: str = Query(..., min_length=1),
    service: PersonalStatsService = Depends(get_service)
):
    """Player search (public profiles and match participants)"""
    results = await service.search_players(q)
    return {"query": q, "results": results, "count": len(results)}


@app.get("/api/player/{player_name}/stats")
async def api_player_stats(
    player_name: str,
    category: str = Query("all", description="all / practice / casual / ranked"),
    service: PersonalStatsService = Depends(get_service)
):
    """Personal statistics of a player"""
    await ensure_public(player_name, service)
    try:
        stats = await service.get_player_stats(player_name, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return stats.to_dict()


@app.get("/api/player/{player_name}/awards")
async def api_player_awards(
    player_name: str,
    player_id: Optional[str] = None,
    service: PersonalStatsService = Depends(get_service)
):
    """Tournament awards of a player, newest first"""
    await ensure_public(player_name, service)
    awards = await service.get_player_awards(player_name, player_id)
    return {"player": player_name, "awards": awards, "count": len(awards)}


@app.get("/api/parts/{part_name}")
async def api_part_info(
    part_name: str,
    service: PersonalStatsService = Depends(get_service)
):
    """Catalogue information of a part"""
    info = await service.get_part_info(part_name)
    return info.to_dict()


# ==================== Server ====================

if __name__ == "__main__":
    import uvicorn
    from app.config import server_config

    uvicorn.run(
        "app.server:app",
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        log_level="info"
    )
