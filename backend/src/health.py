from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.main import get_session, load_models

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check without database"""
    return {
        "status": "ok",
        "service": "quickslip-voice-api"
    }


@router.get("/health/db")
async def health_check_db(db: Annotated[AsyncSession, Depends(get_session)]):
    """Health check with database connection test and schema presence"""
    try:
        await db.execute(text("SELECT 1"))

        existing = set(await db.run_sync(lambda session: inspect(session.connection()).get_table_names()))
        missing = sorted(set(load_models().tables) - existing)

        return {
            "status": "ok" if not missing else "degraded",
            "database": "connected",
            "missing_tables": missing
        }
    except SQLAlchemyError as e:
        return {
            "status": "error",
            "database": "disconnected",
            "error": str(e)
        }
