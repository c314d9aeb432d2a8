# notes_app/routers/health.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from notes_app.core.db import get_db
from notes_app.utils.toast import pop_toast

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/toast")
def toast(request: Request, response: Response):
    current = pop_toast(request, response)
    return {"toast": current.model_dump() if current else None}
