"""
Background Tasks API endpoints.

Tracks watchlist scans started from the dashboard. Tasks live in memory
and do not survive a restart.
"""

from fastapi import APIRouter, HTTPException
from typing import Dict, List, Optional
from datetime import datetime
import uuid

from ..database.models import TaskStatus

router = APIRouter()

active_tasks: Dict[str, TaskStatus] = {}


@router.get("/active", response_model=List[TaskStatus])
async def get_active_tasks():
    """Get all pending or running tasks."""
    return [
        task for task in active_tasks.values()
        if task.status in ("pending", "running")
    ]


@router.get("/{task_id}/status", response_model=TaskStatus)
async def get_task_status(task_id: str):
    """Get the status of a background task."""
    task = active_tasks.get(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def create_task(kind: str, total: int) -> TaskStatus:
    """Register a new pending task covering `total` tickers."""
    task = TaskStatus(
        task_id=str(uuid.uuid4()),
        status="pending",
        progress=0.0,
        message=f"Queued {kind} of {total} tickers",
        result={"outcomes": {}},
        created_at=datetime.now()
    )
    active_tasks[task.task_id] = task
    return task


def start_step(task_id: str, ticker: str, index: int, total: int) -> Optional[TaskStatus]:
    """Mark the task running on the `index`-th ticker (zero based)."""
    task = active_tasks.get(task_id)
    if task:
        task.status = "running"
        task.progress = (index / total) * 100 if total else 0.0
        task.message = f"Analyzing {ticker} ({index + 1}/{total})..."
        task.updated_at = datetime.now()
    return task


def record_outcome(task_id: str, ticker: str, outcome: str) -> None:
    """Store the outcome status of one ticker on the task."""
    task = active_tasks.get(task_id)
    if task:
        task.result["outcomes"][ticker] = outcome
        task.updated_at = datetime.now()


def complete_task(task_id: str) -> Optional[TaskStatus]:
    task = active_tasks.get(task_id)
    if task:
        task.status = "completed"
        task.progress = 100.0
        task.message = "Scan complete"
        task.updated_at = datetime.now()
    return task


def fail_task(task_id: str, error: str) -> Optional[TaskStatus]:
    """Mark a task as failed."""
    task = active_tasks.get(task_id)
    if task:
        task.status = "failed"
        task.message = error
        task.updated_at = datetime.now()
    return task
