"""Task and project domain models"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .base import DocumentModel


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"
    HOLD = "HOLD"


class TaskPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    PLANNED = "PLANNED"


class Task(DocumentModel):
    """Task document (tasks/{id})"""
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    project_id: Optional[str] = None
    # Legacy single assignee, mirrors assignee_ids[0]
    assignee_id: Optional[str] = None
    assignee_ids: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    priority: TaskPriority = TaskPriority.NORMAL
    tags: Optional[List[str]] = None
    estimated_hours: Optional[float] = None
    logged_hours: Optional[float] = None
    dependencies: Optional[List[str]] = None
    workspace_id: str


class Project(DocumentModel):
    """Project document (projects/{id})"""
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[ProjectStatus] = None
    workspace_id: str
