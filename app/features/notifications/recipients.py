"""Who gets notified about a task"""
import logging
from typing import Iterable, List, Optional

from app.infra.repositories import partition_members
from app.models.task import Task
from app.models.workspace import WorkspaceMember

logger = logging.getLogger(__name__)


def _mask(chat_id: str) -> str:
    return f"{chat_id[:5]}..."


def _find_assignee(assignee_id: str, valid: List[WorkspaceMember]) -> Optional[WorkspaceMember]:
    member = next((m for m in valid if m.user_id == assignee_id), None)
    if member is None and "@" in assignee_id:
        email = assignee_id.lower()
        member = next((m for m in valid if m.email.lower() == email), None)
        if member is not None:
            logger.info(f"Assignee {assignee_id} matched member {member.user_id} by email")
    return member


def resolve_task_recipients(
    task: Task,
    members: Iterable[WorkspaceMember],
    creator_id: Optional[str] = None,
) -> List[str]:
    """
    Telegram chat ids of a task's assignees, deduplicated, in assignee order

    assigneeIds win over the legacy assigneeId. Assignees that are not valid
    members, or have no chat id, are logged and skipped. When `creator_id` is
    given, the creator is not notified about their own change.
    """
    valid, invalid = partition_members(list(members))
    if invalid:
        logger.info(f"Ignoring {len(invalid)} member(s) with invalid userId for task {task.id}")

    if task.assignee_ids:
        assignee_ids = [a for a in task.assignee_ids if a]
    elif task.assignee_id:
        assignee_ids = [task.assignee_id]
    else:
        assignee_ids = []

    recipients: List[str] = []
    for assignee_id in assignee_ids:
        assignee = _find_assignee(assignee_id, valid)
        if assignee is None:
            logger.warning(f"Assignee {assignee_id} of task {task.id} is not a member of the workspace")
            continue
        if creator_id and assignee.user_id == creator_id:
            continue
        if not assignee.telegram_chat_id:
            logger.warning(f"Assignee {assignee.user_id} of task {task.id} has no Telegram chat id")
            continue
        if assignee.telegram_chat_id not in recipients:
            recipients.append(assignee.telegram_chat_id)

    logger.info(
        f"Task {task.id}: {len(recipients)} recipient(s) {[_mask(r) for r in recipients]} "
        f"from {len(assignee_ids)} assignee(s)"
    )
    return recipients
