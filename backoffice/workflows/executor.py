# backoffice/workflows/executor.py
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy.orm import Session

from .result import WorkflowResult

log = logging.getLogger("backoffice.workflow")

T = TypeVar("T")

# session.info key marking an open workflow unit
_UNIT_KEY = "backoffice.workflow_unit"


def run_workflow(db: Session, operation: Callable[[], WorkflowResult[T]]) -> WorkflowResult[T]:
    """
    Run `operation` as one unit of work.

    - success result  -> commit
    - failure result  -> rollback
    - exception       -> rollback, returned as a failure result (not re-raised)

    Calls made while a unit is already open join it: only the outermost call
    commits or rolls back. Nothing is retried.
    """
    if db.info.get(_UNIT_KEY):
        return operation()

    if not db.in_transaction():
        db.begin()

    db.info[_UNIT_KEY] = True
    try:
        try:
            result = operation()
        except Exception as exc:
            db.rollback()
            log.exception("workflow operation raised", extra={"event": "workflow_failed"})
            return WorkflowResult.fail(f"Workflow operation failed: {exc}")

        if not result.success:
            db.rollback()
            log.info(
                "workflow operation rejected: %s",
                result.message,
                extra={"event": "workflow_rejected"},
            )
            return result

        try:
            db.commit()
        except Exception as exc:
            db.rollback()
            log.exception("workflow commit failed", extra={"event": "workflow_failed"})
            return WorkflowResult.fail(f"Workflow operation failed: {exc}")

        return result
    finally:
        db.info.pop(_UNIT_KEY, None)
