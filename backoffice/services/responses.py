# backoffice/services/responses.py
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel

from ..workflows.result import WorkflowResult


def workflow_response(result: WorkflowResult, out: Optional[type[BaseModel]] = None) -> dict:
    """
    Envelope -> JSON body.

    A failed result becomes HTTP 400 with the envelope as detail so the UI can
    render message/errors as-is.
    """
    if not result.success:
        raise HTTPException(status_code=400, detail=result.as_dict())

    body = result.as_dict()
    data = result.data
    if data is not None and out is not None:
        body["data"] = out.model_validate(data).model_dump(mode="json")
    elif isinstance(data, (int, float, str, bool)):
        body["data"] = data
    else:
        body["data"] = None
    return body
