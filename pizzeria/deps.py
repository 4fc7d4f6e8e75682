import uuid
from typing import Optional

from fastapi import Depends, Header, Request

from .logs import correlation_id_var


async def get_correlation_id(x_correlation_id: Optional[str] = Header(None)):
    cid = x_correlation_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def get_system(request: Request, cid: str = Depends(get_correlation_id)):
    """One request at a time over the shared session; commit on success."""
    system = request.app.state.system
    with request.app.state.lock:
        try:
            yield system
            system.session.commit()
        except Exception:
            system.session.rollback()
            raise
