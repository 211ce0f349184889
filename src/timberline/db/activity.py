# audit trail of admin and checkout actions
from __future__ import annotations

from typing import Any, Dict, List, Optional

from timberline.db import store
from timberline.db.models import ActivityLog

COLLECTION = "activityLogs"


async def log_activity(
    user_id: Optional[str], action: str, details: Optional[Dict[str, Any]] = None
) -> str:
    return await store.add_document(
        COLLECTION, {"user_id": user_id, "action": action, "details": details or {}}
    )


async def recent_activity(limit: int = 10) -> List[ActivityLog]:
    docs = await store.query_documents(
        COLLECTION, order_by="created_at", descending=True, limit=limit
    )
    return [ActivityLog.from_doc(d) for d in docs]
