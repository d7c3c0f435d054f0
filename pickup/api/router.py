from fastapi import APIRouter

from pickup.api import draft, notifications, queue

router = APIRouter()
router.include_router(queue.router)
router.include_router(draft.router)
router.include_router(notifications.router)
