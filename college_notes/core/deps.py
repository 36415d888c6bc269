# college_notes/core/deps.py
"""
Shared collaborators for route handlers.

The object store and push broker live on app.state so tests (and alternate
deployments) can swap them without touching the routes.
"""
from typing import Optional

from fastapi import Depends, Request

from college_notes.core.pubsub import Broker
from college_notes.services.delete_request_service import DeleteRequestService
from college_notes.services.moderation_service import ModerationService
from college_notes.services.moderator_request_service import ModeratorRequestService
from college_notes.services.notification_service import NotificationService
from college_notes.services.reconcile_service import ReconcileService
from college_notes.services.user_admin_service import UserAdminService
from college_notes.storage.object_store import ObjectStore


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_broker(request: Request) -> Broker:
    return request.app.state.broker


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def get_notification_service(broker: Broker = Depends(get_broker)) -> NotificationService:
    return NotificationService(broker)


def get_moderation_service(
    store: ObjectStore = Depends(get_object_store),
    notifier: NotificationService = Depends(get_notification_service),
) -> ModerationService:
    return ModerationService(store, notifier)


def get_delete_request_service(
    moderation: ModerationService = Depends(get_moderation_service),
) -> DeleteRequestService:
    return DeleteRequestService(moderation)


def get_moderator_request_service(
    notifier: NotificationService = Depends(get_notification_service),
) -> ModeratorRequestService:
    return ModeratorRequestService(notifier)


def get_user_admin_service(
    notifier: NotificationService = Depends(get_notification_service),
) -> UserAdminService:
    return UserAdminService(notifier)


def get_reconcile_service(store: ObjectStore = Depends(get_object_store)) -> ReconcileService:
    return ReconcileService(store)
