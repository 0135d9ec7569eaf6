# This project was developed with assistance from AI tools.
"""Record browser for registrar heads, mounted at ``/admin``.

Catalog entries and requests can be inspected and corrected here but never
deleted; lifecycle changes still go through the API so they are audited.
"""

import hmac

from audres_db import AuditEvent, CatalogEntry, DocumentRequest, Rating, RequestItem, User
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy import create_engine
from starlette.requests import Request
from starlette.responses import Response

from .core.config import settings

# sqladmin only drives a sync engine
engine = create_engine(settings.DATABASE_URL.replace("+asyncpg", ""), echo=False)


class AdminAuth(AuthenticationBackend):
    """Login form checked against SQLADMIN_USER / SQLADMIN_PASSWORD; open when AUTH_DISABLED."""

    async def login(self, request: Request) -> bool:
        form = await request.form()
        user_ok = hmac.compare_digest(str(form.get("username", "")), settings.SQLADMIN_USER)
        password_ok = hmac.compare_digest(str(form.get("password", "")), settings.SQLADMIN_PASSWORD)
        if user_ok and password_ok:
            request.session.update({"admin_authenticated": True})
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> Response | bool:
        if settings.AUTH_DISABLED:
            return True
        return request.session.get("admin_authenticated", False)


class UserAdmin(ModelView, model=User):
    column_list = [
        User.id,
        User.first_name,
        User.last_name,
        User.email,
        User.school_id,
        User.role,
        User.archived,
        User.pending_verification,
        User.created_at,
    ]
    column_searchable_list = [User.first_name, User.last_name, User.email, User.school_id]
    column_sortable_list = [User.id, User.last_name, User.role, User.created_at]
    column_default_sort = [(User.created_at, True)]
    name = "User"
    name_plural = "Users"
    icon = "fa-solid fa-user"


class CatalogEntryAdmin(ModelView, model=CatalogEntry):
    column_list = [
        CatalogEntry.id,
        CatalogEntry.type,
        CatalogEntry.amount,
        CatalogEntry.processing_days,
        CatalogEntry.archived,
    ]
    column_searchable_list = [CatalogEntry.type]
    column_sortable_list = [CatalogEntry.type, CatalogEntry.amount]
    column_default_sort = [(CatalogEntry.type, False)]
    can_delete = False
    name = "Catalog Entry"
    name_plural = "Catalog"
    icon = "fa-solid fa-book"


class DocumentRequestAdmin(ModelView, model=DocumentRequest):
    column_list = [
        DocumentRequest.id,
        DocumentRequest.tr,
        DocumentRequest.status,
        DocumentRequest.request_by,
        DocumentRequest.process_by,
        DocumentRequest.pending_verification,
        DocumentRequest.archived,
        DocumentRequest.created_at,
    ]
    column_searchable_list = [DocumentRequest.tr]
    column_sortable_list = [DocumentRequest.id, DocumentRequest.status, DocumentRequest.created_at]
    column_default_sort = [(DocumentRequest.created_at, True)]
    can_create = False
    can_delete = False
    name = "Request"
    name_plural = "Requests"
    icon = "fa-solid fa-file-alt"


class RequestItemAdmin(ModelView, model=RequestItem):
    column_list = [
        RequestItem.id,
        RequestItem.tr,
        RequestItem.type,
        RequestItem.quantity,
        RequestItem.status,
        RequestItem.created_at,
    ]
    column_searchable_list = [RequestItem.tr, RequestItem.type]
    column_sortable_list = [RequestItem.id, RequestItem.type, RequestItem.status]
    can_create = False
    can_delete = False
    name = "Request Item"
    name_plural = "Request Items"
    icon = "fa-solid fa-list"


class RatingAdmin(ModelView, model=Rating):
    column_list = [Rating.id, Rating.rating, Rating.created_at]
    column_default_sort = [(Rating.created_at, True)]
    can_create = False
    can_edit = False
    name = "Rating"
    name_plural = "Ratings"
    icon = "fa-solid fa-star"


class AuditEventAdmin(ModelView, model=AuditEvent):
    column_list = [
        AuditEvent.id,
        AuditEvent.timestamp,
        AuditEvent.event_type,
        AuditEvent.user_id,
        AuditEvent.user_role,
        AuditEvent.request_id,
    ]
    column_sortable_list = [AuditEvent.id, AuditEvent.timestamp, AuditEvent.event_type]
    column_default_sort = [(AuditEvent.timestamp, True)]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Audit Event"
    name_plural = "Audit Events"
    icon = "fa-solid fa-shield-alt"


def setup_admin(app):
    admin = Admin(
        app,
        engine,
        title="AUDRES Admin",
        authentication_backend=AdminAuth(secret_key=settings.SQLADMIN_SECRET_KEY),
    )
    for view in (
        DocumentRequestAdmin,
        RequestItemAdmin,
        CatalogEntryAdmin,
        UserAdmin,
        RatingAdmin,
        AuditEventAdmin,
    ):
        admin.add_view(view)
    return admin
