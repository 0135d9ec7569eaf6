# This project was developed with assistance from AI tools.
"""Shared data scope filtering for ledger queries.

Requesters are narrowed to ledgers they submitted; staff scopes pass
through unchanged.
"""

from audres_db import DocumentRequest, User

from ..schemas.auth import DataScope


def apply_data_scope(stmt, scope: DataScope):
    """Apply data scope filtering to a select over ``DocumentRequest``."""
    if scope.own_data_only and scope.user_id:
        stmt = stmt.join(User, User.id == DocumentRequest.request_by).where(
            User.external_id == scope.user_id,
        )
    elif not scope.full_registry:
        # no recognised scope: nothing is visible
        stmt = stmt.where(DocumentRequest.id.is_(None))
    return stmt
