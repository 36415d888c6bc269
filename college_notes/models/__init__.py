# Import every model so Base.metadata is complete (alembic, tests)
from college_notes.models.user import User  # noqa: F401
from college_notes.models.note import Note, NoteModerationEvent  # noqa: F401
from college_notes.models.delete_request import DeleteRequest  # noqa: F401
from college_notes.models.moderator_request import ModeratorRequest  # noqa: F401
from college_notes.models.notification import Notification  # noqa: F401
from college_notes.models.site_settings import SiteSettings  # noqa: F401
from college_notes.models.audit_log import AuditLog  # noqa: F401
