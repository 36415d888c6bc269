#college_notes/models/enums.py
from __future__ import annotations
from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    SENIOR_MODERATOR = "senior moderator"
    ADMIN = "admin"


class College(str, Enum):
    BHU = "bhu"
    NITK = "nitk"


class ProgramLevel(str, Enum):
    UG = "UG"
    PG = "PG"
    NONE = ""


class UploadType(str, Enum):
    NOTES = "notes"
    PYQS = "pyqs"
    BOOKS = "books"
    ASSIGNMENTS = "assignments"
    LAB_MANUALS = "lab-manuals"
    OTHERS = "others"
    CURRENT_SEMESTER = "current-semester-2025"


class NoteStatus(str, Enum):
    # persisted states only
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ModerationAction(str, Enum):
    uploaded = "uploaded"
    approved = "approved"
    rejected = "rejected"
    delete_requested = "delete_requested"
    delete_request_rejected = "delete_request_rejected"


class DeleteRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    executed = "executed"


class ModeratorRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class StudentType(str, Enum):
    UG = "UG"
    PG = "PG"
    PHD = "PhD"
