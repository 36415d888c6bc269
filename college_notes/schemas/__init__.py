from college_notes.schemas.auth import SignupRequest, LoginRequest, TokenResponse
from college_notes.schemas.notes import NoteOut, NoteListQuery, ApproveRequest, RejectRequest, DownloadOut
from college_notes.schemas.delete_requests import DeleteRequestCreate, DeleteRequestOut
from college_notes.schemas.moderator_requests import ModeratorRequestCreate, ModeratorRequestOut
from college_notes.schemas.notifications import NotificationOut
