from typing import Dict, List

from college_notes.core.errors import StoreError
from college_notes.models.enums import UserRole
from college_notes.models.user import User
from college_notes.policies.rbac import Principal
from college_notes.services.auth_service import issue_token
from college_notes.services.moderation_service import NoteDraft, UploadedFile
from college_notes.storage.object_store import ObjectStore, PutResult

PASSWORD = "password123"


class InMemoryObjectStore(ObjectStore):
    """Dict-backed store. Operations named in fail_on raise StoreError."""

    def __init__(self, bucket: str = "test-bucket"):
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.fail_on: set = set()

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise StoreError(f"simulated {op} failure")

    def put(self, key, data, content_type, metadata=None):
        self._check("put")
        self.objects[key] = data
        self.content_types[key] = content_type
        return PutResult(key=key, bucket=self.bucket, location=f"memory://{self.bucket}/{key}", etag=None)

    def get(self, key):
        self._check("get")
        if key not in self.objects:
            raise StoreError(f"No such key {key}")
        return self.objects[key]

    def copy(self, source_key, dest_key):
        self._check("copy")
        if source_key not in self.objects:
            raise StoreError(f"No such key {source_key}")
        self.objects[dest_key] = self.objects[source_key]
        self.content_types[dest_key] = self.content_types.get(source_key, "")

    def delete(self, key):
        self._check("delete")
        self.objects.pop(key, None)
        self.content_types.pop(key, None)

    def presigned_get_url(self, key, ttl_seconds):
        self._check("presign")
        if not key:
            raise StoreError("Object key is required")
        return f"https://signed.example.test/{key}?expires={ttl_seconds}"

    def list_keys(self, prefix):
        self._check("list")
        return sorted(k for k in self.objects if k.startswith(prefix))


class RecordingBroker:
    def __init__(self):
        self.published: List[tuple] = []

    def subscribe(self, user_id):
        raise NotImplementedError

    def publish(self, user_id, event):
        self.published.append((user_id, event))
        return 1


def principal_of(user: User) -> Principal:
    return Principal(user_id=str(user.id), role=UserRole(user.role), name=user.name)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def note_draft(**overrides) -> NoteDraft:
    fields = dict(
        title="Operating Systems Unit 1",
        description="Process scheduling and threads",
        college="nitk",
        program_level="UG",
        course="CSE",
        semester="6",
        subject="OS",
        upload_type="notes",
        professor="Dr. Rao",
        year="2024",
        tags=["scheduling", "threads"],
    )
    fields.update(overrides)
    return NoteDraft(**fields)


def pdf_file(filename: str = "unit1 notes.pdf", data: bytes = b"%PDF-1.4 test body") -> UploadedFile:
    return UploadedFile(filename=filename, content_type="application/pdf", data=data)


def upload_form(**overrides) -> Dict[str, str]:
    fields = {
        "title": "Operating Systems Unit 1",
        "description": "Process scheduling and threads",
        "college": "nitk",
        "program_level": "UG",
        "course": "CSE",
        "semester": "6",
        "subject": "OS",
        "upload_type": "notes",
        "tags": "scheduling, threads",
    }
    fields.update(overrides)
    return fields


PDF_UPLOAD = ("unit1 notes.pdf", b"%PDF-1.4 api body", "application/pdf")
