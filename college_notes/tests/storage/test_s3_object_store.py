import boto3
import pytest
from botocore.stub import Stubber

from college_notes.core.errors import StoreError
from college_notes.storage.object_store import S3ObjectStore

BUCKET = "notes-bucket"


def make_store(endpoint_url=None):
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    return S3ObjectStore(BUCKET, client=client, endpoint_url=endpoint_url), Stubber(client)


def test_put_returns_location_and_etag():
    store, stub = make_store()
    stub.add_response(
        "put_object",
        {"ETag": '"abc123"'},
        {
            "Bucket": BUCKET,
            "Key": "pending/nitk/a.pdf",
            "Body": b"data",
            "ContentType": "application/pdf",
            "Metadata": {"note-id": "n1"},
            "StorageClass": "STANDARD",
        },
    )
    with stub:
        res = store.put("pending/nitk/a.pdf", b"data", "application/pdf", metadata={"note-id": "n1"})

    assert res.key == "pending/nitk/a.pdf"
    assert res.bucket == BUCKET
    assert res.etag == '"abc123"'
    assert res.location == f"https://{BUCKET}.s3.us-east-1.amazonaws.com/pending/nitk/a.pdf"


def test_put_failure_raises_store_error():
    store, stub = make_store()
    stub.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
    with stub, pytest.raises(StoreError):
        store.put("pending/a.pdf", b"data", "application/pdf")


def test_copy_keeps_metadata():
    store, stub = make_store()
    stub.add_response(
        "copy_object",
        {},
        {
            "Bucket": BUCKET,
            "Key": "college-notes/a.pdf",
            "CopySource": {"Bucket": BUCKET, "Key": "pending/a.pdf"},
            "MetadataDirective": "COPY",
        },
    )
    with stub:
        store.copy("pending/a.pdf", "college-notes/a.pdf")
    stub.assert_no_pending_responses()


def test_copy_failure_raises_store_error():
    store, stub = make_store()
    stub.add_client_error("copy_object", service_error_code="NoSuchKey", http_status_code=404)
    with stub, pytest.raises(StoreError):
        store.copy("pending/missing.pdf", "college-notes/missing.pdf")


def test_delete_of_missing_object_is_not_an_error():
    store, stub = make_store()
    stub.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
    with stub:
        store.delete("pending/gone.pdf")


def test_delete_quietly_reports_failure():
    store, stub = make_store()
    stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
    with stub:
        assert store.delete_quietly("pending/a.pdf") is False


def test_list_keys_follows_prefix():
    store, stub = make_store()
    stub.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "pending/a.pdf"}, {"Key": "pending/b.pdf"}], "IsTruncated": False},
        {"Bucket": BUCKET, "Prefix": "pending/"},
    )
    with stub:
        assert store.list_keys("pending/") == ["pending/a.pdf", "pending/b.pdf"]


def test_presigned_url_targets_key():
    store, _ = make_store()
    url = store.presigned_get_url("college-notes/a.pdf", 60)
    assert BUCKET in url
    assert "college-notes/a.pdf" in url


def test_presigned_url_requires_key():
    store, _ = make_store()
    assert store.try_presigned_get_url("", 60) is None


def test_custom_endpoint_location():
    store, stub = make_store(endpoint_url="http://minio:9000/")
    stub.add_response("put_object", {"ETag": '"e"'})
    with stub:
        res = store.put("pending/a b.pdf", b"x", "application/pdf")
    assert res.location == f"http://minio:9000/{BUCKET}/pending/a%20b.pdf"
