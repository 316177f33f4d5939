# tests/test_s3_service.py
from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import ANY, Stubber

from backend.lib.s3_service import S3Service
from backend.lib.water_core.errors import BackendError


@pytest.fixture
def s3():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    service = S3Service("exports-bucket", client=client)
    with Stubber(client) as stubber:
        service.stubber = stubber
        yield service
        stubber.assert_no_pending_responses()


def test_upload_export_key(s3):
    s3.stubber.add_response("put_object", {}, {
        "Bucket": "exports-bucket",
        "Key": ANY,
        "Body": b"a,b\n",
        "ContentType": "text/csv",
    })
    key = s3.upload_export(b"a,b\n", "readings.csv", "text/csv")
    assert key.startswith("exports/")
    assert key.endswith("_readings.csv")


def test_list_exports(s3):
    s3.stubber.add_response("list_objects_v2", {"Contents": [{
        "Key": "exports/20240320T120000Z_readings.xlsx",
        "Size": 2048,
        "LastModified": datetime(2024, 3, 20, 12, tzinfo=timezone.utc),
    }]})
    exports = s3.list_exports()
    assert exports == [{
        "key": "exports/20240320T120000Z_readings.xlsx",
        "size": 2048,
        "last_modified": "2024-03-20T12:00:00+00:00",
    }]


def test_existing_bucket_is_left_alone(s3):
    s3.stubber.add_response("head_bucket", {}, {"Bucket": "exports-bucket"})
    s3.create_bucket_if_not_exists()


def test_upload_failure_is_a_backend_error(s3):
    s3.stubber.add_client_error("put_object", service_error_code="AccessDenied", service_message="Access Denied")
    with pytest.raises(BackendError, match="Access Denied"):
        s3.upload_export(b"x", "readings.csv", "text/csv")
