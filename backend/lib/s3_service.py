"""
=============================================================================
S3 SERVICE - Archive of generated exports on Amazon S3
=============================================================================

When USE_S3_STORAGE is enabled every spreadsheet produced by /admin/export
is also stored in a bucket, and the response carries a presigned link so the
file can be downloaded again later without AWS credentials.

Example:
    Bucket: water-portal-exports
    Key: exports/20240320T120000Z_readings.xlsx
=============================================================================
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from backend.lib.water_core.errors import BackendError

logger = logging.getLogger(__name__)


class S3Service:
    """
    Usage:
        s3 = S3Service()
        s3.create_bucket_if_not_exists()
        key = s3.upload_export(workbook_bytes, "readings.xlsx", XLSX_CONTENT_TYPE)
        url = s3.get_presigned_url(key)
    """

    def __init__(self, bucket_name: str = None, client=None):
        self.bucket_name = bucket_name or os.getenv('S3_BUCKET_NAME', 'water-portal-exports')
        self.region = os.getenv('AWS_REGION', 'us-east-1')

        if client is None:
            session_token = os.getenv('AWS_SESSION_TOKEN')
            client = boto3.client(
                's3',
                region_name=self.region,
                aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                aws_session_token=session_token if session_token else None
            )
        self.s3_client = client

    def create_bucket_if_not_exists(self) -> None:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return
        except ClientError as e:
            if e.response['Error']['Code'] != '404':
                raise BackendError(str(e)) from e

        try:
            # us-east-1 rejects an explicit LocationConstraint
            if self.region == 'us-east-1':
                self.s3_client.create_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={'LocationConstraint': self.region}
                )
            logger.info("Created bucket: %s", self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e

    def upload_export(self, content: bytes, filename: str, content_type: str) -> str:
        """
        Store an export under exports/<UTC timestamp>_<filename> and return
        the key.
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')
        s3_key = f"exports/{timestamp}_{filename}"
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=content,
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
        return s3_key

    def list_exports(self, prefix: str = 'exports/') -> List[Dict]:
        try:
            response = self.s3_client.list_objects_v2(Bucket=self.bucket_name, Prefix=prefix)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
        return [
            {
                'key': obj['Key'],
                'size': obj['Size'],
                'last_modified': obj['LastModified'].isoformat()
            }
            for obj in response.get('Contents', [])
        ]

    def get_presigned_url(self, s3_key: str, expiration: int = 3600) -> str:
        """Temporary download link, valid for `expiration` seconds."""
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': s3_key},
                ExpiresIn=expiration
            )
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
