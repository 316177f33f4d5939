"""
=============================================================================
DYNAMODB SERVICE - Meter and reading storage on Amazon DynamoDB
=============================================================================

Two tables hold everything the portal reads and edits:

Table: WaterMeters
- meter_id (Number)  - Partition Key
- client_name, address, sector (String)

Table: WaterReadings
- meter_id (Number)   - Partition Key - groups readings by meter
- reading_id (Number) - Sort Key
- month, year (Number)
- meter_value (Number) - the value shown on the meter
- consumption (Number or String) - stored, never derived here

Example reading item:
{
    "meter_id": 1042,
    "reading_id": 88,
    "month": 3,
    "year": 2024,
    "meter_value": 1530,
    "consumption": 12
}

Every AWS failure is raised as BackendError with the AWS message. Nothing
is retried here; boto3's own defaults apply.
=============================================================================
"""

import logging
import os
from decimal import Decimal
from typing import Dict, List

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from backend.lib.water_core.errors import BackendError, NotFoundError
from backend.lib.water_core.models import MALFORMED_ROW_ERRORS, Meter, Reading, parse_rows

logger = logging.getLogger(__name__)


def _to_item(row: Dict) -> Dict:
    """DynamoDB wants Decimal, not float. None values are left out."""
    item = {}
    for key, value in row.items():
        if value is None:
            continue
        if isinstance(value, float):
            value = Decimal(str(value))
        item[key] = value
    return item


class DynamoDBService:
    """
    Store backed by DynamoDB.

    Usage:
        db = DynamoDBService()
        db.create_tables_if_not_exist()
        meter = db.get_meter(1042)
        readings = db.get_readings_for_meter(1042)
    """

    def __init__(self, meters_table: str = None, readings_table: str = None, resource=None):
        """
        Args:
            meters_table / readings_table: table names; default to the
                METERS_TABLE_NAME / READINGS_TABLE_NAME environment variables.
            resource: an existing boto3 DynamoDB resource. When missing one is
                built from the AWS_* environment variables.
        """
        self.meters_table_name = meters_table or os.getenv('METERS_TABLE_NAME', 'WaterMeters')
        self.readings_table_name = readings_table or os.getenv('READINGS_TABLE_NAME', 'WaterReadings')
        self.region = os.getenv('AWS_REGION', 'us-east-1')

        if resource is None:
            # Session token is only set for temporary credentials
            session_token = os.getenv('AWS_SESSION_TOKEN')
            resource = boto3.resource(
                'dynamodb',
                region_name=self.region,
                aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                aws_session_token=session_token if session_token else None
            )
        self.dynamodb = resource
        self.meters = self.dynamodb.Table(self.meters_table_name)
        self.readings = self.dynamodb.Table(self.readings_table_name)

    # ------------------------------------------------------------------
    # Table setup
    # ------------------------------------------------------------------

    def create_tables_if_not_exist(self) -> None:
        """Create both tables on demand (PAY_PER_REQUEST billing)."""
        self._create_table(self.meters_table_name, [('meter_id', 'HASH', 'N')])
        self._create_table(self.readings_table_name, [
            ('meter_id', 'HASH', 'N'),
            ('reading_id', 'RANGE', 'N'),
        ])

    def _create_table(self, name: str, keys) -> None:
        client = self.dynamodb.meta.client
        try:
            client.describe_table(TableName=name)
            logger.info("DynamoDB table '%s' exists", name)
            return
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                raise BackendError(str(e)) from e

        try:
            table = self.dynamodb.create_table(
                TableName=name,
                KeySchema=[{'AttributeName': k, 'KeyType': t} for k, t, _ in keys],
                AttributeDefinitions=[{'AttributeName': k, 'AttributeType': a} for k, _, a in keys],
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
            logger.info("Created DynamoDB table '%s'", name)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_meter(self, meter_id: int) -> Meter:
        try:
            response = self.meters.get_item(Key={'meter_id': meter_id})
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
        item = response.get('Item')
        if not item:
            raise NotFoundError(f"No meter found with ID {meter_id}")
        try:
            return Meter.from_row(item)
        except MALFORMED_ROW_ERRORS as e:
            raise BackendError(f"Malformed meter item {meter_id}: {e}") from e

    def list_meters(self) -> List[Meter]:
        return parse_rows(self._scan(self.meters), Meter.from_row)

    def count_meters(self) -> int:
        total = 0
        kwargs = {'Select': 'COUNT'}
        try:
            while True:
                response = self.meters.scan(**kwargs)
                total += response.get('Count', 0)
                if 'LastEvaluatedKey' not in response:
                    return total
                kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e

    def get_readings_for_meter(self, meter_id: int) -> List[Reading]:
        """
        Query by partition key, following LastEvaluatedKey until every page
        has been read (1MB per page).
        """
        items = []
        kwargs = {'KeyConditionExpression': Key('meter_id').eq(meter_id)}
        try:
            while True:
                response = self.readings.query(**kwargs)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    break
                kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
        return parse_rows(items, Reading.from_row)

    def get_all_readings(self) -> List[Reading]:
        return parse_rows(self._scan(self.readings), Reading.from_row)

    def _scan(self, table) -> List[Dict]:
        items = []
        kwargs = {}
        try:
            while True:
                response = table.scan(**kwargs)
                items.extend(response.get('Items', []))
                if 'LastEvaluatedKey' not in response:
                    return items
                kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_meter_value(self, meter_id: int, reading_id: int, meter_value: float) -> Reading:
        """
        Change the meter value of one reading. Consumption is left as stored.
        Raises NotFoundError when the reading does not exist.
        """
        try:
            response = self.readings.update_item(
                Key={'meter_id': meter_id, 'reading_id': reading_id},
                UpdateExpression='SET meter_value = :v',
                ConditionExpression='attribute_exists(reading_id)',
                ExpressionAttributeValues={':v': Decimal(str(meter_value))},
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise NotFoundError(f"No reading {reading_id} for meter {meter_id}") from e
            raise BackendError(str(e)) from e
        except BotoCoreError as e:
            raise BackendError(str(e)) from e
        try:
            return Reading.from_row(response["Attributes"])
        except MALFORMED_ROW_ERRORS as e:
            raise BackendError(f"Malformed reading item {reading_id}: {e}") from e

    def put_meter(self, meter: Meter) -> None:
        try:
            self.meters.put_item(Item=_to_item(meter.to_row()))
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e

    def put_readings_batch(self, readings: List[Reading]) -> int:
        """
        Write many readings; batch_writer groups them 25 at a time and
        resends unprocessed items.
        """
        try:
            with self.readings.batch_writer() as writer:
                for r in readings:
                    writer.put_item(Item=_to_item(r.to_row()))
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e)) from e
        return len(readings)

    def status(self) -> Dict:
        return {
            'backend': 'dynamodb',
            'meters_table': self.meters_table_name,
            'readings_table': self.readings_table_name,
        }
