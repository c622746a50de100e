"""DynamoDB manager for calendar entry storage."""
import logging
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import CalendarEntry
from storage.entry_store import EntryStore, sort_entries

logger = logging.getLogger(__name__)


class DynamoDBManager(EntryStore):
    """Entry store backed by a DynamoDB table keyed on entry_id."""

    OPTIONAL_FIELDS = ('department', 'committee', 'event_type', 'description')

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region (defaults to the environment's region)
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    def init(self) -> None:
        """Create the table if it does not exist yet."""
        client = self.dynamodb.meta.client
        try:
            client.describe_table(TableName=self.table_name)
            logger.info(f"Table {self.table_name} already exists")
            return
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                raise

        logger.info(f"Creating table {self.table_name}")
        try:
            client.create_table(
                TableName=self.table_name,
                KeySchema=[{'AttributeName': 'entry_id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': 'entry_id', 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST'
            )
        except ClientError as e:
            # Another crawl created it first
            if e.response['Error']['Code'] != 'ResourceInUseException':
                raise
        client.get_waiter('table_exists').wait(TableName=self.table_name)

    def insert_entry(self, entry: CalendarEntry) -> Optional[str]:
        """
        Write an entry unless one with the same entry_id exists.

        Args:
            entry: CalendarEntry to store

        Returns:
            The entry_id if written, None for a duplicate
        """
        item = self._entry_to_item(entry)
        try:
            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(entry_id)'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return None
            logger.error(f"Error writing entry {item['entry_id']}: {e}")
            raise
        return item['entry_id']

    def get_entries_by_date_range(self, start_date: str, end_date: str) -> List[CalendarEntry]:
        """
        Retrieve entries between two ISO dates, both inclusive.

        Returns:
            Entries ordered by date, then time
        """
        items = self._scan(FilterExpression=Attr('event_date').between(start_date, end_date))
        return sort_entries(self._items_to_entries(items))

    def get_all_entries(self) -> List[CalendarEntry]:
        """
        Retrieve all entries from DynamoDB using Scan operation.

        Returns:
            Entries ordered by date, then time
        """
        logger.info("Scanning DynamoDB table for all entries")
        items = self._scan()
        entries = self._items_to_entries(items)
        logger.info(f"Retrieved {len(entries)} entries from DynamoDB")
        return sort_entries(entries)

    def get_entry_count(self) -> int:
        count = 0
        response = self.table.scan(Select='COUNT')
        count += response['Count']
        while 'LastEvaluatedKey' in response:
            response = self.table.scan(
                Select='COUNT',
                ExclusiveStartKey=response['LastEvaluatedKey']
            )
            count += response['Count']
        return count

    def clear_all_entries(self) -> int:
        """
        Delete every entry from the table.

        Returns:
            Count of deleted entries
        """
        items = self._scan(ProjectionExpression='entry_id')
        if not items:
            return 0

        logger.info(f"Deleting {len(items)} entries from DynamoDB")
        with self.table.batch_writer() as writer:
            for item in items:
                writer.delete_item(Key={'entry_id': item['entry_id']})

        logger.info(f"Successfully deleted {len(items)} entries")
        return len(items)

    def _scan(self, **kwargs) -> List[dict]:
        try:
            response = self.table.scan(**kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **kwargs
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

    def _items_to_entries(self, items: List[dict]) -> List[CalendarEntry]:
        entries = []
        for item in items:
            entry = self._item_to_entry(item)
            if entry:
                entries.append(entry)
        return entries

    def _item_to_entry(self, item: dict) -> Optional[CalendarEntry]:
        """
        Convert DynamoDB item to CalendarEntry object.

        Returns:
            CalendarEntry or None if conversion fails
        """
        try:
            return CalendarEntry(
                title=item['title'],
                date=item['event_date'],
                time=item.get('start_time'),
                department=item.get('department'),
                committee=item.get('committee'),
                event_type=item.get('event_type'),
                description=item.get('description'),
                source_url=item['source_url'],
                scraped_at=item['scraped_at']
            )
        except KeyError as e:
            logger.warning(f"Failed to convert item to CalendarEntry: {e}")
            return None

    def _entry_to_item(self, entry: CalendarEntry) -> dict:
        item = {
            'entry_id': entry.entry_id,
            'title': entry.title,
            'event_date': entry.date,
            'source_url': entry.source_url,
            'scraped_at': entry.scraped_at
        }

        # Add optional fields if present
        if entry.time:
            item['start_time'] = entry.time
        for name in self.OPTIONAL_FIELDS:
            value = getattr(entry, name)
            if value:
                item[name] = value

        return item
