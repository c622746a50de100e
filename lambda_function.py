"""AWS Lambda handler for Town Calendar Sync."""
import json
import logging
import os
import time
from dataclasses import asdict
from datetime import date, datetime, timedelta
from typing import Dict, Any, Optional, Tuple

import boto3

from scraper.page_fetcher import PageFetcher
from scraper.town_calendar import TownCalendarParser
from scraper.event_enricher import EventEnricher
from processor.calendar_crawler import CalendarCrawler
from processor.progress_reporter import LoggingProgressReporter
from storage.dynamodb_manager import DynamoDBManager
from storage.entry_store import EntryStore
from storage.memory_store import MemoryStore


# Attributes every LogRecord carries; anything else came in through `extra`
RESERVED_LOG_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'exc_info', 'exc_text',
    'thread', 'threadName', 'message', 'asctime', 'taskName'
}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in RESERVED_LOG_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_settings() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    return {
        'table_name': os.environ.get('TABLE_NAME', 'town-calendar-entries'),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'days_ahead': int(os.environ.get('DAYS_AHEAD', '90')),
        'timeout_seconds': float(os.environ.get('TIMEOUT_SECONDS', '15')),
        'request_delay': float(os.environ.get('REQUEST_DELAY_SECONDS', '1.0')),
        'max_retries': int(os.environ.get('MAX_RETRIES', '3')),
        'base_url': os.environ.get('BASE_URL', TownCalendarParser.BASE_URL),
        'calendar_path': os.environ.get('CALENDAR_PATH', TownCalendarParser.CALENDAR_PATH),
        'storage_backend': os.environ.get('STORAGE_BACKEND', 'dynamodb'),
    }


def create_storage(settings: Dict[str, Any]) -> EntryStore:
    """Instantiate the configured storage backend."""
    if settings['storage_backend'] == 'memory':
        return MemoryStore()
    return DynamoDBManager(table_name=settings['table_name'])


def create_crawler(settings: Dict[str, Any], storage: EntryStore) -> CalendarCrawler:
    """Wire fetcher, parser and enricher into a crawler."""
    fetcher = PageFetcher(
        timeout=settings['timeout_seconds'],
        delay=settings['request_delay'],
        max_retries=settings['max_retries']
    )
    parser = TownCalendarParser(
        fetcher,
        base_url=settings['base_url'],
        calendar_path=settings['calendar_path']
    )
    return CalendarCrawler(parser, EventEnricher(fetcher), storage)


def parse_date_range(start_value: Any, end_value: Any) -> Tuple[date, date]:
    """
    Validate a requested crawl range.

    Args:
        start_value: Start date string (YYYY-MM-DD)
        end_value: End date string (YYYY-MM-DD)

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If a date is missing, malformed, or start is after end
    """
    if not start_value or not end_value:
        raise ValueError('Start date and end date are required')

    try:
        start_date = datetime.strptime(str(start_value), '%Y-%m-%d').date()
        end_date = datetime.strptime(str(end_value), '%Y-%m-%d').date()
    except ValueError:
        raise ValueError('Invalid date format, expected YYYY-MM-DD') from None

    if start_date > end_date:
        raise ValueError('Start date must be before end date')

    return start_date, end_date


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body, default=str)}


def start_crawl(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Validate the requested range and launch the crawl asynchronously.

    The crawl runs in a separate Event invocation of this function, so
    the caller gets a response without waiting for it.
    """
    logger = logging.getLogger(__name__)

    try:
        start_date, end_date = parse_date_range(
            event.get('start_date'), event.get('end_date')
        )
    except ValueError as e:
        logger.warning(f"Rejected crawl request: {e}")
        return _response(400, {'error': str(e)})

    payload = {
        'action': 'crawl',
        'start_date': start_date.isoformat(),
        'end_date': end_date.isoformat()
    }
    try:
        lambda_client = boto3.client('lambda')
        lambda_client.invoke(
            FunctionName=context.function_name,
            InvocationType='Event',
            Payload=json.dumps(payload).encode('utf-8')
        )
    except Exception as e:
        logger.error(
            f"Failed to launch crawl: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {'error': 'Failed to start scraping', 'error_type': type(e).__name__})

    logger.info("Crawl launched in background", extra=payload)

    return _response(202, {
        'success': True,
        'message': 'Scraping started successfully',
        'startDate': payload['start_date'],
        'endDate': payload['end_date'],
        'note': 'Scraping is running in the background. Refresh to see results.'
    })


def run_crawl(
    event: Dict[str, Any],
    settings: Dict[str, Any],
    storage: Optional[EntryStore] = None
) -> Dict[str, Any]:
    """Run a crawl to completion and return its statistics."""
    logger = logging.getLogger(__name__)
    start_time = time.time()

    if event.get('start_date') or event.get('end_date'):
        try:
            start_date, end_date = parse_date_range(
                event.get('start_date'), event.get('end_date')
            )
        except ValueError as e:
            return _response(400, {'error': str(e)})
    else:
        start_date = date.today()
        end_date = start_date + timedelta(days=settings['days_ahead'])

    try:
        if storage is None:
            storage = create_storage(settings)
        crawler = create_crawler(settings, storage)
        reporter = LoggingProgressReporter()
        result = crawler.crawl(start_date, end_date, progress_callback=reporter)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Crawl failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Crawl failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    return _response(200, {
        'message': 'Crawl completed',
        'statistics': {
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'months_visited': len(result.months_visited),
            'entries_added': result.total_entries,
            'duplicates': result.duplicates,
            'failed_inserts': result.failed_inserts,
            'duration_seconds': round(duration, 2)
        },
        'errors': result.errors
    })


def summarize(settings: Dict[str, Any], storage: Optional[EntryStore] = None) -> Dict[str, Any]:
    """Return the stored entry count and a few sample entries."""
    logger = logging.getLogger(__name__)
    try:
        if storage is None:
            storage = create_storage(settings)
        storage.init()
        total_entries = storage.get_entry_count()
        entries = storage.get_all_entries()
    except Exception as e:
        logger.error(f"Failed to summarize entries: {e}", exc_info=True)
        return _response(500, {'error': 'Internal server error'})

    return _response(200, {
        'totalEntries': total_entries,
        'hasData': total_entries > 0,
        'sampleEntries': [asdict(entry) for entry in entries[:5]]
    })


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Town Calendar Sync.

    Args:
        event: Payload with an optional 'action' of 'start_crawl',
            'crawl' (default) or 'summary', plus 'start_date'/'end_date'
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    settings = load_settings()
    setup_logging(settings['log_level'])
    logger = logging.getLogger(__name__)

    action = event.get('action', 'crawl')
    logger.info(
        f"Lambda execution started",
        extra={'action': action, 'table_name': settings['table_name']}
    )

    if action == 'start_crawl':
        return start_crawl(event, context)
    if action == 'crawl':
        return run_crawl(event, settings)
    if action == 'summary':
        return summarize(settings)

    logger.warning(f"Unknown action: {action}")
    return _response(400, {'error': f'Unknown action: {action}'})
