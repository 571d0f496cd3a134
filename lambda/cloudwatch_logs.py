"""
CloudWatch Logs delivery for CloudFront access log records
Groups records by date, resolves one log stream per date and puts the events
"""

import json
import logging
import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

import boto3

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = 'logs:cloudfront'
DEFAULT_REGION = 'us-east-1'
GROUP_BY_FIELD = 'date'


class LogForwarderError(Exception):
    """Base exception for log forwarding failures"""
    pass

class ConfigurationError(LogForwarderError):
    """Exception for missing or invalid environment configuration"""
    pass

class InvalidRecordError(LogForwarderError):
    """Exception for records that cannot be converted to log events"""
    pass

class LogStreamResolutionError(LogForwarderError):
    """Exception for log streams that cannot be resolved to exactly one stream"""
    pass

class AmbiguousLogStreamError(LogStreamResolutionError):
    """Exception for a stream name prefix matching more than one log stream"""
    pass

class LogStreamNotFoundError(LogStreamResolutionError):
    """Exception for a log stream that is missing right after being created"""
    pass


@dataclass(frozen=True)
class ForwarderConfig:
    """
    Destination settings for a forwarding run
    """
    log_group_name: str
    region: str = DEFAULT_REGION
    source_name: str = DEFAULT_SOURCE_NAME

    @classmethod
    def from_environment(cls) -> 'ForwarderConfig':
        """
        Build the configuration from the process environment

        Read at call time so that a warm Lambda container picks up the
        environment of the current invocation.

        Raises:
            ConfigurationError: If LOG_GROUP_NAME is not set
        """
        log_group_name = os.environ.get('LOG_GROUP_NAME')
        if not log_group_name:
            raise ConfigurationError("LOG_GROUP_NAME environment variable is required")

        region = (
            os.environ.get('LOG_GROUP_REGION')
            or os.environ.get('AWS_REGION')
            or DEFAULT_REGION
        )
        source_name = os.environ.get('LOG_SOURCE_NAME') or DEFAULT_SOURCE_NAME

        return cls(log_group_name=log_group_name, region=region, source_name=source_name)

    def create_logs_client(self):
        return boto3.client('logs', region_name=self.region)


def group_by(records: List[Dict[str, str]], key: str) -> Dict[str, List[Dict[str, str]]]:
    """
    Partition records by the value of a field, keeping their relative order

    Records that do not carry the field are dropped.
    """
    groups: Dict[str, List[Dict[str, str]]] = {}
    dropped = 0

    for record in records:
        value = record.get(key)
        if value is None:
            dropped += 1
            continue
        groups.setdefault(value, []).append(record)

    if dropped:
        logger.debug(f"Dropped {dropped} records without a '{key}' field")

    return groups


def find_log_stream(logs_client, log_group_name: str, log_stream_name_prefix: str) -> Optional[Dict[str, Any]]:
    """
    Look up the single log stream matching a name prefix

    Returns:
        The matching log stream description, or None when nothing matches

    Raises:
        AmbiguousLogStreamError: If more than one log stream matches
    """
    response = logs_client.describe_log_streams(
        logGroupName=log_group_name,
        logStreamNamePrefix=log_stream_name_prefix
    )

    log_streams = response.get('logStreams') or []
    if len(log_streams) > 1:
        raise AmbiguousLogStreamError(
            f"Found '{len(log_streams)}' matching CloudWatch Log Streams but expected 1"
        )

    return log_streams[0] if log_streams else None


def describe_log_stream(logs_client, log_group_name: str, log_stream_name: str) -> Dict[str, Any]:
    """
    Return the log stream with the given name, creating it if necessary

    Raises:
        AmbiguousLogStreamError: If the name matches more than one log stream
        LogStreamNotFoundError: If the stream cannot be found after creating it
    """
    log_stream = find_log_stream(logs_client, log_group_name, log_stream_name)
    if log_stream is not None:
        return log_stream

    logger.info(f"Creating log stream: {log_stream_name} in group: {log_group_name}")
    logs_client.create_log_stream(
        logGroupName=log_group_name,
        logStreamName=log_stream_name
    )

    created_log_stream = find_log_stream(logs_client, log_group_name, log_stream_name)
    if created_log_stream is None:
        raise LogStreamNotFoundError(
            f"Created log stream '{log_stream_name}' in group '{log_group_name}' but it could not be found"
        )

    return created_log_stream


def parse_record_timestamp(record: Dict[str, str]) -> int:
    """
    Convert a record's date and time fields to epoch milliseconds (UTC)
    """
    date = record.get('date')
    time = record.get('time')
    if not date or not time:
        raise InvalidRecordError(f"Record is missing 'date' or 'time': {str(record)[:200]}")

    try:
        dt = datetime.fromisoformat(f"{date.strip()}T{time.strip()}")
    except ValueError as e:
        raise InvalidRecordError(f"Invalid record timestamp '{date} {time}': {str(e)}") from e

    dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def build_log_events(records: List[Dict[str, str]], source_name: str = DEFAULT_SOURCE_NAME) -> List[Dict[str, Any]]:
    """
    Convert records to CloudWatch Logs events sorted by timestamp

    Each message is the record serialized as compact JSON with a 'name' field
    naming the log source.
    """
    log_events = [
        {
            'message': json.dumps({**record, 'name': source_name}, separators=(',', ':')),
            'timestamp': parse_record_timestamp(record)
        }
        for record in records
    ]

    # CloudWatch requires chronological order within a batch
    log_events.sort(key=lambda event: event['timestamp'])
    return log_events


def put_date_group(logs_client, config: ForwarderConfig, date: str, records: List[Dict[str, str]]) -> Dict[str, Any]:
    """
    Resolve the log stream for one date and put that date's events into it
    """
    log_stream = describe_log_stream(logs_client, config.log_group_name, date)
    log_events = build_log_events(records, config.source_name)

    request = {
        'logGroupName': config.log_group_name,
        'logStreamName': log_stream['logStreamName'],
        'logEvents': log_events
    }
    if log_stream.get('uploadSequenceToken'):
        request['sequenceToken'] = log_stream['uploadSequenceToken']

    logger.info(f"Sending {len(log_events)} events to {config.log_group_name}/{log_stream['logStreamName']}")
    return logs_client.put_log_events(**request)


def put_log_events(
    records: List[Dict[str, str]],
    logs_client=None,
    config: Optional[ForwarderConfig] = None
) -> List[Dict[str, Any]]:
    """
    Deliver records to CloudWatch Logs, one log stream per record date

    Date groups are delivered concurrently. The first failing group aborts the
    whole call; groups that already succeeded are not rolled back.

    Args:
        records: Log records, each with 'date' and 'time' fields
        logs_client: boto3 CloudWatch Logs client (built from config if omitted)
        config: Destination settings (read from the environment if omitted)

    Returns:
        One PutLogEvents response per date group, in first-seen date order
    """
    if config is None:
        config = ForwarderConfig.from_environment()
    if logs_client is None:
        logs_client = config.create_logs_client()

    grouped_records = group_by(records, GROUP_BY_FIELD)
    if not grouped_records:
        logger.info(f"No dated records to deliver out of {len(records)} records")
        return []

    logger.info(f"Delivering {len(records)} records in {len(grouped_records)} date groups to {config.log_group_name} in {config.region}")

    with ThreadPoolExecutor(max_workers=len(grouped_records)) as executor:
        futures = [
            executor.submit(put_date_group, logs_client, config, date, group)
            for date, group in grouped_records.items()
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)

        for future in futures:
            if future in done and future.exception() is not None:
                logger.error(f"Failed to deliver log events to {config.log_group_name}: {str(future.exception())}")
                raise future.exception()

    return [future.result() for future in futures]
