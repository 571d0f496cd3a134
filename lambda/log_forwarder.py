"""
AWS Lambda function for forwarding CloudFront access logs
Processes S3 object notifications (or direct record lists) and delivers the
log lines to CloudWatch Logs, one log stream per day
"""

import json
import logging
import urllib.parse
from typing import Dict, List, Any

import boto3

from cloudfront_log_parser import decode_log_object, parse_cloudfront_log
from cloudwatch_logs import ForwarderConfig, put_log_events, GROUP_BY_FIELD
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


def lambda_handler(event: Any, context) -> Dict[str, Any]:
    """
    Main Lambda handler

    Any failure is raised to the Lambda runtime, which owns the retry policy.
    """
    config = ForwarderConfig.from_environment()
    logs_client = config.create_logs_client()

    if isinstance(event, list):
        logger.info(f"Forwarding {len(event)} records from direct invocation")
        responses = put_log_events(event, logs_client=logs_client, config=config)
        return build_response(objects=0, records=len(event), groups=len(responses))

    s3_records = [record for record in event.get('Records', []) if 's3' in record]
    logger.info(f"Processing {len(s3_records)} S3 object notifications")

    s3_client = boto3.client('s3')
    total_records = 0
    total_groups = 0

    for s3_record in s3_records:
        bucket_name = s3_record['s3']['bucket']['name']
        object_key = urllib.parse.unquote_plus(s3_record['s3']['object']['key'])

        try:
            records = download_and_parse_log_file(s3_client, bucket_name, object_key)
            responses = put_log_events(records, logs_client=logs_client, config=config)
        except Exception as e:
            logger.error(f"Failed to forward s3://{bucket_name}/{object_key}: {str(e)}", exc_info=True)
            raise

        total_records += len(records)
        total_groups += len(responses)

    logger.info(f"Processing complete. Objects: {len(s3_records)}, Records: {total_records}, Date groups: {total_groups}")
    return build_response(objects=len(s3_records), records=total_records, groups=total_groups)


def download_and_parse_log_file(s3_client, bucket_name: str, object_key: str) -> List[Dict[str, str]]:
    """
    Download a CloudFront log file from S3 and parse it into records
    """
    logger.info(f"Processing S3 object: s3://{bucket_name}/{object_key}")

    response = s3_client.get_object(Bucket=bucket_name, Key=object_key)
    content = decode_log_object(response['Body'].read(), object_key)
    records = parse_cloudfront_log(content)

    dates = sorted({record[GROUP_BY_FIELD] for record in records if GROUP_BY_FIELD in record})
    logger.info(f"Read {len(records)} records spanning dates {dates}")
    return records


def build_response(objects: int, records: int, groups: int) -> Dict[str, Any]:
    return {
        'statusCode': 200,
        'body': json.dumps({
            'objects': objects,
            'records': records,
            'groups': groups
        })
    }
