"""
Parser for CloudFront standard access logs (W3C extended log file format)
"""

import gzip
import logging
from typing import Dict, List, Union

logger = logging.getLogger(__name__)

# Column order used by CloudFront standard logs when a file carries no #Fields header
DEFAULT_CLOUDFRONT_FIELDS = [
    'date', 'time', 'x-edge-location', 'sc-bytes', 'c-ip', 'cs-method',
    'cs(Host)', 'cs-uri-stem', 'sc-status', 'cs(Referer)', 'cs(User-Agent)',
    'cs-uri-query', 'cs(Cookie)', 'x-edge-result-type', 'x-edge-request-id',
    'x-host-header', 'cs-protocol', 'cs-bytes', 'time-taken', 'x-forwarded-for',
    'ssl-protocol', 'ssl-cipher', 'x-edge-response-result-type',
    'cs-protocol-version', 'fle-status', 'fle-encrypted-fields', 'c-port',
    'time-to-first-byte', 'x-edge-detailed-result-type', 'sc-content-type',
    'sc-content-len', 'sc-range-start', 'sc-range-end'
]

FIELDS_DIRECTIVE = '#Fields:'


def decode_log_object(body: bytes, object_key: str) -> str:
    """
    Decompress (for .gz keys) and decode a downloaded log object
    """
    if object_key.endswith('.gz'):
        logger.info(f"Downloaded file size: {len(body)} bytes (compressed)")
        body = gzip.decompress(body)
        logger.info(f"Decompressed file size: {len(body)} bytes")

    return body.decode('utf-8', errors='replace')


def parse_cloudfront_log(content: Union[bytes, str]) -> List[Dict[str, str]]:
    """
    Parse CloudFront log file content into records

    The '#Fields:' directive names the tab separated columns of every
    following line. Lines whose column count does not match are skipped.

    Args:
        content: Decompressed log file content

    Returns:
        One record per log line, mapping field name to raw value
    """
    if isinstance(content, bytes):
        content = content.decode('utf-8', errors='replace')

    fields = DEFAULT_CLOUDFRONT_FIELDS
    records = []
    skipped = 0

    for line_num, line in enumerate(content.splitlines()):
        if not line.strip():
            continue

        if line.startswith('#'):
            if line.startswith(FIELDS_DIRECTIVE):
                fields = line[len(FIELDS_DIRECTIVE):].split()
                logger.debug(f"Line {line_num}: using {len(fields)} fields from header")
            continue

        values = line.split('\t')
        if len(values) != len(fields):
            skipped += 1
            logger.warning(f"Line {line_num}: expected {len(fields)} fields, got {len(values)}, skipping")
            continue

        records.append(dict(zip(fields, values)))

    logger.info(f"Parsed {len(records)} records from CloudFront log ({skipped} skipped)")
    return records
