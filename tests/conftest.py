"""
Test configuration and fixtures for unit tests
"""
import pytest
import os
import sys
import boto3
from moto import mock_aws

# Add Lambda source path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../lambda'))


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def mock_aws_services(aws_credentials):
    """Mock all AWS services."""
    with mock_aws():
        yield


@pytest.fixture
def environment_variables():
    """Set up test environment variables."""
    test_env = {
        'LOG_GROUP_NAME': '/aws/cloudfront/test-distribution',
        'LOG_GROUP_REGION': 'us-east-1',
        'LOG_SOURCE_NAME': 'logs:cloudfront',
        'LOG_LEVEL': 'INFO'
    }

    # Store original values
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield test_env

    # Restore original values
    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def log_group(mock_aws_services, environment_variables):
    """Create the destination CloudWatch log group."""
    logs_client = boto3.client('logs', region_name='us-east-1')
    logs_client.create_log_group(logGroupName=environment_variables['LOG_GROUP_NAME'])
    return environment_variables['LOG_GROUP_NAME']


@pytest.fixture
def sample_records():
    """CloudFront records spanning two days, out of time order."""
    return [
        {'date': '2024-01-01', 'time': '10:00:05', 'c-ip': '192.0.2.10', 'cs-uri-stem': '/b.html', 'sc-status': '200'},
        {'date': '2024-01-02', 'time': '00:00:01', 'c-ip': '192.0.2.11', 'cs-uri-stem': '/c.html', 'sc-status': '404'},
        {'date': '2024-01-01', 'time': '09:59:59', 'c-ip': '192.0.2.12', 'cs-uri-stem': '/a.html', 'sc-status': '200'}
    ]
