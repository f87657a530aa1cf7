import io
from pathlib import Path
from unittest.mock import MagicMock

import botocore.exceptions
import pytest
from botocore.response import StreamingBody


def make_body(content):
    return StreamingBody(io.BytesIO(content), len(content))


def no_such_key(key):
    return botocore.exceptions.ClientError(
        {'Error': {'Code': 'NoSuchKey', 'Message': 'missing %s' % key}},
        'GetObject')


@pytest.fixture
def aws_env(tmp_path: Path, monkeypatch):
    """Isolate boto3 from the user's AWS configuration."""
    for name in ('AWS_PROFILE', 'AWS_DEFAULT_PROFILE', 'AWS_REGION',
                 'AWS_DEFAULT_REGION'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('AWS_CONFIG_FILE', str(tmp_path / 'aws-config'))
    monkeypatch.setenv('AWS_SHARED_CREDENTIALS_FILE', str(tmp_path / 'aws-credentials'))
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    return monkeypatch


@pytest.fixture
def objects():
    """Objects served by `fake_client`, as `{(bucket, key): bytes}`."""
    return {}


@pytest.fixture
def fake_client(objects):
    """A mock S3 client whose get_object serves `objects`."""
    def get_object(Bucket, Key):
        try:
            content = objects[(Bucket, Key)]
        except KeyError:
            raise no_such_key(Key)
        return {'Body': make_body(content), 'ContentLength': len(content)}

    client = MagicMock()
    client.get_object.side_effect = get_object
    return client
