"""Errors raised while fetching S3 objects.

Every error is fatal for the run: nothing is retried or skipped.
"""


class S3FetchError(Exception):
    """Base class for all s3fetch errors."""


class MalformedDirective(S3FetchError):
    def __init__(self, directive):
        super().__init__(
            'malformed directive %r, expected s3://BUCKET/KEY:DEST' % directive)
        self.directive = directive


class PathConversionError(S3FetchError):
    def __init__(self, destination):
        super().__init__(
            'destination %r is not a valid filesystem path' % destination)
        self.destination = destination


class DirectoryCreationError(S3FetchError):
    def __init__(self, path):
        super().__init__('unable to create directory %s' % path)
        self.path = path


class ClientConstructionError(S3FetchError):
    def __init__(self, region):
        super().__init__('unable to build s3 client for region %s' % region)
        self.region = region


class FetchError(S3FetchError):
    def __init__(self, bucket, key, reason=None):
        message = 'unable to fetch s3://%s/%s' % (bucket, key)
        if reason:
            message = '%s: %s' % (message, reason)
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class StreamWriteError(S3FetchError):
    def __init__(self, destination):
        super().__init__('unable to write %s' % destination)
        self.destination = destination
