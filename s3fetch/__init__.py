import contextlib
import logging
import os
import re
from collections import namedtuple
from pathlib import Path

import boto3
import botocore
import botocore.config
import botocore.exceptions

from s3fetch.exceptions import (
    ClientConstructionError,
    DirectoryCreationError,
    FetchError,
    MalformedDirective,
    PathConversionError,
    StreamWriteError,
)


logger = logging.getLogger(__name__)

# Bucket stops at the first slash, key runs up to the last colon. Either
# may be empty, S3 rejects those when the object is requested.
DIRECTIVE_RE = re.compile(r's3://(.*?)/(.*):(.*)', re.DOTALL)

DEFAULT_REGION = 'us-east-1'
DEFAULT_CHUNKSIZE = 8388608

Entry = namedtuple('Entry', ['bucket', 'key', 'destination'])


def to_path(destination):
    """Convert the destination part of a directive to a `Path`.

    :param destination: Raw destination string.
    :return: The `pathlib.Path`, not checked for existence.
    """
    if not destination or '\x00' in destination:
        raise PathConversionError(destination)
    return Path(destination)


def parse_directive(raw):
    """Parse one `s3://BUCKET/KEY:DEST` directive.

    Example, keys may contain colons, only the last one separates the
    destination:

        >>> parse_directive('s3://bucket/a:b:/tmp/out')
        Entry(bucket='bucket', key='a:b', destination=PosixPath('/tmp/out'))

    :param raw: The directive as given on the command line.
    :return: An `Entry(bucket, key, destination)`.
    """
    match = DIRECTIVE_RE.fullmatch(raw)
    if match is None:
        raise MalformedDirective(raw)
    bucket, key, destination = match.groups()
    return Entry(bucket, key, to_path(destination))


def parse_directives(raws):
    """Parse every directive before any work starts.

    :param raws: Iterable of raw directives.
    :return: A list of `Entry`, in input order.
    """
    return [parse_directive(raw) for raw in raws]


def bucket_region(bucket):
    """Return the region hint of a `bucket-name_region-code` bucket, or None.

    The hint is informational only, requests always use the ambient region.
    """
    name, sep, region = bucket.rpartition('_')
    if not sep or not name or not region:
        return None
    return region


def plan_work(entries):
    """Group entries by bucket.

    A key given twice for the same bucket keeps the last destination.

    :param entries: Iterable of `Entry`.
    :return: A dict `{bucket: {key: destination}}`.
    """
    plan = {}
    for bucket, key, destination in entries:
        plan.setdefault(bucket, {})[key] = destination
    return plan


def prepare_directories(plan):
    """Create the missing parent directory of every destination.

    Stops at the first directory that cannot be created.

    :param plan: Work plan as returned by `plan_work`.
    """
    for files in plan.values():
        for destination in files.values():
            parent = destination.parent
            try:
                if parent.exists():
                    continue
                logger.warning("'%s' does not exist", parent)
                os.makedirs(parent, exist_ok=True)
            except OSError as err:
                raise DirectoryCreationError(parent) from err
            logger.info("successfully created '%s'", parent)


def resolve_region(session):
    """Return the region configured for `session`, or the default one."""
    return session.region_name or DEFAULT_REGION


def create_client(signed=True):
    """Create a boto client for the ambient region.

    :param signed: Sign requests with the ambient credentials, or send
        anonymous requests for public buckets.
    :return: An S3 client bound to the resolved region.
    """
    region = None
    try:
        session = boto3.session.Session()
        region = resolve_region(session)
        if signed:
            client = session.client('s3', region_name=region)
        else:
            client = session.client(
                's3',
                region_name=region,
                config=botocore.config.Config(signature_version=botocore.UNSIGNED))
    except botocore.exceptions.BotoCoreError as err:
        raise ClientConstructionError(region) from err
    logger.info('built s3 client for region %s', region)
    return client


def download_object(client, bucket, key, destination, chunksize=DEFAULT_CHUNKSIZE):
    """Stream one object to a local file.

    :param client: S3 client of the bucket, from `create_client`.
    :param bucket: Bucket holding the object.
    :param key: Object key, taken verbatim from the directive.
    :param destination: Path of the file to create, overwritten if present.
    :param chunksize: Size of each chunk read from the response, in bytes.
    """
    logger.debug('requesting s3://%s/%s', bucket, key)
    try:
        response = client.get_object(Bucket=bucket, Key=key)
    except (botocore.exceptions.BotoCoreError,
            botocore.exceptions.ClientError) as err:
        raise FetchError(bucket, key) from err

    body = response.get('Body')
    if body is None:
        raise FetchError(bucket, key, 'the object has no body')

    logger.info('writing contents of s3://%s/%s to %s', bucket, key, destination)
    try:
        with contextlib.closing(body), open(destination, mode='wb') as file_:
            for chunk in body.iter_chunks(chunk_size=chunksize):
                file_.write(chunk)
    except (OSError, botocore.exceptions.BotoCoreError) as err:
        raise StreamWriteError(destination) from err


def download_plan(plan, signed=True, chunksize=DEFAULT_CHUNKSIZE):
    """Download every object of the plan, one bucket at a time.

    One client is built per bucket. The first failure aborts the run.

    :param plan: Work plan as returned by `plan_work`.
    :param signed: If `False` use unsigned requests.
    :param chunksize: Size of each chunk read from the responses, in bytes.
    """
    for bucket, files in plan.items():
        hint = bucket_region(bucket)
        if hint:
            logger.debug('bucket %s names region %s, using ambient region', bucket, hint)
        client = create_client(signed)
        for key, destination in files.items():
            download_object(client, bucket, key, destination, chunksize=chunksize)


def s3fetch(directives, signed=True, chunksize=DEFAULT_CHUNKSIZE):
    """Main entry point to download a batch of s3 objects.

    Example to download two files of the same bucket:
        >>> s3fetch(['s3://bucket/a.txt:/tmp/a.txt', 's3://bucket/b.txt:/tmp/b.txt'])

    :param directives: List of `s3://BUCKET/KEY:DEST` strings. All of them
        are parsed before any directory is created or request is made.
    :param signed: If `False` use unsigned requests.
    :param chunksize: Size of each chunk read from the responses, in bytes.
    :return: The work plan that was executed.
    """
    plan = plan_work(parse_directives(directives))
    logger.info('parsed the following actions: %s', plan)

    prepare_directories(plan)
    download_plan(plan, signed=signed, chunksize=chunksize)
    return plan
