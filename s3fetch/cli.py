"""Download S3 objects to local paths.

Each directive has the form s3://BUCKET/KEY:DEST. The key runs up to the
last colon, so keys may contain colons. A bucket written as
bucket-name_region-code documents its region, requests still use the region
from the AWS environment or profile.

Usage:
    s3fetch [options] <DIRECTIVE>...
    s3fetch (-h | --help)
    s3fetch --version

Options:
    -h,--help                       Show this screen
    --version                       Show version
    --sleep                         Stay resident after a successful run
    -u,--unsigned                   Use unsigned requests
    -c,--chunksize=<CHUNKSIZE>      Size of chunks streamed to disk, in bytes
                                    [default: 8388608]

Environment:
    S3FETCH_LOG_LEVEL               Logging level, INFO when unset or unknown
"""
import logging
import os
import sys
import time

from docopt import docopt, DocoptExit

from s3fetch import s3fetch, version
from s3fetch.exceptions import S3FetchError

logger = logging.getLogger(__name__)

SLEEP_INTERVAL = 60 * 60
DEFAULT_LOG_LEVEL = 'INFO'


def setup_logging():
    level = os.environ.get('S3FETCH_LOG_LEVEL', DEFAULT_LOG_LEVEL).upper()
    known = isinstance(logging.getLevelName(level), int)
    logging.basicConfig(
        level=level if known else DEFAULT_LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    if not known:
        logger.warning('unknown log level %r, using %s', level, DEFAULT_LOG_LEVEL)


def sleep_forever(interval=SLEEP_INTERVAL):
    """Keep the process alive until it is killed."""
    while True:
        logger.info('sleeping forever')
        time.sleep(interval)


def main(argv=None):
    args = docopt(__doc__, argv=argv, version=version.__version__)

    directives = args['<DIRECTIVE>']
    signed = not args['--unsigned']

    try:
        chunksize = int(args['--chunksize'])
    except ValueError:
        raise DocoptExit('--chunksize must be an integer')
    if chunksize <= 0:
        raise DocoptExit('--chunksize must be positive')

    setup_logging()

    try:
        s3fetch(
            directives=directives,
            signed=signed,
            chunksize=chunksize,
        )
    except S3FetchError as error:
        logger.exception('%s', error)
        sys.exit(1)

    if args['--sleep']:
        sleep_forever()
