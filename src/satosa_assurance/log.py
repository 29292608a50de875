# -*- coding: utf-8 -*-

import logging
import logging.config
import time
from os import environ
from pprint import PrettyPrinter
from typing import Optional

from satosa_assurance.config import merge_config

logger = logging.getLogger(__name__)

"""
Adds the following entries to logging context:
system_hostname - Set with environment variable SYSTEM_HOSTNAME
hostname - Set with environment variable HOSTNAME
app_name - app name
"""

DEFAULT_FORMAT = '%(asctime)s | %(levelname)s | %(hostname)s | %(name)s | %(module)s | %(message)s'


# Default to RFC3339/ISO 8601 with tz
class AssuranceFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            t = time.strftime('%Y-%m-%dT%H:%M:%S', ct)
            tz = time.strftime('%z', ct)  # Can evaluate to empty string
            if tz:
                tz = '{0}:{1}'.format(tz[:3], tz[3:])  # Need colon to follow the rfc/iso
            s = '{}.{:03.0f}{}'.format(t, record.msecs, tz)
        return s


class AppFilter(logging.Filter):
    def __init__(self, app_name):
        logging.Filter.__init__(self)
        self.app_name = app_name

    def filter(self, record):
        record.system_hostname = environ.get('SYSTEM_HOSTNAME', '')  # Underlying hosts name for containers
        record.hostname = environ.get('HOSTNAME', '')  # Actual hostname or container id
        record.app_name = self.app_name
        return True


def init_logging(app_name: str, config: Optional[dict] = None, level: Optional[str] = None) -> None:
    """
    Init logging using dictConfig.

    The level is taken from the level argument, or the LOG_LEVEL environment variable,
    the format from the LOG_FORMAT environment variable.

    Merges optional dictConfig from config before initializing.
    """

    local_context = {
        'level': level or environ.get('LOG_LEVEL', 'INFO'),
        'format': environ.get('LOG_FORMAT', DEFAULT_FORMAT),
        'app_name': app_name,
    }

    logging_config = {
        'version': 1,
        'disable_existing_loggers': False,
        # Local variables
        'local_context': local_context,
        'formatters': {
            'default': {'()': 'satosa_assurance.log.AssuranceFormatter', 'fmt': 'cfg://local_context.format'},
        },
        'filters': {
            'app_filter': {'()': 'satosa_assurance.log.AppFilter', 'app_name': 'cfg://local_context.app_name'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': 'cfg://local_context.level',
                'formatter': 'default',
                'filters': ['app_filter'],
            },
        },
        'root': {'handlers': ['console'], 'level': 'cfg://local_context.level'},
    }
    if config is not None:
        logging_config = merge_config(logging_config, config)
    logging.config.dictConfig(logging_config)
    if local_context['level'] == 'DEBUG':
        pp = PrettyPrinter()
        logger.debug(f'Logging config:\n{pp.pformat(logging_config)}')
    logger.info('Logging configured')
    return None
