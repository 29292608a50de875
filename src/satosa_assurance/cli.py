"""
Check what assurance a DynamicAssurance configuration gives for a set of attributes.

Example:

    satosa-assurance-check --config plugins/dynamic_assurance.yaml --attributes attributes.yaml \
        --idp https://idp.example.org/idp/shibboleth
"""

import argparse
import logging
import sys
from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing import Any

import yaml

from satosa_assurance.config import load_idp_tags, load_rule_configuration
from satosa_assurance.exceptions import ConfigError
from satosa_assurance.log import init_logging
from satosa_assurance.metadata import IdpDescriptor, StaticMetadataLookup
from satosa_assurance.resolver import SessionState, resolve

logger = logging.getLogger(__name__)


class InputError(Exception):
    pass


def load_yaml(path: str | PathLike[str]) -> Any:
    try:
        with open(path) as fd:
            return yaml.safe_load(fd)
    except (OSError, yaml.YAMLError) as e:
        raise InputError(f'Could not load {path}: {e}')


def load_plugin_config(path: str | PathLike[str]) -> Mapping[str, Any]:
    """Load the plugin configuration, either as a SATOSA plugin file or just the config section."""
    data = load_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise InputError(f'{path} does not contain a mapping')
    if 'module' in data and 'config' in data:
        return data['config'] or {}
    return data


def load_attributes(path: str | PathLike[str]) -> dict[str, list[str]]:
    data = load_yaml(path)
    if data is None:
        return {}
    if isinstance(data, Mapping) and isinstance(data.get('attributes'), Mapping):
        data = data['attributes']
    if not isinstance(data, Mapping):
        raise InputError(f'{path} does not contain a mapping of attributes')
    attributes: dict[str, list[str]] = {}
    for name, values in data.items():
        if values is None:
            values = []
        elif not isinstance(values, list):
            values = [values]
        attributes[str(name)] = [str(value) for value in values]
    return attributes


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Resolve assurance for a set of attributes')
    parser.add_argument(
        '--config', '-c', dest='config', type=Path, required=True, help='DynamicAssurance configuration'
    )
    parser.add_argument('--attributes', '-a', dest='attributes', type=Path, required=True, help='Attributes file')
    parser.add_argument('--idp', dest='idp', default=None, help='Entity id of the remote IdP')
    parser.add_argument(
        '--tag', dest='tags', action='append', default=[], help='Tag of the IdP the request originates from'
    )
    parser.add_argument('--debug', dest='debug', action='store_true', default=False, help='Enable debug logging')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_logging('satosa_assurance_check', level='DEBUG' if args.debug else 'WARNING')

    try:
        config = load_plugin_config(args.config)
        rules = load_rule_configuration(config)
        metadata = StaticMetadataLookup(load_idp_tags(config.get('idpTags')))
        attributes = load_attributes(args.attributes)
    except (ConfigError, InputError) as e:
        sys.stderr.write(f'{e}\n')
        return 1

    source = None
    if args.tags:
        source = IdpDescriptor(entity_id='', tags=frozenset(args.tags))
    state = SessionState(attributes=attributes, source_idp=args.idp, source=source)
    for value in resolve(rules, state, metadata):
        print(value)
    return 0


if __name__ == '__main__':
    sys.exit(main())
