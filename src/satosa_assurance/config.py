#
# Copyright (c) 2021 SUNET
# All rights reserved.
#
#   Redistribution and use in source and binary forms, with or
#   without modification, are permitted provided that the following
#   conditions are met:
#
#     1. Redistributions of source code must retain the above copyright
#        notice, this list of conditions and the following disclaimer.
#     2. Redistributions in binary form must reproduce the above
#        copyright notice, this list of conditions and the following
#        disclaimer in the documentation and/or other materials provided
#        with the distribution.
#     3. Neither the name of the NORDUnet nor the names of its
#        contributors may be used to endorse or promote products derived
#        from this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT,
# INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING,
# BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES;
# LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN
# ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
#
"""
Rule configuration for the DynamicAssurance plugin.

The configuration supplied by the operator is merged over the built-in
defaults below (supplied entries augment the defaults, they never replace
them) and then validated into an immutable RuleConfiguration.

Attribute rule blocks use the following format, where every key except
``%regex`` is an exact match on an attribute value:

    eduPersonAssurance:
      "1.2.840.113612.5.2.2.1":
        - https://refeds.org/assurance/IAP/low
        - https://refeds.org/assurance/IAP/medium
      "%regex":
        # passthrough, the matching value itself is the assurance
        - "^https://refeds\\.org/assurance/"
        # mapped, any matching value releases the listed assurances
        - "^.+$":
            - https://refeds.org/assurance/IAP/low
"""

import logging
import re
from collections.abc import Mapping, Sequence
from copy import deepcopy
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from satosa_assurance.exceptions import ConfigError

logger = logging.getLogger(__name__)

REGEX_KEY = '%regex'

REFEDS_IAP_LOW = 'https://refeds.org/assurance/IAP/low'
REFEDS_IAP_MEDIUM = 'https://refeds.org/assurance/IAP/medium'

DEFAULT_OUTPUT_ATTRIBUTE = 'eduPersonAssurance'

DEFAULT_ATTRIBUTE_MAP: dict[str, dict[str, Any]] = {
    'eduPersonAssurance': {
        # IGTF policy OIDs
        '1.2.840.113612.5.2.2.1': [REFEDS_IAP_LOW, REFEDS_IAP_MEDIUM],
        '1.2.840.113612.5.2.2.5': [REFEDS_IAP_LOW, REFEDS_IAP_MEDIUM],
        REGEX_KEY: [
            r'^https://refeds\.org/assurance/',
            r'^https://igtf\.net/ap/authn-assurance/',
        ],
    },
    'voPersonVerifiedEmail': {
        REGEX_KEY: [
            {r'^.+$': [REFEDS_IAP_LOW]},
        ],
    },
}

DEFAULT_RULES: dict[str, Any] = {
    'attributeMap': DEFAULT_ATTRIBUTE_MAP,
    'idpTagMap': {},
    'defaultAssurance': [],
    'minAssurance': [],
}

STRING_OPTIONS = ('attribute',)
MAPPING_OPTIONS = ('attributeMap', 'idpTagMap')
SEQUENCE_OPTIONS = ('defaultAssurance', 'minAssurance')


def _unique(values: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


class RegexRule(BaseModel):
    """
    A regular expression matched against attribute values.

    Without an assurance list this is a passthrough rule: every matching value
    is itself released as an assurance.
    """

    model_config = ConfigDict(frozen=True)

    regex: re.Pattern[str]
    assurance: tuple[StrictStr, ...] | None = None

    @field_validator('regex', mode='before')
    @classmethod
    def _compile(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return re.compile(value, re.MULTILINE)
            except re.error as e:
                raise ValueError(f'invalid regular expression {value!r}: {e}')
        return value

    @property
    def passthrough(self) -> bool:
        return self.assurance is None


def _parse_regex_rules(rules: Any) -> Any:
    if isinstance(rules, Mapping):
        rules = [{pattern: assurance} for pattern, assurance in rules.items()]
    if not isinstance(rules, list):
        raise ValueError(f'{REGEX_KEY} should be a list of regex rules')
    res: list[dict[str, Any]] = []
    for rule in rules:
        if isinstance(rule, str):
            res.append({'regex': rule})
        elif isinstance(rule, Mapping):
            for pattern, assurance in rule.items():
                res.append({'regex': pattern, 'assurance': assurance})
        else:
            raise ValueError(f'regex rule {rule!r} is neither a pattern nor a mapping')
    return res


_RULE_BLOCK_FIELDS = frozenset({'exact_rules', 'regex_rules'})


class AttributeRuleBlock(BaseModel):
    """The exact and regex rules for one attribute."""

    model_config = ConfigDict(frozen=True)

    exact_rules: dict[str, tuple[StrictStr, ...]] = Field(default_factory=dict)
    regex_rules: tuple[RegexRule, ...] = ()

    @model_validator(mode='before')
    @classmethod
    def _split_rules(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        if data and set(data) <= _RULE_BLOCK_FIELDS:
            return data
        return {
            'exact_rules': {k: v for k, v in data.items() if k != REGEX_KEY},
            'regex_rules': _parse_regex_rules(data.get(REGEX_KEY, [])),
        }


class RuleConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore', populate_by_name=True)

    output_attribute: StrictStr = Field(default=DEFAULT_OUTPUT_ATTRIBUTE, alias='attribute')
    attribute_map: dict[str, AttributeRuleBlock] = Field(default_factory=dict, alias='attributeMap')
    idp_tag_map: dict[str, tuple[StrictStr, ...]] = Field(default_factory=dict, alias='idpTagMap')
    default_assurance: tuple[StrictStr, ...] = Field(default=(), alias='defaultAssurance')
    min_assurance: tuple[StrictStr, ...] = Field(default=(), alias='minAssurance')

    @field_validator('default_assurance', 'min_assurance')
    @classmethod
    def _dedup(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _unique(value)

    @field_validator('idp_tag_map')
    @classmethod
    def _dedup_tags(cls, value: dict[str, tuple[str, ...]]) -> dict[str, tuple[str, ...]]:
        return {tag: _unique(assurance) for tag, assurance in value.items()}


def merge_config(base_config: dict, new_config: Mapping) -> dict:
    """
    Deep merge new_config into base_config, modifying base_config.

    Mappings are merged recursively, lists are concatenated and any other
    value in new_config replaces the one in base_config.
    """

    def merge(node: dict, key: Any, value: Any) -> None:
        if isinstance(value, Mapping) and isinstance(node.get(key), dict):
            for item in value:
                merge(node[key], item, value[item])
        elif isinstance(value, (list, tuple)) and isinstance(node.get(key), list):
            node[key] = node[key] + list(value)
        else:
            node[key] = value

    for k, v in new_config.items():
        merge(base_config, k, v)
    return base_config


def _check_shape(config: Mapping[str, Any]) -> None:
    for key in STRING_OPTIONS:
        if key in config and not isinstance(config[key], str):
            raise ConfigError(f'DynamicAssurance configuration error: {key!r} should be a string')
    for key in MAPPING_OPTIONS:
        if key in config and not isinstance(config[key], Mapping):
            raise ConfigError(f'DynamicAssurance configuration error: {key!r} should be a mapping')
    for key in SEQUENCE_OPTIONS:
        if key in config and not isinstance(config[key], (list, tuple)):
            raise ConfigError(f'DynamicAssurance configuration error: {key!r} should be a list')


def _normalize_attribute_map(attribute_map: Mapping[str, Any]) -> dict[str, Any]:
    # a %regex mapping is turned into a list so that it augments the default regex rules
    res: dict[str, Any] = {}
    for attr_name, block in attribute_map.items():
        if isinstance(block, Mapping) and isinstance(block.get(REGEX_KEY), Mapping):
            block = dict(block)
            block[REGEX_KEY] = [{pattern: assurance} for pattern, assurance in block[REGEX_KEY].items()]
        res[attr_name] = block
    return res


def load_rule_configuration(config: Mapping[str, Any]) -> RuleConfiguration:
    """
    Merge the supplied configuration over the built-in defaults and validate the result.

    Unknown keys are ignored.

    :raises ConfigError: if a recognised option has the wrong shape
    """
    if not isinstance(config, Mapping):
        raise ConfigError('DynamicAssurance configuration error: configuration should be a mapping')
    _check_shape(config)

    supplied: dict[str, Any] = {}
    if 'attribute' in config:
        supplied['attribute'] = config['attribute']
    if 'attributeMap' in config:
        supplied['attributeMap'] = _normalize_attribute_map(deepcopy(config['attributeMap']))
    for key in ('idpTagMap', *SEQUENCE_OPTIONS):
        if key in config:
            supplied[key] = deepcopy(config[key])

    merged = merge_config(deepcopy(DEFAULT_RULES), supplied)
    try:
        rules = RuleConfiguration.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f'The configuration for this plugin is not valid: {e}')
    logger.debug(f'Loaded rule configuration for attribute {rules.output_attribute}')
    return rules


_IDP_TAGS_ADAPTER = TypeAdapter(dict[str, list[StrictStr]])


def load_idp_tags(tags: Any) -> dict[str, list[str]]:
    """
    Validate a mapping of IdP entity id to the list of tags for that IdP.

    :raises ConfigError: if tags is not a mapping of lists of strings
    """
    if tags is None:
        return {}
    try:
        return _IDP_TAGS_ADAPTER.validate_python(tags)
    except ValidationError as e:
        raise ConfigError(f'The IdP tags configuration is not valid: {e}')
