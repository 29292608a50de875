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
Evaluation of one attribute rule block against the values of that attribute.
"""

import logging
from collections.abc import Iterable, Sequence

from satosa_assurance.config import AttributeRuleBlock

logger = logging.getLogger(__name__)


def add_values(result: list[str], values: Iterable[str]) -> None:
    """Append the values not already present in result, keeping first-insertion order."""
    for value in values:
        if value not in result:
            result.append(value)


def evaluate(rule_block: AttributeRuleBlock, values: Sequence[str]) -> list[str]:
    """
    Get the assurances released by rule_block for the observed attribute values.

    All rules of the block are evaluated, in this order:

      1. exact rules, for every value in values
      2. passthrough regex rules, releasing the matching values themselves
      3. mapped regex rules, releasing their assurance list once if any value matches

    :param rule_block: Rules for the attribute
    :param values: The attribute values received from the IdP
    :return: Assurance values, without duplicates
    """
    result: list[str] = []

    for value in values:
        if value in rule_block.exact_rules:
            logger.debug(f'Exact match for value {value}: {rule_block.exact_rules[value]}')
            add_values(result, rule_block.exact_rules[value])

    for rule in rule_block.regex_rules:
        if not rule.passthrough:
            continue
        matching = [value for value in values if rule.regex.search(value)]
        if matching:
            logger.debug(f'Passthrough match for regex {rule.regex.pattern}: {matching}')
            add_values(result, matching)

    for rule in rule_block.regex_rules:
        if rule.passthrough:
            continue
        for value in values:
            if rule.regex.search(value):
                logger.debug(f'Regex {rule.regex.pattern} matched value {value}: {rule.assurance}')
                add_values(result, rule.assurance or ())
                break

    return result
