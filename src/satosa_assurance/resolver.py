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
Dynamic assurance resolution.

Derives the assurance values (eduPersonAssurance) for an authentication from
the attributes released by the IdP, the tags of the IdP, and the default and
minimum assurance policy of the RuleConfiguration.
"""

import logging
from dataclasses import dataclass

from satosa_assurance.config import RuleConfiguration
from satosa_assurance.matcher import add_values, evaluate
from satosa_assurance.metadata import REMOTE_IDP_PROTOCOL, IdpDescriptor, MetadataLookup

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """
    The parts of an authentication the resolver looks at.

    attributes is updated in place with the resolved assurance values.

    source_idp is the entity id of the remote IdP when running on a proxy (bridge),
    its descriptor is fetched using a MetadataLookup. source is the metadata of the
    IdP the request originates from, used when there is no remote IdP.
    """

    attributes: dict[str, list[str]]
    source_idp: str | None = None
    source: IdpDescriptor | None = None


def get_idp_descriptor(state: SessionState, metadata: MetadataLookup | None = None) -> IdpDescriptor | None:
    if state.source_idp:
        if metadata is None:
            logger.debug(f'No metadata lookup available for remote IdP {state.source_idp}')
            return None
        return metadata.resolve(state.source_idp, REMOTE_IDP_PROTOCOL)
    return state.source


def resolve(config: RuleConfiguration, state: SessionState, metadata: MetadataLookup | None = None) -> list[str]:
    """
    Resolve the assurance values for state and store them in state.attributes[config.output_attribute].

    Nothing is written when no assurance value was resolved.

    :param config: Rules to apply
    :param state: The current authentication
    :param metadata: Used to find the tags of a remote IdP
    :return: The resolved assurance values, in first-insertion order
    """
    result: list[str] = []

    for attr_name, rule_block in config.attribute_map.items():
        values = state.attributes.get(attr_name)
        if not values:
            continue
        matched = evaluate(rule_block, values)
        if matched:
            logger.debug(f'Attribute {attr_name} matched assurance: {matched}')
        add_values(result, matched)

    if config.idp_tag_map:
        idp = get_idp_descriptor(state, metadata)
        if idp is not None:
            logger.debug(f'IdP {idp.entity_id} has tags {sorted(idp.tags)}')
            for tag, assurance in config.idp_tag_map.items():
                if tag in idp.tags:
                    logger.debug(f'IdP tag {tag} matched assurance: {assurance}')
                    add_values(result, assurance)

    if config.min_assurance:
        needs_default = not any(value in config.min_assurance for value in result)
        if needs_default:
            logger.debug(f'Minimum assurance {config.min_assurance} not met by {result}')
    else:
        needs_default = not result

    if needs_default and config.default_assurance:
        logger.debug(f'Adding default assurance {config.default_assurance}')
        add_values(result, config.default_assurance)

    if result:
        state.attributes[config.output_attribute] = list(result)
    logger.debug(f'Assurance for attribute {config.output_attribute}: {result}')
    return result
