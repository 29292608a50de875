"""
Identity provider metadata as seen by the assurance resolver.

The resolver only cares about the tags of an IdP. Tags can be configured
statically per entity id, or derived from SAML metadata where the entity
categories and assurance certifications of the IdP are used as tags.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from saml2.mdstore import MetaData

logger = logging.getLogger(__name__)

REMOTE_IDP_PROTOCOL = 'saml20-idp-remote'


@dataclass(frozen=True)
class IdpDescriptor:
    entity_id: str
    tags: frozenset[str] = field(default_factory=frozenset)


class MetadataLookup(ABC):
    @abstractmethod
    def resolve(self, entity_id: str, protocol: str = REMOTE_IDP_PROTOCOL) -> IdpDescriptor | None:
        """Return the descriptor for entity_id, or None if the entity is unknown."""
        raise NotImplementedError()


class StaticMetadataLookup(MetadataLookup):
    """
    Tags configured per IdP entity id.

    Example:

      idpTags:
        https://idp.example.org/idp/shibboleth:
          - edugain
    """

    def __init__(self, tags: Mapping[str, Iterable[str]] | None = None):
        self.tags = {entity_id: frozenset(_tags) for entity_id, _tags in (tags or {}).items()}

    def resolve(self, entity_id: str, protocol: str = REMOTE_IDP_PROTOCOL) -> IdpDescriptor | None:
        if entity_id not in self.tags:
            return None
        return IdpDescriptor(entity_id=entity_id, tags=self.tags[entity_id])


class Saml2MetadataLookup(MetadataLookup):
    """
    Tags derived from pysaml2 metadata.

    The protocol argument is not used, pysaml2 metadata is looked up by entity id only.
    """

    def __init__(self, metadata: Iterable[MetaData], fallback: MetadataLookup | None = None):
        self.metadata = list(metadata)
        self.fallback = fallback

    def resolve(self, entity_id: str, protocol: str = REMOTE_IDP_PROTOCOL) -> IdpDescriptor | None:
        found = False
        tags: set[str] = set()
        for _this_md in self.metadata:
            try:
                _ecs = _this_md.entity_categories(entity_id)
                _assurances = list(_this_md.assurance_certifications(entity_id))
            except KeyError:
                continue
            logger.debug(f'Entity categories for {entity_id}: {_ecs}, assurance certifications: {_assurances}')
            found = True
            tags.update(_ecs)
            tags.update(_assurances)

        if self.fallback is not None:
            _static = self.fallback.resolve(entity_id, protocol)
            if _static is not None:
                found = True
                tags.update(_static.tags)

        if not found:
            logger.debug(f'No metadata found for {entity_id}')
            return None
        return IdpDescriptor(entity_id=entity_id, tags=frozenset(tags))
